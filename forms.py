from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SubmitField, IntegerField, Field
from wtforms.validators import DataRequired, Length, InputRequired, NumberRange, Optional, ValidationError


class IntegerListField(Field):
    """Accepts repeated form keys or a JSON array of ids."""

    def _value(self):
        return ','.join(str(v) for v in self.data) if self.data else ''

    def process_formdata(self, valuelist):
        self.data = []
        for value in valuelist:
            if isinstance(value, str) and ',' in value:
                parts = [p.strip() for p in value.split(',') if p.strip()]
            else:
                parts = [value]
            for part in parts:
                try:
                    self.data.append(int(part))
                except (TypeError, ValueError):
                    self.data = None
                    raise ValueError(self.gettext('Not a valid list of integers.'))


class AdminLoginForm(FlaskForm):
    username = StringField("Username", validators=[DataRequired()])
    user_id = StringField("Admin ID", validators=[DataRequired(), Length(min=3, max=20)])
    password = PasswordField("Password", validators=[DataRequired()])
    submit = SubmitField("Login")


class YearPairForm(FlaskForm):
    source_year_id = IntegerField('Source School Year', validators=[InputRequired(), NumberRange(min=1)])
    target_year_id = IntegerField('Target School Year', validators=[InputRequired(), NumberRange(min=1)])

    def validate_target_year_id(self, field):
        if self.source_year_id.data is not None and field.data == self.source_year_id.data:
            raise ValidationError('Source and target school years must be different.')


class YearPairQueryForm(YearPairForm):
    """Read-only variant bound to query-string arguments."""
    class Meta:
        csrf = False


class CandidateFilterForm(YearPairQueryForm):
    grade = StringField('Grade Level', validators=[Optional(), Length(max=50)])
    section = StringField('Section', validators=[Optional(), Length(max=50)])


class BulkAssignForm(YearPairForm):
    student_ids = IntegerListField('Students')
    target_class_id = IntegerField('Target Class', validators=[InputRequired(), NumberRange(min=1)])

    def validate_student_ids(self, field):
        if not field.data:
            raise ValidationError('Please select at least one student.')
        if any(student_id <= 0 for student_id in field.data):
            raise ValidationError('Student ids must be positive.')


class AssignStudentForm(YearPairForm):
    student_id = IntegerField('Student', validators=[InputRequired(), NumberRange(min=1)])
    target_class_id = IntegerField('Target Class', validators=[InputRequired(), NumberRange(min=1)])


class RemovePlacementForm(YearPairForm):
    student_id = IntegerField('Student', validators=[InputRequired(), NumberRange(min=1)])
    class_id = IntegerField('Class', validators=[Optional(), NumberRange(min=1)])


class LockForm(FlaskForm):
    target_year_id = IntegerField('Target School Year', validators=[InputRequired(), NumberRange(min=1)])

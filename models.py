from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from utils.extensions import db


class Admin(db.Model, UserMixin):
    __tablename__ = 'admin'

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.String(50), unique=True, nullable=False)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    # Flask-Login uses get_id() for the session; admin_id is the audit identity
    def get_id(self):
        return f"admin:{self.admin_id}"

    @property
    def role(self):
        return 'admin'


class SchoolYear(db.Model):
    __tablename__ = 'school_year'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(20), unique=True, nullable=False)  # e.g. '2024-2025'
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, default=False, nullable=False)

    # Monotonic false -> true through the placement API
    is_locked = db.Column(db.Boolean, default=False, nullable=False)
    locked_by = db.Column(db.String(50), nullable=True)
    locked_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    classes = db.relationship('SchoolClass', back_populates='school_year', lazy=True)

    def __repr__(self):
        return f"<SchoolYear {self.name}>"


class Student(db.Model):
    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    student_code = db.Column(db.String(20), unique=True, nullable=False)
    lrn = db.Column(db.String(20), nullable=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def display_name(self):
        """Last-name-first form used in rosters and exports."""
        return f"{self.last_name}, {self.first_name}".strip(', ')

    def __repr__(self):
        return f"<Student {self.student_code}>"


class SchoolClass(db.Model):
    __tablename__ = 'school_class'

    id = db.Column(db.Integer, primary_key=True)
    school_year_id = db.Column(db.Integer, db.ForeignKey('school_year.id'), nullable=False)
    grade_level = db.Column(db.String(50), nullable=False)  # e.g. 'Grade 7'
    section = db.Column(db.String(50), nullable=False)
    max_capacity = db.Column(db.Integer, nullable=True, default=50)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    school_year = db.relationship('SchoolYear', back_populates='classes')

    __table_args__ = (
        db.UniqueConstraint('school_year_id', 'grade_level', 'section', name='uq_class_year_grade_section'),
    )

    @property
    def display_name(self):
        return f"{self.grade_level} - {self.section}"

    def __repr__(self):
        return f"<SchoolClass {self.display_name}>"


class StudentClass(db.Model):
    """A committed enrollment of one student in one class."""
    __tablename__ = 'student_class'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)
    enrolled_by = db.Column(db.String(50), nullable=True)
    enrolled_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    student = db.relationship('Student', backref=db.backref('enrollments', lazy=True))
    school_class = db.relationship('SchoolClass', backref=db.backref('enrollments', lazy=True))

    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_id', name='uq_student_class'),
    )

    def __repr__(self):
        return f"<StudentClass student={self.student_id} class={self.class_id} active={self.is_active}>"


class PlacementLog(db.Model):
    __tablename__ = 'placement_log'

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(30), nullable=False)  # stage, move, unstage, undo, commit, lock, export
    school_year_id = db.Column(db.Integer, db.ForeignKey('school_year.id'), nullable=True)
    student_id = db.Column(db.Integer, nullable=True)
    class_id = db.Column(db.Integer, nullable=True)
    acting_user_id = db.Column(db.String(50), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<PlacementLog {self.action} year={self.school_year_id} by={self.acting_user_id}>"

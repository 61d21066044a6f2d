# utils/validation.py
from utils.errors import ValidationError
from utils.records import SessionKey


def coerce_id(value, field_name):
    """Positive integer id or ValidationError."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field_name}", field=field_name, value=value)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}", field=field_name, value=value)
    if parsed <= 0:
        raise ValidationError(f"Invalid {field_name}", field=field_name, value=value)
    return parsed


def coerce_ids(values, field_name):
    if values is None or isinstance(values, (str, bytes)):
        raise ValidationError(f"Invalid {field_name}", field=field_name)
    ids = [coerce_id(v, field_name) for v in values]
    if not ids:
        raise ValidationError("No students selected", field=field_name)
    return ids


def require_school_year(enrollment_store, year_id, field_name):
    year_id = coerce_id(year_id, field_name)
    if enrollment_store.get_school_year(year_id) is None:
        raise ValidationError('School year not found', field=field_name, value=year_id)
    return year_id


def resolve_session_key(enrollment_store, source_year_id, target_year_id):
    source_year_id = require_school_year(enrollment_store, source_year_id, 'source_year_id')
    target_year_id = require_school_year(enrollment_store, target_year_id, 'target_year_id')
    if source_year_id == target_year_id:
        raise ValidationError('Source and target school years must be different',
                              source_year_id=source_year_id, target_year_id=target_year_id)
    return SessionKey(source_year_id, target_year_id)


def require_acting_user(acting_user_id):
    if acting_user_id is None or not str(acting_user_id).strip():
        raise ValidationError('Acting user is required', field='acting_user_id')
    return str(acting_user_id).strip()

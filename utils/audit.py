# utils/audit.py
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import PlacementLog
from utils.extensions import db


def record_placement_event(action, acting_user_id, school_year_id=None, student_id=None,
                           class_id=None, **details):
    """
    Write one audit row and mirror it to the application log.
    Audit failures are logged and rolled back; they never undo the audited action.
    """
    current_app.logger.info(
        "placement %s year=%s student=%s class=%s by=%s %s",
        action, school_year_id, student_id, class_id, acting_user_id, details or ''
    )

    entry = PlacementLog(
        action=action,
        school_year_id=school_year_id,
        student_id=student_id,
        class_id=class_id,
        acting_user_id=acting_user_id,
        details=details or None,
        created_at=datetime.utcnow(),
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to write placement audit entry '%s'", action)
        return None
    return entry

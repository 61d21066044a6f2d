# utils/errors.py
from enum import Enum


class SkipReason(str, Enum):
    """Per-student outcome recorded in a batch's skipped/failures list."""
    LOCKED = 'Locked'
    ALREADY_COMMITTED = 'AlreadyCommitted'
    ALREADY_STAGED_ELSEWHERE = 'AlreadyStagedElsewhere'
    CLASS_FULL = 'ClassFull'
    NOT_ELIGIBLE = 'NotEligible'
    CLASS_UNAVAILABLE = 'ClassUnavailable'
    PERSISTENCE_FAILURE = 'PersistenceFailure'


class PlacementError(Exception):
    """Base class for whole-call placement failures."""
    status_code = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'success': False, 'error': self.message, 'code': type(self).__name__}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(PlacementError):
    """Missing or malformed ids supplied by the caller."""
    status_code = 400


class EnrollmentLocked(PlacementError):
    """The target school year is frozen; nothing may be staged or committed."""
    status_code = 423

    def __init__(self, school_year_id):
        super().__init__('Target school year enrollment is locked', school_year_id=school_year_id)
        self.school_year_id = school_year_id


class EmptyLedger(PlacementError):
    status_code = 409

    def __init__(self):
        super().__init__('nothing to undo')


class PersistenceFailure(PlacementError):
    status_code = 500

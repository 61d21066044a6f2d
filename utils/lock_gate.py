# utils/lock_gate.py
from flask import current_app

from utils.audit import record_placement_event
from utils.errors import PersistenceFailure
from utils.staging import get_registry
from utils.stores import SqlEnrollmentStore
from utils.validation import require_acting_user, require_school_year


class LockGate:
    """
    One-way enrollment lock for a target school year. Locking requires every
    staged placement for that year to be committed first; there is no unlock here.
    """

    def __init__(self, enrollment_store=None, registry=None, audit=record_placement_event):
        self.enrollment_store = enrollment_store or SqlEnrollmentStore()
        self.registry = registry if registry is not None else get_registry()
        self.audit = audit

    def is_locked(self, target_year_id):
        return self.enrollment_store.is_locked(target_year_id)

    def lock(self, target_year_id, acting_user_id):
        target_year_id = require_school_year(self.enrollment_store, target_year_id, 'target_year_id')
        acting_user_id = require_acting_user(acting_user_id)
        result = {'success': False, 'message': '', 'school_year_id': target_year_id, 'already_locked': False}

        if self.enrollment_store.is_locked(target_year_id):
            result.update(success=True, already_locked=True,
                          message='School year enrollment is already locked')
            return result

        staged = self.registry.staged_count_for_target(target_year_id)
        if staged:
            result['message'] = (f"Cannot lock enrollment: {staged} staged placement(s) "
                                 f"have not been committed")
            current_app.logger.warning(
                "Lock of school year %s refused: %s staged placement(s) pending", target_year_id, staged
            )
            return result

        try:
            self.enrollment_store.set_locked(target_year_id, True, locked_by=acting_user_id)
        except PersistenceFailure as e:
            result['message'] = f"Failed to lock school year enrollment: {e.message}"
            return result

        self.registry.discard_target(target_year_id)
        self.audit('lock', acting_user_id, school_year_id=target_year_id)
        result.update(success=True, message='School year enrollment locked successfully')
        return result

# utils/placement.py
"""
Promotion placement engine.

Operators stage tentative student -> class decisions for a (source year,
target year) pair, inspect progress, undo mistakes, and finally commit the
staged decisions as enrollments. Staging is optimistic; commit re-validates
every entry against current enrollment before writing it.
"""
from flask import current_app

from utils import capacity
from utils.audit import record_placement_event
from utils.conflicts import ConflictDetector, Verdict
from utils.eligibility import EligibilityResolver
from utils.errors import EmptyLedger, EnrollmentLocked, PersistenceFailure, SkipReason, ValidationError
from utils.promotion import suggest_next_grade
from utils.records import BulkAssignResult, CommitResult, PlacementStats
from utils.staging import StageEntry, UnstageEntry, get_registry
from utils.stores import SqlClassCatalog, SqlEnrollmentStore, SqlRosterProvider
from utils.validation import coerce_id, coerce_ids, require_acting_user, resolve_session_key


def round_half_up(value):
    return int(value + 0.5)


class PlacementEngine:

    def __init__(self, roster=None, catalog=None, enrollment_store=None, registry=None,
                 suggest=suggest_next_grade, audit=record_placement_event):
        self.roster = roster or SqlRosterProvider()
        self.catalog = catalog or SqlClassCatalog()
        self.enrollment_store = enrollment_store or SqlEnrollmentStore()
        self.registry = registry if registry is not None else get_registry()
        self.resolver = EligibilityResolver(self.roster, self.enrollment_store, suggest=suggest)
        self.detector = ConflictDetector(self.resolver, self.catalog, self.enrollment_store)
        self.audit = audit

    # ------------------------------------------------------------------ helpers

    def session_key(self, source_year_id, target_year_id):
        return resolve_session_key(self.enrollment_store, source_year_id, target_year_id)

    def is_locked(self, key):
        return self.enrollment_store.is_locked(key.target_year_id)

    def _ensure_unlocked(self, key, operation):
        if self.is_locked(key):
            current_app.logger.warning(
                "Rejected %s for %s: target school year %s is locked", operation, key, key.target_year_id
            )
            raise EnrollmentLocked(key.target_year_id)

    def _target_class(self, key, class_id):
        class_id = coerce_id(class_id, 'target_class_id')
        target_class = self.catalog.get_class(class_id)
        if target_class is None:
            raise ValidationError('Target class not found', target_class_id=class_id)
        if target_class.school_year_id != key.target_year_id:
            raise ValidationError('Target class does not belong to the target school year',
                                  target_class_id=class_id, target_year_id=key.target_year_id)
        return target_class

    # ------------------------------------------------------------------ reads

    def list_candidates(self, source_year_id, target_year_id, grade_level=None, section=None):
        key = self.session_key(source_year_id, target_year_id)
        return self.resolver.list_candidates(key.source_year_id, key.target_year_id, grade_level, section)

    def staged_placements(self, source_year_id, target_year_id):
        key = self.session_key(source_year_id, target_year_id)
        workspace = self.registry.peek(key)
        return workspace.store.all() if workspace else {}

    def target_classes(self, target_year_id, grade_level=None):
        target_year_id = coerce_id(target_year_id, 'target_year_id')
        return self.catalog.list_classes(target_year_id, grade_level)

    def undo_depth(self, source_year_id, target_year_id):
        workspace = self.registry.peek(self.session_key(source_year_id, target_year_id))
        return len(workspace.ledger) if workspace else 0

    # ------------------------------------------------------------------ staging

    def bulk_assign(self, source_year_id, target_year_id, student_ids, target_class_id, acting_user_id):
        """Stage each student into target_class_id independently, in input order."""
        key = self.session_key(source_year_id, target_year_id)
        student_ids = coerce_ids(student_ids, 'student_ids')
        target_class = self._target_class(key, target_class_id)
        acting_user_id = require_acting_user(acting_user_id)
        result = BulkAssignResult()

        if self.is_locked(key):
            for student_id in student_ids:
                result.skip(student_id, SkipReason.LOCKED.value)
            current_app.logger.warning("Bulk assign rejected for %s: target year is locked", key)
            return result

        workspace = self.registry.workspace(key)
        eligible_ids = self.resolver.eligible_ids(key.source_year_id, key.target_year_id)
        assigned = []

        for student_id in student_ids:
            verdict = self.detector.classify(key, student_id, target_class, workspace.store,
                                             eligible_ids=eligible_ids)
            if not verdict.admissible:
                result.skip(student_id, verdict.value)
                continue

            prior = workspace.store.stage(student_id, target_class.class_id)
            if prior != target_class.class_id:
                workspace.ledger.push(StageEntry(student_id, target_class.class_id, prior))
                assigned.append(student_id)
            result.assigned_count += 1

        if assigned:
            self.audit('stage', acting_user_id, school_year_id=key.target_year_id,
                       class_id=target_class.class_id, student_ids=assigned,
                       skipped=len(result.skipped))
        return result

    def assign_student(self, source_year_id, target_year_id, student_id, target_class_id, acting_user_id):
        """
        Stage a single student, replacing any class already staged for them.
        Returns {success, message, previous_class_id, reason}.
        """
        key = self.session_key(source_year_id, target_year_id)
        student_id = coerce_id(student_id, 'student_id')
        target_class = self._target_class(key, target_class_id)
        acting_user_id = require_acting_user(acting_user_id)
        self._ensure_unlocked(key, 'assign')

        workspace = self.registry.workspace(key)
        previous_class_id = workspace.store.get(student_id)
        verdict = self.detector.classify(key, student_id, target_class, workspace.store, allow_move=True)
        if not verdict.admissible:
            message = f"Student cannot be assigned: {verdict.value}"
            if verdict is Verdict.CLASS_FULL:
                report = capacity.check_capacity(
                    target_class,
                    workspace.store.count_for_class(target_class.class_id),
                    self.catalog.committed_count(target_class.class_id),
                )
                message = report['message']
            return {
                'success': False,
                'message': message,
                'previous_class_id': previous_class_id,
                'reason': verdict.value,
            }

        if previous_class_id == target_class.class_id:
            return {
                'success': True,
                'message': 'Student already assigned to this class',
                'previous_class_id': previous_class_id,
                'reason': None,
            }

        workspace.store.stage(student_id, target_class.class_id)
        workspace.ledger.push(StageEntry(student_id, target_class.class_id, previous_class_id))
        self.audit('move' if previous_class_id else 'stage', acting_user_id,
                   school_year_id=key.target_year_id, student_id=student_id,
                   class_id=target_class.class_id, previous_class_id=previous_class_id)
        return {
            'success': True,
            'message': 'Student assigned to class' if previous_class_id is None else 'Student placement updated',
            'previous_class_id': previous_class_id,
            'reason': None,
        }

    def remove_staged(self, source_year_id, target_year_id, student_id, class_id, acting_user_id):
        """
        Unstage a student if currently staged to class_id (any class when
        class_id is None). A mismatch or missing entry is a no-op, not an error.
        """
        key = self.session_key(source_year_id, target_year_id)
        student_id = coerce_id(student_id, 'student_id')
        if class_id is not None:
            class_id = coerce_id(class_id, 'class_id')
        acting_user_id = require_acting_user(acting_user_id)
        self._ensure_unlocked(key, 'remove')

        workspace = self.registry.peek(key)
        if workspace is None:
            return False
        staged_class_id = workspace.store.get(student_id)
        if staged_class_id is None or (class_id is not None and staged_class_id != class_id):
            return False

        workspace.store.unstage(student_id)
        workspace.ledger.push(UnstageEntry(student_id, staged_class_id))
        self.audit('unstage', acting_user_id, school_year_id=key.target_year_id,
                   student_id=student_id, class_id=staged_class_id)
        return True

    def undo_last(self, source_year_id, target_year_id, acting_user_id):
        key = self.session_key(source_year_id, target_year_id)
        acting_user_id = require_acting_user(acting_user_id)
        self._ensure_unlocked(key, 'undo')

        workspace = self.registry.peek(key)
        if workspace is None:
            return {'success': False, 'message': EmptyLedger().message}
        try:
            entry, message = workspace.ledger.pop_and_invert(workspace.store)
        except EmptyLedger as e:
            return {'success': False, 'message': e.message}

        self.audit('undo', acting_user_id, school_year_id=key.target_year_id,
                   student_id=entry.student_id, class_id=entry.class_id,
                   undone=type(entry).__name__)
        return {'success': True, 'message': message}

    # ------------------------------------------------------------------ commit

    def commit(self, source_year_id, target_year_id, acting_user_id):
        """
        Re-validate every staged entry and persist the admissible ones, each in
        its own transaction. Entries that fail stay staged and are reported.
        """
        key = self.session_key(source_year_id, target_year_id)
        acting_user_id = require_acting_user(acting_user_id)
        self._ensure_unlocked(key, 'commit')

        result = CommitResult()
        workspace = self.registry.peek(key)
        if workspace is None:
            return result
        if len(workspace.store) == 0:
            workspace.ledger.clear()
            self.registry.discard(key)
            return result

        eligible_ids = self.resolver.eligible_ids(key.source_year_id, key.target_year_id)
        committed_ids = []

        for student_id, class_id in workspace.store.all().items():
            target_class = self.catalog.get_class(class_id)
            if target_class is None or target_class.school_year_id != key.target_year_id:
                result.fail(student_id, class_id, SkipReason.CLASS_UNAVAILABLE.value,
                            'Target class is no longer available')
                continue

            verdict = self.detector.classify(key, student_id, target_class, workspace.store,
                                             eligible_ids=eligible_ids, revalidate=True)
            if verdict is not Verdict.ADMISSIBLE:
                result.fail(student_id, class_id, verdict.value)
                continue

            try:
                self.enrollment_store.insert_committed_placement(student_id, class_id, acting_user_id)
            except PersistenceFailure as e:
                result.fail(student_id, class_id, SkipReason.PERSISTENCE_FAILURE.value, e.message)
                continue

            workspace.store.unstage(student_id)
            committed_ids.append(student_id)
            result.created_count += 1

        if result.failures:
            workspace.ledger.discard_students(committed_ids)
        else:
            workspace.ledger.clear()
            self.registry.discard(key)

        current_app.logger.info(
            "Placements committed for %s: created=%s failed=%s by=%s",
            key, result.created_count, len(result.failures), acting_user_id
        )
        self.audit('commit', acting_user_id, school_year_id=key.target_year_id,
                   created_count=result.created_count, failure_count=len(result.failures))
        return result

    # ------------------------------------------------------------------ progress

    def stats(self, source_year_id, target_year_id):
        key = self.session_key(source_year_id, target_year_id)
        enrolled_ids = {row['student_id'] for row in self.roster.list_source_enrollments(key.source_year_id)}
        total_eligible = len(enrolled_ids)
        committed = len(enrolled_ids & self.enrollment_store.committed_student_ids(key.target_year_id))

        workspace = self.registry.peek(key)
        staged = len(workspace.store) if workspace else 0

        progress = round_half_up(100 * committed / total_eligible) if total_eligible else 0
        return PlacementStats(
            total_eligible=total_eligible,
            committed=committed,
            staged=staged,
            unassigned=max(0, total_eligible - committed - staged),
            progress_percentage=progress,
        )

    def class_distribution(self, source_year_id, target_year_id):
        """Per target class committed/staged load, plus an aggregate summary."""
        key = self.session_key(source_year_id, target_year_id)
        warning_ratio = current_app.config.get('CAPACITY_WARNING_RATIO', 0.9)
        workspace = self.registry.peek(key)

        classes = []
        for target_class in self.catalog.list_classes(key.target_year_id):
            staged_count = workspace.store.count_for_class(target_class.class_id) if workspace else 0
            total = target_class.committed_count + staged_count
            max_capacity = target_class.max_capacity
            classes.append({
                'class_id': target_class.class_id,
                'display_name': target_class.display_name,
                'grade_level': target_class.grade_level,
                'section': target_class.section,
                'max_capacity': max_capacity,
                'committed_count': target_class.committed_count,
                'staged_count': staged_count,
                'total_count': total,
                'available_slots': max(0, max_capacity - total),
                'capacity_percentage': round(total / max_capacity * 100, 1) if max_capacity > 0 else 0,
                'capacity_status': capacity.capacity_status(max_capacity, total, warning_ratio),
            })

        total_capacity = sum(c['max_capacity'] for c in classes)
        total_students = sum(c['total_count'] for c in classes)
        summary = {
            'total_classes': len(classes),
            'total_capacity': total_capacity,
            'total_committed': sum(c['committed_count'] for c in classes),
            'total_staged': sum(c['staged_count'] for c in classes),
            'total_students': total_students,
            'total_available': sum(c['available_slots'] for c in classes),
            'classes_at_capacity': sum(1 for c in classes if c['capacity_status'] == 'full'),
            'classes_near_capacity': sum(1 for c in classes if c['capacity_status'] == 'warning'),
            'average_class_size': round(total_students / len(classes), 1) if classes else 0,
            'overall_capacity_percentage': round(total_students / total_capacity * 100, 1) if total_capacity else 0,
        }
        return {'classes': classes, 'summary': summary}

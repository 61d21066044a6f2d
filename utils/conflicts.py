# utils/conflicts.py
from enum import Enum

from utils import capacity
from utils.errors import SkipReason


class Verdict(str, Enum):
    ADMISSIBLE = 'Admissible'
    ALREADY_COMMITTED = SkipReason.ALREADY_COMMITTED.value
    NOT_ELIGIBLE = SkipReason.NOT_ELIGIBLE.value
    ALREADY_STAGED_ELSEWHERE = SkipReason.ALREADY_STAGED_ELSEWHERE.value
    CLASS_FULL = SkipReason.CLASS_FULL.value

    @property
    def admissible(self):
        return self is Verdict.ADMISSIBLE


class ConflictDetector:
    """
    Classifies a requested student -> class assignment against current truth.

    Check order: already committed in the target year, not a candidate,
    staged to a different class, class capacity. The target-year lock is
    checked by the caller before anything reaches here.
    """

    def __init__(self, resolver, catalog, enrollment_store, admit=capacity.admit):
        self.resolver = resolver
        self.catalog = catalog
        self.enrollment_store = enrollment_store
        self.admit = admit

    def classify(self, key, student_id, target_class, store, eligible_ids=None,
                 allow_move=False, revalidate=False):
        """
        allow_move   -- an existing staged entry for another class is overwritten,
                        not rejected (individual reassignment).
        revalidate   -- commit-time re-check of an entry already staged to
                        target_class: only durable enrollment counts against capacity.
        """
        if self.enrollment_store.is_committed(student_id, key.target_year_id):
            return Verdict.ALREADY_COMMITTED

        if eligible_ids is None:
            eligible_ids = self.resolver.eligible_ids(key.source_year_id, key.target_year_id)
        if student_id not in eligible_ids:
            return Verdict.NOT_ELIGIBLE

        # Counts are read here, immediately before the capacity decision
        committed_count = self.catalog.committed_count(target_class.class_id)

        if revalidate:
            if not self.admit(target_class, 0, committed_count):
                return Verdict.CLASS_FULL
            return Verdict.ADMISSIBLE

        staged_class_id = store.get(student_id)
        if staged_class_id == target_class.class_id:
            return Verdict.ADMISSIBLE
        if staged_class_id is not None and not allow_move:
            return Verdict.ALREADY_STAGED_ELSEWHERE

        staged_count = store.count_for_class(target_class.class_id)
        if not self.admit(target_class, staged_count, committed_count):
            return Verdict.CLASS_FULL
        return Verdict.ADMISSIBLE

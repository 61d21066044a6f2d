# utils/eligibility.py
from utils.promotion import suggest_next_grade
from utils.records import CandidateStudent, Classification


class EligibilityResolver:
    """
    Builds the promotion candidate list: students enrolled in the source year
    who have no committed placement in the target year yet.

    `suggest` is any callable mapping a source grade level to a suggested
    target grade level; the section is left for the operator to choose.
    """

    def __init__(self, roster, enrollment_store, suggest=suggest_next_grade):
        self.roster = roster
        self.enrollment_store = enrollment_store
        self.suggest = suggest

    def list_candidates(self, source_year_id, target_year_id, grade_level=None, section=None):
        committed = self.enrollment_store.committed_student_ids(target_year_id)
        candidates = []
        for row in self.roster.list_source_enrollments(source_year_id):
            if row['student_id'] in committed:
                continue
            candidates.append(CandidateStudent(
                student_id=row['student_id'],
                display_name=row['name'],
                lrn=row.get('lrn'),
                source_class_id=row['class_id'],
                source_classification=Classification(row['grade_level'], row['section']),
                suggested_classification=Classification(self.suggest(row['grade_level'])),
            ))
        return filter_candidates(candidates, grade_level, section)

    def eligible_ids(self, source_year_id, target_year_id):
        return {c.student_id for c in self.list_candidates(source_year_id, target_year_id)}


def filter_candidates(candidates, grade_level=None, section=None):
    """Pure predicate filter; None or '' means no filter on that field."""
    if not grade_level and not section:
        return list(candidates)
    return [
        c for c in candidates
        if (not grade_level or c.source_classification.grade_level == grade_level)
        and (not section or c.source_classification.section == section)
    ]


def filter_options(candidates):
    grade_levels = sorted({c.source_classification.grade_level for c in candidates})
    sections = sorted({c.source_classification.section for c in candidates if c.source_classification.section})
    return {'grade_levels': grade_levels, 'sections': sections}

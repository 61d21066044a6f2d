# utils/records.py
"""Plain records passed between the placement components."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SessionKey:
    """Scopes one staging workspace: (source year, target year)."""
    source_year_id: int
    target_year_id: int

    def __str__(self):
        return f"{self.source_year_id}->{self.target_year_id}"


@dataclass(frozen=True)
class Classification:
    grade_level: str
    section: Optional[str] = None

    @property
    def label(self):
        if self.section:
            return f"{self.grade_level} - {self.section}"
        return self.grade_level


@dataclass(frozen=True)
class CandidateStudent:
    student_id: int
    display_name: str
    lrn: Optional[str]
    source_class_id: int
    source_classification: Classification
    suggested_classification: Classification


@dataclass(frozen=True)
class TargetClass:
    class_id: int
    school_year_id: int
    grade_level: str
    section: str
    max_capacity: int
    committed_count: int = 0

    @property
    def display_name(self):
        return f"{self.grade_level} - {self.section}"


@dataclass
class BulkAssignResult:
    assigned_count: int = 0
    skipped: list = field(default_factory=list)

    def skip(self, student_id, reason):
        self.skipped.append({'student_id': student_id, 'reason': reason})


@dataclass
class CommitResult:
    created_count: int = 0
    failures: list = field(default_factory=list)

    def fail(self, student_id, class_id, reason, message=None):
        entry = {'student_id': student_id, 'class_id': class_id, 'reason': reason}
        if message:
            entry['message'] = message
        self.failures.append(entry)


@dataclass(frozen=True)
class PlacementStats:
    total_eligible: int
    committed: int
    staged: int
    unassigned: int
    progress_percentage: int

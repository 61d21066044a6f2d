# utils/promotion.py
import re

CLASS_PROGRESSIONS = [
    "KG", "Primary 1", "Primary 2", "Primary 3", "Primary 4", "Primary 5", "Primary 6",
    "JHS 1", "JHS 2", "JHS 3"
]

_GRADE_PATTERN = re.compile(r'Grade\s*(\d+)', re.IGNORECASE)
_KINDERGARTEN_LABELS = {'kindergarten', 'k', 'kg'}


def suggest_next_grade(current_grade):
    """
    Default promotion rule: "Grade 6" -> "Grade 7", kindergarten -> "Grade 1".
    Unrecognised labels are returned unchanged so the student shows up as a repeater.
    """
    current_grade = current_grade or ''
    match = _GRADE_PATTERN.search(current_grade)
    if match:
        return f"Grade {int(match.group(1)) + 1}"

    if current_grade.strip().lower() in _KINDERGARTEN_LABELS:
        return "Grade 1"

    return current_grade


class ProgressionSuggestion:
    """Suggest the next entry of a named progression list (e.g. KG, Primary 1 ... JHS 3)."""

    def __init__(self, progression=None):
        self.progression = list(progression or CLASS_PROGRESSIONS)

    def __call__(self, current_grade):
        try:
            current_index = self.progression.index(current_grade)
            return self.progression[current_index + 1]
        except (ValueError, IndexError):
            # Final year or unknown label: no next step in this progression
            return current_grade

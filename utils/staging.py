# utils/staging.py
"""
Ephemeral staging workspace for promotions.

A workspace is keyed by (source year, target year) and holds the tentative
student -> class decisions plus the undo history for them. Nothing here is
durable: losing the process loses only uncommitted work.
"""
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from utils.errors import EmptyLedger


class StagingStore:
    def __init__(self):
        self._placements = {}

    def stage(self, student_id, class_id):
        """Insert or overwrite; returns the previously staged class id, if any."""
        prior = self._placements.get(student_id)
        self._placements[student_id] = class_id
        return prior

    def unstage(self, student_id):
        """Remove the mapping; returns the removed class id or None when nothing was staged."""
        return self._placements.pop(student_id, None)

    def get(self, student_id):
        return self._placements.get(student_id)

    def all(self):
        return dict(self._placements)

    def count_for_class(self, class_id):
        return sum(1 for staged_class in self._placements.values() if staged_class == class_id)

    def clear(self):
        self._placements.clear()

    def __len__(self):
        return len(self._placements)

    def __contains__(self, student_id):
        return student_id in self._placements


@dataclass(frozen=True)
class StageEntry:
    student_id: int
    class_id: int
    prior_class_id: Optional[int] = None

    def invert(self, store):
        if self.prior_class_id is None:
            store.unstage(self.student_id)
            return f"Assignment of student {self.student_id} undone"
        store.stage(self.student_id, self.prior_class_id)
        return f"Student {self.student_id} moved back to class {self.prior_class_id}"


@dataclass(frozen=True)
class UnstageEntry:
    student_id: int
    class_id: int

    def invert(self, store):
        store.stage(self.student_id, self.class_id)
        return f"Removal of student {self.student_id} undone"


class UndoLedger:
    """LIFO stack of StageEntry / UnstageEntry records."""

    def __init__(self):
        self._entries = []

    def push(self, entry):
        self._entries.append(entry)

    def pop_and_invert(self, store):
        """Pop the newest entry and apply its inverse straight to the store.

        Capacity and conflict checks are not re-run: the restored state was
        admitted when it was first created.
        """
        if not self._entries:
            raise EmptyLedger()
        entry = self._entries.pop()
        return entry, entry.invert(store)

    def discard_students(self, student_ids):
        student_ids = set(student_ids)
        self._entries = [e for e in self._entries if e.student_id not in student_ids]

    def entries(self):
        return list(self._entries)

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)


class StagingWorkspace:
    def __init__(self, key):
        self.key = key
        self.store = StagingStore()
        self.ledger = UndoLedger()

    @property
    def is_empty(self):
        return len(self.store) == 0 and len(self.ledger) == 0


class StagingRegistry:
    """All live workspaces of one application process."""

    def __init__(self):
        self._workspaces = {}

    def workspace(self, key):
        """Return the workspace for key, creating it on first access."""
        if key not in self._workspaces:
            self._workspaces[key] = StagingWorkspace(key)
        return self._workspaces[key]

    def peek(self, key):
        return self._workspaces.get(key)

    def discard(self, key):
        self._workspaces.pop(key, None)

    def discard_target(self, target_year_id):
        for key in [k for k in self._workspaces if k.target_year_id == target_year_id]:
            del self._workspaces[key]

    def staged_count_for_target(self, target_year_id):
        return sum(
            len(ws.store) for key, ws in self._workspaces.items()
            if key.target_year_id == target_year_id
        )


def get_registry():
    return current_app.extensions.setdefault('placement_staging', StagingRegistry())

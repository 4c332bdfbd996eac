"""
Dirty Tracker - persisted set of record ids with unsynced local edits.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from quote_sync.core.storage import JsonDocument, PersistResult


class DirtyTracker:
    """
    Set of dirty record ids backed by `dirty.json`.

    Example:
        dirty = DirtyTracker(Path(".quote-sync/dirty.json"))
        dirty.load()
        dirty.mark(record.id)
        dirty.save()
    """

    def __init__(self, path: Path | str) -> None:
        self.document = JsonDocument(path, "dirty")
        self._ids: set[str] = set()

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self.all())

    def load(self) -> list[str]:
        """Load ids from disk; anything malformed yields an empty set."""
        items = self.document.load(default=[])
        if not isinstance(items, list):
            items = []
        self._ids = {item for item in items if isinstance(item, str) and item}
        return self.all()

    def save(self) -> PersistResult:
        return self.document.save(self.all())

    def mark(self, record_id: str) -> None:
        self._ids.add(record_id)

    def unmark(self, record_id: str) -> None:
        self._ids.discard(record_id)

    def is_dirty(self, record_id: str) -> bool:
        return record_id in self._ids

    def all(self) -> list[str]:
        """Dirty ids in stable (sorted) order."""
        return sorted(self._ids)

    def clear(self) -> None:
        self._ids.clear()

"""
Conflict Log - durable list of conflicts awaiting manual review.

A conflict is recorded when a pulled record overwrites a record that still
had unsynced local edits. The server copy is already live; the log keeps
the local copy so a human can restore it.
"""

from __future__ import annotations

from pathlib import Path

from quote_sync.core.dirty import DirtyTracker
from quote_sync.core.models import ConflictEntry, Record
from quote_sync.core.storage import JsonDocument, PersistResult
from quote_sync.core.store import RecordStore
from quote_sync.utils.logger import get_logger

logger = get_logger(__name__)


class ConflictLog:
    """
    Conflict entries in discovery order, backed by `conflicts.json`.

    Example:
        log = ConflictLog(Path(".quote-sync/conflicts.json"), store, dirty)
        log.load()
        for i, entry in enumerate(log.list()):
            print(i, entry.local.text, "->", entry.server.text)
        log.restore(0)
    """

    def __init__(
        self,
        path: Path | str,
        store: RecordStore,
        dirty: DirtyTracker,
    ) -> None:
        self.document = JsonDocument(path, "conflicts")
        self.store = store
        self.dirty = dirty
        self._entries: list[ConflictEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> list[ConflictEntry]:
        items = self.document.load(default=[])
        if not isinstance(items, list):
            items = []
        entries = [ConflictEntry.from_dict(item) for item in items]
        self._entries = [e for e in entries if e is not None]
        return self.list()

    def save(self) -> PersistResult:
        return self.document.save([entry.to_dict() for entry in self._entries])

    def add(self, entry: ConflictEntry) -> None:
        """Append without persisting (used by batched merges)."""
        self._entries.append(entry)

    def record(self, entry: ConflictEntry) -> PersistResult:
        """Append an entry and persist the log."""
        self.add(entry)
        return self.save()

    def list(self) -> list[ConflictEntry]:
        return list(self._entries)

    def get(self, index: int) -> ConflictEntry | None:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def restore(self, index: int) -> Record | None:
        """
        Re-apply the local snapshot of entry `index` onto the live record.

        The record is marked dirty so the next push re-asserts it. The entry
        is removed. An out-of-range index is a no-op.

        Returns:
            The restored record, or None if nothing was restored
        """
        entry = self.get(index)
        if entry is None:
            return None

        record = self.store.find_by_remote_id(entry.remote_id)
        if record is None:
            record = self.store.get(entry.local.id)

        del self._entries[index]

        if record is None:
            logger.warning(
                "Conflict %d refers to a record that no longer exists; dropping it",
                index,
            )
            self.save()
            return None

        record.apply_content(entry.local.text, entry.local.category)
        self.dirty.mark(record.id)
        logger.info("Restored local copy of %s from conflict log", record.id)

        self.store.save()
        self.dirty.save()
        self.save()
        return record

    def dismiss(self, index: int) -> ConflictEntry | None:
        """Drop entry `index`, keeping the server copy. Out of range is a no-op."""
        entry = self.get(index)
        if entry is None:
            return None
        del self._entries[index]
        self.save()
        return entry

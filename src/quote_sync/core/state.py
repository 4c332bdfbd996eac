"""
Local State - the single context object owning all durable local state.

Provides:
- Record store, dirty tracker and conflict log under one state directory
- Last-sync marker (display only)
- Mutating operations for UI collaborators (add, edit, import)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from quote_sync.core.conflicts import ConflictLog
from quote_sync.core.dirty import DirtyTracker
from quote_sync.core.models import Record, normalize_import, validate_fields
from quote_sync.core.storage import JsonDocument, PersistResult, utc_now
from quote_sync.core.store import RecordStore
from quote_sync.errors import ValidationError
from quote_sync.utils.logger import get_logger

logger = get_logger(__name__)

RECORDS_FILE = "records.json"
DIRTY_FILE = "dirty.json"
CONFLICTS_FILE = "conflicts.json"
LAST_SYNC_FILE = "last_sync.json"


class LastSyncMarker:
    """Timestamp of the last successful sync cycle."""

    def __init__(self, path: Path | str) -> None:
        self.document = JsonDocument(path, "last_sync")
        self.value: str | None = None

    def load(self) -> str | None:
        value = self.document.load(default=None)
        self.value = value if isinstance(value, str) and value else None
        return self.value

    def touch(self) -> PersistResult:
        self.value = utc_now()
        return self.document.save(self.value)


class LocalState:
    """
    Record store, dirty set, conflict log and last-sync marker.

    Constructed once at process start and passed explicitly to the sync
    engine and to the CLI.

    Example:
        state = LocalState.open(Path(".quote-sync"))
        record = state.add_record("Less is more.", "Design")
        assert state.dirty.is_dirty(record.id)
    """

    def __init__(self, state_dir: Path | str, store: RecordStore | None = None) -> None:
        self.state_dir = Path(state_dir)
        self.store = store if store is not None else RecordStore(self.state_dir / RECORDS_FILE)
        self.dirty = DirtyTracker(self.state_dir / DIRTY_FILE)
        self.conflicts = ConflictLog(self.state_dir / CONFLICTS_FILE, self.store, self.dirty)
        self.last_sync = LastSyncMarker(self.state_dir / LAST_SYNC_FILE)

    @classmethod
    def open(cls, state_dir: Path | str) -> "LocalState":
        """Create and load the state stored under `state_dir`."""
        state = cls(state_dir)
        state.load()
        return state

    def load(self) -> None:
        """Load every document; each falls back to its own default."""
        self.store.load()
        self.dirty.load()
        self.conflicts.load()
        self.last_sync.load()

        # Dirty ids pointing at unknown records cannot be pushed
        known = {record.id for record in self.store}
        for record_id in self.dirty.all():
            if record_id not in known:
                logger.debug("Dropping dirty id with no record: %s", record_id)
                self.dirty.unmark(record_id)

    def save(self) -> list[PersistResult]:
        """Persist store, dirty set and conflict log."""
        return [self.store.save(), self.dirty.save(), self.conflicts.save()]

    def save_records(self) -> list[PersistResult]:
        """Persist the store and the dirty set, which always change together."""
        return [self.store.save(), self.dirty.save()]

    # =========================================================================
    # Local mutations
    # =========================================================================

    def add_record(self, text: Any, category: Any) -> Record:
        """
        Create a new local record, mark it dirty and persist.

        Raises:
            ValidationError: text or category is empty
        """
        record = self.store.add(Record.create(text, category))
        self.dirty.mark(record.id)
        self.save_records()
        return record

    def edit_record(
        self,
        record_id: str,
        text: str | None = None,
        category: str | None = None,
    ) -> Record:
        """
        Edit a record's content, mark it dirty and persist.

        Raises:
            KeyError: no record with that id
            ValidationError: the resulting text or category is empty
        """
        record = self.store.get(record_id)
        if record is None:
            raise KeyError(record_id)

        new_text, new_category = validate_fields(
            record.text if text is None else text,
            record.category if category is None else category,
        )
        if (new_text, new_category) == record.content():
            return record

        record.apply_content(new_text, new_category)
        self.dirty.mark(record.id)
        self.save_records()
        return record

    def import_records(self, items: Any) -> list[Record]:
        """
        Append imported `{text, category}` items as new dirty records.

        Raises:
            ValidationError: no valid items were found
        """
        records = normalize_import(items)
        if not records:
            raise ValidationError("No valid quotes found in file.")

        for record in records:
            self.store.add(record)
            self.dirty.mark(record.id)
        self.save_records()
        logger.info("Imported %d records", len(records))
        return records

    def export_records(self) -> list[dict[str, Any]]:
        return self.store.export_items()

    def pending_push(self) -> list[Record]:
        """Records that have never been pushed or carry unsynced edits, in store order."""
        return [r for r in self.store if r.is_pending or self.dirty.is_dirty(r.id)]

    def summary(self) -> dict[str, Any]:
        """Counts for status display."""
        records = self.store.records
        return {
            "state_dir": str(self.state_dir),
            "records": len(records),
            "pending_creation": sum(1 for r in records if r.is_pending),
            "dirty": len(self.dirty),
            "conflicts": len(self.conflicts),
            "categories": len(self.store.categories()),
            "last_sync": self.last_sync.value,
        }

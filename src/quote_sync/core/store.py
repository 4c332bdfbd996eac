"""
Record Store - in-memory quote collection mirrored to a JSON document.
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import Any, Callable, Iterator

from quote_sync.core.models import Record, normalize_records, seed_records
from quote_sync.core.storage import JsonDocument, PersistResult
from quote_sync.utils.logger import get_logger

logger = get_logger(__name__)


class RecordStore:
    """
    Ordered collection of records backed by `records.json`.

    The in-memory list is authoritative for the lifetime of the process;
    the document is a mirror. A failed save leaves memory untouched.

    Example:
        store = RecordStore(Path(".quote-sync/records.json"))
        store.load()
        store.add(Record.create("Less is more.", "Design"))
        store.save()
    """

    def __init__(
        self,
        path: Path | str,
        seed: Callable[[], list[Record]] = seed_records,
    ) -> None:
        self.document = JsonDocument(path, "records")
        self._seed = seed
        self._records: list[Record] = []

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[Record]:
        """Snapshot list of the live records (the records themselves are shared)."""
        return list(self._records)

    def load(self) -> list[Record]:
        """
        Load records from disk.

        Missing or malformed documents, or documents with no valid entries,
        fall back to the seed collection. Invalid entries are dropped.
        """
        items = self.document.load(default=None)
        records = self._dedupe(normalize_records(items))

        if not records:
            if items is not None:
                logger.warning("No valid records in %s, using seed collection", self.document.path)
            records = self._seed()

        self._records = records
        return self.records

    def save(self) -> PersistResult:
        """Persist the full collection."""
        return self.document.save([record.to_dict() for record in self._records])

    def add(self, record: Record) -> Record:
        """Append a record. The caller is responsible for marking it dirty."""
        if self.get(record.id) is not None:
            raise ValueError(f"Duplicate record id: {record.id}")
        self._records.append(record)
        return record

    def get(self, record_id: str) -> Record | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def find_by_remote_id(self, remote_id: str | None) -> Record | None:
        if remote_id is None:
            return None
        return self.remote_index().get(remote_id)

    def remote_index(self) -> dict[str, Record]:
        """Mapping of remote id to record, built from the current collection."""
        return {r.remote_id: r for r in self._records if r.remote_id is not None}

    def categories(self) -> list[str]:
        """Sorted unique categories."""
        names = {r.category for r in self._records if r.category}
        return sorted(names, key=lambda c: (c.casefold(), c))

    def filter_by_category(self, category: str | None = None) -> list[Record]:
        """Records in `category` (case-insensitive); all records when None."""
        if not category:
            return self.records
        wanted = category.strip().casefold()
        return [r for r in self._records if r.category.casefold() == wanted]

    def pick_random(
        self,
        category: str | None = None,
        rng: random.Random | None = None,
    ) -> Record | None:
        """Random record from the (optionally filtered) pool, None if empty."""
        pool = self.filter_by_category(category)
        if not pool:
            return None
        return (rng or random).choice(pool)

    def export_items(self) -> list[dict[str, Any]]:
        """Plain `{text, category}` items for a JSON export file."""
        return [{"text": r.text, "category": r.category} for r in self._records]

    @staticmethod
    def _dedupe(records: list[Record]) -> list[Record]:
        seen: set[str] = set()
        unique = []
        for record in records:
            if record.id in seen:
                continue
            seen.add(record.id)
            unique.append(record)
        return unique

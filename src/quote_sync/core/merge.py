"""
Merge Engine - integrates pulled remote records into local state.

Policy: the remote authority wins. When a pulled record overwrites a record
that still had unsynced local edits, the local copy is kept in the conflict
log for manual review instead of blocking the sync.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from quote_sync.core.models import ConflictEntry, Record, new_local_id
from quote_sync.core.state import LocalState
from quote_sync.core.storage import utc_now
from quote_sync.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MergeResult:
    """Counts for one merged batch."""

    pulled: int = 0
    added: int = 0
    updated: int = 0
    confirmed: int = 0  # dirty records whose content the remote already matched
    conflicts: int = 0

    @property
    def has_conflicts(self) -> bool:
        return self.conflicts > 0


class MergeEngine:
    """
    Applies a pulled batch to the record store, dirty set and conflict log.

    Example:
        engine = MergeEngine(state)
        result = engine.merge(await remote.pull(10))
        if result.has_conflicts:
            ...
    """

    def __init__(self, state: LocalState) -> None:
        self.state = state

    def merge(self, pulled: Iterable[Record], persist: bool = True) -> MergeResult:
        """
        Merge a pulled batch.

        Args:
            pulled: Records mapped from the remote collection
            persist: Save store, dirty set and conflict log afterwards

        Returns:
            MergeResult with per-outcome counts
        """
        store = self.state.store
        dirty = self.state.dirty
        result = MergeResult()
        index = store.remote_index()

        for incoming in pulled:
            result.pulled += 1
            remote_id = incoming.remote_id
            if remote_id is None:
                continue

            existing = index.get(remote_id)

            if existing is None:
                existing = self._claim_by_local_id(incoming)

            if existing is None:
                record = store.add(incoming.snapshot())
                index[remote_id] = record
                result.added += 1
                continue

            index[remote_id] = existing

            if not dirty.is_dirty(existing.id):
                if existing.content() != incoming.content():
                    self._overwrite(existing, incoming)
                    result.updated += 1
                continue

            if existing.content() == incoming.content():
                dirty.unmark(existing.id)
                result.confirmed += 1
                continue

            entry = ConflictEntry(
                local=existing.snapshot(),
                server=incoming.snapshot(),
                detected_at=utc_now(),
            )
            self.state.conflicts.add(entry)
            self._overwrite(existing, incoming)
            dirty.unmark(existing.id)
            result.conflicts += 1
            logger.warning(
                "Conflict on %s (remote %s): server copy kept, local copy logged",
                existing.id, remote_id,
            )

        if persist:
            self.state.save()

        logger.info(
            "Merged %d pulled records: %d added, %d updated, %d confirmed, %d conflicts",
            result.pulled, result.added, result.updated, result.confirmed, result.conflicts,
        )
        return result

    def _claim_by_local_id(self, incoming: Record) -> Record | None:
        """
        Find a record already holding the derived local id but no remote id.

        Only happens with hand-edited or imported state; the record adopts the
        remote id instead of colliding with the incoming copy.
        """
        record = self.state.store.get(incoming.id)
        if record is None:
            return None
        if record.remote_id is None:
            record.remote_id = incoming.remote_id
            return record
        # Same local id, different remote id: keep both under distinct ids
        incoming.id = new_local_id()
        return None

    @staticmethod
    def _overwrite(existing: Record, incoming: Record) -> None:
        """Copy remote content into the live record, preserving its identity."""
        existing.text = incoming.text
        existing.category = incoming.category
        existing.updated_at = incoming.updated_at

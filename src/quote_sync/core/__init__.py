"""Core sync engine components for Quote Sync."""

from quote_sync.core.conflicts import ConflictLog
from quote_sync.core.dirty import DirtyTracker
from quote_sync.core.engine import Severity, SyncEngine, SyncOutcome, SyncPhase, SyncReport
from quote_sync.core.merge import MergeEngine, MergeResult
from quote_sync.core.models import ConflictEntry, Record
from quote_sync.core.state import LocalState
from quote_sync.core.storage import JsonDocument, PersistResult
from quote_sync.core.store import RecordStore

__all__ = [
    "ConflictEntry",
    "ConflictLog",
    "DirtyTracker",
    "JsonDocument",
    "LocalState",
    "MergeEngine",
    "MergeResult",
    "PersistResult",
    "Record",
    "RecordStore",
    "Severity",
    "SyncEngine",
    "SyncOutcome",
    "SyncPhase",
    "SyncReport",
]

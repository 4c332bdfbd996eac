"""
Record model, normalization and seed data.

A Record is one quote: a `text` plus a `category`. Records created locally
start without a `remote_id` ("pending creation"); records materialized from a
pull carry the remote authority's identifier.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from quote_sync.core.storage import utc_now
from quote_sync.errors import ParseError, ValidationError

LOCAL_ID_PREFIX = "loc_"
REMOTE_ID_PREFIX = "srv_"

SEED_QUOTES: tuple[tuple[str, str], ...] = (
    ("The only limit to our realization of tomorrow is our doubts of today.", "Motivation"),
    ("Simplicity is the ultimate sophistication.", "Design"),
    (
        "Programs must be written for people to read, and only incidentally "
        "for machines to execute.",
        "Programming",
    ),
    ("What gets measured gets managed.", "Product"),
    ("Premature optimization is the root of all evil.", "Programming"),
)


def new_local_id() -> str:
    """Generate a fresh process-local record id."""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def local_id_for_remote(remote_id: str) -> str:
    """Deterministic local id for a record first seen through a pull."""
    return f"{REMOTE_ID_PREFIX}{remote_id}"


def clean_field(value: Any) -> str:
    """Trim a text field; anything that is not a string becomes empty."""
    return value.strip() if isinstance(value, str) else ""


def validate_fields(text: Any, category: Any) -> tuple[str, str]:
    """
    Normalize and validate record content.

    Raises:
        ValidationError: text or category is empty after trimming
    """
    clean_text = clean_field(text)
    clean_category = clean_field(category)
    if not clean_text or not clean_category:
        raise ValidationError("Please enter both a quote and a category.")
    return clean_text, clean_category


@dataclass
class Record:
    """A single quote record."""

    id: str
    text: str
    category: str
    remote_id: str | None = None
    updated_at: str = field(default_factory=utc_now)

    @classmethod
    def create(cls, text: Any, category: Any) -> "Record":
        """Build a new local record, validating its content."""
        clean_text, clean_category = validate_fields(text, category)
        return cls(id=new_local_id(), text=clean_text, category=clean_category)

    @property
    def is_pending(self) -> bool:
        """True until the remote authority has assigned an identifier."""
        return self.remote_id is None

    def content(self) -> tuple[str, str]:
        return (self.text, self.category)

    def apply_content(self, text: str, category: str) -> None:
        """Overwrite the mutable content in place and refresh the timestamp."""
        self.text = text
        self.category = category
        self.touch()

    def touch(self) -> None:
        self.updated_at = utc_now()

    def snapshot(self) -> "Record":
        """Detached copy of the current state."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "remote_id": self.remote_id,
            "text": self.text,
            "category": self.category,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Record | None":
        """
        Create from dictionary.

        Accepts the current shape, camelCase keys and the legacy
        `{text, category}` shape. Returns None for invalid entries.
        """
        if not isinstance(data, dict):
            return None

        text = clean_field(data.get("text"))
        category = clean_field(data.get("category"))
        if not text or not category:
            return None

        remote_id = data.get("remote_id", data.get("remoteId"))
        if remote_id is not None and not isinstance(remote_id, (str, int)):
            return None
        if isinstance(remote_id, bool):
            return None

        record_id = data.get("id")
        if not isinstance(record_id, str) or not record_id.strip():
            record_id = new_local_id()

        updated_at = data.get("updated_at", data.get("updatedAt"))
        if not isinstance(updated_at, str) or not updated_at:
            updated_at = utc_now()

        return cls(
            id=record_id.strip(),
            text=text,
            category=category,
            remote_id=str(remote_id) if remote_id is not None else None,
            updated_at=updated_at,
        )


@dataclass(frozen=True)
class ConflictEntry:
    """Local and server snapshots captured when a conflict was detected."""

    local: Record
    server: Record
    detected_at: str = field(default_factory=utc_now)

    @property
    def remote_id(self) -> str | None:
        return self.server.remote_id or self.local.remote_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "local": self.local.to_dict(),
            "server": self.server.to_dict(),
            "detected_at": self.detected_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ConflictEntry | None":
        if not isinstance(data, dict):
            return None
        local = Record.from_dict(data.get("local"))
        server = Record.from_dict(data.get("server"))
        if local is None or server is None:
            return None
        detected_at = data.get("detected_at")
        if not isinstance(detected_at, str) or not detected_at:
            detected_at = server.updated_at
        return cls(local=local, server=server, detected_at=detected_at)


def normalize_records(items: Any) -> list[Record]:
    """Convert raw JSON items to records, silently dropping invalid entries."""
    if not isinstance(items, list):
        return []
    records = []
    for item in items:
        record = Record.from_dict(item)
        if record is not None:
            records.append(record)
    return records


def normalize_import(items: Any) -> list[Record]:
    """
    Turn imported `{text, category}` items into new local records.

    Imported records always get fresh local ids and no remote id, even if the
    file was exported with them.
    """
    if not isinstance(items, list):
        return []
    records = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            records.append(Record.create(item.get("text"), item.get("category")))
        except ValidationError:
            continue
    return records


def seed_records(quotes: Iterable[tuple[str, str]] = SEED_QUOTES) -> list[Record]:
    """Built-in collection used when no valid local state exists."""
    return [Record.create(text, category) for text, category in quotes]


def parse_import(raw: str) -> Any:
    """
    Decode the contents of an import file.

    Raises:
        ParseError: the content is not valid JSON
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON ({e})") from e

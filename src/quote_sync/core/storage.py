"""
Durable JSON documents.

Every piece of local state (records, dirty ids, conflicts, last-sync marker)
lives in its own versioned JSON document:

    {"schema": "records", "version": 1, "saved_at": "...", "items": [...]}

A bare JSON array is the legacy, unversioned shape and is read as version 0.
Reads and writes never raise past `load()` / `save()`: failures are logged
and reported through the return value.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from quote_sync.errors import ParseError, StorageError
from quote_sync.utils.logger import get_logger

SCHEMA_VERSION = 1

logger = get_logger(__name__)


@dataclass
class PersistResult:
    """Outcome of a save operation."""

    ok: bool
    path: Path
    error: str | None = None


@dataclass
class DocumentContent:
    """Items read from a document, with the schema version they were saved under."""

    items: Any
    version: int


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class JsonDocument:
    """
    A single versioned JSON document on disk.

    Example:
        doc = JsonDocument(Path(".quote-sync/dirty.json"), "dirty")
        ids = doc.load(default=[])
        result = doc.save(sorted(ids))
        if not result.ok:
            ...
    """

    def __init__(self, path: Path | str, kind: str) -> None:
        self.path = Path(path)
        self.kind = kind

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> DocumentContent | None:
        """
        Read and unwrap the document.

        Returns:
            DocumentContent, or None if the file does not exist

        Raises:
            StorageError: the file exists but cannot be read
            ParseError: the content is not valid JSON or has an unknown shape
        """
        if not self.path.exists():
            return None

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}", str(self.path)) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"Malformed JSON in {self.path}: {e}") from e

        # Legacy shape: a bare array with no envelope
        if isinstance(data, list):
            return DocumentContent(items=data, version=0)

        if not isinstance(data, dict) or "items" not in data:
            raise ParseError(f"Unrecognized document shape in {self.path}")

        schema = data.get("schema")
        if schema is not None and schema != self.kind:
            raise ParseError(
                f"{self.path} holds a '{schema}' document, expected '{self.kind}'"
            )

        version = data.get("version", 0)
        if not isinstance(version, int) or version > SCHEMA_VERSION:
            raise ParseError(f"Unsupported schema version in {self.path}: {version}")

        return DocumentContent(items=data["items"], version=version)

    def load(self, default: Any = None) -> Any:
        """Read the document items, falling back to `default` on any failure."""
        try:
            content = self.read()
        except (StorageError, ParseError) as e:
            logger.warning("Ignoring %s document: %s", self.kind, e)
            return default

        if content is None:
            return default
        return content.items

    def save(self, items: Any) -> PersistResult:
        """
        Write the document atomically (temp file + replace).

        Returns:
            PersistResult; ok=False when the write failed
        """
        payload = {
            "schema": self.kind,
            "version": SCHEMA_VERSION,
            "saved_at": utc_now(),
            "items": items,
        }
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            error = StorageError(f"Cannot write {self.path}: {e}", str(self.path))
            logger.error("Failed to save %s document: %s", self.kind, error)
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_path)
            return PersistResult(ok=False, path=self.path, error=str(error))

        return PersistResult(ok=True, path=self.path)

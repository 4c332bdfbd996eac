"""
Logging setup for Quote Sync.

Provides structured logging with:
- Rich colored console output
- File logging with rotation
- JSON format option
- Structured fields (`extra={"fields": {...}}`) rendered as key=value or JSON
"""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


# Global console for rich output (stderr keeps command output clean)
console = Console(stderr=True)

# Package logger
logger = logging.getLogger("quote_sync")


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    format_style: str = "rich",
    max_file_size_mb: int = 10,
    backup_count: int = 3,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        format_style: "rich", "json", or "simple"
        max_file_size_mb: Max log file size before rotation
        backup_count: Number of backup files to keep
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    for existing in list(logger.handlers):
        existing.close()
    logger.handlers.clear()
    logger.setLevel(log_level)

    if format_style == "rich":
        handler: logging.Handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    elif format_style == "json":
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(FieldsFormatter("%(asctime)s | %(levelname)-8s | %(message)s"))

    handler.setLevel(log_level)
    logger.addHandler(handler)

    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            FieldsFormatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )
        logger.addHandler(file_handler)


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Structured fields attached with `extra={"fields": {...}}`, if any."""
    fields = getattr(record, "fields", None)
    return fields if isinstance(fields, dict) else {}


class FieldsFormatter(logging.Formatter):
    """Plain-text formatter that appends structured fields as key=value pairs."""

    def __init__(self, fmt: str) -> None:
        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = record_fields(record)
        if fields:
            line += " | " + " ".join(f"{key}={value}" for key, value in fields.items())
        return line


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(record_fields(record))

        return json.dumps(log_data)


def get_logger(name: str = "quote_sync") -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)

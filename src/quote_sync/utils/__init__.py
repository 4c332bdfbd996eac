"""Utility modules for Quote Sync."""

from quote_sync.utils.logger import get_logger, setup_logging

__all__ = ["setup_logging", "get_logger"]

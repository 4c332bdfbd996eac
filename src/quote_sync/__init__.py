"""Quote Sync - local-first quote store with remote synchronization."""

__version__ = "1.0.0"
__author__ = "Quote Sync Contributors"

from quote_sync.config import Settings

__all__ = ["Settings", "__version__"]

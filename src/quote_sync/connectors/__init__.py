"""Remote connectors for Quote Sync."""

from quote_sync.connectors.remote import PushResult, RemoteClient, create_remote_client

__all__ = ["PushResult", "RemoteClient", "create_remote_client"]

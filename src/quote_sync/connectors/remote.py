"""
Remote collection REST client.

Speaks the remote authority's minimal protocol:
- GET  <collection>?limit=<n>  -> [{"id", "title", "body"}, ...]
- POST <collection> {"title", "body"} -> {"id", ...}

There is no update verb: pushing an already-published record creates a new
remote entry, and the record keeps the identifier it already had.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Any

import httpx

from quote_sync.config import RemoteConfig, Settings
from quote_sync.core.models import Record, local_id_for_remote
from quote_sync.core.storage import utc_now
from quote_sync.errors import NetworkError
from quote_sync.utils.logger import get_logger

DEFAULT_CATEGORY = "Server"
EMPTY_TEXT_PLACEHOLDER = "(no content)"

_NON_WORD = re.compile(r"\W+")

logger = get_logger(__name__)


@dataclass
class PushResult:
    """Result of pushing a single record."""

    record_id: str
    remote_id: str
    created: bool  # True when the record adopted a new remote id


def category_from_title(title: Any) -> str:
    """First whitespace-delimited token of the title, stripped of non-word characters."""
    if not isinstance(title, str):
        return DEFAULT_CATEGORY
    tokens = title.split()
    if not tokens:
        return DEFAULT_CATEGORY
    return _NON_WORD.sub("", tokens[0]) or DEFAULT_CATEGORY


def text_from_body(body: Any) -> str:
    if not isinstance(body, str):
        return EMPTY_TEXT_PLACEHOLDER
    return body.strip() or EMPTY_TEXT_PLACEHOLDER


def remote_id_from(value: Any) -> str | None:
    """Normalize a remote identifier; only non-empty strings and integers qualify."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    return str(value).strip() or None


def record_from_remote(item: Any, pulled_at: str | None = None) -> Record | None:
    """Map a remote item onto a Record; None if it carries no usable id."""
    if not isinstance(item, dict):
        return None
    remote_id = remote_id_from(item.get("id"))
    if remote_id is None:
        return None

    return Record(
        id=local_id_for_remote(remote_id),
        remote_id=remote_id,
        category=category_from_title(item.get("title")),
        text=text_from_body(item.get("body")),
        updated_at=pulled_at or utc_now(),
    )


class RemoteClient:
    """
    Async client for the remote quote collection.

    Example:
        async with RemoteClient(RemoteConfig(base_url="http://localhost:8000")) as remote:
            pulled = await remote.pull(limit=10)
            result = await remote.push(record)
    """

    def __init__(
        self,
        config: RemoteConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Endpoint and limits (defaults to RemoteConfig())
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self.config = config or RemoteConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def collection_url(self) -> str:
        return self.config.collection_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RemoteClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """
        Make a request and return the decoded JSON body.

        Transport errors, 429 and 5xx responses are retried with a linear
        backoff. Any other request error, or anything that is not a 2xx JSON
        response, fails at once.

        Raises:
            NetworkError: the request failed or the response could not be parsed
        """
        client = await self._get_client()
        max_retries = self.config.max_retries
        retry_delay = self.config.retry_delay_seconds
        last_error: NetworkError | None = None

        for attempt in range(max_retries):
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                last_error = NetworkError(f"Connection error: {e}")
            except httpx.RequestError as e:
                raise NetworkError(f"{method} {url} failed: {e}") from e
            else:
                if response.status_code == 429 or response.status_code >= 500:
                    last_error = NetworkError(
                        f"{method} {url} returned {response.status_code}",
                        status=response.status_code,
                    )
                elif response.is_error:
                    raise NetworkError(
                        f"{method} {url} returned {response.status_code}",
                        status=response.status_code,
                        retryable=False,
                    )
                else:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise NetworkError(
                            f"Invalid JSON from {method} {url}: {e}",
                            status=response.status_code,
                        ) from e

            if attempt < max_retries - 1:
                logger.debug(
                    "%s %s failed (attempt %d/%d): %s",
                    method, url, attempt + 1, max_retries, last_error,
                )
                await asyncio.sleep(retry_delay * (attempt + 1))

        raise last_error or NetworkError("Max retries exceeded")

    async def pull(self, limit: int | None = None) -> list[Record]:
        """
        Fetch up to `limit` remote items as Record-shaped values.

        Raises:
            NetworkError: transport failure or unexpected response shape
        """
        if limit is None:
            limit = self.config.pull_limit
        data = await self._request(
            "GET",
            self.collection_url,
            params={self.config.limit_param: limit},
        )
        if not isinstance(data, list):
            raise NetworkError(
                f"Expected a JSON array from {self.collection_url}, "
                f"got {type(data).__name__}"
            )

        pulled_at = utc_now()
        records = []
        for item in data[:limit]:
            record = record_from_remote(item, pulled_at)
            if record is None:
                logger.debug("Skipping remote item without id: %r", item)
                continue
            records.append(record)

        logger.debug("Pulled %d records from %s", len(records), self.collection_url)
        return records

    async def push(self, record: Record) -> PushResult:
        """
        Publish a record as a creation request.

        Adopts the assigned id if the record had none and refreshes its
        timestamp.

        Raises:
            NetworkError: transport failure or no id in the response
        """
        data = await self._request(
            "POST",
            self.collection_url,
            json={"title": record.category, "body": record.text},
        )
        remote_id = remote_id_from(data.get("id")) if isinstance(data, dict) else None
        if remote_id is None:
            raise NetworkError(f"Push response for {record.id} carried no id")

        created = record.remote_id is None
        if created:
            record.remote_id = remote_id
        record.touch()

        logger.debug(
            "Pushed %s (remote id %s, %s)",
            record.id, record.remote_id, "created" if created else "re-sent",
        )
        return PushResult(
            record_id=record.id,
            remote_id=record.remote_id,  # type: ignore[arg-type]
            created=created,
        )


def create_remote_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RemoteClient:
    """Create a RemoteClient from settings."""
    return RemoteClient(settings.remote, transport=transport)

"""Shared fixtures: local state on tmp_path and a fake remote collection."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from quote_sync.config import RemoteConfig
from quote_sync.connectors.remote import RemoteClient
from quote_sync.core.models import Record
from quote_sync.core.state import RECORDS_FILE, LocalState
from quote_sync.core.store import RecordStore

BASE_URL = "https://remote.test"


class FakeRemote:
    """
    In-memory remote collection served through httpx.MockTransport.

    GET returns `items`; POST records the body and answers with a fresh id
    (starting at 101) without adding it to `items`.
    """

    def __init__(self, items: list[dict[str, Any]] | None = None) -> None:
        self.items: list[dict[str, Any]] = list(items or [])
        self.posted: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.next_id = 101
        self.fail_pull = False
        self.fail_push_after: int | None = None
        self.delay = 0.0
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)

            if request.method == "GET":
                if self.fail_pull:
                    raise httpx.ConnectError("remote unreachable", request=request)
                limit = int(request.url.params.get("limit", len(self.items)))
                return httpx.Response(200, json=self.items[:limit])

            if request.method == "POST":
                if self.fail_push_after is not None and len(self.posted) >= self.fail_push_after:
                    raise httpx.ConnectError("remote unreachable", request=request)
                body = json.loads(request.content)
                self.posted.append(body)
                new_id = self.next_id
                self.next_id += 1
                return httpx.Response(201, json={**body, "id": new_id})

            return httpx.Response(405)
        finally:
            self.in_flight -= 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def remote_config() -> RemoteConfig:
    return RemoteConfig(
        base_url=BASE_URL,
        collection="posts",
        pull_limit=10,
        max_retries=2,
        retry_delay_seconds=0,
    )


@pytest.fixture
def make_client(remote_config: RemoteConfig) -> Callable[[FakeRemote], RemoteClient]:
    """Build a RemoteClient wired to a FakeRemote (call inside the event loop)."""

    def _make(fake: FakeRemote) -> RemoteClient:
        return RemoteClient(remote_config, transport=fake.transport())

    return _make


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def make_state(state_dir: Path) -> Callable[..., LocalState]:
    """Build a loaded LocalState whose seed collection is `records`."""

    def _make(*records: Record) -> LocalState:
        seed = lambda: [r.snapshot() for r in records]  # noqa: E731
        store = RecordStore(state_dir / RECORDS_FILE, seed=seed)
        state = LocalState(state_dir, store=store)
        state.load()
        return state

    return _make


def run(coro: Any) -> Any:
    """Drive a coroutine to completion with a safety timeout."""
    return asyncio.run(asyncio.wait_for(coro, timeout=10))

"""Tests for the remote collection client."""

from typing import Callable

import httpx
import pytest
from conftest import BASE_URL, FakeRemote, run

from quote_sync.config import RemoteConfig
from quote_sync.connectors.remote import (
    EMPTY_TEXT_PLACEHOLDER,
    RemoteClient,
    category_from_title,
    record_from_remote,
    remote_id_from,
    text_from_body,
)
from quote_sync.core.models import Record
from quote_sync.errors import NetworkError

MakeClient = Callable[[FakeRemote], RemoteClient]


class TestPullMapping:
    """Tests for mapping remote items onto records."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Server item", "Server"),
            ("Hello, world", "Hello"),
            ("sunt aut facere", "sunt"),
            ("", "Server"),
            ("   ", "Server"),
            ("!!! yes", "Server"),
            (None, "Server"),
        ],
    )
    def test_category_from_title(self, title: object, expected: str) -> None:
        """Test category derivation from the first title token."""
        assert category_from_title(title) == expected

    def test_text_from_body(self) -> None:
        """Test that empty bodies get a placeholder."""
        assert text_from_body(" hi ") == "hi"
        assert text_from_body("") == EMPTY_TEXT_PLACEHOLDER
        assert text_from_body(None) == EMPTY_TEXT_PLACEHOLDER

    def test_record_from_remote(self) -> None:
        """Test the full mapping of one item."""
        record = record_from_remote({"id": 7, "title": "Server item", "body": "hi"})

        assert record is not None
        assert record.id == "srv_7"
        assert record.remote_id == "7"
        assert record.content() == ("hi", "Server")

    @pytest.mark.parametrize("item", [{"title": "x"}, {"id": None}, {"id": True}, {"id": " "}, "x"])
    def test_record_from_remote_without_id(self, item: object) -> None:
        """Test that items without a usable id are rejected."""
        assert record_from_remote(item) is None


class TestPull:
    """Tests for RemoteClient.pull."""

    def test_pull_sends_limit_and_slices(self, make_client: MakeClient) -> None:
        """Test that the limit is sent and enforced client-side."""
        fake = FakeRemote([{"id": i, "title": f"T{i}", "body": "b"} for i in range(1, 6)])

        async def scenario() -> list[Record]:
            async with make_client(fake) as remote:
                return await remote.pull(limit=3)

        records = run(scenario())

        assert [r.remote_id for r in records] == ["1", "2", "3"]
        request = fake.requests[0]
        assert request.method == "GET"
        assert str(request.url).startswith(f"{BASE_URL}/posts")
        assert request.url.params["limit"] == "3"

    def test_pull_slices_oversized_response(self, remote_config: RemoteConfig) -> None:
        """Test that a server ignoring the limit is still cut down."""
        items = [{"id": i, "title": "t", "body": "b"} for i in range(20)]
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=items))

        async def scenario() -> list[Record]:
            async with RemoteClient(remote_config, transport=transport) as remote:
                return await remote.pull(limit=4)

        assert len(run(scenario())) == 4

    def test_pull_default_limit(self, make_client: MakeClient) -> None:
        """Test that the configured limit is used by default."""
        fake = FakeRemote()

        async def scenario() -> None:
            async with make_client(fake) as remote:
                await remote.pull()

        run(scenario())
        assert fake.requests[0].url.params["limit"] == "10"

    def test_pull_skips_items_without_id(self, make_client: MakeClient) -> None:
        """Test that malformed items are skipped."""
        fake = FakeRemote([{"title": "no id"}, {"id": 2, "title": "ok", "body": "b"}])

        async def scenario() -> list[Record]:
            async with make_client(fake) as remote:
                return await remote.pull()

        assert [r.remote_id for r in run(scenario())] == ["2"]

    def test_pull_non_list_response(self, remote_config: RemoteConfig) -> None:
        """Test that a non-array body is a network error."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"id": 1}))

        async def scenario() -> None:
            async with RemoteClient(remote_config, transport=transport) as remote:
                await remote.pull()

        with pytest.raises(NetworkError, match="Expected a JSON array"):
            run(scenario())


class TestPush:
    """Tests for RemoteClient.push."""

    def test_push_adopts_remote_id(self, make_client: MakeClient) -> None:
        """Test that a pending record adopts the assigned id."""
        fake = FakeRemote()
        record = Record(id="loc_1", text="A", category="X", updated_at="old")

        async def scenario():
            async with make_client(fake) as remote:
                return await remote.push(record)

        result = run(scenario())

        assert result.created is True
        assert result.remote_id == "101"
        assert record.remote_id == "101"
        assert record.updated_at != "old"
        assert fake.posted == [{"title": "X", "body": "A"}]

    def test_push_keeps_existing_remote_id(self, make_client: MakeClient) -> None:
        """Test that a published record keeps its identifier."""
        fake = FakeRemote()
        record = Record(id="loc_1", text="A", category="X", remote_id="7")

        async def scenario():
            async with make_client(fake) as remote:
                return await remote.push(record)

        result = run(scenario())

        assert result.created is False
        assert record.remote_id == "7"
        assert len(fake.posted) == 1

    def test_push_without_id_in_response(self, remote_config: RemoteConfig) -> None:
        """Test that a response with no id is an error."""
        transport = httpx.MockTransport(lambda request: httpx.Response(201, json={"ok": True}))
        record = Record(id="loc_1", text="A", category="X")

        async def scenario() -> None:
            async with RemoteClient(remote_config, transport=transport) as remote:
                await remote.push(record)

        with pytest.raises(NetworkError, match="carried no id"):
            run(scenario())
        assert record.remote_id is None


class TestRetries:
    """Tests for the request retry loop."""

    @staticmethod
    def _counting_transport(responses: list[httpx.Response | Exception]):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            outcome = responses[min(len(calls), len(responses)) - 1]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        return httpx.MockTransport(handler), calls

    def test_transport_error_retried_then_raised(self, remote_config: RemoteConfig) -> None:
        """Test that connection errors are retried max_retries times."""
        transport, calls = self._counting_transport([httpx.ConnectError("down")])

        async def scenario() -> None:
            async with RemoteClient(remote_config, transport=transport) as remote:
                await remote.pull()

        with pytest.raises(NetworkError, match="Connection error") as exc:
            run(scenario())
        assert len(calls) == remote_config.max_retries
        assert exc.value.retryable is True

    def test_server_error_retried_until_success(self, remote_config: RemoteConfig) -> None:
        """Test that a 5xx is retried and a later success is returned."""
        transport, calls = self._counting_transport(
            [httpx.Response(503), httpx.Response(200, json=[{"id": 1}])]
        )

        async def scenario() -> list[Record]:
            async with RemoteClient(remote_config, transport=transport) as remote:
                return await remote.pull()

        records = run(scenario())
        assert len(calls) == 2
        assert records[0].remote_id == "1"

    def test_client_error_not_retried(self, remote_config: RemoteConfig) -> None:
        """Test that a 404 fails immediately."""
        transport, calls = self._counting_transport([httpx.Response(404)])

        async def scenario() -> None:
            async with RemoteClient(remote_config, transport=transport) as remote:
                await remote.pull()

        with pytest.raises(NetworkError) as exc:
            run(scenario())
        assert len(calls) == 1
        assert exc.value.status == 404
        assert exc.value.retryable is False

    def test_invalid_json(self, remote_config: RemoteConfig) -> None:
        """Test that an undecodable body is a network error."""
        transport, _ = self._counting_transport([httpx.Response(200, content=b"<html>")])

        async def scenario() -> None:
            async with RemoteClient(remote_config, transport=transport) as remote:
                await remote.pull()

        with pytest.raises(NetworkError, match="Invalid JSON"):
            run(scenario())

    @pytest.mark.parametrize(
        "error",
        [httpx.DecodingError("bad gzip"), httpx.TooManyRedirects("redirect loop")],
    )
    def test_other_request_errors_wrapped(self, remote_config: RemoteConfig, error: Exception) -> None:
        """Test that non-transport request errors surface as network errors."""
        transport, calls = self._counting_transport([error])

        async def scenario() -> None:
            async with RemoteClient(remote_config, transport=transport) as remote:
                await remote.pull()

        with pytest.raises(NetworkError) as exc:
            run(scenario())
        assert len(calls) == 1
        assert isinstance(exc.value.__cause__, type(error))


class TestLimitsAndIds:
    """Tests for explicit limits and remote id validation."""

    def test_pull_zero_limit(self, make_client: MakeClient) -> None:
        """Test that an explicit zero limit is sent as given."""
        fake = FakeRemote([{"id": 1, "title": "t", "body": "b"}])

        async def scenario() -> list[Record]:
            async with make_client(fake) as remote:
                return await remote.pull(limit=0)

        assert run(scenario()) == []
        assert fake.requests[0].url.params["limit"] == "0"

    @pytest.mark.parametrize("bad_id", [[1], {}, True, "  ", 1.5])
    def test_push_rejects_malformed_id(self, remote_config: RemoteConfig, bad_id: object) -> None:
        """Test that only string or integer ids are adopted."""
        transport = httpx.MockTransport(lambda request: httpx.Response(201, json={"id": bad_id}))
        record = Record(id="loc_1", text="A", category="X")

        async def scenario() -> None:
            async with RemoteClient(remote_config, transport=transport) as remote:
                await remote.push(record)

        with pytest.raises(NetworkError, match="carried no id"):
            run(scenario())
        assert record.remote_id is None

    @pytest.mark.parametrize("value,expected", [(7, "7"), (" 42 ", "42"), ("abc", "abc"), (None, None), (False, None)])
    def test_remote_id_from(self, value: object, expected: str | None) -> None:
        """Test remote id normalization."""
        assert remote_id_from(value) == expected

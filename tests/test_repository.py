"""Tests for the HTTP record store and API clients."""
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from multiup.errors import DestinationUnreachableError, TransferError
from multiup.models import DESTINATIONS, UPLOAD_LOGS
from multiup.services.api_client import HTTPAPIClient
from multiup.services.builtin_store import BuiltinStoreClient
from multiup.services.repository import HTTPRecordStore


class Recorder:
    """MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.requests = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        return response


class TestHTTPRecordStore:
    @pytest.mark.asyncio
    async def test_create(self):
        handler = Recorder(httpx.Response(201, json={"id": "42", "file_name": "a.png"}))
        async with HTTPAPIClient("https://records.test", transport=httpx.MockTransport(handler)) as api:
            created = await HTTPRecordStore(api).create(UPLOAD_LOGS, {"file_name": "a.png"})

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/entities/upload_logs"
        assert json.loads(request.content) == {"file_name": "a.png"}
        assert created["id"] == "42"

    @pytest.mark.asyncio
    async def test_list_passes_sort_and_limit(self):
        handler = Recorder(httpx.Response(200, json=[{"id": "1"}]))
        async with HTTPAPIClient("https://records.test", transport=httpx.MockTransport(handler)) as api:
            records = await HTTPRecordStore(api).list(UPLOAD_LOGS, "-created_date", 5)

        params = handler.requests[0].url.params
        assert params["sort"] == "-created_date"
        assert params["limit"] == "5"
        assert records == [{"id": "1"}]

    @pytest.mark.asyncio
    async def test_list_accepts_items_envelope(self):
        handler = Recorder(httpx.Response(200, json={"items": [{"id": "1"}, {"id": "2"}]}))
        async with HTTPAPIClient("https://records.test", transport=httpx.MockTransport(handler)) as api:
            records = await HTTPRecordStore(api).list(DESTINATIONS)

        assert [r["id"] for r in records] == ["1", "2"]
        assert "sort" not in handler.requests[0].url.params

    @pytest.mark.asyncio
    async def test_update_and_delete(self):
        handler = Recorder(httpx.Response(200, json={"id": "7", "is_active": False}))
        async with HTTPAPIClient("https://records.test", transport=httpx.MockTransport(handler)) as api:
            store = HTTPRecordStore(api)
            updated = await store.update(DESTINATIONS, "7", {"is_active": False})
            await store.delete(DESTINATIONS, "7")

        assert updated["is_active"] is False
        assert [(r.method, r.url.path) for r in handler.requests] == [
            ("PATCH", "/entities/destinations/7"),
            ("DELETE", "/entities/destinations/7"),
        ]


class TestHTTPAPIClient:
    @pytest.mark.asyncio
    async def test_requires_context(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            await HTTPAPIClient("https://records.test").get("/x")

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        handler = Recorder(httpx.Response(503), httpx.Response(200, json=[]))
        with patch("multiup.services.api_client.asyncio.sleep", new=AsyncMock()):
            async with HTTPAPIClient("https://records.test", transport=httpx.MockTransport(handler)) as api:
                response = await api.get("/entities/upload_logs")

        assert response.status_code == 200
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_client_errors_raise(self):
        handler = Recorder(httpx.Response(404, json={"detail": "not found"}))
        async with HTTPAPIClient("https://records.test", transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(RuntimeError, match="API error 404"):
                await api.delete("/entities/destinations/1")


class TestBuiltinStoreClient:
    @pytest.mark.asyncio
    async def test_upload_returns_url(self, make_file):
        handler = Recorder(httpx.Response(200, json={"file_url": "https://builtin.test/f/photo.png"}))
        async with BuiltinStoreClient("https://builtin.test", transport=httpx.MockTransport(handler)) as store:
            result = await store.upload(make_file())

        assert result == {"url": "https://builtin.test/f/photo.png"}
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/upload"
        assert b"photo.png" in request.content

    @pytest.mark.asyncio
    async def test_server_error_is_unreachable(self, make_file):
        handler = Recorder(httpx.Response(502))
        async with BuiltinStoreClient("https://builtin.test", transport=httpx.MockTransport(handler)) as store:
            with pytest.raises(DestinationUnreachableError):
                await store.upload(make_file())

    @pytest.mark.asyncio
    async def test_client_error_is_transfer_error(self, make_file):
        handler = Recorder(httpx.Response(413))
        async with BuiltinStoreClient("https://builtin.test", transport=httpx.MockTransport(handler)) as store:
            with pytest.raises(TransferError):
                await store.upload(make_file())

    @pytest.mark.asyncio
    async def test_connect_error_is_unreachable(self, make_file):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        async with BuiltinStoreClient("https://builtin.test", transport=httpx.MockTransport(refuse)) as store:
            with pytest.raises(DestinationUnreachableError):
                await store.upload(make_file())

    @pytest.mark.asyncio
    async def test_missing_url(self, make_file):
        handler = Recorder(httpx.Response(200, json={}))
        async with BuiltinStoreClient("https://builtin.test", transport=httpx.MockTransport(handler)) as store:
            with pytest.raises(TransferError):
                await store.upload(make_file())

"""Tests for the BlobStore implementations."""

import json
import pytest

import httpx

from bookrental.storage import JsonFileStore
from bookrental.sync import FileBlobStore, HttpBlobStore, MemoryBlobStore, TransportError


def make_http_store(handler) -> HttpBlobStore:
    """Create an HttpBlobStore whose requests go to ``handler``."""
    store = HttpBlobStore("http://library:8080/")
    store._client = httpx.AsyncClient(
        base_url=store.base_url,
        transport=httpx.MockTransport(handler),
    )
    return store


class TestHttpBlobStore:
    """Tests for the HTTP transport."""

    def test_init(self):
        store = HttpBlobStore("http://library:8080/", timeout=5.0)

        assert store.base_url == "http://library:8080"
        assert store.timeout == 5.0
        assert store._client is None

    @pytest.mark.asyncio
    async def test_read(self):
        doc = {"books": [{"id": "b1"}]}

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/data"
            return httpx.Response(200, json=doc)

        store = make_http_store(handler)
        try:
            assert await store.read() == doc
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_read_server_error(self):
        store = make_http_store(lambda request: httpx.Response(500, json={"error": "Read Error"}))
        try:
            with pytest.raises(TransportError, match="HTTP 500"):
                await store.read()
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_read_invalid_json(self):
        store = make_http_store(lambda request: httpx.Response(200, content=b"<html>"))
        try:
            with pytest.raises(TransportError, match="invalid JSON"):
                await store.read()
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_read_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = make_http_store(handler)
        try:
            with pytest.raises(TransportError, match="GET /data failed"):
                await store.read()
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_write(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/data"
            received.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})

        store = make_http_store(handler)
        try:
            await store.write({"books": [{"id": "b1", "status": "borrowed"}]})
        finally:
            await store.close()

        assert received == [{"books": [{"id": "b1", "status": "borrowed"}]}]

    @pytest.mark.asyncio
    async def test_write_server_error_includes_detail(self):
        store = make_http_store(lambda request: httpx.Response(500, json={"error": "Save Failed"}))
        try:
            with pytest.raises(TransportError, match="Save Failed"):
                await store.write({"books": []})
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_write_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        store = make_http_store(handler)
        try:
            with pytest.raises(TransportError):
                await store.write({"books": []})
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        store = HttpBlobStore()
        await store._get_client()
        await store.close()
        await store.close()

        assert store._client is None


class TestFileBlobStore:
    """Tests for the local file transport."""

    @pytest.mark.asyncio
    async def test_roundtrip_through_file(self, tmp_path):
        store = FileBlobStore(JsonFileStore(tmp_path / "data.json"))

        assert await store.read() == {"books": [], "members": [], "rentals": []}
        await store.write({"books": [{"id": "b1"}]})
        assert await store.read() == {"books": [{"id": "b1"}]}

    @pytest.mark.asyncio
    async def test_corrupt_file_is_transport_error(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json")
        store = FileBlobStore(JsonFileStore(path))

        with pytest.raises(TransportError):
            await store.read()

    @pytest.mark.asyncio
    async def test_write_failure_is_transport_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = FileBlobStore(JsonFileStore(blocker / "data.json"))

        with pytest.raises(TransportError):
            await store.write({"books": []})


class TestMemoryBlobStore:
    @pytest.mark.asyncio
    async def test_records_calls(self):
        store = MemoryBlobStore({"books": []})

        doc = await store.read()
        doc["books"].append({"id": "mutated"})
        await store.write({"books": [{"id": "b1"}]})

        assert store.read_count == 1
        assert store.writes == [{"books": [{"id": "b1"}]}]
        assert store.document == {"books": [{"id": "b1"}]}

"""Client-side access to the document store.

The sync manager only needs two operations, read the whole document and
write the whole document. ``HttpBlobStore`` talks to the server over HTTP;
``FileBlobStore`` works on a local JSON file.
"""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..storage import JsonFileStore, StorageError

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when the document store cannot be reached or rejects a request."""


class BlobStore(ABC):
    """Abstract two-operation document store."""

    @abstractmethod
    async def read(self) -> Any:
        """Fetch the current document.

        Raises:
            TransportError: If the document could not be fetched.
        """
        pass

    @abstractmethod
    async def write(self, doc: Any) -> None:
        """Replace the document.

        Raises:
            TransportError: If the document could not be stored.
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass


class HttpBlobStore(BlobStore):
    """Document store reached through ``GET /data`` and ``POST /data``."""

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 10.0):
        """Initialize the HTTP store.

        Args:
            base_url: Base URL of the bookrental server.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def read(self) -> Any:
        client = await self._get_client()
        try:
            response = await client.get("/data")
        except httpx.HTTPError as e:
            raise TransportError(f"GET /data failed: {e}") from e

        if response.status_code != 200:
            raise TransportError(f"GET /data returned HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"GET /data returned invalid JSON: {e}") from e

    async def write(self, doc: Any) -> None:
        client = await self._get_client()
        try:
            response = await client.post("/data", json=doc)
        except httpx.HTTPError as e:
            raise TransportError(f"POST /data failed: {e}") from e
        except (TypeError, ValueError) as e:
            raise TransportError(f"Document is not JSON serializable: {e}") from e

        if response.status_code != 200:
            detail = response.text
            try:
                detail = response.json().get("error", detail)
            except (ValueError, AttributeError):
                pass
            raise TransportError(f"POST /data returned HTTP {response.status_code}: {detail}")

        logger.debug(f"Document written to {self.base_url}")


class FileBlobStore(BlobStore):
    """Document store on a local JSON file, accessed off the event loop."""

    def __init__(self, file_store: JsonFileStore):
        """Initialize the file-backed store.

        Args:
            file_store: The JSON file to read and write.
        """
        self.file_store = file_store

    async def read(self) -> Any:
        try:
            return await asyncio.to_thread(self.file_store.read, True)
        except StorageError as e:
            raise TransportError(str(e)) from e

    async def write(self, doc: Any) -> None:
        try:
            await asyncio.to_thread(self.file_store.write, doc)
        except StorageError as e:
            raise TransportError(str(e)) from e


class MemoryBlobStore(BlobStore):
    """In-process document store, for tests and embedding.

    Keeps call counts so callers can check how often the store was hit.
    """

    def __init__(self, doc: Any = None):
        self._doc = copy.deepcopy(doc) if doc is not None else {}
        self.read_count = 0
        self.writes: list[Any] = []

    @property
    def document(self) -> Any:
        return copy.deepcopy(self._doc)

    async def read(self) -> Any:
        self.read_count += 1
        return copy.deepcopy(self._doc)

    async def write(self, doc: Any) -> None:
        self.writes.append(copy.deepcopy(doc))
        self._doc = copy.deepcopy(doc)

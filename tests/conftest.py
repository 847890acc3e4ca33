"""
GridServe - Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the whole suite.
How:   An in-memory BlobStore stands in for MongoDB; HTTP tests talk to the
       ASGI app through httpx's ASGITransport (no server, no lifespan).

Fixtures:
    memory_store  MemoryBlobStore seeded with a few files
    make_client   builds an AsyncClient around create_app(Settings(...), store)
    client        make_client() with prefix=gridfs, lookup=id, avatar ruleset
"""

import os
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("GRIDSERVE_LOG_LEVEL", "WARNING")

from gridserve.config import Settings  # noqa: E402
from gridserve.main import create_app  # noqa: E402
from gridserve.models.blob import LookupMode, LookupResult, StoredObject  # noqa: E402
from gridserve.services.blob_store import BlobStore  # noqa: E402

PNG_ID = "5f2a0c9e1c9d440000a1b2c3"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
MISSING_ID = "5f2a0c9e1c9d440000ffffff"


class MemoryBlobStore(BlobStore):
    """
    Dict-backed BlobStore that records every lookup it receives.

    `calls` holds (mode, identifier) tuples in call order.
    """

    def __init__(self):
        self.by_id: Dict[str, Tuple[str, bytes]] = {}
        self.by_path: Dict[str, Tuple[str, bytes]] = {}
        self.calls: List[Tuple[LookupMode, str]] = []
        self.connected = False
        self.reachable = True

    def put_id(self, identifier: str, content_type: str, data: bytes) -> None:
        self.by_id[identifier] = (content_type, data)

    def put_path(self, path: str, content_type: str, data: bytes) -> None:
        self.by_path[path] = (content_type, data)

    def get_by_id(self, identifier: str) -> LookupResult:
        self.calls.append((LookupMode.ID, identifier))
        if not ObjectId.is_valid(identifier):
            return LookupResult.malformed(f"'{identifier}' is not a valid ObjectId")
        return self._result(self.by_id.get(identifier), identifier)

    def open_by_path(self, path: str) -> LookupResult:
        self.calls.append((LookupMode.PATH, path))
        return self._result(self.by_path.get(path), path)

    @staticmethod
    def _result(entry: Optional[Tuple[str, bytes]], name: str) -> LookupResult:
        if entry is None:
            return LookupResult.not_found(name)
        content_type, data = entry
        return LookupResult.found(
            StoredObject(content_type, iter([data]), length=len(data), filename=name)
        )

    def connect(self) -> None:
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def ping(self) -> bool:
        return self.reachable


@pytest.fixture
def memory_store():
    store = MemoryBlobStore()
    store.put_id(PNG_ID, "image/png", PNG_BYTES)
    store.put_path("docs/readme.txt", "text/plain", b"hello from gridfs")
    store.put_path("users/avatar/default/thumb.png", "image/png", b"default-avatar")
    store.put_path("photos/user/default/avatar/pic.jpg", "image/jpeg", b"default-user")
    return store


@pytest.fixture
def make_client():
    """
    Returns an async context manager factory:

        async with make_client(store, lookup="path") as client:
            ...
    """

    def factory(store: BlobStore, root_path: str = "", **overrides) -> AsyncClient:
        options = {"prefix": "gridfs", "lookup": "id", "fallback_ruleset": "avatar"}
        options.update(overrides)
        app = create_app(Settings(**options), store=store)
        return AsyncClient(
            transport=ASGITransport(app=app, root_path=root_path), base_url="http://test"
        )

    return factory


@pytest_asyncio.fixture
async def client(memory_store, make_client):
    async with make_client(memory_store) as http:
        yield http

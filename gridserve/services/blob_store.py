"""
GridServe - Blob Store Connection & Lookups
============================================

What:  The collaborator interface the resolver reads files through, plus the
       MongoDB GridFS implementation of it.
How:   `BlobStore` is an abstract base with two lookups, `get_by_id` and
       `open_by_path`, both returning a LookupResult. `GridFSBlobStore` owns
       a single pymongo `MongoClient` for the whole process.
Who:   Constructed by the application factory, connected in the lifespan,
       shared by the GridFS middleware and the health route.
When:  connect() once at startup, close() once at shutdown. Lookups run on
       Starlette's threadpool, one blocking call at a time per request.

Connection Lifecycle:
    connect()  → MongoClient(...) + ping within `connect_timeout`
                 failure → BlobStoreConnectionError (startup aborts)
    lookups    → GridFS.get(ObjectId) / GridFS.get_last_version(filename)
    close()    → MongoClient.close()

pymongo's MongoClient is thread-safe, so concurrent requests share it
without locks here.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import gridfs
from bson import ObjectId
from bson.errors import InvalidId
from gridfs.errors import NoFile
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from gridserve.exceptions import BlobStoreConnectionError, StoreNotConnectedError
from gridserve.models.blob import LookupMode, LookupResult, StoredObject

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# GridFS default chunk size (255 KiB), used when a file does not report one.
DEFAULT_READ_SIZE = 255 * 1024


class BlobStore(ABC):
    """
    Read-only access to stored files.

    Contract:
        - get_by_id() and open_by_path() never raise for a missing file or a
          malformed identifier; they return LookupResult.not_found() or
          LookupResult.malformed().
        - Connection and server errors are raised unchanged.
    """

    @abstractmethod
    def get_by_id(self, identifier: str) -> LookupResult:
        """Looks a file up by its object id (a 24-character hex string)."""

    @abstractmethod
    def open_by_path(self, path: str) -> LookupResult:
        """Looks up the newest file stored under `path` as its filename."""

    def lookup(self, identifier: str, mode: LookupMode) -> LookupResult:
        if mode is LookupMode.PATH:
            return self.open_by_path(identifier)
        return self.get_by_id(identifier)

    def connect(self) -> None:
        """Establishes the connection. No-op for stores that need none."""

    def close(self) -> None:
        """Releases the connection. No-op for stores that need none."""

    def ping(self) -> bool:
        return True


class GridFSBlobStore(BlobStore):
    """
    MongoDB GridFS backed store.

    Args:
        hostname:        MongoDB host.
        port:            MongoDB port.
        database:        Database holding the `fs.files` / `fs.chunks` collections.
        credentials:     Optional (username, password); authenticated against `database`.
        connect_timeout: Seconds allowed for server selection and connect.
        client_factory:  Callable building the client; tests substitute a mock.
    """

    def __init__(
        self,
        hostname: str = "localhost",
        port: int = 27017,
        database: str = "gridfs",
        credentials: Optional[Tuple[str, str]] = None,
        connect_timeout: float = 5.0,
        client_factory=MongoClient,
    ):
        self.hostname = hostname
        self.port = port
        self.database = database
        self.credentials = credentials
        self.connect_timeout = connect_timeout
        self._client_factory = client_factory
        self._client = None
        self._fs: Optional[gridfs.GridFS] = None

    @classmethod
    def from_settings(cls, settings) -> "GridFSBlobStore":
        return cls(
            hostname=settings.hostname,
            port=settings.port,
            database=settings.database,
            credentials=settings.mongo_credentials(),
            connect_timeout=settings.connect_timeout,
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def connect(self) -> None:
        """
        Opens the client and verifies the server answers within the timeout.

        MongoClient connects lazily, so a `ping` is issued to surface an
        unreachable server or rejected credentials here rather than on the
        first request.

        Raises:
            BlobStoreConnectionError: the server did not answer or refused auth.
        """
        if self._client is not None:
            return

        timeout_ms = int(self.connect_timeout * 1000)
        kwargs = {
            "host": self.hostname,
            "port": self.port,
            "serverSelectionTimeoutMS": timeout_ms,
            "connectTimeoutMS": timeout_ms,
        }
        if self.credentials:
            username, password = self.credentials
            kwargs.update(username=username, password=password, authSource=self.database)

        client = None
        try:
            client = self._client_factory(**kwargs)
            client[self.database].command("ping")
        except PyMongoError as exc:
            if client is not None:
                client.close()
            raise BlobStoreConnectionError(
                str(exc),
                context={"hostname": self.hostname, "port": self.port, "database": self.database},
            ) from exc

        self._client = client
        self._fs = gridfs.GridFS(client[self.database])
        logger.info(
            "Connected to MongoDB at %s:%d (database=%s, auth=%s)",
            self.hostname,
            self.port,
            self.database,
            "yes" if self.credentials else "no",
        )

    def close(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._fs = None
        logger.info("MongoDB connection closed")

    def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            self._client[self.database].command("ping")
        except PyMongoError as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            return False
        return True

    @property
    def fs(self) -> gridfs.GridFS:
        if self._fs is None:
            raise StoreNotConnectedError(context={"database": self.database})
        return self._fs

    # ── Lookups ───────────────────────────────────────────────────────────

    def get_by_id(self, identifier: str) -> LookupResult:
        try:
            object_id = ObjectId(identifier)
        except (InvalidId, TypeError) as exc:
            return LookupResult.malformed(str(exc))
        try:
            grid_out = self.fs.get(object_id)
        except NoFile:
            return LookupResult.not_found(identifier)
        return LookupResult.found(self._to_stored(grid_out))

    def open_by_path(self, path: str) -> LookupResult:
        try:
            grid_out = self.fs.get_last_version(filename=path)
        except NoFile:
            return LookupResult.not_found(path)
        return LookupResult.found(self._to_stored(grid_out))

    @staticmethod
    def _to_stored(grid_out) -> StoredObject:
        read_size = getattr(grid_out, "chunk_size", None) or DEFAULT_READ_SIZE
        return StoredObject(
            content_type=_content_type_of(grid_out),
            body=iter(lambda: grid_out.read(read_size), b""),
            length=getattr(grid_out, "length", None),
            filename=getattr(grid_out, "filename", None),
            on_close=grid_out.close,
        )


def _content_type_of(grid_out) -> str:
    """Top-level `contentType` first, then `metadata.contentType`."""
    content_type = getattr(grid_out, "content_type", None)
    if not content_type:
        metadata = getattr(grid_out, "metadata", None) or {}
        content_type = metadata.get("contentType") or metadata.get("content_type")
    return content_type or DEFAULT_CONTENT_TYPE

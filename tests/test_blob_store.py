"""
GridServe - GridFS Blob Store Unit Tests
=========================================

What:  Connection lifecycle and lookup translation of GridFSBlobStore.
How:   MongoClient is replaced through `client_factory` and gridfs.GridFS is
       patched, so no MongoDB server is needed.
"""

from unittest.mock import MagicMock, patch

import pytest
from gridfs.errors import NoFile
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from gridserve.exceptions import BlobStoreConnectionError, StoreNotConnectedError
from gridserve.models.blob import LookupMode, LookupStatus
from gridserve.services.blob_store import DEFAULT_CONTENT_TYPE, GridFSBlobStore
from tests.conftest import PNG_ID


def _grid_out(chunks, content_type="image/png", metadata=None, chunk_size=4):
    grid_out = MagicMock()
    grid_out.read.side_effect = list(chunks) + [b""]
    grid_out.chunk_size = chunk_size
    grid_out.length = sum(len(c) for c in chunks)
    grid_out.filename = "file.bin"
    grid_out.content_type = content_type
    grid_out.metadata = metadata
    return grid_out


@pytest.fixture
def factory():
    return MagicMock()


@pytest.fixture
def fs():
    with patch("gridserve.services.blob_store.gridfs.GridFS") as grid_fs:
        yield grid_fs.return_value


@pytest.fixture
def store(factory, fs):
    store = GridFSBlobStore(database="media", client_factory=factory)
    store.connect()
    return store


class TestConnect:

    def test_connect_passes_timeouts(self, factory, fs):
        GridFSBlobStore(hostname="mongo", port=27018, database="media", client_factory=factory).connect()

        factory.assert_called_once_with(
            host="mongo",
            port=27018,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
        )
        factory.return_value.__getitem__.assert_called_with("media")
        factory.return_value.__getitem__.return_value.command.assert_called_with("ping")

    def test_connect_with_credentials(self, factory, fs):
        GridFSBlobStore(
            database="media",
            credentials=("reader", "s3cret"),
            connect_timeout=2.5,
            client_factory=factory,
        ).connect()

        kwargs = factory.call_args.kwargs
        assert kwargs["username"] == "reader"
        assert kwargs["password"] == "s3cret"
        assert kwargs["authSource"] == "media"
        assert kwargs["serverSelectionTimeoutMS"] == 2500

    def test_unreachable_server_is_fatal(self, factory, fs):
        client = factory.return_value
        client.__getitem__.return_value.command.side_effect = ServerSelectionTimeoutError("timed out")
        store = GridFSBlobStore(client_factory=factory)

        with pytest.raises(BlobStoreConnectionError, match="Unable to connect to the MongoDB server"):
            store.connect()
        client.close.assert_called_once()
        assert store.ping() is False

    def test_rejected_credentials_are_fatal(self, factory, fs):
        factory.return_value.__getitem__.return_value.command.side_effect = OperationFailure(
            "Authentication failed."
        )
        store = GridFSBlobStore(credentials=("reader", "wrong"), client_factory=factory)

        with pytest.raises(BlobStoreConnectionError, match="Authentication failed"):
            store.connect()

    def test_connect_is_idempotent(self, store, factory):
        store.connect()
        factory.assert_called_once()

    def test_close(self, store, factory):
        store.close()
        factory.return_value.close.assert_called_once()
        with pytest.raises(StoreNotConnectedError):
            store.get_by_id(PNG_ID)


class TestLookups:

    def test_lookup_before_connect(self, factory):
        store = GridFSBlobStore(client_factory=factory)
        with pytest.raises(StoreNotConnectedError):
            store.open_by_path("a/b.png")

    def test_malformed_id(self, store, fs):
        result = store.get_by_id("nope")

        assert result.status is LookupStatus.MALFORMED
        fs.get.assert_not_called()

    def test_missing_id(self, store, fs):
        fs.get.side_effect = NoFile("no file")
        result = store.get_by_id(PNG_ID)

        assert result.status is LookupStatus.NOT_FOUND

    def test_found_by_id_streams_chunks(self, store, fs):
        grid_out = _grid_out([b"abcd", b"ef"])
        fs.get.return_value = grid_out

        result = store.get_by_id(PNG_ID)

        assert result.is_found
        assert str(fs.get.call_args.args[0]) == PNG_ID
        assert result.stored.content_type == "image/png"
        assert result.stored.length == 6
        assert list(result.stored.iter_chunks()) == [b"abcd", b"ef"]
        grid_out.read.assert_called_with(4)
        grid_out.close.assert_called_once()

    def test_found_by_path(self, store, fs):
        fs.get_last_version.return_value = _grid_out([b"x"], content_type="text/css")

        result = store.lookup("css/site.css", LookupMode.PATH)

        fs.get_last_version.assert_called_once_with(filename="css/site.css")
        assert result.stored.content_type == "text/css"
        assert result.stored.read() == b"x"

    def test_missing_path(self, store, fs):
        fs.get_last_version.side_effect = NoFile("no file")

        assert store.open_by_path("css/missing.css").status is LookupStatus.NOT_FOUND

    def test_content_type_from_metadata(self, store, fs):
        fs.get.return_value = _grid_out([b"g"], content_type=None, metadata={"contentType": "image/gif"})

        assert store.get_by_id(PNG_ID).stored.content_type == "image/gif"

    def test_content_type_default(self, store, fs):
        fs.get.return_value = _grid_out([b"g"], content_type=None)

        assert store.get_by_id(PNG_ID).stored.content_type == DEFAULT_CONTENT_TYPE

    def test_body_is_read_once(self, store, fs):
        fs.get.return_value = _grid_out([b"abc"])
        stored = store.get_by_id(PNG_ID).stored
        stored.read()

        with pytest.raises(RuntimeError):
            stored.read()

"""
GridServe - Blob Lookup Models
===============================

What:  Plain data types exchanged between the blob store, the resolver and
       the middleware.
How:   Frozen dataclasses and enums; no I/O happens here.

Type Map:
    LookupMode         id | path
    LookupRequest      (identifier, mode), built once per HTTP request
    StoredObject       content type + read-once chunk iterator
    LookupResult       what one store call produced (FOUND / NOT_FOUND / MALFORMED)
    ResolutionOutcome  Found | FoundViaFallback | NotFound
"""

import enum
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional, Union


class LookupMode(str, enum.Enum):
    """How an identifier is interpreted by the blob store."""

    ID = "id"
    PATH = "path"


@dataclass(frozen=True)
class LookupRequest:
    identifier: str
    mode: LookupMode = LookupMode.ID


class StoredObject:
    """
    A file fetched from the blob store.

    The body is a lazy, forward-only iterator of byte chunks. It can be
    consumed exactly once; `iter_chunks()` closes the underlying handle when
    the iterator is exhausted or abandoned.

    Attributes:
        content_type: MIME type recorded with the file.
        length:       Size in bytes when the store reports it.
        filename:     Stored filename, if any.
    """

    def __init__(
        self,
        content_type: str,
        body: Iterable[bytes],
        length: Optional[int] = None,
        filename: Optional[str] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self.content_type = content_type
        self.length = length
        self.filename = filename
        self._body = body
        self._on_close = on_close
        self._consumed = False
        self._closed = False

    def iter_chunks(self) -> Iterator[bytes]:
        if self._consumed:
            raise RuntimeError("StoredObject body has already been consumed")
        self._consumed = True
        try:
            for chunk in self._body:
                if chunk:
                    yield chunk
        finally:
            self.close()

    def read(self) -> bytes:
        """Drains the body into memory. Meant for tests and small files."""
        return b"".join(self.iter_chunks())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return (
            f"StoredObject(content_type={self.content_type!r}, "
            f"length={self.length!r}, filename={self.filename!r})"
        )


class LookupStatus(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class LookupResult:
    """
    Outcome of a single blob store call.

    "Not found" and "malformed identifier" are ordinary values here so the
    resolver can branch on them without exception handlers.
    """

    status: LookupStatus
    stored: Optional[StoredObject] = field(default=None, compare=False)
    detail: str = ""

    @classmethod
    def found(cls, stored: StoredObject) -> "LookupResult":
        return cls(LookupStatus.FOUND, stored)

    @classmethod
    def not_found(cls, detail: str = "") -> "LookupResult":
        return cls(LookupStatus.NOT_FOUND, detail=detail)

    @classmethod
    def malformed(cls, detail: str = "") -> "LookupResult":
        return cls(LookupStatus.MALFORMED, detail=detail)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND


# ── Resolution outcomes ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Found:
    stored: StoredObject
    identifier: str


@dataclass(frozen=True)
class FoundViaFallback:
    """A default object served in place of the requested one."""

    stored: StoredObject
    identifier: str
    requested: str
    rule: str


@dataclass(frozen=True)
class NotFound:
    identifier: str
    reason: LookupStatus = LookupStatus.NOT_FOUND


ResolutionOutcome = Union[Found, FoundViaFallback, NotFound]

"""
GridServe - Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions for failures that are NOT part of
       ordinary request handling.
How:   Each exception carries a message and an optional context dict.

Exception Hierarchy:
    GridServeError (base)
    ├── BlobStoreConnectionError  → fatal at startup, the server never serves
    ├── StoreNotConnectedError    → lookup attempted before connect()
    └── UnknownRulesetError       → configuration names an unregistered ruleset

A missing file or a malformed identifier is not an exception: the blob store
returns a LookupResult variant and the middleware answers 404. Any other
pymongo error raised mid-request propagates out of the middleware untouched.
"""

from typing import Any, Dict, Iterable, Optional


class GridServeError(Exception):
    """
    Base exception for all GridServe errors.

    Attributes:
        message:  Human-readable description.
        context:  Additional debug info for logs.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class BlobStoreConnectionError(GridServeError):
    """
    Raised when MongoDB cannot be reached or rejects the credentials within
    the connect timeout.

    Raised from the application lifespan, which aborts startup.
    """

    def __init__(
        self,
        reason: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"Unable to connect to the MongoDB server ({reason})"
        super().__init__(message=message, context=context)
        self.reason = reason


class StoreNotConnectedError(GridServeError):
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Blob store is not connected; call connect() during startup",
            context=context,
        )


class UnknownRulesetError(GridServeError):
    def __init__(
        self,
        name: str,
        known: Iterable[str] = (),
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        ctx["ruleset"] = name
        ctx["known"] = list(known)
        super().__init__(
            message=f"Unknown fallback ruleset '{name}'. Known: {ctx['known']}",
            context=ctx,
        )
        self.name = name

"""
GridServe - GridFS Middleware
==============================

What:  Serves GridFS files for requests under `/<prefix>/`, passing every
       other request to the wrapped application untouched.
How:   Matches the request path, hands the remainder to IdentifierResolver on
       Starlette's threadpool (pymongo calls block), and streams the result.
Who:   Installed by create_app(); usable on any Starlette/FastAPI app.

Responses:
    Found             → 200, Content-Type of the stored file, file bytes
    FoundViaFallback  → `fallback_status` (200 or 302), same headers and body
    NotFound          → 404, text/plain, "File not found."

Usage:
    app.add_middleware(
        GridFSMiddleware,
        resolver=IdentifierResolver(store, IMAGE_RULESET),
        prefix="gridfs",
        lookup=LookupMode.PATH,
    )
"""

import logging
import re

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse
from starlette.types import ASGIApp

from gridserve.models.blob import Found, FoundViaFallback, LookupMode, StoredObject
from gridserve.services.resolver import IdentifierResolver

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = "File not found."


def mount_relative_path(scope) -> str:
    """Request path with the ASGI root_path removed, as the app's routes see it."""
    path = scope["path"]
    root_path = scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        return path[len(root_path):] or "/"
    return path


class GridFSMiddleware(BaseHTTPMiddleware):
    """
    Prefix-routed file server in front of a wrapped ASGI application.

    Args:
        app:             The wrapped application.
        resolver:        IdentifierResolver bound to a connected store.
        prefix:          URL prefix, leading slashes ignored ("gridfs" → /gridfs/...).
        lookup:          How identifiers are looked up first ("id" or "path").
        fallback_status: Status for responses served by a fallback rule.
    """

    def __init__(
        self,
        app: ASGIApp,
        resolver: IdentifierResolver,
        prefix: str = "gridfs",
        lookup: LookupMode = LookupMode.ID,
        fallback_status: int = 302,
    ):
        super().__init__(app)
        self.resolver = resolver
        self.prefix = prefix.lstrip("/")
        self.lookup = LookupMode(lookup)
        self.fallback_status = fallback_status
        self._pattern = re.compile(r"^/%s/(.+)$" % re.escape(self.prefix), re.DOTALL)

    def match(self, path: str):
        """Returns the identifier for a path under the prefix, else None."""
        found = self._pattern.match(path)
        return found.group(1) if found else None

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        identifier = self.match(mount_relative_path(request.scope))
        if identifier is None:
            return await call_next(request)

        outcome = await run_in_threadpool(self.resolver.resolve, identifier, self.lookup)

        if isinstance(outcome, Found):
            return self._file_response(outcome.stored, 200)
        if isinstance(outcome, FoundViaFallback):
            return self._file_response(outcome.stored, self.fallback_status)

        logger.info("GridFS miss for %r (%s)", identifier, outcome.reason.value)
        return Response(
            NOT_FOUND_BODY,
            status_code=404,
            headers={"Content-Type": "text/plain"},
        )

    @staticmethod
    def _file_response(stored: StoredObject, status_code: int) -> Response:
        # Explicit header keeps the stored type exact (no charset appended).
        headers = {"Content-Type": stored.content_type}
        if stored.length is not None:
            headers["Content-Length"] = str(stored.length)
        return StreamingResponse(
            stored.iter_chunks(),
            status_code=status_code,
            headers=headers,
        )

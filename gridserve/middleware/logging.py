"""
GridServe - Request Logging Middleware
=======================================

What:  One access-log line per request: method, path, status, duration.
How:   Times the downstream call and logs on the "gridserve.access" logger,
       picking the level from the status class.
When:  Inside RequestIDMiddleware, so the request ID is already set.

Example line:
    GET /gridfs/5f2a0c... 200 3.4ms [a1b2c3d4] from 10.0.0.7

Health probes are not logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gridserve.middleware.request_id import request_id_var

logger = logging.getLogger("gridserve.access")

QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each HTTP request once its response headers are ready.

    Duration covers the GridFS lookup but not the body stream, which is
    sent after dispatch returns.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response

"""
GridServe - Health Check Route
===============================

What:  GET /health reporting whether MongoDB still answers.
How:   Pings the shared blob store (on the threadpool; pymongo blocks).
Who:   Docker health checks, load balancers, monitoring.

Status levels:
    healthy    store answers ping  (HTTP 200)
    unhealthy  store unreachable   (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response
from starlette.concurrency import run_in_threadpool

from gridserve import __version__
from gridserve.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    store = request.app.state.blob_store
    connected = await run_in_threadpool(store.ping)

    if not connected:
        logger.warning("Health check: blob store unreachable")
        response.status_code = 503

    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        blob_store="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )

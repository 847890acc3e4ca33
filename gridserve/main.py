"""
GridServe - FastAPI Application Factory
========================================

What:  Builds the ASGI application: GridFS middleware in front of the
       service's own routes.
How:   create_app() wires settings → blob store → resolver → middleware and
       returns a FastAPI instance; the lifespan owns the MongoDB connection.
Who:   uvicorn (`uvicorn gridserve.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                     FastAPI App                      │
    │                                                      │
    │  Middleware Chain:                                   │
    │  ┌──────────┐ ┌──────────────┐ ┌──────────────────┐  │
    │  │  Req ID  │→│   Logging    │→│  GridFS /<prefix> │  │
    │  └──────────┘ └──────────────┘ └──────────────────┘  │
    │                                        │ no match    │
    │  Routes:                               ▼             │
    │  ┌──────────────┐                                    │
    │  │ GET /health  │                                    │
    │  └──────────────┘                                    │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, connect to MongoDB (failure aborts startup)
    Shutdown: close the MongoDB client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from gridserve import __version__
from gridserve.config import Settings, settings
from gridserve.exceptions import BlobStoreConnectionError
from gridserve.middleware.gridfs import GridFSMiddleware
from gridserve.middleware.logging import RequestLoggingMiddleware
from gridserve.middleware.request_id import RequestIDMiddleware
from gridserve.routes import health
from gridserve.services.blob_store import BlobStore, GridFSBlobStore
from gridserve.services.fallback import get_ruleset
from gridserve.services.resolver import IdentifierResolver

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Topology/heartbeat chatter
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings
    store: BlobStore = app.state.blob_store

    setup_logging(app_settings.log_level)
    logger.info("GridServe %s starting up", __version__)

    try:
        await run_in_threadpool(store.connect)
    except BlobStoreConnectionError as exc:
        logger.error("%s | Context: %s", exc.message, exc.context)
        raise

    logger.info(
        "Serving /%s/* by %s (fallback ruleset=%s, status=%d)",
        app_settings.prefix,
        app_settings.lookup.value,
        app_settings.fallback_ruleset,
        app_settings.fallback_status,
    )

    yield

    logger.info("GridServe shutting down")
    await run_in_threadpool(store.close)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    app_settings: Optional[Settings] = None,
    store: Optional[BlobStore] = None,
) -> FastAPI:
    """
    Create and configure the application.

    Args:
        app_settings: Settings to use; defaults to the environment-loaded ones.
        store:        Blob store to serve from; defaults to a GridFSBlobStore
                      built from the settings. It is connected by the lifespan,
                      not here, so building the app performs no I/O.
    """
    app_settings = app_settings or settings
    store = store if store is not None else GridFSBlobStore.from_settings(app_settings)
    resolver = IdentifierResolver(store, get_ruleset(app_settings.fallback_ruleset))

    app = FastAPI(
        title="GridServe",
        description="Serves files stored in MongoDB GridFS under a URL prefix.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.blob_store = store

    # Last added runs first: RequestID → Logging → GridFS → routes
    app.add_middleware(
        GridFSMiddleware,
        resolver=resolver,
        prefix=app_settings.prefix,
        lookup=app_settings.lookup,
        fallback_status=app_settings.fallback_status,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)

    return app


app = create_app()

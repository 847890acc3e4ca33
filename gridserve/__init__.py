"""
GridServe - Application Package Initializer
============================================

What: Serves files stored in MongoDB GridFS through an ASGI middleware.
Who:  Imported by uvicorn (`gridserve.main:app`), by host applications that
      mount `GridFSMiddleware` themselves, and by the test suite.

Architecture Note:

    ┌─────────────────────────────────────┐
    │      Middleware (HTTP surface)      │  ← prefix match, status codes
    ├─────────────────────────────────────┤
    │   Services (resolver, fallbacks)    │  ← identifier resolution
    ├─────────────────────────────────────┤
    │       Models (lookup results)       │  ← plain dataclasses
    ├─────────────────────────────────────┤
    │      Blob store (pymongo/GridFS)    │  ← connection lifecycle
    └─────────────────────────────────────┘
"""

__version__ = "0.2.0"

# Middleware package init
"""
GridServe - Middleware Package
===============================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GridFS] → wrapped app (routes)

    - Request ID runs first so every log line and response carries it
    - Logging sees the final status of GridFS and pass-through responses
    - GridFS answers /<prefix>/... itself and forwards everything else
"""

# Routes package init
"""
GridServe - Routes Package
===========================

Route Inventory:
    - health.py:  GET /health  (blob store connectivity)

Files themselves are served by GridFSMiddleware, not by a route.
"""

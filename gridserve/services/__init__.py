# Services package init
"""
GridServe - Services Layer
===========================

Service Inventory:
    - BlobStore (abstract): lookups by object id or by path
    - GridFSBlobStore: pymongo/GridFS implementation owning the MongoClient
    - FallbackRuleset / FallbackRule: ordered "default" rewrites
    - IdentifierResolver: direct lookup, then at most one fallback lookup
"""

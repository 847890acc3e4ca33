"""
GridServe - Identifier Resolver
================================

What:  Decides which stored file answers a request for an identifier.
How:   One direct lookup; when it misses, at most one fallback lookup using
       the first applicable rewrite of the configured ruleset.
Who:   GridFSMiddleware, once per matching request.

Algorithm:
    1. lookup(identifier, mode)
       found                           → Found(object, identifier)
    2. not found / malformed:
       identifier outside ruleset gate → NotFound
    3. first rule producing a rewrite  → lookup(rewrite, PATH)
       no rule applies                 → NotFound
    4. found                           → FoundViaFallback(object, rewrite)
       otherwise                       → NotFound

Rule order goes from most to least specific and only the first applicable
rule is attempted. The fallback lookup is always by path, whatever mode the
original request used. Nothing is cached between calls.
"""

import logging

from gridserve.models.blob import (
    Found,
    FoundViaFallback,
    LookupMode,
    LookupRequest,
    NotFound,
    ResolutionOutcome,
)
from gridserve.services.blob_store import BlobStore
from gridserve.services.fallback import FallbackRuleset, NO_FALLBACK

logger = logging.getLogger(__name__)


class IdentifierResolver:
    """Resolves identifiers against a BlobStore with an optional fallback ruleset."""

    def __init__(self, store: BlobStore, ruleset: FallbackRuleset = NO_FALLBACK):
        self.store = store
        self.ruleset = ruleset

    def resolve(self, identifier: str, mode: LookupMode = LookupMode.ID) -> ResolutionOutcome:
        return self.resolve_request(LookupRequest(identifier, LookupMode(mode)))

    def resolve_request(self, request: LookupRequest) -> ResolutionOutcome:
        result = self.store.lookup(request.identifier, request.mode)
        if result.is_found:
            logger.debug("Found %s by %s", request.identifier, request.mode.value)
            return Found(result.stored, request.identifier)

        if not self.ruleset.recognizes(request.identifier):
            logger.debug(
                "No %s fallback for %s (%s)",
                self.ruleset.name,
                request.identifier,
                result.status.value,
            )
            return NotFound(request.identifier, result.status)

        match = self.ruleset.first_rewrite(request.identifier)
        if match is None:
            logger.debug("No fallback rule applies to %s", request.identifier)
            return NotFound(request.identifier, result.status)

        rule, candidate = match
        fallback = self.store.lookup(candidate, LookupMode.PATH)
        if not fallback.is_found:
            logger.info(
                "Fallback %s for %s missed: %s not found",
                rule.name,
                request.identifier,
                candidate,
            )
            return NotFound(request.identifier, result.status)

        logger.info("Serving %s in place of %s (rule %s)", candidate, request.identifier, rule.name)
        return FoundViaFallback(
            stored=fallback.stored,
            identifier=candidate,
            requested=request.identifier,
            rule=rule.name,
        )

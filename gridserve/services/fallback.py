"""
GridServe - Fallback Rewrite Rules
===================================

What:  Ordered identifier rewrites that map a missing file onto a "default"
       stand-in (a default avatar, a default team crest, ...).
How:   A FallbackRule is a named pure function `str -> Optional[str]`.
       A FallbackRuleset pairs a gate pattern with an ordered tuple of rules;
       the resolver uses only the first rule that produces a rewrite.
Who:   IdentifierResolver.

Rulesets:
    avatar  gate: an "avatar" segment below at least one parent segment
            1. avatar-default     users/avatar/42/thumb.png -> users/avatar/default/thumb.png

    image   gate: an "avatar", "avatars", "image" or "images" segment
            1. user-default       photos/user/42/avatar/pic.jpg -> photos/user/default/avatar/pic.jpg
            2. club-team-default  club/7/team/3/image/crest.png -> club/default/team/default/image/crest.png
            3. team-default       team/3/image/crest.png        -> team/default/image/crest.png
            4. numeric-suffix     images/logo_128.png           -> images/logo.png

    none    fallback disabled

Rules only look at syntax. Whether a rewrite is "right" is decided by the
follow-up lookup alone.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Pattern, Tuple

from gridserve.exceptions import UnknownRulesetError

DEFAULT_TOKEN = "default"


@dataclass(frozen=True)
class FallbackRule:
    """A named rewrite; returns None when the identifier has no matching shape."""

    name: str
    rewrite: Callable[[str], Optional[str]]

    def __call__(self, identifier: str) -> Optional[str]:
        candidate = self.rewrite(identifier)
        if candidate is None or candidate == identifier:
            return None
        return candidate


@dataclass(frozen=True)
class FallbackRuleset:
    name: str
    gate: Optional[Pattern[str]]
    rules: Tuple[FallbackRule, ...]

    def recognizes(self, identifier: str) -> bool:
        return self.gate is not None and self.gate.search(identifier) is not None

    def first_rewrite(self, identifier: str) -> Optional[Tuple[FallbackRule, str]]:
        """Returns the first applicable rule and its rewrite, or None."""
        for rule in self.rules:
            candidate = rule(identifier)
            if candidate is not None:
                return rule, candidate
        return None


def regex_rule(name: str, pattern: str, replacement: str) -> FallbackRule:
    """Builds a rule that substitutes the first match of `pattern`."""
    compiled = re.compile(pattern)

    def rewrite(identifier: str) -> Optional[str]:
        if compiled.search(identifier) is None:
            return None
        return compiled.sub(replacement, identifier, count=1)

    return FallbackRule(name=name, rewrite=rewrite)


# ── Rule implementations ──────────────────────────────────────────────────


def _second_to_last_default(identifier: str) -> Optional[str]:
    segments = identifier.split("/")
    if len(segments) < 2 or segments[-2] == DEFAULT_TOKEN:
        return None
    segments[-2] = DEFAULT_TOKEN
    return "/".join(segments)


_NUMERIC_SUFFIX = re.compile(r"^(?P<stem>.+?)[-_]\d+(?P<ext>\.[^./]+)?$")


def _trim_numeric_suffix(identifier: str) -> Optional[str]:
    head, sep, last = identifier.rpartition("/")
    match = _NUMERIC_SUFFIX.match(last)
    if match is None:
        return None
    return f"{head}{sep}{match.group('stem')}{match.group('ext') or ''}"


AVATAR_DEFAULT = FallbackRule("avatar-default", _second_to_last_default)

USER_DEFAULT = regex_rule(
    "user-default",
    r"(^|/)user/(?!default/)[^/]+/",
    r"\1user/default/",
)

# Applies unless both ids are already the default pair.
CLUB_TEAM_DEFAULT = regex_rule(
    "club-team-default",
    r"(^|/)club/(?!default/team/default/)[^/]+/team/[^/]+/",
    r"\1club/default/team/default/",
)

TEAM_DEFAULT = regex_rule(
    "team-default",
    r"(^|/)team/(?!default/)[^/]+/",
    r"\1team/default/",
)

NUMERIC_SUFFIX = FallbackRule("numeric-suffix", _trim_numeric_suffix)


# ── Registry ──────────────────────────────────────────────────────────────

AVATAR_RULESET = FallbackRuleset(
    name="avatar",
    gate=re.compile(r"/avatar/"),
    rules=(AVATAR_DEFAULT,),
)

IMAGE_RULESET = FallbackRuleset(
    name="image",
    gate=re.compile(r"(^|/)(avatars?|images?)(/|$)"),
    rules=(USER_DEFAULT, CLUB_TEAM_DEFAULT, TEAM_DEFAULT, NUMERIC_SUFFIX),
)

NO_FALLBACK = FallbackRuleset(name="none", gate=None, rules=())

RULESETS: Dict[str, FallbackRuleset] = {
    ruleset.name: ruleset for ruleset in (AVATAR_RULESET, IMAGE_RULESET, NO_FALLBACK)
}


def get_ruleset(name: str) -> FallbackRuleset:
    try:
        return RULESETS[name]
    except KeyError:
        raise UnknownRulesetError(name, sorted(RULESETS)) from None

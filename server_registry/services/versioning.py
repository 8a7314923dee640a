"""
Version ordering and latest-version resolution.

Versions are compared as strict Semantic Versioning 2.0.0 strings
(``MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]``, no ``v`` prefix). Publishers may
use any version string, so resolution has a fallback: a version that is not
semantic always becomes the latest, even when it follows a higher semantic
version. Mixed semantic/non-semantic histories therefore have no total order.
"""
from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

# semver.org reference pattern
_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


@dataclass(frozen=True)
class SemanticVersion:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[Union[int, str], ...] = ()
    build: Optional[str] = None


@dataclass(frozen=True)
class LatestDecision:
    """Outcome of resolving a newly published version against the current latest."""

    is_latest: bool
    unmark_previous: bool


@functools.lru_cache(maxsize=256)
def parse_semver(version: str) -> Optional[SemanticVersion]:
    """Parse ``version``; return None when it is not a semantic version."""
    match = _SEMVER_RE.match(version or "")
    if match is None:
        return None
    major, minor, patch, prerelease, build = match.groups()
    identifiers: Tuple[Union[int, str], ...] = ()
    if prerelease:
        identifiers = tuple(int(p) if p.isdigit() else p for p in prerelease.split("."))
    return SemanticVersion(int(major), int(minor), int(patch), identifiers, build)


def is_semantic_version(version: str) -> bool:
    return parse_semver(version) is not None


def _compare_identifier(a: Union[int, str], b: Union[int, str]) -> int:
    # Numeric identifiers sort below alphanumeric ones
    if isinstance(a, int) and isinstance(b, int):
        return (a > b) - (a < b)
    if isinstance(a, int):
        return -1
    if isinstance(b, int):
        return 1
    return (a > b) - (a < b)


def _compare_prerelease(a: Tuple[Union[int, str], ...], b: Tuple[Union[int, str], ...]) -> int:
    if not a and not b:
        return 0
    # A release outranks any prerelease of the same core version
    if not a:
        return 1
    if not b:
        return -1
    for left, right in zip(a, b):
        result = _compare_identifier(left, right)
        if result:
            return result
    return (len(a) > len(b)) - (len(a) < len(b))


def compare_semver(a: SemanticVersion, b: SemanticVersion) -> int:
    """Return -1, 0 or 1 by semver precedence; build metadata is ignored."""
    core_a = (a.major, a.minor, a.patch)
    core_b = (b.major, b.minor, b.patch)
    if core_a != core_b:
        return (core_a > core_b) - (core_a < core_b)
    return _compare_prerelease(a.prerelease, b.prerelease)


def resolve_latest(new_version: str, current_latest: Optional[str]) -> LatestDecision:
    """Decide whether ``new_version`` supersedes ``current_latest``.

    - no current latest: the new version is latest;
    - new version not semantic: it is latest unconditionally;
    - current latest not semantic (new one is): the new version is latest;
    - both semantic: latest iff strictly greater.
    """
    if current_latest is None:
        return LatestDecision(is_latest=True, unmark_previous=False)

    new = parse_semver(new_version)
    if new is None:
        logger.info(
            "version_fallback: %r is not semantic; replacing latest %r", new_version, current_latest
        )
        return LatestDecision(is_latest=True, unmark_previous=True)

    current = parse_semver(current_latest)
    if current is None:
        return LatestDecision(is_latest=True, unmark_previous=True)

    is_latest = compare_semver(new, current) > 0
    return LatestDecision(is_latest=is_latest, unmark_previous=is_latest)

"""Semantic version helpers following Go module version rules.

Purpose
-------
Parse, validate, compare and sort the version strings published by a Go
module proxy. Go module versions always carry a leading ``v`` and allow the
``vMAJOR`` and ``vMAJOR.MINOR`` shorthands.

Contents
--------
* :func:`is_valid` - Whether a string is a valid module version
* :func:`compare` - Three-way semantic version comparison
* :func:`sort` - In-place ascending sort of a version list
* :func:`prerelease` - Pre-release suffix of a version (``""`` if none)
* :func:`max_version` - Highest version of a list

System Role
-----------
Pure functions without I/O. The checker uses them to filter and order the
proxy's version list, the renderer uses them to decide whether a binary is
upgradeable.

Note:
    Comparing invalid strings never raises: invalid versions compare equal
    to each other and lower than any valid version. Callers gate on
    :func:`is_valid` before trusting the result for upgrade decisions.
"""

from __future__ import annotations

import re
from functools import cmp_to_key, lru_cache
from typing import NamedTuple

_RE_VERSION = re.compile(
    r"v(?P<major>0|[1-9][0-9]*)"
    r"(?:\.(?P<minor>0|[1-9][0-9]*)"
    r"(?:\.(?P<patch>0|[1-9][0-9]*)"
    r"(?P<prerelease>-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?P<build>\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r")?)?"
)
_RE_NUMERIC = re.compile(r"[0-9]+")


class _Parsed(NamedTuple):
    major: int
    minor: int
    patch: int
    prerelease: str
    build: str


@lru_cache(maxsize=1024)
def _parse(version: str) -> _Parsed | None:
    """Parse ``version`` or return None when it is not a valid module version."""
    match = _RE_VERSION.fullmatch(version)
    if not match:
        return None

    pre = match.group("prerelease") or ""
    # Numeric pre-release identifiers may not carry leading zeros
    for ident in pre[1:].split(".") if pre else ():
        if _RE_NUMERIC.fullmatch(ident) and len(ident) > 1 and ident[0] == "0":
            return None

    minor, patch = match.group("minor"), match.group("patch")
    return _Parsed(
        major=int(match.group("major")),
        minor=int(minor or 0),
        patch=int(patch or 0),
        prerelease=pre,
        build=match.group("build") or "",
    )


def is_valid(version: str) -> bool:
    """Report whether ``version`` is a valid semantic version.

    Args:
        version: Candidate version string such as ``"v1.2.3"``.

    Returns:
        True if the string parses.

    Example:
        >>> is_valid("v1.2.3-rc.1+meta")
        True
        >>> is_valid("1.2.3")
        False
        >>> is_valid("v1.2")
        True
    """
    return _parse(version) is not None


def prerelease(version: str) -> str:
    """Return the pre-release suffix of ``version``, including its hyphen.

    Example:
        >>> prerelease("v1.1.0-beta.2")
        '-beta.2'
        >>> prerelease("v1.1.0")
        ''
    """
    parsed = _parse(version)
    return parsed.prerelease if parsed else ""


def build(version: str) -> str:
    """Return the build-metadata suffix of ``version`` (``"+incompatible"`` ...)."""
    parsed = _parse(version)
    return parsed.build if parsed else ""


def major(version: str) -> str:
    """Return the major version prefix, e.g. ``"v2"`` for ``"v2.1.0"``."""
    parsed = _parse(version)
    return f"v{parsed.major}" if parsed else ""


def canonical(version: str) -> str:
    """Return the full ``vX.Y.Z[-pre]`` form, dropping build metadata.

    Example:
        >>> canonical("v1.2")
        'v1.2.0'
        >>> canonical("v2.0.0+incompatible")
        'v2.0.0'
    """
    parsed = _parse(version)
    if parsed is None:
        return ""
    return f"v{parsed.major}.{parsed.minor}.{parsed.patch}{parsed.prerelease}"


def _cmp(left: int | str, right: int | str) -> int:
    return (left > right) - (left < right)  # type: ignore[operator]


def _compare_identifier(x: str, y: str) -> int:
    x_num = _RE_NUMERIC.fullmatch(x) is not None
    y_num = _RE_NUMERIC.fullmatch(y) is not None
    if x_num and y_num:
        return _cmp(int(x), int(y))
    # Numeric identifiers have lower precedence than alphanumeric ones
    if x_num:
        return -1
    if y_num:
        return 1
    return _cmp(x, y)


def _compare_prerelease(x: str, y: str) -> int:
    """Compare two pre-release suffixes (a missing suffix sorts last)."""
    if x == y:
        return 0
    if not x:
        return 1
    if not y:
        return -1
    x_parts = x[1:].split(".")
    y_parts = y[1:].split(".")
    for a, b in zip(x_parts, y_parts):
        cmp = _compare_identifier(a, b)
        if cmp:
            return cmp
    return _cmp(len(x_parts), len(y_parts))


def compare(a: str, b: str) -> int:
    """Compare two versions, returning -1, 0 or +1.

    Major, minor and patch compare numerically, then pre-release
    identifiers per semver precedence. Build metadata is ignored.

    Example:
        >>> compare("v1.0.0-beta", "v1.0.0")
        -1
        >>> compare("v1.10.0", "v1.9.0")
        1
        >>> compare("garbage", "v0.0.1")
        -1
    """
    pa, pb = _parse(a), _parse(b)
    if pa is None and pb is None:
        return 0
    if pa is None:
        return -1
    if pb is None:
        return 1
    left = (pa.major, pa.minor, pa.patch)
    right = (pb.major, pb.minor, pb.patch)
    if left != right:
        return -1 if left < right else 1
    return _compare_prerelease(pa.prerelease, pb.prerelease)


def _sort_order(a: str, b: str) -> int:
    # Versions that compare equal fall back to plain string order
    cmp = compare(a, b)
    if cmp:
        return cmp
    return _cmp(a, b)


def sort(versions: list[str]) -> None:
    """Sort ``versions`` in place in ascending semantic version order."""
    versions.sort(key=cmp_to_key(_sort_order))


def max_version(versions: list[str]) -> str:
    """Return the highest version of ``versions`` or ``""`` for an empty list."""
    if not versions:
        return ""
    ordered = list(versions)
    sort(ordered)
    return ordered[-1]


__all__ = [
    "build",
    "canonical",
    "compare",
    "is_valid",
    "major",
    "max_version",
    "prerelease",
    "sort",
]

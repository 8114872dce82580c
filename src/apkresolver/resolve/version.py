"""
Version Normalization and Comparison

This module turns heterogeneous upstream version strings (dotted numeric
versions, semantic versions with suffixes such as ``-beta`` or
``-RC-1-tor-0.4.8.12``, channel-qualified names like ``Nightly v1.73.5``)
into ordered ``VersionInfo`` values.

Ordering is defined on a sort key derived only from the text:

1. the numeric core (first dotted run of digits), trailing zeros ignored;
2. the suffix stage: pre-release suffixes sort before the bare release,
   any other suffix (build hashes, vendor tags) sorts after it;
3. the suffix itself, compared as natural-sort tokens.

Because the key is a plain tuple, the ordering is total and transitive.
"""

import re
from enum import IntEnum
from typing import Any, List, Optional, Tuple

from packaging.version import InvalidVersion, Version

from apkresolver.exceptions import VersionParseError

from .models import VersionInfo

CORE_VERSION_RX = re.compile(r"\d+(?:\.\d+)*")
PRERELEASE_KEYWORD_RX = re.compile(
    r"(?<![a-z])(?:alpha|beta|rc|pre|preview|dev|nightly)(?![a-z])",
    re.IGNORECASE,
)
# Single-letter a/b only count right after the core, as in 13.5a9 or 2.0-b
SHORT_PRERELEASE_RX = re.compile(r"^[-._]?[ab]\d*(?![a-z\d])", re.IGNORECASE)
_TOKEN_RX = re.compile(r"\d+|[A-Za-z]+")

STAGE_PRERELEASE = -1
STAGE_RELEASE = 0
STAGE_SUFFIXED = 1


class Ordering(IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


def _natural_tokens(text: str) -> Tuple[Tuple[int, Any], ...]:
    """Split text into digit and alphabetic runs usable as a natural-sort key."""
    return tuple(
        (1, int(part)) if part.isdigit() else (0, part.lower())
        for part in _TOKEN_RX.findall(text)
    )


def _is_prerelease_suffix(core: str, suffix: str) -> bool:
    """
    Decide whether a suffix marks a pre-release.

    PEP 440 classification is used when core+suffix is a valid PEP 440 version;
    otherwise the suffix is searched for a pre-release keyword, and a lone
    ``a`` or ``b`` only counts when it leads the suffix.
    """
    try:
        return Version(f"{core}{suffix}").is_prerelease
    except InvalidVersion:
        return bool(
            PRERELEASE_KEYWORD_RX.search(suffix) or SHORT_PRERELEASE_RX.match(suffix)
        )


def _trim_release(release: Tuple[int, ...]) -> Tuple[int, ...]:
    trimmed: List[int] = list(release)
    while len(trimmed) > 1 and trimmed[-1] == 0:
        trimmed.pop()
    return tuple(trimmed)


def normalize(raw_version_text: Optional[str]) -> VersionInfo:
    """
    Parse an upstream version string into a VersionInfo.

    Args:
        raw_version_text: Version text as published upstream.

    Returns:
        VersionInfo: The normalized version; ``version_text`` keeps the input verbatim.

    Raises:
        VersionParseError: If the text is empty or contains no numeric run.
    """
    if raw_version_text is None or not str(raw_version_text).strip():
        raise VersionParseError(
            "Empty version string", field="version", value=raw_version_text
        )

    text = str(raw_version_text)
    match = CORE_VERSION_RX.search(text)
    if match is None:
        raise VersionParseError(
            "No numeric version component found", field="version", value=text
        )

    core = match.group(0)
    release = tuple(int(part) for part in core.split("."))
    suffix = text[match.end() :].strip()

    if not suffix:
        stage = STAGE_RELEASE
        is_prerelease = False
    elif _is_prerelease_suffix(core, suffix):
        stage = STAGE_PRERELEASE
        is_prerelease = True
    else:
        stage = STAGE_SUFFIXED
        is_prerelease = False

    sort_key = (_trim_release(release), stage, _natural_tokens(suffix))
    return VersionInfo(
        version_text=text,
        release=release,
        suffix=suffix,
        is_prerelease=is_prerelease,
        sort_key=sort_key,
    )


def try_normalize(raw_version_text: Optional[str]) -> Optional[VersionInfo]:
    """Return the normalized version, or None when the text cannot be parsed."""
    try:
        return normalize(raw_version_text)
    except VersionParseError:
        return None


def compare(a: VersionInfo, b: VersionInfo) -> Ordering:
    """Compare two normalized versions."""
    if a.sort_key < b.sort_key:
        return Ordering.LESS
    if a.sort_key > b.sort_key:
        return Ordering.GREATER
    return Ordering.EQUAL


def compare_versions(version1: str, version2: str) -> int:
    """
    Compare two version strings.

    Returns:
        int: 1 if version1 > version2, 0 if equal, -1 if version1 < version2

    Raises:
        VersionParseError: If either string cannot be parsed.
    """
    return int(compare(normalize(version1), normalize(version2)))


def latest_of(version_texts: List[str]) -> Optional[str]:
    """
    Pick the highest version text from a list, ignoring unparsable entries.

    Ties keep the first occurrence so the result is deterministic.
    """
    best: Optional[VersionInfo] = None
    for text in version_texts:
        info = try_normalize(text)
        if info is None:
            continue
        if best is None or info > best:
            best = info
    return best.version_text if best else None

"""Version ordering for parsed container image tags.

Orders two ``ParsedTag`` instances with a chain of increasingly weak
strategies: hash+build counters, semantic versioning, zero-padded string
comparison, pre-release precedence and finally edition build counters.
Comparisons that cannot be ordered meaningfully report ``Ordering.EQUAL`` so
callers never see an upgrade that is not provably newer.
"""

from __future__ import annotations

import functools
import re

import semver

from .models import PRE_RELEASE_KEYWORDS, VERSION_PAD_WIDTH, Ordering, ParsedTag
from .tag_parser import HASH_BUILD_REGEX

_PRE_RELEASE_SUFFIX_REGEX = re.compile(
    r"-(?:{keywords}|m)(\d*(?:\.\d+)?)$".format(keywords="|".join(PRE_RELEASE_KEYWORDS)),
    re.IGNORECASE,
)

_DIGIT_RUN_REGEX = re.compile(r"\d+")


def _cmp(left: object, right: object) -> int:
    return (left > right) - (left < right)


def _pad_digits(version: str) -> str:
    """Zero-pad every digit run so that ``1.9`` sorts below ``1.29``."""
    return _DIGIT_RUN_REGEX.sub(lambda run: run.group(0).zfill(VERSION_PAD_WIDTH), version)


def _compare_hash_builds(version_a: str, version_b: str) -> int | None:
    """Compare opaque hash+build tokens, or return ``None`` if neither is one."""
    hash_a = HASH_BUILD_REGEX.fullmatch(version_a)
    hash_b = HASH_BUILD_REGEX.fullmatch(version_b)
    if not hash_a and not hash_b:
        return None
    # Mixed or differently tagged builds cannot be ordered
    if not hash_a or not hash_b or hash_a.group(2).lower() != hash_b.group(2).lower():
        return 0
    return _cmp(int(hash_a.group(3)), int(hash_b.group(3)))


def _compare_semver(version_a: str, version_b: str) -> int:
    try:
        return semver.Version.parse(version_a).compare(version_b)
    except ValueError:
        return 0


def _compare_build_counters(a: ParsedTag, b: ParsedTag) -> int:
    if len(a.version) < 2 or len(b.version) < 2:
        return 0
    try:
        return _cmp(int(a.version[1]), int(b.version[1]))
    except ValueError:
        return 0


def compare_versions(a: ParsedTag, b: ParsedTag) -> Ordering:
    """Compare the versions of two parsed tags.

    Args:
        a: Left-hand tag.
        b: Right-hand tag.

    Returns:
        ``Ordering.GREATER`` when ``a`` is newer than ``b``, ``Ordering.LESS``
        when it is older and ``Ordering.EQUAL`` when they tie or cannot be
        ordered.
    """
    version_a = a.version[0] if a.version else ""
    version_b = b.version[0] if b.version else ""

    hash_result = _compare_hash_builds(version_a, version_b)
    if hash_result is not None:
        return Ordering.from_sign(hash_result)

    if a.semver and b.semver:
        semver_result = _compare_semver(version_a, version_b)
        if semver_result:
            return Ordering.from_sign(semver_result)

    pre_a = _PRE_RELEASE_SUFFIX_REGEX.search(version_a)
    pre_b = _PRE_RELEASE_SUFFIX_REGEX.search(version_b)
    base_a = version_a[:pre_a.start()] if pre_a else version_a
    base_b = version_b[:pre_b.start()] if pre_b else version_b

    base_result = _cmp(_pad_digits(base_a), _pad_digits(base_b))
    if base_result:
        return Ordering.from_sign(base_result)

    # A final release outranks any of its pre-releases
    if pre_a and not pre_b:
        return Ordering.LESS
    if pre_b and not pre_a:
        return Ordering.GREATER
    if pre_a and pre_b:
        return Ordering.from_sign(_cmp(pre_a.group(0), pre_b.group(0)))

    return Ordering.from_sign(_compare_build_counters(a, b))


def is_newer(candidate: ParsedTag, current: ParsedTag) -> bool:
    """Return whether ``candidate`` is strictly newer than ``current``."""
    return compare_versions(candidate, current) is Ordering.GREATER


def _compare_descending(a: ParsedTag, b: ParsedTag) -> int:
    result = compare_versions(b, a).sign
    if result:
        return result
    return _cmp(a.original, b.original)


# Oldest first.
version_sort_key = functools.cmp_to_key(lambda a, b: compare_versions(a, b).sign)

# Newest first; ties fall back to the tag text.
newest_first_key = functools.cmp_to_key(_compare_descending)

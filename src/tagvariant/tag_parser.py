"""Container image tag parser for tagvariant.

Classifies a single tag into a version and a variant template by running an
ordered chain of pattern rules. The first rule that produces a result wins;
anything that no rule can read as a version is treated as a floating tag.
"""

from __future__ import annotations

import re
from collections.abc import Callable

import semver

from .models import PRE_RELEASE_KEYWORDS, VERSION_PLACEHOLDER, ParsedTag

# Architecture prefixes used by multi-arch image publishers (amd64-1.2.3)
_ARCH_PREFIX_REGEX = re.compile(
    r"(?:amd64|arm64v8|arm32v[567]|i386|s390x|ppc64le|riscv64|mips64le)-",
    re.IGNORECASE,
)

# Only a prefix directly in front of a digit (or the whole tag) counts
_V_PREFIX_REGEX = re.compile(r"(?:version-v|v)(?=\d|$)", re.IGNORECASE)

_PRE_RELEASE_ALTERNATION = "|".join(PRE_RELEASE_KEYWORDS)

VERSION_HASH_REGEX = re.compile(r"version-([0-9a-f]{7,8})", re.IGNORECASE)
PREFIXED_HASH_BUILD_REGEX = re.compile(r"([a-z]+)-([0-9a-f]{7,8}-[a-z]{1,2}\d+)", re.IGNORECASE)
PREFIXED_VERSION_HASH_REGEX = re.compile(r"([a-z]+)-version-([0-9a-f]{7,8})", re.IGNORECASE)
HASH_BUILD_REGEX = re.compile(r"([0-9a-f]{7,8})-([a-z]{1,2})(\d+)", re.IGNORECASE)
NON_VERSION_REGEX = re.compile(r"(?!\d).*", re.DOTALL)
JAVA_STYLE_REGEX = re.compile(r"(\d+u\d+(?:-b\d+)?)(?:-(.+))?", re.DOTALL)
EDITION_BUILD_REGEX = re.compile(r"(\d+(?:\.\d+)*)-([a-zA-Z]{2,4})\.(\d+)")
STANDARD_VERSION_REGEX = re.compile(
    r"""
    (
        \d+(?:[._]\d+)*                                  # numeric groups
        (?:-(?:(?:{keywords})\d*(?:\.\d+)?|m\d+))?       # pre-release
        (?:-\d+)*                                        # build segments
        (?:-[a-z][0-9a-f]+)?                             # git describe fragment
        (?:-[a-z]{{1,2}}\d+)?                            # build counter
    )
    (?:-(.+))?                                           # variant suffix
    """.format(keywords=_PRE_RELEASE_ALTERNATION),
    re.IGNORECASE | re.VERBOSE | re.DOTALL,
)

_PRE_RELEASE_KEYWORD_REGEX = re.compile(rf"(?:{_PRE_RELEASE_ALTERNATION})", re.IGNORECASE)

_RuleBuilder = Callable[[re.Match[str], str, str], ParsedTag | None]


def is_valid_semver(version: str) -> bool:
    """Return whether ``version`` is a strict three-part semantic version."""
    if not version:
        return False
    try:
        semver.Version.parse(version)
    except ValueError:
        return False
    return True


def reconstruct_tag(variant_key: str, version: tuple[str, ...] | list[str]) -> str:
    """Substitute version components into successive ``*`` placeholders."""
    result = variant_key
    for component in version:
        result = result.replace(VERSION_PLACEHOLDER, component, 1)
    return result


def _versioned(tag: str, variant_key: str, version: tuple[str, ...]) -> ParsedTag:
    return ParsedTag(
        original=tag,
        version=version,
        variant_key=variant_key,
        semver=is_valid_semver(version[0]),
        is_floating=False,
    )


def _floating(tag: str, prefix: str, remaining: str) -> ParsedTag:
    return ParsedTag(original=tag, version=(), variant_key=prefix + remaining, semver=False, is_floating=True)


def _with_suffix(prefix: str, suffix: str | None) -> str:
    return prefix + VERSION_PLACEHOLDER + (f"-{suffix}" if suffix else "")


# ---------------------------------------------------------------------------
# Rule builders receive the match, the original tag and the prefix
# ---------------------------------------------------------------------------


def _build_version_hash(match: re.Match[str], tag: str, prefix: str) -> ParsedTag:
    return _versioned(tag, f"{prefix}version-{VERSION_PLACEHOLDER}", (match.group(1),))


def _build_prefixed_hash_build(match: re.Match[str], tag: str, prefix: str) -> ParsedTag:
    return _versioned(tag, f"{prefix}{match.group(1)}-{VERSION_PLACEHOLDER}", (match.group(2),))


def _build_prefixed_version_hash(match: re.Match[str], tag: str, prefix: str) -> ParsedTag:
    return _versioned(tag, f"{prefix}{match.group(1)}-version-{VERSION_PLACEHOLDER}", (match.group(2),))


def _build_hash_build(match: re.Match[str], tag: str, prefix: str) -> ParsedTag:
    return _versioned(tag, prefix + VERSION_PLACEHOLDER, (match.group(0),))


def _build_floating(match: re.Match[str], tag: str, prefix: str) -> ParsedTag:
    return _floating(tag, prefix, match.group(0))


def _build_suffixed(match: re.Match[str], tag: str, prefix: str) -> ParsedTag:
    return _versioned(tag, _with_suffix(prefix, match.group(2)), (match.group(1),))


def _build_edition(match: re.Match[str], tag: str, prefix: str) -> ParsedTag | None:
    base_version, edition, counter = match.groups()
    # 1.0.0-rc.1 is a pre-release, not an edition
    if _PRE_RELEASE_KEYWORD_REGEX.fullmatch(edition):
        return None
    variant_key = f"{prefix}{VERSION_PLACEHOLDER}-{edition}.{VERSION_PLACEHOLDER}"
    return _versioned(tag, variant_key, (base_version, counter))


# Evaluated in order against the tag with its arch / v prefix removed.
TAG_RULES: tuple[tuple[str, re.Pattern[str], _RuleBuilder], ...] = (
    ("version-hash", VERSION_HASH_REGEX, _build_version_hash),
    ("prefixed-hash-build", PREFIXED_HASH_BUILD_REGEX, _build_prefixed_hash_build),
    ("prefixed-version-hash", PREFIXED_VERSION_HASH_REGEX, _build_prefixed_version_hash),
    ("hash-build", HASH_BUILD_REGEX, _build_hash_build),
    ("non-version", NON_VERSION_REGEX, _build_floating),
    ("java-style", JAVA_STYLE_REGEX, _build_suffixed),
    ("edition-build", EDITION_BUILD_REGEX, _build_edition),
    ("standard", STANDARD_VERSION_REGEX, _build_suffixed),
)


def _split_prefix(tag: str) -> tuple[str, str]:
    """Split the arch and ``v`` / ``version-v`` prefixes off ``tag``."""
    prefix = ""
    remaining = tag

    if arch_match := _ARCH_PREFIX_REGEX.match(remaining):
        prefix = arch_match.group(0)
        remaining = remaining[arch_match.end():]

    if v_match := _V_PREFIX_REGEX.match(remaining):
        prefix += v_match.group(0)
        remaining = remaining[v_match.end():]

    return prefix, remaining


def parse_tag(tag: str) -> ParsedTag:
    """Parse a container image tag into version components and a variant key.

    Never raises: a tag that no rule can read as a version is returned as a
    floating tag whose variant key is the tag itself.

    Args:
        tag: The tag text, e.g. ``"8.6.0-alpine3.23"``.

    Returns:
        The ``ParsedTag`` produced by the first matching rule.
    """
    prefix, remaining = _split_prefix(tag)

    for _name, pattern, builder in TAG_RULES:
        match = pattern.fullmatch(remaining)
        if not match:
            continue
        parsed = builder(match, tag, prefix)
        if parsed is not None:
            return parsed

    return _floating(tag, prefix, remaining)

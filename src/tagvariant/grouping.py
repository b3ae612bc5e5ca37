"""Variant grouping for tagvariant.

Partitions the tags of one repository into variant groups. Parsing happens
tag by tag; reconciliation then runs over the whole collection in explicit
passes (content digests, known suffixes, curated floating overrides) before
the tags are grouped, ordered and cross-linked.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
from collections import defaultdict
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .comparator import newest_first_key
from .models import DEFAULT_VARIANT_KEY, VERSION_PLACEHOLDER, ParsedTag, VariantGroup
from .tag_parser import parse_tag, reconstruct_tag

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reconciliation passes
# ---------------------------------------------------------------------------


def _canonical_rendering(reference: ParsedTag) -> str:
    """Render a versioned tag back from its variant key and version."""
    return reconstruct_tag(reference.variant_key, reference.version)


def reconcile_digests(parsed: list[ParsedTag], digest_map: Mapping[str, str]) -> list[ParsedTag]:
    """Recover floating tags that share a content digest with a versioned tag.

    A floating ``ps-8.0.44-35`` pointing at the same content as ``8.0.44-35``
    ends with that tag's canonical rendering; the leftover ``ps-`` becomes
    literal context of a ``ps-*`` variant.

    Args:
        parsed: Tags as produced by ``parse_tag``.
        digest_map: Tag name to content digest.

    Returns:
        A new list in the same order with recovered tags replaced.
    """
    clusters: dict[str, list[ParsedTag]] = defaultdict(list)
    for tag in parsed:
        if digest := digest_map.get(tag.original):
            clusters[digest].append(tag)

    recovered: dict[str, ParsedTag] = {}
    for members in clusters.values():
        references = [tag for tag in members if tag.version]
        failed = [tag for tag in members if not tag.version]
        if not references or not failed:
            continue

        for tag in failed:
            for reference in references:
                canonical = _canonical_rendering(reference)
                if not tag.original.endswith(canonical):
                    continue
                product_prefix = tag.original[: len(tag.original) - len(canonical)]
                recovered[tag.original] = ParsedTag(
                    original=tag.original,
                    version=reference.version,
                    variant_key=product_prefix + reference.variant_key,
                    semver=reference.semver,
                    is_floating=False,
                )
                logger.debug(f"Digest match recovered {tag.original} as {recovered[tag.original].variant_key}")
                break

    return [recovered.get(tag.original, tag) for tag in parsed]


def _known_suffixes(parsed: Iterable[ParsedTag]) -> list[str]:
    suffixes: dict[str, None] = {}
    for tag in parsed:
        if tag.is_floating or VERSION_PLACEHOLDER not in tag.variant_key:
            continue
        after_last = tag.variant_key.rsplit(VERSION_PLACEHOLDER, 1)[1]
        if after_last.startswith("-"):
            suffixes[after_last[1:]] = None
    return list(suffixes)


def infer_suffixes(parsed: list[ParsedTag]) -> list[ParsedTag]:
    """Recover prefix-style floating tags using suffixes seen on versioned tags.

    Once ``2.5.6-noml`` establishes ``noml`` as a variant suffix, the floating
    ``noml-v2.5.6-ig356`` is re-read as ``noml-`` followed by a versioned tag.
    """
    suffixes = _known_suffixes(parsed)
    if not suffixes:
        return parsed

    result = list(parsed)
    for index, tag in enumerate(result):
        if not tag.is_floating:
            continue
        for suffix in suffixes:
            if not tag.original.startswith(f"{suffix}-"):
                continue
            reparsed = parse_tag(tag.original[len(suffix) + 1:])
            if reparsed.is_floating:
                continue
            result[index] = ParsedTag(
                original=tag.original,
                version=reparsed.version,
                variant_key=f"{suffix}-{reparsed.variant_key}",
                semver=reparsed.semver,
                is_floating=False,
            )
            logger.debug(f"Suffix inference recovered {tag.original} as {result[index].variant_key}")
            break
    return result


def apply_floating_overrides(parsed: list[ParsedTag], floating_overrides: Collection[str]) -> list[ParsedTag]:
    """Force tags named by curated metadata to be floating.

    The parsed variant key is kept so an overridden ``v4`` stays next to its
    ``v*`` siblings; only the version is dropped.
    """
    return [
        dataclasses.replace(tag, version=(), semver=False, is_floating=True)
        if tag.original.lower() in floating_overrides
        else tag
        for tag in parsed
    ]


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


@dataclass
class _GroupDraft:
    """Mutable group state while the collection is being partitioned."""

    versioned: list[ParsedTag] = field(default_factory=list)
    floating: list[ParsedTag] = field(default_factory=list)
    digest_matches: dict[str, str] = field(default_factory=dict)


def floating_matches_group(floating_key: str, group_key: str) -> bool:
    """Return whether a floating tag belongs with a versioned variant.

    ``alpine`` matches ``*-alpine`` (and ``v*-alpine``); an exact key match
    always counts.
    """
    if floating_key == group_key:
        return True
    if VERSION_PLACEHOLDER not in group_key:
        return False
    suffix = group_key.partition(VERSION_PLACEHOLDER)[2]
    return suffix.startswith("-") and floating_key == suffix[1:]


def _link_digests(
    drafts: dict[str, _GroupDraft],
    floating_tags: list[ParsedTag],
    digest_map: Mapping[str, str],
) -> None:
    """Record 1:1 digest matches between versioned members and floating tags."""
    floating_by_digest: dict[str, list[str]] = defaultdict(list)
    for tag in floating_tags:
        if digest := digest_map.get(tag.original):
            floating_by_digest[digest].append(tag.original)

    for draft in drafts.values():
        for tag in draft.versioned:
            digest = digest_map.get(tag.original)
            # Ambiguous collisions stay unresolved
            if digest and len(floating_by_digest.get(digest, [])) == 1:
                draft.digest_matches[tag.original] = floating_by_digest[digest][0]


def _as_utc(timestamp: datetime | None) -> datetime | None:
    """Treat offset-less timestamps as UTC so they order against aware ones."""
    if timestamp is not None and timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _compare_groups(a: VariantGroup, b: VariantGroup) -> int:
    a_default = a.variant_key == DEFAULT_VARIANT_KEY
    b_default = b.variant_key == DEFAULT_VARIANT_KEY
    if a_default != b_default:
        return -1 if a_default else 1

    if a.latest_timestamp and b.latest_timestamp:
        if a.latest_timestamp != b.latest_timestamp:
            return -1 if a.latest_timestamp > b.latest_timestamp else 1
    elif a.latest_timestamp or b.latest_timestamp:
        return -1 if a.latest_timestamp else 1

    if bool(a.suffix) != bool(b.suffix):
        return 1 if a.suffix else -1
    return (a.suffix > b.suffix) - (a.suffix < b.suffix)


def group_by_variant(
    tags: Iterable[str],
    digest_map: Mapping[str, str] | None = None,
    floating_overrides: Collection[str] | None = None,
    timestamp_map: Mapping[str, datetime] | None = None,
) -> list[VariantGroup]:
    """Group the tags of one repository into ordered variants.

    Args:
        tags: Raw tag names from a registry listing.
        digest_map: Optional tag name to content digest mapping.
        floating_overrides: Optional lower-case tag names known to be floating.
        timestamp_map: Optional tag name to last push time mapping.

    Returns:
        Variant groups: the default ``*`` group first, then groups whose
        newest tag was pushed most recently, then the rest by suffix.
    """
    parsed = [parse_tag(tag) for tag in tags]

    if digest_map:
        parsed = reconcile_digests(parsed, digest_map)
    parsed = infer_suffixes(parsed)
    if floating_overrides:
        parsed = apply_floating_overrides(parsed, floating_overrides)

    drafts: dict[str, _GroupDraft] = defaultdict(_GroupDraft)
    floating_tags: list[ParsedTag] = []
    for tag in parsed:
        if tag.is_floating:
            floating_tags.append(tag)
        else:
            drafts[tag.variant_key].versioned.append(tag)

    for group_key, draft in drafts.items():
        draft.versioned.sort(key=newest_first_key)
        draft.floating = [tag for tag in floating_tags if floating_matches_group(tag.variant_key, group_key)]

    unmatched = [
        tag for tag in floating_tags if not any(floating_matches_group(tag.variant_key, key) for key in drafts)
    ]
    if unmatched:
        drafts[DEFAULT_VARIANT_KEY].floating.extend(unmatched)

    if digest_map:
        _link_digests(drafts, floating_tags, digest_map)

    result: list[VariantGroup] = []
    for group_key, draft in drafts.items():
        latest = draft.versioned[0] if draft.versioned else None
        result.append(
            VariantGroup(
                variant_key=group_key,
                latest=latest,
                older=tuple(draft.versioned[1:]),
                floating=tuple(draft.floating),
                digest_matches=draft.digest_matches,
                latest_timestamp=_as_utc(timestamp_map.get(latest.original)) if latest and timestamp_map else None,
            )
        )

    result.sort(key=functools.cmp_to_key(_compare_groups))
    logger.debug(f"Grouped {len(parsed)} tags into {len(result)} variants")
    return result

"""Upgrade resolution for tagvariant.

Locates the variant a current tag belongs to and decides whether that
variant holds a strictly newer tag.
"""

from __future__ import annotations

import logging

from .comparator import is_newer
from .models import DEFAULT_VARIANT_KEY, VERSION_PLACEHOLDER, ImageReference, ImageUpdate, VariantGroup
from .tag_parser import parse_tag, reconstruct_tag

logger = logging.getLogger(__name__)


def find_matching_variant(tag: str, variants: list[VariantGroup]) -> VariantGroup | None:
    """Return the variant group that owns ``tag``.

    The variant key parsed from ``tag`` is tried first; tags whose key only
    exists after reconciliation (``ps-8.0.44-35``) are found by scanning the
    members of every group.

    Args:
        tag: The current tag text.
        variants: Groups produced by ``group_by_variant``.

    Returns:
        The owning ``VariantGroup``, or ``None`` if no group knows the tag.
    """
    variant_key = parse_tag(tag).variant_key
    for variant in variants:
        if variant.variant_key == variant_key:
            return variant

    for variant in variants:
        if variant.find(tag) is not None:
            return variant

    return None


def find_best_upgrade(tag: str, variants: list[VariantGroup]) -> str | None:
    """Return the newest tag in the same variant as ``tag``, if it is newer.

    Args:
        tag: The current tag text.
        variants: Groups produced by ``group_by_variant``.

    Returns:
        The replacement tag text, or ``None`` when ``tag`` is already the
        newest known tag or cannot be placed in a variant.
    """
    variant = find_matching_variant(tag, variants)
    if variant is None:
        return None

    # A tag missing from the listing is judged by its own parse result
    current = variant.find(tag) or parse_tag(tag)
    latest = variant.latest

    if current.is_floating:
        return latest.original if latest is not None else None

    if latest is None or current.original == latest.original:
        return None

    if is_newer(latest, current):
        return reconstruct_tag(current.variant_key, latest.version)
    return None


def find_variant_index(variants: list[VariantGroup], current_variant: VariantGroup | None) -> int:
    """Return the position of ``current_variant`` in ``variants``.

    Returns ``0`` when there is no current variant and ``-1`` when it is not
    part of ``variants``.
    """
    if current_variant is None:
        return 0
    for index, variant in enumerate(variants):
        if variant.variant_key == current_variant.variant_key:
            return index
    return -1


def find_default_variant(variants: list[VariantGroup]) -> int:
    """Return the index of the variant to offer when no tag was requested.

    The plain ``*`` variant wins when it has a versioned tag; otherwise the
    versioned variant with the least literal context around its version.
    """
    for index, variant in enumerate(variants):
        if variant.variant_key == DEFAULT_VARIANT_KEY and variant.latest is not None:
            return index

    best_index = 0
    best_score: int | None = None
    for index, variant in enumerate(variants):
        if variant.latest is None:
            continue
        score = len(variant.variant_key.replace(VERSION_PLACEHOLDER, ""))
        if best_score is None or score < best_score:
            best_index, best_score = index, score
    return best_index


def resolve_update(reference: ImageReference, variants: list[VariantGroup]) -> ImageUpdate | None:
    """Build an ``ImageUpdate`` for ``reference`` when a newer tag exists.

    References without a tag resolve against the default variant.
    """
    if reference.tag is None:
        if not variants:
            return None
        default_variant = variants[find_default_variant(variants)]
        if default_variant.latest is None:
            return None
        logger.debug(f"{reference.full_image} has no tag; offering {default_variant.latest.original}")
        return ImageUpdate(
            image=reference,
            current_tag="",
            new_tag=default_variant.latest.original,
            variants=variants,
            current_variant=default_variant,
        )

    new_tag = find_best_upgrade(reference.tag, variants)
    if new_tag is None:
        return None
    return ImageUpdate(
        image=reference,
        current_tag=reference.tag,
        new_tag=new_tag,
        variants=variants,
        current_variant=find_matching_variant(reference.tag, variants),
    )

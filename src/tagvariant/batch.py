"""Batch resolution of registry tag listings.

A listing document holds, per repository, the image reference in use and the
tags (with optional digests, push timestamps and curated floating names) a
registry client fetched for it. Listings are resolved concurrently; a failure
in one listing is recorded on its result and never aborts the batch.
"""

from __future__ import annotations

import concurrent.futures
import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from .floating_tags import floating_overrides_for
from .grouping import group_by_variant
from .image_parser import parse_image_reference, repository_key, tag_url
from .models import (
    DEFAULT_THREAD_POOL_WORKERS,
    ListingResolution,
    ListingStatus,
    ReportSummary,
    ResolutionReport,
    TagListing,
)
from .resolution import find_matching_variant, resolve_update

logger = logging.getLogger(__name__)


class ListingError(ValueError):
    """Raised when a listing document cannot be loaded."""


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _parse_timestamp(value: str) -> datetime:
    # fromisoformat only accepts a trailing Z from Python 3.11 on
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    # Offset-less timestamps are read as UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _string_map(entry: Mapping[str, object], field_name: str) -> dict[str, str]:
    raw = entry.get(field_name)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ListingError(f"Listing field '{field_name}' must be an object")
    return {str(key): str(value) for key, value in raw.items()}


def _listing_from_entry(entry: object) -> TagListing:
    if not isinstance(entry, dict):
        raise ListingError(f"Listing entry must be an object, got {type(entry).__name__}")

    image = entry.get("image")
    if not isinstance(image, str) or not image.strip():
        raise ListingError("Listing entry is missing an 'image' reference")

    tags = entry.get("tags") or []
    if not isinstance(tags, list):
        raise ListingError(f"Listing for {image} has a non-list 'tags' field")

    floating = entry.get("floating")
    if floating is not None and not isinstance(floating, list):
        raise ListingError(f"Listing for {image} has a non-list 'floating' field")

    try:
        timestamps = {tag: _parse_timestamp(value) for tag, value in _string_map(entry, "timestamps").items()}
    except ValueError as exc:
        raise ListingError(f"Listing for {image} has an invalid timestamp: {exc}") from exc

    return TagListing(
        image=image,
        tags=[str(tag) for tag in tags],
        digests=_string_map(entry, "digests"),
        timestamps=timestamps,
        floating=[str(tag) for tag in floating] if floating is not None else None,
    )


def load_listings(text: str) -> list[TagListing]:
    """Parse a JSON listing document.

    Args:
        text: JSON holding a single listing object or an array of them.

    Returns:
        The listings in document order.

    Raises:
        ListingError: If the document is empty, not valid JSON or malformed.
    """
    if not text or not text.strip():
        raise ListingError("Listing document must not be empty")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ListingError(f"Listing document is not valid JSON: {exc}") from exc

    entries = document if isinstance(document, list) else [document]
    return [_listing_from_entry(entry) for entry in entries]


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_listing(listing: TagListing) -> ListingResolution:
    """Group the tags of ``listing`` and find the upgrade for its current tag.

    Args:
        listing: Tags fetched for one repository.

    Returns:
        A ``ListingResolution``; ``status`` is ``UPGRADE`` when a newer tag
        exists in the current variant, ``CURRENT`` when the current tag is
        the newest and ``UNMATCHED`` when no variant owns it.

    Raises:
        ValueError: If the listing's image reference cannot be parsed.
    """
    reference = parse_image_reference(listing.image)
    overrides = floating_overrides_for(reference.repository, listing.floating)
    variants = group_by_variant(
        listing.tags,
        digest_map=listing.digests,
        floating_overrides=overrides,
        timestamp_map=listing.timestamps,
    )

    resolution = ListingResolution(
        image=reference.full_image,
        repository=repository_key(reference.registry, reference.repository),
        current_tag=reference.tag,
        variants=variants,
    )

    if reference.tag is not None:
        resolution.found_current_tag = reference.tag in listing.tags
        if not resolution.found_current_tag:
            logger.warning(f"Current tag {reference.tag} is not in the listing for {resolution.repository}")
        current_variant = find_matching_variant(reference.tag, variants)
        if current_variant is None:
            logger.debug(f"No variant of {resolution.repository} matches {reference.tag}")
            return resolution
        resolution.current_variant = current_variant.variant_key

    update = resolve_update(reference, variants)
    if update is not None:
        resolution.new_tag = update.new_tag
        resolution.new_tag_url = tag_url(reference.registry, reference.repository, update.new_tag)
        resolution.status = ListingStatus.UPGRADE
        if update.current_variant is not None:
            resolution.current_variant = update.current_variant.variant_key
        logger.debug(f"{resolution.repository}: {reference.tag} -> {update.new_tag}")
    elif reference.tag is not None:
        resolution.status = ListingStatus.CURRENT

    return resolution


def resolve_listings(
    listings: list[TagListing],
    max_workers: int = DEFAULT_THREAD_POOL_WORKERS,
) -> list[ListingResolution]:
    """Resolve many listings concurrently.

    Args:
        listings: Listings to resolve.
        max_workers: Thread pool size.

    Returns:
        One ``ListingResolution`` per listing, in input order. Listings that
        raised are reported with ``ListingStatus.ERROR``.
    """
    results: list[ListingResolution | None] = [None] * len(listings)
    total = len(listings)

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {executor.submit(resolve_listing, listing): idx for idx, listing in enumerate(listings)}

        for done, future in enumerate(concurrent.futures.as_completed(future_to_index), start=1):
            idx = future_to_index[future]
            listing = listings[idx]
            try:
                results[idx] = future.result()
                logger.info(f"Listing {listing.image} resolved {done}/{total}")
            except Exception as e:
                logger.error(f"Failed to resolve listing {listing.image}: {e}")
                results[idx] = ListingResolution(image=listing.image, status=ListingStatus.ERROR, error=str(e))

    return [result for result in results if result is not None]


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------


def generate_report(results: list[ListingResolution]) -> ResolutionReport:
    """Aggregate per-listing results into a ``ResolutionReport``."""
    summary = ReportSummary(total_listings=len(results))
    for result in results:
        if result.status is ListingStatus.UPGRADE:
            summary.upgrades += 1
        elif result.status is ListingStatus.CURRENT:
            summary.current += 1
        elif result.status is ListingStatus.UNMATCHED:
            summary.unmatched += 1
        else:
            summary.errors += 1

    return ResolutionReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        summary=summary,
        results=results,
    )

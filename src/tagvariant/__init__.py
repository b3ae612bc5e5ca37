"""tagvariant: variant-aware upgrade resolution for container image tags.

Classify the tags of an image repository into variants (alpine, slim,
nanoserver, jdk21-corretto, ...), order each variant by version and find the
newest tag that keeps the current tag's flavor.
"""

import logging

from tagvariant._version import __version__
from tagvariant.comparator import compare_versions
from tagvariant.grouping import group_by_variant
from tagvariant.image_parser import parse_image_reference
from tagvariant.models import ImageReference, ImageUpdate, Ordering, ParsedTag, VariantGroup
from tagvariant.resolution import (
    find_best_upgrade,
    find_default_variant,
    find_matching_variant,
    find_variant_index,
    resolve_update,
)
from tagvariant.tag_parser import parse_tag, reconstruct_tag

__all__ = [
    "ImageReference",
    "ImageUpdate",
    "Ordering",
    "ParsedTag",
    "VariantGroup",
    "__version__",
    "compare_versions",
    "find_best_upgrade",
    "find_default_variant",
    "find_matching_variant",
    "find_variant_index",
    "group_by_variant",
    "parse_image_reference",
    "parse_tag",
    "reconstruct_tag",
    "resolve_update",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())

"""Shared pytest fixtures for tagvariant test suite."""

from __future__ import annotations

import json

import pytest

from tagvariant.grouping import group_by_variant
from tagvariant.models import VariantGroup


@pytest.fixture()
def redis_tags() -> list[str]:
    """Return a realistic slice of the redis tag listing.

    Returns:
        Versioned tags across four variants plus two floating tags.
    """
    return [
        "8.6.0",
        "8.6.0-alpine",
        "8.6.0-alpine3.23",
        "8.2.4",
        "8.2.4-alpine",
        "8.2.4-alpine3.22",
        "alpine",
        "latest",
    ]


@pytest.fixture()
def redis_variants(redis_tags: list[str]) -> list[VariantGroup]:
    """Return the redis tags grouped into variants."""
    return group_by_variant(redis_tags)


@pytest.fixture()
def gitlab_tags() -> list[str]:
    return ["17.8.0-ee.0", "17.7.0-ee.0", "17.8.0-ce.0", "17.7.0-ce.0"]


@pytest.fixture()
def listing_document(redis_tags: list[str]) -> str:
    """Return a JSON listing document with one redis and one LinuxServer entry.

    Returns:
        JSON text accepted by ``load_listings``.
    """
    return json.dumps(
        [
            {
                "image": "redis:8.2.4-alpine",
                "tags": redis_tags,
                "digests": {"8.6.0-alpine": "sha256:aaa", "alpine": "sha256:aaa"},
                "timestamps": {"8.6.0-alpine": "2026-01-10T12:00:00Z"},
            },
            {
                "image": "lscr.io/linuxserver/plex:1.40.0",
                "tags": ["1.41.2", "1.40.0", "latest", "version-a7da6fde"],
            },
        ]
    )

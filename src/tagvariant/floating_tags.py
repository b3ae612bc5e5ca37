"""Curated floating tag metadata.

Some publishers push tags that look like versions but move between releases
(LinuxServer's ``v4`` tracks the newest 4.x build). Grouping consumes the
override set returned here so those tags are never offered as upgrades.
"""

from __future__ import annotations

from collections.abc import Iterable

LINUXSERVER_NAMESPACE: str = "linuxserver/"

LINUXSERVER_FLOATING_TAGS: frozenset[str] = frozenset({
    "latest",
    "develop",
    "gpu",
    "alpine-kde",
    "alpine-mate",
    "alpine-xfce",
    "alpine-znc",
    "web",
    "stable",
    "nightly",
    "master",
    "main",
    "edge",
    "test",
    "testing",
    "beta",
    "alpha",
    "dev",
    "rc",
    "v4",
    "v3",
    "v2",
    "v1",
    "amd64",
    "arm64",
    "arm32v7",
    "x86",
    "legacy",
    "minimal",
})


def is_linuxserver_repo(repository: str) -> bool:
    return repository.startswith(LINUXSERVER_NAMESPACE)


def floating_overrides_for(repository: str, catalog_tags: Iterable[str] | None = None) -> frozenset[str]:
    """Return the lower-cased tag names to force floating for ``repository``.

    Args:
        repository: Repository path, e.g. ``linuxserver/plex``.
        catalog_tags: Floating tag names from vendor catalog metadata. When
            given they replace the curated defaults.

    Returns:
        The override set; empty for repositories without curated metadata.
    """
    if catalog_tags is not None:
        return frozenset(tag.lower() for tag in catalog_tags)
    if is_linuxserver_repo(repository):
        return LINUXSERVER_FLOATING_TAGS
    return frozenset()

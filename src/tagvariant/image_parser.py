"""Container image reference parser for tagvariant.

Splits an image reference into registry, repository and tag. Handles Docker
Hub normalization (host aliases and the implicit ``library/`` namespace) and
registry hosts with ports.
"""

from __future__ import annotations

from urllib.parse import quote

from .models import DEFAULT_REGISTRY, ImageReference

# Docker Hub host aliases that should be normalized
_DOCKER_HUB_HOSTS: frozenset[str] = frozenset({
    "docker.io",
    "index.docker.io",
    "registry-1.docker.io",
})

_LIBRARY_NAMESPACE: str = "library"


def _has_registry_host(first_segment: str) -> bool:
    """Determine whether the first path segment is a registry host."""
    return first_segment == "localhost" or "." in first_segment or ":" in first_segment


def _normalize_docker_hub(registry: str, path_segments: list[str]) -> tuple[str, list[str]]:
    """Normalize Docker Hub registry references and implicit namespaces."""
    if registry in _DOCKER_HUB_HOSTS:
        registry = DEFAULT_REGISTRY

    # Official images live under library/
    if registry == DEFAULT_REGISTRY and len(path_segments) == 1:
        path_segments = [_LIBRARY_NAMESPACE, path_segments[0]]

    return registry, path_segments


def parse_image_reference(image: str) -> ImageReference:
    """Parse a container image reference into structured components.

    Args:
        image: Reference such as ``nginx:1.29``, ``ghcr.io/org/app:v2`` or
            ``localhost:5000/app``. A trailing ``@digest`` is ignored.

    Returns:
        The parsed ``ImageReference``; ``tag`` is ``None`` when the reference
        carries no tag.

    Raises:
        ValueError: If ``image`` is empty or names no repository.
    """
    if not image or not image.strip():
        raise ValueError("Image reference must not be empty")

    working = image.strip()
    if "@" in working:
        working = working[:working.index("@")]

    # Only the last path segment can carry a tag; earlier colons are ports
    segments = working.split("/")
    tag: str | None = None
    if ":" in segments[-1]:
        segments[-1], tag = segments[-1].rsplit(":", 1)
        tag = tag or None

    registry = DEFAULT_REGISTRY
    path_segments = segments
    if len(segments) > 1 and _has_registry_host(segments[0]):
        registry = segments[0]
        path_segments = segments[1:]

    registry, path_segments = _normalize_docker_hub(registry=registry, path_segments=path_segments)

    repository = "/".join(path_segments)
    if not repository or not all(path_segments):
        raise ValueError(f"Image reference '{image}' does not name a repository")

    full_image = f"{registry}/{repository}:{tag}" if tag else f"{registry}/{repository}"
    return ImageReference(registry=registry, repository=repository, full_image=full_image, tag=tag)


def repository_key(registry: str, repository: str) -> str:
    """Return the ``registry/repository`` key used to identify a listing."""
    return f"{registry}/{repository}"


def tag_url(registry: str, repository: str, tag: str) -> str | None:
    """Return a browser URL showing ``tag`` for well-known registries.

    Returns:
        The URL for Docker Hub, GitHub Container Registry or Quay, otherwise
        ``None``.
    """
    if registry == DEFAULT_REGISTRY:
        library_prefix = f"{_LIBRARY_NAMESPACE}/"
        if repository.startswith(library_prefix):
            return f"https://hub.docker.com/_/{repository[len(library_prefix):]}/tags?name={quote(tag, safe='')}"
        return f"https://hub.docker.com/r/{repository}/tags?name={quote(tag, safe='')}"

    if registry == "ghcr.io":
        owner, _, name = repository.partition("/")
        if not name:
            return None
        return f"https://github.com/{owner}/pkgs/container/{name}"

    if registry == "quay.io":
        return f"https://quay.io/repository/{repository}?tab=tags&tag={quote(tag, safe='')}"

    return None

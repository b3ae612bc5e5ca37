"""Unit tests for the floating_tags module."""

from __future__ import annotations

import pytest

from tagvariant.floating_tags import LINUXSERVER_FLOATING_TAGS, floating_overrides_for, is_linuxserver_repo


class TestIsLinuxserverRepo:
    """Tests for ``is_linuxserver_repo``."""

    @pytest.mark.parametrize(
        ("repository", "expected"),
        [
            pytest.param("linuxserver/plex", True, id="linuxserver"),
            pytest.param("library/redis", False, id="official"),
            pytest.param("imagegenius/immich", False, id="other-namespace"),
            pytest.param("notlinuxserver/plex", False, id="prefix-lookalike"),
        ],
    )
    def test_is_linuxserver_repo(self, repository: str, expected: bool) -> None:
        assert is_linuxserver_repo(repository) is expected


class TestFloatingOverridesFor:
    """Tests for ``floating_overrides_for`` selection."""

    def test_curated_set_for_linuxserver(self) -> None:
        overrides = floating_overrides_for("linuxserver/plex")

        assert overrides == LINUXSERVER_FLOATING_TAGS
        assert {"latest", "v4", "develop", "nightly"} <= overrides

    def test_empty_for_other_repositories(self) -> None:
        assert floating_overrides_for("library/redis") == frozenset()

    def test_catalog_tags_replace_curated_set(self) -> None:
        """Verify catalog metadata wins and is lower-cased."""
        overrides = floating_overrides_for("linuxserver/plex", ["Latest", "GPU"])

        assert overrides == frozenset({"latest", "gpu"})

    def test_catalog_tags_apply_to_any_repository(self) -> None:
        assert floating_overrides_for("example/app", ["V4"]) == frozenset({"v4"})

    def test_empty_catalog_disables_overrides(self) -> None:
        assert floating_overrides_for("linuxserver/plex", []) == frozenset()

"""Unit tests for the CLI argument parsing and execution flow in tagvariant.cli."""

from __future__ import annotations

import argparse
import io
import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from tagvariant.cli import _setup_logging, apply_current_tag, main, parse_args, run_resolution
from tagvariant.models import DEFAULT_THREAD_POOL_WORKERS, TagListing


def _args(listing: str, **overrides: object) -> argparse.Namespace:
    values: dict[str, object] = {
        "listing": listing,
        "current": None,
        "workers": DEFAULT_THREAD_POOL_WORKERS,
        "all_variants": False,
        "verbose": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


@pytest.fixture()
def listing_file(tmp_path: Path, listing_document: str) -> Path:
    """Write the shared listing document to a temporary file."""
    path = tmp_path / "listings.json"
    path.write_text(listing_document, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Argument parsing tests
# ---------------------------------------------------------------------------


class TestParseArgs:
    """Tests for CLI argument parsing via ``parse_args``."""

    def test_parse_args_defaults(self) -> None:
        """Verify default values when only --listing is given."""
        args = parse_args(["--listing", "listings.json"])

        assert args.listing == "listings.json"
        assert args.current is None
        assert args.workers == DEFAULT_THREAD_POOL_WORKERS
        assert args.all_variants is False
        assert args.verbose is False

    def test_parse_args_explicit_values(self) -> None:
        args = parse_args(["--listing", "-", "--current", "8.2.4", "--workers", "2", "--all-variants", "-v"])

        assert args.listing == "-"
        assert args.current == "8.2.4"
        assert args.workers == 2
        assert args.all_variants is True
        assert args.verbose is True

    def test_parse_args_listing_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])


# ---------------------------------------------------------------------------
# Logging setup tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for ``_setup_logging`` configuration."""

    @pytest.mark.parametrize(
        ("verbose", "expected_level"),
        [
            pytest.param(False, logging.INFO, id="info"),
            pytest.param(True, logging.DEBUG, id="debug"),
        ],
    )
    def test_setup_logging(self, verbose: bool, expected_level: int) -> None:
        """Verify _setup_logging configures root logger with basicConfig."""
        with patch("logging.basicConfig") as mock_basic_config:
            _setup_logging(verbose=verbose)

        mock_basic_config.assert_called_once()
        assert mock_basic_config.call_args[1]["level"] == expected_level


# ---------------------------------------------------------------------------
# Current tag override tests
# ---------------------------------------------------------------------------


class TestApplyCurrentTag:
    """Tests for ``apply_current_tag``."""

    def test_replaces_tag(self) -> None:
        listings = [TagListing(image="ghcr.io/org/app:1.0", tags=["1.0"])]

        apply_current_tag(listings, "0.9")

        assert listings[0].image == "ghcr.io/org/app:0.9"

    def test_adds_tag_to_untagged_image(self) -> None:
        listings = [TagListing(image="redis")]

        apply_current_tag(listings, "8.2.4")

        assert listings[0].image == "docker.io/library/redis:8.2.4"

    def test_requires_single_listing(self) -> None:
        with pytest.raises(ValueError, match="exactly one listing"):
            apply_current_tag([TagListing(image="a"), TagListing(image="b")], "1.0")


# ---------------------------------------------------------------------------
# Main execution tests
# ---------------------------------------------------------------------------


class TestRunResolution:
    """Tests for ``run_resolution`` execution flow."""

    def test_report_printed(self, listing_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Verify a clean run prints the JSON report and exits with 0."""
        exit_code = run_resolution(args=_args(str(listing_file)))

        report = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert report["summary"]["total_listings"] == 2
        assert [result["new_tag"] for result in report["results"]] == ["8.6.0-alpine", "1.41.2"]
        assert report["results"][0]["new_tag_url"] == "https://hub.docker.com/_/redis/tags?name=8.6.0-alpine"
        assert report["results"][1]["new_tag_url"] is None
        assert "variants" not in report["results"][0]

    def test_all_variants_included(self, listing_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        run_resolution(args=_args(str(listing_file), all_variants=True))

        report = json.loads(capsys.readouterr().out)
        assert report["results"][0]["variants"][0]["variant_key"] == "*"

    def test_reads_standard_input(self, listing_document: str, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("sys.stdin", io.StringIO(listing_document)):
            exit_code = run_resolution(args=_args("-"))

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["summary"]["upgrades"] == 2

    def test_current_tag_override(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "redis.json"
        path.write_text(json.dumps({"image": "redis:8.6.0", "tags": ["8.6.0", "8.2.4", "7.4.0"]}), encoding="utf-8")

        exit_code = run_resolution(args=_args(str(path), current="7.4.0"))

        result = json.loads(capsys.readouterr().out)["results"][0]
        assert exit_code == 0
        assert result["current_tag"] == "7.4.0"
        assert result["new_tag"] == "8.6.0"

    def test_current_tag_with_many_listings_fails(self, listing_file: Path) -> None:
        assert run_resolution(args=_args(str(listing_file), current="1.0")) == 1

    def test_missing_file_fails(self, tmp_path: Path) -> None:
        assert run_resolution(args=_args(str(tmp_path / "missing.json"))) == 1

    def test_invalid_document_fails(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{invalid json}", encoding="utf-8")

        assert run_resolution(args=_args(str(path))) == 1

    def test_invalid_worker_count_fails(self, listing_file: Path) -> None:
        assert run_resolution(args=_args(str(listing_file), workers=0)) == 1

    def test_listing_error_sets_exit_code(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Verify a listing that cannot be resolved is reported and exits with 1."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"image": "ghcr.io/", "tags": []}]), encoding="utf-8")

        exit_code = run_resolution(args=_args(str(path)))

        report = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert report["results"][0]["status"] == "ERROR"
        assert report["summary"]["errors"] == 1


class TestMain:
    """Tests for the ``main`` entry point."""

    def test_main_exits_with_run_result(self, listing_file: Path) -> None:
        with (
            patch("sys.argv", ["tagvariant", "--listing", str(listing_file)]),
            patch("tagvariant.cli._setup_logging"),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 0

    def test_main_reports_unexpected_errors(self, capsys: pytest.CaptureFixture[str]) -> None:
        with (
            patch("sys.argv", ["tagvariant", "--listing", "x.json"]),
            patch("tagvariant.cli._setup_logging"),
            patch("tagvariant.cli.run_resolution", side_effect=RuntimeError("boom")),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1
        assert "Error: boom" in capsys.readouterr().err

"""tagvariant command line interface.

Reads a registry tag listing document, groups every repository's tags into
variants and reports, per listing, the newest tag in the variant currently in
use. The report is printed as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from ._version import __version__
from .batch import generate_report, load_listings, resolve_listings
from .image_parser import parse_image_reference
from .models import DEFAULT_THREAD_POOL_WORKERS, TagListing

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI usage. Only called from main()."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s : %(name)-13s : %(levelname)s :: %(message)s",
    )


def read_listing_document(path: str) -> str:
    """Return the listing document at ``path``; ``-`` reads standard input."""
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as handle:
        return handle.read()


def apply_current_tag(listings: list[TagListing], tag: str) -> None:
    """Replace the tag of the only listing's image reference with ``tag``.

    Raises:
        ValueError: If the document does not hold exactly one listing.
    """
    if len(listings) != 1:
        raise ValueError(f"--current needs exactly one listing, got {len(listings)}")
    reference = parse_image_reference(listings[0].image)
    listings[0].image = f"{reference.registry}/{reference.repository}:{tag}"


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Optional list of argument strings (defaults to ``sys.argv``).

    Returns:
        Parsed ``argparse.Namespace``.
    """
    parser = argparse.ArgumentParser(
        description="tagvariant: find the newest tag in the variant of each container image",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--listing",
        required=True,
        help="Path to a JSON tag listing document, or '-' to read it from standard input",
    )
    parser.add_argument(
        "--current",
        help="Current tag to resolve, overriding the tag of the listing's image (single listing only)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_THREAD_POOL_WORKERS,
        help="Number of listings resolved concurrently",
    )
    parser.add_argument(
        "--all-variants",
        action="store_true",
        help="Include every variant group in the report",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(args)


# ---------------------------------------------------------------------------
# Main execution
# ---------------------------------------------------------------------------


def run_resolution(args: argparse.Namespace) -> int:
    """Main execution flow.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Process exit code (0 = every listing resolved, 1 = any error).
    """
    if args.workers < 1:
        logger.error(f"--workers must be at least 1, got {args.workers}")
        return 1

    try:
        listings = load_listings(read_listing_document(args.listing))
        if args.current:
            apply_current_tag(listings, args.current)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load listings: {e}")
        return 1

    logger.info(f"Resolving {len(listings)} listing(s)")
    results = resolve_listings(listings, max_workers=args.workers)

    try:
        report = generate_report(results)
        print(json.dumps(report.to_dict(include_variants=args.all_variants), indent=2, default=str))
    except Exception as e:
        logger.error(f"Failed to generate report: {e}")
        return 1

    return report.exit_code


def main() -> None:
    """CLI entry point for tagvariant."""
    try:
        parsed_args = parse_args()
        _setup_logging(verbose=parsed_args.verbose)
        sys.exit(run_resolution(args=parsed_args))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Data models for tagvariant tag analysis and upgrade resolution."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum

# ---------------------------------------------------------------------------
# Constants shared by the parser, comparator and resolution layers
# ---------------------------------------------------------------------------
DEFAULT_VARIANT_KEY: str = "*"  # Variant key of tags with no literal context around the version.

VERSION_PLACEHOLDER: str = "*"  # Marks where a version component substitutes into a variant key.

PRE_RELEASE_KEYWORDS: tuple[str, ...] = (
    "rc",
    "beta",
    "alpha",
    "dev",
    "preview",
    "canary",
    "nightly",
    "unstable",
)

VERSION_PAD_WIDTH: int = 30  # Width every digit run is zero-padded to before string comparison.

DEFAULT_THREAD_POOL_WORKERS: int = 8  # Concurrent listing resolutions in batch mode.

DEFAULT_REGISTRY: str = "docker.io"


class Ordering(str, Enum):
    """Result of comparing two parsed tags."""

    LESS = "LESS"
    EQUAL = "EQUAL"
    GREATER = "GREATER"

    @property
    def sign(self) -> int:
        """Return ``-1``, ``0`` or ``1`` for use with ``functools.cmp_to_key``."""
        _SIGNS: dict[Ordering, int] = {
            Ordering.LESS: -1,
            Ordering.GREATER: 1,
        }
        return _SIGNS.get(self, 0)

    @classmethod
    def from_sign(cls, value: int) -> Ordering:
        if value < 0:
            return cls.LESS
        if value > 0:
            return cls.GREATER
        return cls.EQUAL


class ListingStatus(str, Enum):
    """Outcome of resolving a single repository listing."""

    UPGRADE = "UPGRADE"
    CURRENT = "CURRENT"
    UNMATCHED = "UNMATCHED"
    ERROR = "ERROR"

    @property
    def exit_code(self) -> int:
        """Return the process exit code contribution of this status.

        Returns:
            1 for ERROR, 0 for everything else.
        """
        return 1 if self is ListingStatus.ERROR else 0


@dataclass(frozen=True)
class ParsedTag:
    """A single tag classified into a version and a variant template.

    ``variant_key`` holds one ``*`` per version component; everything around
    the placeholders is literal context that must match exactly for two tags
    to belong to the same variant. Floating tags carry no version.
    """

    original: str
    version: tuple[str, ...] = ()
    variant_key: str = ""
    semver: bool = False
    is_floating: bool = False


@dataclass(frozen=True)
class VariantGroup:
    """All tags of one deployable flavor, newest first.

    Attributes:
        variant_key: Grouping key; ``"*"`` is the default variant.
        latest: Newest versioned member, or ``None`` for floating-only groups.
        older: Remaining versioned members in descending order.
        floating: Floating tags attached to this variant.
        digest_matches: Versioned ``original`` mapped to the single floating
            tag that shares its content digest.
        latest_timestamp: Push time of ``latest`` when timestamps were supplied.
    """

    variant_key: str
    latest: ParsedTag | None = None
    older: tuple[ParsedTag, ...] = ()
    floating: tuple[ParsedTag, ...] = ()
    digest_matches: dict[str, str] = field(default_factory=dict, compare=False)
    latest_timestamp: datetime | None = None

    @property
    def suffix(self) -> str:
        """Literal text following the first version placeholder."""
        if VERSION_PLACEHOLDER not in self.variant_key:
            return self.variant_key
        return self.variant_key.split(VERSION_PLACEHOLDER, 1)[1]

    @property
    def members(self) -> tuple[ParsedTag, ...]:
        """Versioned members, newest first."""
        if self.latest is None:
            return self.older
        return (self.latest, *self.older)

    def find(self, tag: str) -> ParsedTag | None:
        """Return the member (versioned or floating) whose text is ``tag``."""
        for member in (*self.members, *self.floating):
            if member.original == tag:
                return member
        return None


@dataclass(frozen=True)
class ImageReference:
    """Parsed container image reference.

    ``tag`` is ``None`` when the reference names no tag; ``full_image`` is the
    normalised ``registry/repository[:tag]`` form.
    """

    registry: str
    repository: str
    full_image: str
    tag: str | None = None


@dataclass
class ImageUpdate:
    """A resolved upgrade for one image reference."""

    image: ImageReference
    current_tag: str
    new_tag: str
    variants: list[VariantGroup] = field(default_factory=list)
    current_variant: VariantGroup | None = None


@dataclass
class TagListing:
    """Tags fetched for one repository by a registry client.

    Attributes:
        image: Image reference whose tag is the current tag.
        tags: Raw tag names from the registry listing.
        digests: Tag name to content digest.
        timestamps: Tag name to last push time.
        floating: Tag names a vendor catalog declares floating, or ``None``
            when no catalog metadata is available.
    """

    image: str
    tags: list[str] = field(default_factory=list)
    digests: dict[str, str] = field(default_factory=dict)
    timestamps: dict[str, datetime] = field(default_factory=dict)
    floating: list[str] | None = None


@dataclass
class ListingResolution:
    """Result of resolving a single ``TagListing``."""

    image: str
    repository: str = ""
    current_tag: str | None = None
    new_tag: str | None = None
    new_tag_url: str | None = None
    status: ListingStatus = ListingStatus.UNMATCHED
    current_variant: str | None = None
    found_current_tag: bool = False
    variants: list[VariantGroup] = field(default_factory=list)
    error: str | None = None


@dataclass
class ReportSummary:
    """Aggregated counts for the resolution report."""

    total_listings: int = 0
    upgrades: int = 0
    current: int = 0
    unmatched: int = 0
    errors: int = 0


@dataclass
class ResolutionReport:
    """Top-level report produced by batch resolution.

    Attributes:
        timestamp: ISO 8601 UTC timestamp of report generation.
        summary: Aggregated counts per status.
        results: Per-listing resolutions in input order.
    """

    timestamp: str
    summary: ReportSummary = field(default_factory=ReportSummary)
    results: list[ListingResolution] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return max((result.status.exit_code for result in self.results), default=0)

    def to_dict(self, include_variants: bool = False) -> dict[str, object]:
        """Serialise the report to a plain dict suitable for JSON output.

        Variant groups are large for busy repositories, so they are dropped
        unless ``include_variants`` is set.
        """
        data = asdict(self)
        if not include_variants:
            for result in data["results"]:
                result.pop("variants", None)
        return data

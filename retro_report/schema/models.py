"""Typed records shared by the ingestion, aggregation and rendering layers.

Every record has fully defaulted fields so that a missing column or an
empty bucket is represented by a default-constructed value rather than by
scattered ``None`` checks downstream.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


UNKNOWN = "Unknown"
UNRESOLVED = -1


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ShowSource(Enum):
    """Which column a row's show label was read from."""
    SHOW = "show"            # Show/episode column, already canonical
    CAMPAIGN = "campaign"    # Campaign column, needs cleaning
    NONE = "none"            # Neither column had a value


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnIndex:
    """Zero-based position of each semantic column, or -1 when unresolved."""
    date: int = UNRESOLVED
    impressions: int = UNRESOLVED
    visitors: int = UNRESOLVED
    spend: int = UNRESOLVED
    geo: int = UNRESOLVED
    show: int = UNRESOLVED
    campaign: int = UNRESOLVED
    publisher: int = UNRESOLVED

    def missing(self) -> list[str]:
        """Names of the roles no header matched."""
        return [role for role, idx in self.to_dict().items() if idx == UNRESOLVED]

    def to_dict(self) -> dict[str, int]:
        return {
            "date": self.date,
            "impressions": self.impressions,
            "visitors": self.visitors,
            "spend": self.spend,
            "geo": self.geo,
            "show": self.show,
            "campaign": self.campaign,
            "publisher": self.publisher,
        }


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

@dataclass
class Row:
    """One extracted CSV data line.

    Metric fields are ``0.0`` when their column is absent and ``NaN`` when
    the column exists but the cell is not a number.
    """
    date: str | None = None
    impressions: float = 0.0
    visitors: float = 0.0
    publisher: str = UNKNOWN
    spend: float = 0.0
    geo: str = ""
    raw_show: str = ""
    show_source: ShowSource = ShowSource.NONE

    @property
    def is_garbage(self) -> bool:
        """True when none of the three metrics is numeric."""
        return all(
            math.isnan(v) for v in (self.impressions, self.visitors, self.spend)
        )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _zero_nan(value: float) -> float:
    return 0.0 if math.isnan(value) else value


@dataclass
class AggregationBucket:
    """Running totals for one aggregation key."""
    impressions: float = 0.0
    visitors: float = 0.0
    spend_source: float = 0.0
    spend_target: float = 0.0

    def add(self, impressions: float, visitors: float,
            spend_source: float, spend_target: float) -> None:
        self.impressions += _zero_nan(impressions)
        self.visitors += _zero_nan(visitors)
        self.spend_source += _zero_nan(spend_source)
        self.spend_target += _zero_nan(spend_target)

    def copy(self) -> "AggregationBucket":
        return AggregationBucket(
            impressions=self.impressions,
            visitors=self.visitors,
            spend_source=self.spend_source,
            spend_target=self.spend_target,
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "impressions": self.impressions,
            "visitors": self.visitors,
            "spend_source": self.spend_source,
            "spend_target": self.spend_target,
        }


@dataclass(frozen=True)
class AggregateSnapshot:
    """Read-only view of a finished aggregation run."""
    total: AggregationBucket = field(default_factory=AggregationBucket)
    by_month: dict[str, AggregationBucket] = field(default_factory=dict)
    by_publisher: dict[str, AggregationBucket] = field(default_factory=dict)
    by_region: dict[str, AggregationBucket] = field(default_factory=dict)
    publisher_shows: dict[str, frozenset[str]] = field(default_factory=dict)
    rows_ingested: int = 0
    rows_skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total.to_dict(),
            "by_month": {k: v.to_dict() for k, v in self.by_month.items()},
            "by_publisher": {k: v.to_dict() for k, v in self.by_publisher.items()},
            "by_region": {k: v.to_dict() for k, v in self.by_region.items()},
            "publisher_shows": {
                k: sorted(v) for k, v in self.publisher_shows.items()
            },
            "rows_ingested": self.rows_ingested,
            "rows_skipped": self.rows_skipped,
        }


# ---------------------------------------------------------------------------
# Input files
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CsvFile:
    """A CSV export as handed over by a file source."""
    name: str
    mime_type: str
    content: str

    @property
    def header_line(self) -> str:
        """First line of the content, lower-cased."""
        return self.content.split("\n", 1)[0].strip().lower()


@dataclass
class FileSelection:
    """Outcome of classifying the CSVs found in one folder."""
    primary: CsvFile | None = None       # first file with geo + spend headers
    impression: CsvFile | None = None    # vendor impression/visitor export
    others: list[CsvFile] = field(default_factory=list)

    @property
    def metrics(self) -> CsvFile | None:
        """The file a run aggregates: the vendor export, else the primary."""
        return self.impression or self.primary

"""Report renderer — serializes an AggregateSnapshot as delimited text.

The output is read by people and by a downstream summarization step, so
section headings, column headers and row order are part of the contract
and must not change between runs::

    # Podscribe Performance Data

    ## Monthly Performance

    Month,Impressions,Visitors,Spend (USD),Spend (GBP)
    2025-01,"12,500","3,100","$1,200.00","£888.00"

    ## Publisher Performance
    ...
    ## Regional Performance
    ...
    ## Publisher Shows

    Publisher,Shows
    NZME,The Front Page,2 Various content-category bundles

Usage::

    from retro_report.generator.report import ReportRenderer

    text = ReportRenderer(source_currency="USD", target_currency="GBP").render(snapshot)
"""

from dataclasses import dataclass

from ..processor.shows import format_shows
from ..schema.formatting import format_count, format_line, format_money
from ..schema.models import UNKNOWN, AggregateSnapshot, AggregationBucket, CsvFile


MONTHLY_HEADING = "## Monthly Performance"
PUBLISHER_HEADING = "## Publisher Performance"
REGION_HEADING = "## Regional Performance"
SHOWS_HEADING = "## Publisher Shows"
SECTION_HEADINGS = (MONTHLY_HEADING, PUBLISHER_HEADING, REGION_HEADING, SHOWS_HEADING)

OTHER_FILES_HEADING = "# Other CSV Files"
RULE_LINE = "─" * 50


@dataclass
class ReportRenderer:
    """Render aggregated results as the four-section delimited report."""
    title: str = "Podscribe Performance Data"
    source_currency: str = "USD"
    target_currency: str = "GBP"
    source_symbol: str = "$"
    target_symbol: str = "£"

    # ------------------------------------------------------------------
    # Column headers
    # ------------------------------------------------------------------

    def metric_header(self, label: str) -> str:
        return format_line([
            label,
            "Impressions",
            "Visitors",
            f"Spend ({self.source_currency})",
            f"Spend ({self.target_currency})",
        ])

    def _metric_line(self, key: str, bucket: AggregationBucket) -> str:
        return format_line([
            key,
            format_count(bucket.impressions),
            format_count(bucket.visitors),
            format_money(bucket.spend_source, self.source_symbol),
            format_money(bucket.spend_target, self.target_symbol),
        ])

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def monthly_lines(self, snapshot: AggregateSnapshot) -> list[str]:
        return [
            self._metric_line(month, snapshot.by_month[month])
            for month in sorted(snapshot.by_month)
        ]

    def _ranked_lines(self, buckets: dict[str, AggregationBucket]) -> list[str]:
        keys = sorted(buckets, key=lambda k: (-buckets[k].impressions, k))
        lines = []
        for key in keys:
            if key == UNKNOWN and len(keys) > 1:
                continue
            bucket = buckets[key]
            if not bucket.spend_target > 0:
                continue
            lines.append(self._metric_line(key, bucket))
        return lines

    def publisher_lines(self, snapshot: AggregateSnapshot) -> list[str]:
        return self._ranked_lines(snapshot.by_publisher)

    def region_lines(self, snapshot: AggregateSnapshot) -> list[str]:
        return self._ranked_lines(snapshot.by_region)

    def show_lines(self, snapshot: AggregateSnapshot) -> list[str]:
        publishers = sorted(set(snapshot.by_publisher) | set(snapshot.publisher_shows))
        lines = []
        for publisher in publishers:
            if publisher == UNKNOWN and len(publishers) > 1:
                continue
            bucket = snapshot.by_publisher.get(publisher)
            if bucket is None or not bucket.spend_target > 0:
                continue
            shows = format_shows(publisher, snapshot.publisher_shows.get(publisher, ()))
            if shows:
                lines.append(format_line([publisher, *shows]))
        return lines

    # ------------------------------------------------------------------
    # Whole report
    # ------------------------------------------------------------------

    def render(self, snapshot: AggregateSnapshot) -> str:
        """Render *snapshot*; identical input always yields identical text."""
        parts = [f"# {self.title}\n\n"]

        parts.append(f"{MONTHLY_HEADING}\n\n")
        parts.append(self.metric_header("Month") + "\n")
        parts.extend(line + "\n" for line in self.monthly_lines(snapshot))
        parts.append("\n")

        parts.append(f"{PUBLISHER_HEADING}\n\n")
        parts.append(self.metric_header("Publisher") + "\n")
        parts.extend(line + "\n" for line in self.publisher_lines(snapshot))
        parts.append("\n")

        parts.append(f"{REGION_HEADING}\n\n")
        parts.append(self.metric_header("Region") + "\n")
        parts.extend(line + "\n" for line in self.region_lines(snapshot))
        parts.append("\n")

        parts.append(f"{SHOWS_HEADING}\n\n")
        parts.append(format_line(["Publisher", "Shows"]) + "\n")
        parts.extend(line + "\n" for line in self.show_lines(snapshot))
        return "".join(parts)


def render_raw_files(files: list[CsvFile], limit: int = 100_000) -> str:
    """Append the other CSVs of a folder verbatim, each under its file name."""
    if not files:
        return ""
    parts = [f"{OTHER_FILES_HEADING}\n\n"]
    for i, f in enumerate(files):
        parts.append(f"## {f.name}\n{RULE_LINE}\n")
        content = f.content
        if len(content) > limit:
            parts.append(
                f"Content is large ({len(content)} characters), showing first portion:\n"
            )
            content = content[:limit]
        parts.append(content.rstrip("\n") + "\n")
        if i < len(files) - 1:
            parts.append("\n\n")
    return "".join(parts)

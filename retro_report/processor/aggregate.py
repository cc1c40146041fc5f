"""Spend aggregation for the audio retro report.

``SpendAggregator`` consumes extracted rows and accumulates impressions,
visitors and spend (source and converted target currency) along four
dimensions: grand total, month, publisher and region.  Alongside it keeps
the set of cleaned show labels seen for each publisher.

Usage::

    from retro_report.processor.aggregate import SpendAggregator
    from retro_report.processor.currency import CurrencyConverter

    aggregator = SpendAggregator(region_map, CurrencyConverter(client))
    aggregator.ingest_table(header, rows, source_name="podscribe.csv")
    snapshot = aggregator.snapshot()
"""

import logging
import math

import pandas as pd

from ..schema.models import (
    UNKNOWN,
    AggregateSnapshot,
    AggregationBucket,
    ColumnIndex,
    Row,
)
from .currency import CurrencyConverter
from .ingestion import extract_row, resolve_columns
from .normalizer import normalize_show
from .regions import lookup_region

logger = logging.getLogger(__name__)


def month_key(value) -> str:
    """``YYYY-MM`` for a parseable date string (UTC), else "Unknown"."""
    if value is None:
        return UNKNOWN
    text = str(value).strip()
    if not text:
        return UNKNOWN
    try:
        ts = pd.to_datetime(text, utc=True, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return UNKNOWN
    if ts is None or pd.isna(ts):
        return UNKNOWN
    return f"{ts.year:04d}-{ts.month:02d}"


class SpendAggregator:
    """Accumulate rows for one run.

    Parameters
    ----------
    region_map : dict[str, str]
        Lower-case geo code -> region name.
    converter : CurrencyConverter
        Converter holding the run's cached rate.
    """

    def __init__(self, region_map: dict[str, str], converter: CurrencyConverter):
        self.region_map = region_map
        self.converter = converter
        self.total = AggregationBucket()
        self.by_month: dict[str, AggregationBucket] = {}
        self.by_publisher: dict[str, AggregationBucket] = {}
        self.by_region: dict[str, AggregationBucket] = {}
        self.publisher_shows: dict[str, set[str]] = {}
        self.rows_ingested = 0
        self.rows_skipped = 0

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, row: Row) -> bool:
        """Accumulate one row.  Returns False when the row was skipped.

        Never raises: a row that cannot be processed is logged and skipped.
        """
        try:
            return self._ingest(row)
        except Exception:
            logger.warning("Skipping row that could not be aggregated: %r", row, exc_info=True)
            self.rows_skipped += 1
            return False

    def _ingest(self, row: Row) -> bool:
        if row.is_garbage:
            self.rows_skipped += 1
            return False

        spend = 0.0 if math.isnan(row.spend) else row.spend
        spend_target = self.converter.convert(spend)
        values = (row.impressions, row.visitors, spend, spend_target)

        # Resolve every key first so a failing row leaves no partial totals
        month = month_key(row.date)
        publisher = row.publisher or UNKNOWN
        region = lookup_region(self.region_map, row.geo)
        show = normalize_show(row.raw_show, row.show_source, publisher)

        self.total.add(*values)
        self._bucket(self.by_month, month).add(*values)
        self._bucket(self.by_publisher, publisher).add(*values)
        self._bucket(self.by_region, region).add(*values)
        if publisher != UNKNOWN and show and show != UNKNOWN:
            self.publisher_shows.setdefault(publisher, set()).add(show)

        self.rows_ingested += 1
        return True

    def ingest_table(self, header, rows, source_name: str = "") -> ColumnIndex:
        """Resolve *header* once, then extract and ingest every data row."""
        index = resolve_columns(header)
        missing = index.missing()
        logger.info("Resolved columns for %s: %s", source_name or "CSV", index.to_dict())
        if missing:
            logger.warning("Columns not found in %s: %s (defaults will be used)",
                           source_name or "CSV", ", ".join(missing))

        for line_no, cells in enumerate(rows, start=2):
            try:
                row = extract_row(cells, index)
            except Exception:
                logger.warning("Skipping unreadable line %d in %s", line_no,
                               source_name or "CSV", exc_info=True)
                self.rows_skipped += 1
                continue
            if not self.ingest(row):
                logger.debug("Skipped line %d in %s", line_no, source_name or "CSV")

        logger.info("Aggregated %s: %d row(s) ingested, %d skipped, total spend %.2f",
                    source_name or "CSV", self.rows_ingested, self.rows_skipped,
                    self.total.spend_source)
        return index

    @staticmethod
    def _bucket(buckets: dict[str, AggregationBucket], key: str) -> AggregationBucket:
        if key not in buckets:
            buckets[key] = AggregationBucket()
        return buckets[key]

    # ------------------------------------------------------------------
    # Readout
    # ------------------------------------------------------------------

    def snapshot(self) -> AggregateSnapshot:
        """Copy the current totals into an immutable AggregateSnapshot."""
        return AggregateSnapshot(
            total=self.total.copy(),
            by_month={k: v.copy() for k, v in self.by_month.items()},
            by_publisher={k: v.copy() for k, v in self.by_publisher.items()},
            by_region={k: v.copy() for k, v in self.by_region.items()},
            publisher_shows={k: frozenset(v) for k, v in self.publisher_shows.items()},
            rows_ingested=self.rows_ingested,
            rows_skipped=self.rows_skipped,
        )

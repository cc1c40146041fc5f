"""Data processor module for the audio retro report."""

from .aggregate import SpendAggregator, month_key
from .currency import (
    CurrencyConverter,
    ExchangeRateCache,
    RateClient,
    RateLookupError,
)
from .ingestion import (
    ROLE_KEYWORDS,
    classify_files,
    extract_row,
    parse_numeric,
    read_csv_rows,
    resolve_columns,
)
from .normalizer import RULES, normalize_show
from .regions import build_region_map, lookup_region
from .shows import format_shows

"""Data ingestion module for the audio retro report.

Handles reading, column resolution and row extraction for the ad-network
CSV exports found in a dashboard folder:
- Vendor impression/visitor export (e.g. Podscribe: impressions, visitors,
  publisher, show/campaign, spend, geo)
- Primary metrics export (day, geo, publisher, spend)

Exports do not share a column naming scheme, so columns are resolved by
case-insensitive keyword matching on the header row and every field is
optional.
"""

import io
import logging
import math

import pandas as pd

from ..errors import ConfigurationError
from ..schema.models import (
    UNKNOWN,
    UNRESOLVED,
    ColumnIndex,
    CsvFile,
    FileSelection,
    Row,
    ShowSource,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------

_CURRENCY_CHARS = "$£€"


def parse_numeric(value):
    """Parse a metric cell that may contain commas or a currency symbol.

    Examples:
        "63,571" -> 63571.0
        "$1,234.50" -> 1234.5
        "-12" -> -12.0
        42 -> 42.0
        "" / "n/a" / None -> NaN
    """
    if value is None:
        return float("nan")
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().replace(",", "")
    if s[:1] == "-" and s[1:2] in _CURRENCY_CHARS:
        s = "-" + s[2:]
    s = s.lstrip(_CURRENCY_CHARS).strip()
    if not s:
        return float("nan")
    try:
        f = float(s)
    except ValueError:
        return float("nan")
    if math.isinf(f):
        return float("nan")
    return f


def _cell(cells, idx):
    """Return the stripped cell at *idx*, or "" when absent."""
    if idx == UNRESOLVED or idx >= len(cells):
        return ""
    value = cells[idx]
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


# ---------------------------------------------------------------------------
# CSV reading
# ---------------------------------------------------------------------------

def clean_header(header):
    """Strip whitespace and any byte-order mark from header cells."""
    return [str(h).replace("\ufeff", "").strip() for h in header]


def read_csv_rows(content, name="CSV"):
    """Parse CSV text into ``(header, rows)`` with every cell as a string.

    Short rows are padded with empty strings; malformed lines are skipped
    with a warning by the parser.  Empty content yields ``([], [])``.
    Content the parser cannot tokenize at all (e.g. an unterminated quote)
    raises ConfigurationError naming *name*.
    """
    content = content.lstrip("\ufeff")
    if not content.strip():
        return [], []
    try:
        df = pd.read_csv(
            io.StringIO(content),
            dtype=str,
            index_col=False,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="warn",
        )
    except pd.errors.ParserError as exc:
        raise ConfigurationError(f"{name}: could not parse CSV: {exc}") from exc
    df = df.fillna("")
    header = clean_header(df.columns)
    # pandas names blank header cells "Unnamed: N"
    header = ["" if h.startswith("Unnamed:") else h for h in header]
    return header, df.values.tolist()


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------

# Resolution order matters: a header claimed by an earlier role cannot be
# claimed again, so show/campaign go before publisher (which also accepts
# "show").
ROLE_KEYWORDS = {
    "date": ("date", "day"),
    "impressions": ("impression",),
    "visitors": ("visitor", "unique"),
    "spend": ("spend", "cost"),
    "geo": ("geo", "region", "country"),
    "show": ("show", "episode"),
    "campaign": ("campaign",),
    "publisher": ("publisher", "podcast", "show"),
}


def resolve_columns(header) -> ColumnIndex:
    """Resolve semantic column roles from a header row.

    For each role, headers are scanned left to right and the first one whose
    lower-cased text contains any of the role's keywords wins.  Roles that
    match nothing stay at -1; this never raises.
    """
    lowered = [str(h).lower() for h in header]
    claimed: set[int] = set()
    resolved: dict[str, int] = {}
    for role, keywords in ROLE_KEYWORDS.items():
        resolved[role] = UNRESOLVED
        for idx, text in enumerate(lowered):
            if idx in claimed:
                continue
            if any(k in text for k in keywords):
                resolved[role] = idx
                claimed.add(idx)
                break
    return ColumnIndex(**resolved)


# ---------------------------------------------------------------------------
# Row extraction
# ---------------------------------------------------------------------------

def _metric(cells, idx):
    if idx == UNRESOLVED:
        return 0.0
    return parse_numeric(_cell(cells, idx))


def extract_row(cells, index: ColumnIndex) -> Row:
    """Build a Row from raw cells using a resolved ColumnIndex.

    Absent columns default (0 for metrics, "Unknown" for publisher,
    ``None`` for date); non-numeric metric cells become NaN.
    """
    show_value = _cell(cells, index.show)
    campaign_value = _cell(cells, index.campaign)
    if show_value:
        raw_show, source = show_value, ShowSource.SHOW
    elif campaign_value:
        raw_show, source = campaign_value, ShowSource.CAMPAIGN
    else:
        raw_show, source = "", ShowSource.NONE

    return Row(
        date=_cell(cells, index.date) or None,
        impressions=_metric(cells, index.impressions),
        visitors=_metric(cells, index.visitors),
        publisher=_cell(cells, index.publisher) or UNKNOWN,
        spend=_metric(cells, index.spend),
        geo=_cell(cells, index.geo),
        raw_show=raw_show,
        show_source=source,
    )


# ---------------------------------------------------------------------------
# File classification
# ---------------------------------------------------------------------------

CSV_MIME_TYPE = "text/csv"


def is_csv(file: CsvFile) -> bool:
    return file.mime_type == CSV_MIME_TYPE or file.name.lower().endswith(".csv")


def is_impression_file(file: CsvFile, vendor_keyword: str = "podscribe") -> bool:
    """Vendor impression/visitor export, by file name or by header."""
    header = file.header_line
    if vendor_keyword and vendor_keyword.lower() in file.name.lower():
        return True
    return "impression" in header and ("visitor" in header or "unique" in header)


def is_primary_file(file: CsvFile) -> bool:
    """Primary metrics export: header mentions both geo and spend."""
    header = file.header_line
    return "geo" in header and "spend" in header


def classify_files(files, vendor_keyword: str = "podscribe") -> FileSelection:
    """Split a folder listing into impression, primary and other CSVs.

    Non-CSV files are ignored.  ``others`` holds every CSV that is not the
    selected metrics file.
    """
    csvs = [f for f in files if is_csv(f)]
    selection = FileSelection()
    for f in csvs:
        if selection.impression is None and is_impression_file(f, vendor_keyword):
            selection.impression = f
        elif selection.primary is None and is_primary_file(f):
            selection.primary = f
    metrics = selection.metrics
    selection.others = [f for f in csvs if f is not metrics]
    if metrics is not None:
        logger.info("Selected metrics file %s (%d other CSV file(s))",
                    metrics.name, len(selection.others))
    return selection

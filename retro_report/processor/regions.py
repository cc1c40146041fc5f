"""Country code to region mapping.

The mapping table is maintained by hand in a spreadsheet tab with (at
least) a ``2-ISO`` column holding two-letter country codes and a
``Region`` column holding the display name::

    Country        | 2-ISO | Region
    United States  | US    | North America
    United Kingdom | GB    | Europe
"""

import logging

from ..errors import ConfigurationError
from ..schema.models import UNKNOWN

logger = logging.getLogger(__name__)

CODE_COLUMN = "2-iso"
REGION_COLUMN = "region"


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def build_region_map(table) -> dict[str, str]:
    """Build a lower-case code -> region mapping from a header-first table.

    Both columns are required: a header missing either one is rejected,
    not only a header missing both, since a table with one of the two
    cannot map anything.

    Raises:
        ConfigurationError: If the header row lacks the ``2-ISO`` or
            ``Region`` column (matched case-insensitively).
    """
    if not table:
        raise ConfigurationError("Region table is empty; expected a '2-ISO' / 'Region' header row.")
    headers = [_text(h).lower() for h in table[0]]
    if CODE_COLUMN not in headers or REGION_COLUMN not in headers:
        raise ConfigurationError(
            f"Could not find '2-ISO' and 'Region' columns in region table header {table[0]!r}."
        )
    code_idx = headers.index(CODE_COLUMN)
    region_idx = headers.index(REGION_COLUMN)

    region_map: dict[str, str] = {}
    for row in table[1:]:
        if len(row) <= max(code_idx, region_idx):
            continue
        code = _text(row[code_idx]).lower()
        region = _text(row[region_idx])
        if code and region:
            region_map[code] = region  # last write wins on duplicates

    logger.info("Loaded %d country-to-region mappings", len(region_map))
    return region_map


def lookup_region(region_map: dict[str, str], code) -> str:
    """Region name for a geo code, or "Unknown"."""
    key = _text(code).lower()
    if not key:
        return UNKNOWN
    return region_map.get(key, UNKNOWN)

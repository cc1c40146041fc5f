"""Value formatting for the delimited-text report.

- Counts: thousands separators, up to 3 fraction digits, trailing zeros dropped
- Currency: <symbol>X,XXX.XX (fixed 2 decimals)
- Cells: wrapped in double quotes when they contain a comma, quote or line break,
  with embedded quotes doubled
"""

import math


def format_count(value: float | int | None) -> str:
    """Format an impressions/visitors total with comma separators.

    1234 -> 1,234
    1234.5 -> 1,234.5
    None / NaN -> 0
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "0"
    if float(value) == int(value):
        return f"{int(value):,}"
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_money(value: float | int | None, symbol: str = "$") -> str:
    """Format a currency total with a symbol prefix and 2 decimals."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        value = 0.0
    if round(value, 2) == 0:
        value = 0.0
    return f"{symbol}{value:,.2f}"


def escape_cell(value) -> str:
    """Escape a value for a comma-delimited line."""
    s = str(value)
    if any(ch in s for ch in ',"\r\n'):
        return '"' + s.replace('"', '""') + '"'
    return s


def format_line(cells) -> str:
    """Join escaped cells into one delimited line (no trailing newline)."""
    return ",".join(escape_cell(c) for c in cells)

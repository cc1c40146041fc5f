"""Schema package — typed records, formatting and configuration.

Provides the contract between the ingestion, aggregation and rendering
layers:

- models.py: Core dataclasses (Row, ColumnIndex, AggregationBucket, etc.)
- formatting.py: Count / currency formatting and delimited-text escaping
- loader.py: YAML serialization/deserialization of ReportConfig
"""

from .formatting import escape_cell, format_count, format_line, format_money
from .loader import (
    DEFAULT_FALLBACK_RATE,
    ConfluenceConfig,
    RateServiceConfig,
    RegionSheetConfig,
    ReportConfig,
    load_config,
    save_config,
)
from .models import (
    UNKNOWN,
    UNRESOLVED,
    AggregateSnapshot,
    AggregationBucket,
    ColumnIndex,
    CsvFile,
    FileSelection,
    Row,
    ShowSource,
)

__all__ = [
    # Models
    "AggregateSnapshot",
    "AggregationBucket",
    "ColumnIndex",
    "CsvFile",
    "FileSelection",
    "Row",
    "ShowSource",
    "UNKNOWN",
    "UNRESOLVED",
    # Config
    "DEFAULT_FALLBACK_RATE",
    "ConfluenceConfig",
    "RateServiceConfig",
    "RegionSheetConfig",
    "ReportConfig",
    "load_config",
    "save_config",
    # Formatting
    "escape_cell",
    "format_count",
    "format_line",
    "format_money",
]

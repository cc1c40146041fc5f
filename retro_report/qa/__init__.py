"""QA validation package for the audio retro report.

Validates rendered report text: title, section order, column headers,
row shapes, month ordering, and totals against the source aggregates.
"""

from .validator import (
    Issue,
    QAResult,
    ReportValidator,
    validate_report,
)

__all__ = [
    "Issue",
    "QAResult",
    "ReportValidator",
    "validate_report",
]

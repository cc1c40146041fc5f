"""Report generator module for the audio retro report."""

from .report import (
    SECTION_HEADINGS,
    ReportRenderer,
    render_raw_files,
)

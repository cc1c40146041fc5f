"""QA validator — inspects rendered report text against its layout contract.

Validates that a rendered report has the expected title and section
headings in order, exact column headers, well-formed data rows, and a
monthly section whose keys are ascending ``YYYY-MM`` values.  When the
snapshot that produced the report is supplied, row counts and totals are
cross-checked against it as well.

Usage::

    from retro_report.qa.validator import ReportValidator

    validator = ReportValidator(renderer)
    result = validator.validate(text, snapshot)
    assert result.passed, result.summary()
"""

import csv
import io
import math
import re
from dataclasses import dataclass, field

from ..generator.report import (
    MONTHLY_HEADING,
    PUBLISHER_HEADING,
    REGION_HEADING,
    SECTION_HEADINGS,
    SHOWS_HEADING,
    ReportRenderer,
)
from ..schema.formatting import format_line
from ..schema.models import UNKNOWN, AggregateSnapshot


MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")
METRIC_COLUMNS = 5


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Issue:
    """A single QA issue found during validation."""
    severity: str       # "error" or "warning"
    section: str        # "" for report-level issues
    line_no: int        # 1-based; 0 when not tied to a line
    category: str       # e.g. "heading", "header", "columns", "order"
    message: str

    def __str__(self) -> str:
        loc = self.section or "report"
        if self.line_no:
            loc += f" line {self.line_no}"
        return f"[{self.severity.upper()}] {loc}: {self.message}"


@dataclass
class QAResult:
    """Aggregated result of QA validation."""
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def summary(self) -> str:
        """One-line summary string."""
        status = "PASS" if self.passed else "FAIL"
        return (
            f"QA {status}: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)"
        )

    def report(self) -> str:
        """Multi-line report of all issues."""
        lines = [self.summary()]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@dataclass
class _Section:
    heading: str
    line_no: int
    header: str = ""
    header_line_no: int = 0
    rows: list[tuple[int, list[str]]] = field(default_factory=list)


def _split_cells(line: str) -> list[str]:
    return next(csv.reader(io.StringIO(line)), [])


def _parse_number(text: str) -> float:
    """Parse a rendered count or money cell; NaN when it is not numeric."""
    cleaned = re.sub(r"[^0-9.\-]", "", text)
    try:
        return float(cleaned)
    except ValueError:
        return math.nan


def _split_sections(lines: list[str]) -> list[_Section]:
    sections: list[_Section] = []
    current = None
    pending = None  # (line_no, text) of a row whose quoted cell spans lines
    for no, line in enumerate(lines, start=1):
        if pending is not None:
            start, record = pending[0], pending[1] + "\n" + line
            if record.count('"') % 2:
                pending = (start, record)
            else:
                pending = None
                current.rows.append((start, _split_cells(record)))
            continue
        if line.startswith("## "):
            current = _Section(heading=line, line_no=no)
            sections.append(current)
        elif line.startswith("# "):
            # Title or a trailing appendix ends the current section
            current = None
        elif current is not None and line.strip():
            if not current.header:
                current.header = line
                current.header_line_no = no
            elif line.count('"') % 2:
                pending = (no, line)
            else:
                current.rows.append((no, _split_cells(line)))
    if pending is not None:
        current.rows.append((pending[0], _split_cells(pending[1])))
    return sections


# ---------------------------------------------------------------------------
# ReportValidator
# ---------------------------------------------------------------------------

class ReportValidator:
    """Validates rendered report text.

    Parameters
    ----------
    renderer : ReportRenderer
        The renderer whose title and currencies produced the report.
    """

    def __init__(self, renderer: ReportRenderer | None = None) -> None:
        self.renderer = renderer or ReportRenderer()

    def expected_headers(self) -> dict[str, str]:
        r = self.renderer
        return {
            MONTHLY_HEADING: r.metric_header("Month"),
            PUBLISHER_HEADING: r.metric_header("Publisher"),
            REGION_HEADING: r.metric_header("Region"),
            SHOWS_HEADING: format_line(["Publisher", "Shows"]),
        }

    def validate(self, text: str,
                 snapshot: AggregateSnapshot | None = None) -> QAResult:
        """Run all validation checks on rendered report *text*.

        Parameters
        ----------
        text : str
            Output of ``ReportRenderer.render``.
        snapshot : AggregateSnapshot, optional
            The aggregates that were rendered; enables cross-checks.
        """
        result = QAResult()
        lines = text.splitlines()

        self._check_title(lines, result)
        sections = [s for s in _split_sections(lines) if s.heading in SECTION_HEADINGS]
        self._check_section_order(sections, result)

        headers = self.expected_headers()
        for section in sections:
            self._check_header(section, headers[section.heading], result)
            self._check_columns(section, result)

        by_heading = {s.heading: s for s in sections}
        if MONTHLY_HEADING in by_heading:
            self._check_months(by_heading[MONTHLY_HEADING], result)
        for heading in (PUBLISHER_HEADING, REGION_HEADING):
            if heading in by_heading:
                self._check_ranking(by_heading[heading], result)

        if snapshot is not None and MONTHLY_HEADING in by_heading:
            self._check_against_snapshot(by_heading[MONTHLY_HEADING], snapshot, result)
        return result

    # ------------------------------------------------------------------
    # Report-level checks
    # ------------------------------------------------------------------

    def _check_title(self, lines: list[str], result: QAResult) -> None:
        expected = f"# {self.renderer.title}"
        if not lines or lines[0] != expected:
            found = lines[0] if lines else "<empty>"
            result.issues.append(Issue(
                severity="error",
                section="",
                line_no=1,
                category="title",
                message=f"Expected title '{expected}', found '{found[:60]}'",
            ))

    def _check_section_order(self, sections: list[_Section],
                             result: QAResult) -> None:
        found = [s.heading for s in sections]
        if found == list(SECTION_HEADINGS):
            return
        missing = [h for h in SECTION_HEADINGS if h not in found]
        if missing:
            message = "Missing section(s): " + ", ".join(h[3:] for h in missing)
        else:
            message = "Sections out of order: " + ", ".join(h[3:] for h in found)
        result.issues.append(Issue(
            severity="error",
            section="",
            line_no=0,
            category="heading",
            message=message,
        ))

    # ------------------------------------------------------------------
    # Section-level checks
    # ------------------------------------------------------------------

    def _check_header(self, section: _Section, expected: str,
                      result: QAResult) -> None:
        if section.header != expected:
            result.issues.append(Issue(
                severity="error",
                section=section.heading[3:],
                line_no=section.header_line_no or section.line_no,
                category="header",
                message=f"Expected header '{expected}', found '{section.header}'",
            ))

    def _check_columns(self, section: _Section, result: QAResult) -> None:
        is_shows = section.heading == SHOWS_HEADING
        for no, cells in section.rows:
            if is_shows:
                ok = len(cells) >= 2
                expected = "at least 2"
            else:
                ok = len(cells) == METRIC_COLUMNS
                expected = str(METRIC_COLUMNS)
            if not ok:
                result.issues.append(Issue(
                    severity="error",
                    section=section.heading[3:],
                    line_no=no,
                    category="columns",
                    message=f"Expected {expected} columns, got {len(cells)}",
                ))

    def _check_months(self, section: _Section, result: QAResult) -> None:
        keys = [cells[0] for _, cells in section.rows if cells]
        for no, cells in section.rows:
            if cells and not (MONTH_KEY_RE.match(cells[0]) or cells[0] == UNKNOWN):
                result.issues.append(Issue(
                    severity="error",
                    section=section.heading[3:],
                    line_no=no,
                    category="month_key",
                    message=f"Invalid month key '{cells[0]}'",
                ))
        if keys != sorted(keys):
            result.issues.append(Issue(
                severity="error",
                section=section.heading[3:],
                line_no=section.line_no,
                category="order",
                message="Months are not in ascending order",
            ))

    def _check_ranking(self, section: _Section, result: QAResult) -> None:
        """Rows should be ranked by impressions, highest first."""
        impressions = [
            _parse_number(cells[1]) for _, cells in section.rows
            if len(cells) == METRIC_COLUMNS
        ]
        for prev, cur in zip(impressions, impressions[1:]):
            if cur > prev:
                result.issues.append(Issue(
                    severity="warning",
                    section=section.heading[3:],
                    line_no=section.line_no,
                    category="order",
                    message="Rows are not ranked by impressions",
                ))
                return

    def _check_against_snapshot(self, section: _Section,
                                snapshot: AggregateSnapshot,
                                result: QAResult) -> None:
        if len(section.rows) != len(snapshot.by_month):
            result.issues.append(Issue(
                severity="error",
                section=section.heading[3:],
                line_no=section.line_no,
                category="row_count",
                message=(
                    f"Expected {len(snapshot.by_month)} month rows, "
                    f"got {len(section.rows)}"
                ),
            ))
            return

        rendered = sum(
            _parse_number(cells[3]) for _, cells in section.rows
            if len(cells) == METRIC_COLUMNS
        )
        # Each rendered row is rounded to cents
        tolerance = 0.005 * max(len(section.rows), 1) + 1e-6
        if math.isnan(rendered) or abs(rendered - snapshot.total.spend_source) > tolerance:
            result.issues.append(Issue(
                severity="warning",
                section=section.heading[3:],
                line_no=section.line_no,
                category="totals",
                message=(
                    f"Monthly spend sums to {rendered:.2f}, "
                    f"total is {snapshot.total.spend_source:.2f}"
                ),
            ))


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------

def validate_report(text: str, snapshot: AggregateSnapshot | None = None,
                    renderer: ReportRenderer | None = None) -> QAResult:
    """One-shot convenience: validate rendered report text."""
    return ReportValidator(renderer).validate(text, snapshot)

"""
Report Formatter

Renders a review report as plain text for the terminal: findings grouped
by file, followed by a severity summary.
"""

import json
import logging
from typing import List

from ..models.finding import Finding, ReviewSummary
from ..review.aggregator import ReviewReport


logger = logging.getLogger(__name__)


class ReportFormatter:
    """
    Formats review reports for terminal output.

    Quiet mode drops the header line and keeps only the findings and summary.
    """

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def format(self, report: ReviewReport) -> str:
        """Render the whole report."""
        if not report.findings:
            lines = ["No issues found!"]
            if report.interrupted:
                lines.append("(review interrupted, results are partial)")
            return "\n".join(lines)

        grouped = report.findings_by_file()
        lines = []

        if not self.quiet:
            lines.append(f"Analysis results ({len(grouped)} files):")

        for file_path, findings in grouped.items():
            lines.append("")
            lines.append(file_path)
            lines.extend(self.format_findings(findings))

        lines.append("")
        lines.append(f"Summary: {self.format_summary(report.summary)}")
        if report.interrupted:
            lines.append("(review interrupted, results are partial)")

        return "\n".join(lines)

    def format_findings(self, findings: List[Finding]) -> List[str]:
        lines = []
        for finding in findings:
            line_info = f" (line {finding.line})" if finding.line else ""
            category_info = f" [{finding.category}]" if finding.category else ""
            lines.append(f"  {finding.severity.value.upper()}: {finding.message}{line_info}{category_info}")
            if finding.suggestion:
                lines.append(f"    Suggestion: {finding.suggestion}")
        return lines

    def format_summary(self, summary: ReviewSummary) -> str:
        if summary.total == 0:
            return "no issues"
        return f"{summary.errors} errors, {summary.warnings} warnings, {summary.info} info"

    def format_json(self, report: ReviewReport) -> str:
        return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)

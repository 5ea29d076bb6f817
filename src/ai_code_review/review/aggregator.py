"""
Finding Aggregator

Merges per-file outcomes into the final report: materializes skips,
failures and malformed replies as synthetic findings, orders findings
by file and severity, and counts them.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..models.finding import Finding, ReviewSummary, Severity
from ..models.service import ParsedMalformed, ParseOutcome
from ..llm.recovery import malformed_finding
from .eligibility import EligibilityDecision


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzedFile:
    """The model was asked about the file and its reply was parsed."""
    path: str
    outcome: ParseOutcome


@dataclass(frozen=True)
class SkippedFile:
    """The file was not submitted (binary or over the size ceiling)."""
    path: str
    decision: EligibilityDecision
    size_bytes: Optional[int] = None
    limit_bytes: Optional[int] = None

    def __post_init__(self):
        """데이터 검증"""
        if self.decision not in (EligibilityDecision.SKIP_BINARY, EligibilityDecision.SKIP_TOO_LARGE):
            raise ValueError(f"Unreported skip decision: {self.decision.value}")


@dataclass(frozen=True)
class FailedFile:
    """The analysis request for the file failed (timeout, transport error)."""
    path: str
    cause: str


FileOutcome = Union[AnalyzedFile, SkippedFile, FailedFile]


@dataclass
class ReviewReport:
    """전체 리뷰 결과"""
    findings: List[Finding]
    summary: ReviewSummary
    files_analyzed: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    interrupted: bool = False

    @property
    def has_errors(self) -> bool:
        return self.summary.has_errors

    def file_paths(self) -> List[str]:
        """Files with at least one finding, in report order."""
        return list(self.findings_by_file().keys())

    def findings_by_file(self) -> Dict[str, List[Finding]]:
        grouped: Dict[str, List[Finding]] = OrderedDict()
        for finding in self.findings:
            grouped.setdefault(finding.file_path, []).append(finding)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            'findings': [f.to_dict() for f in self.findings],
            'summary': self.summary.to_dict(),
            'files_analyzed': self.files_analyzed,
            'files_skipped': self.files_skipped,
            'files_failed': self.files_failed,
            'interrupted': self.interrupted,
        }


def findings_for(outcome: FileOutcome) -> List[Finding]:
    """Materialize one per-file outcome as findings."""
    if isinstance(outcome, AnalyzedFile):
        if isinstance(outcome.outcome, ParsedMalformed):
            return [malformed_finding(outcome.path)]
        return list(outcome.outcome.findings)

    if isinstance(outcome, SkippedFile):
        if outcome.decision is EligibilityDecision.SKIP_BINARY:
            return [Finding(
                file_path=outcome.path,
                severity=Severity.INFO,
                message="Binary file skipped",
            )]
        return [Finding(
            file_path=outcome.path,
            severity=Severity.WARNING,
            message=(
                f"File too large for analysis ({outcome.size_bytes} bytes, "
                f"limit: {outcome.limit_bytes} bytes)"
            ),
        )]

    if isinstance(outcome, FailedFile):
        return [Finding(
            file_path=outcome.path,
            severity=Severity.ERROR,
            message=f"Failed to analyze file: {outcome.cause}",
        )]

    raise TypeError(f"Unknown file outcome: {outcome!r}")


class FindingAggregator:
    """
    Accumulates per-file outcomes for a single run.

    Findings are grouped by file in first-seen order and stably sorted by
    severity within each file.
    """

    def __init__(self):
        self._by_file: Dict[str, List[Finding]] = OrderedDict()
        self.files_analyzed = 0
        self.files_skipped = 0
        self.files_failed = 0

    def add(self, outcome: FileOutcome) -> List[Finding]:
        """Record one outcome and return the findings it produced."""
        findings = findings_for(outcome)

        if isinstance(outcome, AnalyzedFile):
            self.files_analyzed += 1
        elif isinstance(outcome, SkippedFile):
            self.files_skipped += 1
        else:
            self.files_failed += 1

        for finding in findings:
            self._by_file.setdefault(finding.file_path, []).append(finding)

        return findings

    def build(self, interrupted: bool = False) -> ReviewReport:
        """
        Produce the ordered report.

        Args:
            interrupted: Whether the run stopped before every file was processed

        Returns:
            ReviewReport
        """
        ordered = []
        for file_findings in self._by_file.values():
            ordered.extend(sorted(file_findings, key=lambda f: f.severity.rank))

        summary = summarize(ordered)
        logger.info(
            f"Report: {summary.errors} errors, {summary.warnings} warnings, "
            f"{summary.info} info across {len(self._by_file)} files"
        )

        return ReviewReport(
            findings=ordered,
            summary=summary,
            files_analyzed=self.files_analyzed,
            files_skipped=self.files_skipped,
            files_failed=self.files_failed,
            interrupted=interrupted,
        )


def summarize(findings: List[Finding]) -> ReviewSummary:
    """Count findings per severity."""
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity] += 1

    return ReviewSummary(
        errors=counts[Severity.ERROR],
        warnings=counts[Severity.WARNING],
        info=counts[Severity.INFO],
    )

"""
Review Pipeline

Main interface that orchestrates the review run: change records are
filtered, sent to the model one at a time, and aggregated into a report.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ..config import PipelineConfig
from ..git.parser import DiffExtractor, LocalFileSystem
from ..git.source import GitSource
from ..llm.client import ModelClient
from ..models.change import ChangeRecord
from .aggregator import AnalyzedFile, FailedFile, FileOutcome, FindingAggregator, ReviewReport, SkippedFile
from .eligibility import EligibilityDecision, FilterRules, partition


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """Reported to the observer after each processed file."""
    index: int
    total: int
    path: str
    outcome: FileOutcome


ProgressObserver = Callable[[ProgressEvent], None]


class ReviewPipeline:
    """
    Sequential diff-to-finding pipeline.

    Orchestrates the review process:
    1. Collect per-file diffs and build change records
    2. Decide eligibility for each record
    3. Ask the model about each eligible file, one request at a time
    4. Aggregate findings into an ordered report
    """

    def __init__(
        self,
        config: PipelineConfig,
        client: Optional[ModelClient] = None,
        extractor: Optional[DiffExtractor] = None,
    ):
        """
        Initialize review pipeline.

        Args:
            config: Resolved pipeline configuration
            client: Model client (default: built from config)
            extractor: Diff extractor (default: rooted at the source's work tree)
        """
        self.config = config
        self.client = client or ModelClient(config)
        self.extractor = extractor
        self.rules = FilterRules.from_patterns(config.include_patterns, config.exclude_patterns)

    def collect(
        self,
        source: GitSource,
        mode: str,
        commit: Optional[str] = None,
        base: Optional[str] = None,
    ) -> List[ChangeRecord]:
        """
        Build change records from a version-control source.

        Raises:
            RepositoryUnavailable: If the repository cannot be queried
        """
        logger.info(f"Collecting {mode} changes from {source.repo_path}")
        file_diffs = source.get_changes(mode, commit=commit, base=base)
        extractor = self.extractor or DiffExtractor(LocalFileSystem(source.top_level or source.repo_path))
        return extractor.extract_all(file_diffs)

    def preflight(self) -> None:
        """Fail fast when the service or the model is missing."""
        self.client.ensure_available()

    def iter_outcomes(
        self,
        records: Sequence[ChangeRecord],
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[FileOutcome]:
        """
        Yield one outcome per reported file, in input order.

        Pattern-excluded files yield nothing. Cancellation is checked
        before every model request.
        """
        decided = partition(records, self.rules, self.config.max_file_size)
        return self._iter_decided(decided, cancel_event)

    def _iter_decided(
        self,
        decided: List[Tuple[EligibilityDecision, ChangeRecord]],
        cancel_event: Optional[threading.Event],
    ) -> Iterator[FileOutcome]:
        for decision, record in decided:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Review cancelled, not issuing further requests")
                return

            if decision is EligibilityDecision.SKIP_BINARY:
                logger.info(f"Skipping binary file {record.path}")
                yield SkippedFile(path=record.path, decision=decision)
                continue

            if decision is EligibilityDecision.SKIP_TOO_LARGE:
                logger.info(f"Skipping {record.path}: {record.size_bytes} bytes exceeds limit")
                yield SkippedFile(
                    path=record.path,
                    decision=decision,
                    size_bytes=record.size_bytes,
                    limit_bytes=self.config.max_file_size,
                )
                continue

            yield self._analyze(record)

    def _analyze(self, record: ChangeRecord) -> FileOutcome:
        try:
            return AnalyzedFile(path=record.path, outcome=self.client.analyze(record))
        except Exception as e:
            logger.error(f"Error analyzing file {record.path}: {e}")
            return FailedFile(path=record.path, cause=str(e) or type(e).__name__)

    def run(
        self,
        records: Sequence[ChangeRecord],
        observer: Optional[ProgressObserver] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReviewReport:
        """
        Review all records and build the report.

        Args:
            records: Change records to review
            observer: Called after each processed file
            cancel_event: When set, the run stops before the next request

        Returns:
            ReviewReport; on cancellation or interrupt, the partial report
        """
        aggregator = FindingAggregator()
        decided = partition(records, self.rules, self.config.max_file_size)
        total = len(decided)
        processed = 0
        interrupted = False
        outcomes = self._iter_decided(decided, cancel_event)

        try:
            for outcome in outcomes:
                aggregator.add(outcome)
                processed += 1
                if observer is not None:
                    observer(ProgressEvent(index=processed, total=total, path=outcome.path, outcome=outcome))
        except KeyboardInterrupt:
            logger.warning("Review interrupted by user")
            interrupted = True
        finally:
            outcomes.close()

        if processed < total:
            interrupted = True

        return aggregator.build(interrupted=interrupted)

    def review(
        self,
        source: GitSource,
        mode: str,
        commit: Optional[str] = None,
        base: Optional[str] = None,
        observer: Optional[ProgressObserver] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReviewReport:
        """Collect changes and run the review in one call."""
        records = self.collect(source, mode, commit=commit, base=base)
        return self.run(records, observer=observer, cancel_event=cancel_event)

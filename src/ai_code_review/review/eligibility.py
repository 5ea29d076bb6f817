"""
Eligibility Filter

Decides, per change record, whether the file is sent to the model.
Pattern rules first, then binary detection, then the size ceiling.
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from ..models.change import ChangeRecord


logger = logging.getLogger(__name__)


class EligibilityDecision(Enum):
    """Outcome of the eligibility check for one file."""
    ANALYZE = "analyze"
    SKIP_BINARY = "skip-binary"
    SKIP_TOO_LARGE = "skip-too-large"
    SKIP_PATTERN = "skip-pattern"

    @property
    def is_skip(self) -> bool:
        return self is not EligibilityDecision.ANALYZE


@dataclass(frozen=True)
class FilterRules:
    """Compiled include/exclude regular expressions."""
    include: Tuple[Pattern, ...] = ()
    exclude: Tuple[Pattern, ...] = ()

    @classmethod
    def from_patterns(
        cls,
        include_patterns: Sequence[str] = (),
        exclude_patterns: Sequence[str] = (),
    ) -> "FilterRules":
        """
        Compile pattern lists.

        Raises:
            ValueError: If a pattern is not a valid regular expression
        """
        return cls(
            include=tuple(_compile(p) for p in include_patterns),
            exclude=tuple(_compile(p) for p in exclude_patterns),
        )

    def excludes(self, path: str) -> bool:
        """True when the path is ruled out by the pattern lists."""
        if any(pattern.search(path) for pattern in self.exclude):
            return True
        if self.include and not any(pattern.search(path) for pattern in self.include):
            return True
        return False


def _compile(pattern: str) -> Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid pattern {pattern!r}: {e}") from e


def decide(
    record: ChangeRecord,
    rules: FilterRules,
    max_file_size: Optional[int] = None,
) -> EligibilityDecision:
    """
    Classify a change record; first matching rule wins.

    Args:
        record: ChangeRecord to classify
        rules: Compiled include/exclude patterns
        max_file_size: Size ceiling in bytes (None or 0 disables it)

    Returns:
        EligibilityDecision
    """
    if rules.excludes(record.path):
        return EligibilityDecision.SKIP_PATTERN

    if record.is_binary:
        return EligibilityDecision.SKIP_BINARY

    if max_file_size and record.size_bytes is not None and record.size_bytes > max_file_size:
        return EligibilityDecision.SKIP_TOO_LARGE

    return EligibilityDecision.ANALYZE


def partition(
    records: Iterable[ChangeRecord],
    rules: FilterRules,
    max_file_size: Optional[int] = None,
) -> List[Tuple[EligibilityDecision, ChangeRecord]]:
    """
    Decide every record, dropping pattern skips silently.

    Returns:
        (decision, record) pairs in input order
    """
    decided = []
    dropped = 0

    for record in records:
        decision = decide(record, rules, max_file_size)
        if decision is EligibilityDecision.SKIP_PATTERN:
            logger.debug(f"Skipping {record.path}: excluded by pattern")
            dropped += 1
            continue
        decided.append((decision, record))

    logger.info(f"Eligibility: {len(decided)} files kept, {dropped} excluded by pattern")
    return decided

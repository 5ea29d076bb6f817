"""
Diff Parser

Parses raw per-file git diff text into structured change records.
Handles new/deleted/binary detection, line counting and file size lookup.
"""

import os
import re
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from ..models.change import ChangeRecord, DiffStats, FileDiff


logger = logging.getLogger(__name__)


class FileSystemProbe(Protocol):
    """Minimal filesystem view used to populate ``size_bytes``."""

    def exists(self, path: str) -> bool:
        ...

    def size(self, path: str) -> int:
        ...


class LocalFileSystem:
    """Filesystem probe rooted at a repository working tree."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or os.getcwd())

    def exists(self, path: str) -> bool:
        return (self.root / path).is_file()

    def size(self, path: str) -> int:
        return (self.root / path).stat().st_size


class DiffExtractor:
    """
    Parser for raw git diff text.

    Converts one file's diff into a ChangeRecord. Line counts are an
    approximation: any line starting with a single '+' or '-' counts,
    hunk headers and context lines are ignored.
    """

    def __init__(self, filesystem: Optional[FileSystemProbe] = None):
        """
        Initialize diff extractor.

        Args:
            filesystem: Probe used to look up current file sizes
                (default: working tree of the current directory)
        """
        self.filesystem = filesystem or LocalFileSystem()
        self.binary_file_pattern = re.compile(r'^Binary files? .* differ$', re.MULTILINE)
        self.binary_patch_marker = 'GIT binary patch'

    def extract(
        self,
        path: str,
        diff_text: str,
        stats: Optional[DiffStats] = None,
    ) -> Optional[ChangeRecord]:
        """
        Parse a single file diff into a ChangeRecord.

        Args:
            path: Repository-relative file path
            diff_text: Raw diff text for the file
            stats: Precomputed insertion/deletion counts (commit-range mode)

        Returns:
            ChangeRecord, or None if the diff text is empty
        """
        if not diff_text or not diff_text.strip():
            logger.debug(f"Empty diff for {path}, nothing to report")
            return None

        lines = diff_text.split('\n')
        is_new = any(line.startswith('new file mode') for line in lines)
        is_deleted = any(line.startswith('deleted file mode') for line in lines)
        if is_new and is_deleted:
            logger.warning(f"Diff for {path} declares both new and deleted file, treating as deleted")
            is_new = False

        is_binary = self.is_binary_diff(diff_text)

        if stats is not None:
            additions, deletions = stats.insertions, stats.deletions
            is_binary = is_binary or stats.binary
        else:
            additions, deletions = self.count_changed_lines(lines)

        size_bytes = None if is_deleted else self._file_size(path)

        record = ChangeRecord(
            path=path,
            added_lines=additions,
            removed_lines=deletions,
            raw_change_text=diff_text,
            is_new_file=is_new,
            is_deleted_file=is_deleted,
            is_binary=is_binary,
            size_bytes=size_bytes,
        )

        logger.debug(
            f"Parsed {path}: +{additions}/-{deletions} "
            f"({record.change_type}{', binary' if is_binary else ''})"
        )
        return record

    def extract_all(self, file_diffs: Iterable[FileDiff]) -> List[ChangeRecord]:
        """Parse every file diff, dropping the ones with no actual change."""
        records = []
        for file_diff in file_diffs:
            record = self.extract(file_diff.path, file_diff.diff_text, file_diff.stats)
            if record is not None:
                records.append(record)

        logger.info(f"Extracted {len(records)} change records")
        return records

    def is_binary_diff(self, diff_text: str) -> bool:
        """Check whether the diff body carries a binary-diff marker."""
        return (
            self.binary_file_pattern.search(diff_text) is not None
            or self.binary_patch_marker in diff_text
        )

    def count_changed_lines(self, lines: List[str]):
        """
        Count added and removed lines.

        Args:
            lines: Diff text split into lines

        Returns:
            Tuple of (added, removed)
        """
        added = 0
        removed = 0

        for line in lines:
            if line.startswith('+') and not line.startswith('+++'):
                added += 1
            elif line.startswith('-') and not line.startswith('---'):
                removed += 1

        return added, removed

    def _file_size(self, path: str) -> Optional[int]:
        """Current on-disk size, or None when it cannot be determined."""
        try:
            if self.filesystem.exists(path):
                return self.filesystem.size(path)
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
        return None

"""
Change Data Models

변경 파일 관련 데이터 모델들 (one record per changed file in a diff)
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DiffStats:
    """Precomputed insertion/deletion counts from a diff summary."""
    insertions: int
    deletions: int
    binary: bool = False

    def __post_init__(self):
        """데이터 검증"""
        if self.insertions < 0 or self.deletions < 0:
            raise ValueError("Insertion and deletion counts must be non-negative")


@dataclass(frozen=True)
class FileDiff:
    """Raw diff text for one file as produced by the version-control source."""
    path: str
    diff_text: str
    stats: Optional[DiffStats] = None


@dataclass(frozen=True)
class ChangeRecord:
    """파일 변경사항"""
    path: str
    added_lines: int
    removed_lines: int
    raw_change_text: str
    is_new_file: bool = False
    is_deleted_file: bool = False
    is_binary: bool = False
    size_bytes: Optional[int] = None

    def __post_init__(self):
        """데이터 검증"""
        if not self.path.strip():
            raise ValueError("Path cannot be empty")
        if self.added_lines < 0 or self.removed_lines < 0:
            raise ValueError("Added and removed line counts must be non-negative")
        if self.is_new_file and self.is_deleted_file:
            raise ValueError("A file cannot be both new and deleted")
        if self.size_bytes is not None and self.size_bytes < 0:
            raise ValueError("Size must be non-negative")

    @property
    def change_type(self) -> str:
        """변경 유형 ('added', 'deleted', 'modified')"""
        if self.is_new_file:
            return 'added'
        if self.is_deleted_file:
            return 'deleted'
        return 'modified'

    @property
    def total_changes(self) -> int:
        return self.added_lines + self.removed_lines

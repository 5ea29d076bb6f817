"""
Git Integration Layer

This module provides local repository access: collecting per-file diffs
for the working tree, the staged index or a commit range, and parsing
them into change records.
"""

from .parser import DiffExtractor, LocalFileSystem
from .source import GitSource, WORKING_TREE, STAGED, COMMIT_RANGE

__all__ = ['DiffExtractor', 'LocalFileSystem', 'GitSource', 'WORKING_TREE', 'STAGED', 'COMMIT_RANGE']

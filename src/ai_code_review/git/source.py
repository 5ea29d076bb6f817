"""
Git Change Source

Collects per-file diffs from a local repository for the three review modes:
working tree, staged index and commit range. Shells out to the git binary.
"""

import os
import subprocess
import logging
from typing import Dict, List, Optional

from ..exceptions import RepositoryUnavailable
from ..models.change import DiffStats, FileDiff


logger = logging.getLogger(__name__)

# Hash of the empty tree, used as the base of a root commit
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

WORKING_TREE = "working-tree"
STAGED = "staged"
COMMIT_RANGE = "commit-range"


class GitCommandError(Exception):
    """A single git invocation failed."""

    def __init__(self, args: List[str], returncode: int, stderr: str):
        super().__init__(f"git {' '.join(args)} failed ({returncode}): {stderr.strip()}")
        self.returncode = returncode
        self.stderr = stderr


class GitSource:
    """
    Version-control source backed by the git command line.

    Each mode returns FileDiff objects; a file whose diff cannot be read
    is logged and skipped rather than failing the whole run.
    """

    def __init__(self, repo_path: Optional[str] = None, git_binary: str = "git"):
        """
        Initialize git source.

        Args:
            repo_path: Repository working directory (default: current directory)
            git_binary: git executable to invoke
        """
        self.repo_path = repo_path or os.getcwd()
        self.git_binary = git_binary
        self.top_level: Optional[str] = None

    def _run(self, args: List[str], ok_codes=(0,)) -> str:
        try:
            result = subprocess.run(
                [self.git_binary, '-c', 'core.quotepath=false', *args],
                cwd=self.top_level or self.repo_path,
                capture_output=True,
                text=True,
                encoding='utf-8',
                errors='replace',
            )
        except OSError as e:
            raise RepositoryUnavailable(f"Cannot run git: {e}") from e

        if result.returncode not in ok_codes:
            raise GitCommandError(args, result.returncode, result.stderr)
        return result.stdout

    def validate_repository(self) -> None:
        """
        Raise RepositoryUnavailable unless repo_path is inside a work tree.

        Also resolves the work tree root. Later git commands run from there,
        so root-relative name listings are valid pathspecs.
        """
        not_a_repository = RepositoryUnavailable(
            f"Current directory is not a Git repository: {self.repo_path}"
        )
        try:
            inside = self._run(['rev-parse', '--is-inside-work-tree']).strip() == 'true'
            if not inside:
                raise not_a_repository
            top_level = self._run(['rev-parse', '--show-toplevel']).strip()
        except GitCommandError as e:
            raise not_a_repository from e

        self.top_level = top_level

    def _list(self, args: List[str]) -> List[str]:
        try:
            output = self._run(args)
        except GitCommandError as e:
            raise RepositoryUnavailable(str(e)) from e
        return [line for line in output.splitlines() if line.strip()]

    def get_changes(self, mode: str, commit: Optional[str] = None, base: Optional[str] = None) -> List[FileDiff]:
        """Dispatch on review mode."""
        if mode == WORKING_TREE:
            return self.working_tree_changes()
        if mode == STAGED:
            return self.staged_changes()
        if mode == COMMIT_RANGE:
            return self.commit_changes(commit or 'HEAD', base)
        raise ValueError(f"Unknown change mode: {mode}")

    def working_tree_changes(self) -> List[FileDiff]:
        """Unstaged modifications of tracked files plus untracked files."""
        self.validate_repository()

        tracked = self._list(['diff', '--name-only', '--no-renames'])
        untracked = self._list(['ls-files', '--others', '--exclude-standard'])
        logger.info(f"Working tree: {len(tracked)} modified, {len(untracked)} untracked files")

        diffs = []
        for path in tracked:
            diff_text = self._file_diff(['diff', '--', path], path)
            if diff_text is not None:
                diffs.append(FileDiff(path=path, diff_text=diff_text))

        for path in untracked:
            # --no-index exits with 1 when the files differ
            diff_text = self._file_diff(
                ['diff', '--no-index', '--', os.devnull, path], path, ok_codes=(0, 1)
            )
            if diff_text is not None:
                diffs.append(FileDiff(path=path, diff_text=diff_text))

        return diffs

    def staged_changes(self) -> List[FileDiff]:
        """Changes recorded in the index."""
        self.validate_repository()

        staged = self._list(['diff', '--cached', '--name-only', '--no-renames'])
        logger.info(f"Index: {len(staged)} staged files")

        diffs = []
        for path in staged:
            diff_text = self._file_diff(['diff', '--cached', '--', path], path)
            if diff_text is not None:
                diffs.append(FileDiff(path=path, diff_text=diff_text))
        return diffs

    def commit_changes(self, commit: str = 'HEAD', base: Optional[str] = None) -> List[FileDiff]:
        """
        Changes between base and commit, with numstat statistics.

        Args:
            commit: Commit to review
            base: Base revision (default: first parent of commit, or the
                empty tree for a root commit)
        """
        self.validate_repository()
        base = base or self._parent_of(commit)

        stats = self._numstat(base, commit)
        logger.info(f"Commit range {base[:12]}..{commit}: {len(stats)} files")

        diffs = []
        for path, file_stats in stats.items():
            diff_text = self._file_diff(['diff', '--no-renames', base, commit, '--', path], path)
            if diff_text is not None:
                diffs.append(FileDiff(path=path, diff_text=diff_text, stats=file_stats))
        return diffs

    def _parent_of(self, commit: str) -> str:
        try:
            self._run(['rev-parse', '--verify', '--quiet', f'{commit}^{{commit}}'])
        except GitCommandError as e:
            raise RepositoryUnavailable(f"Unknown commit: {commit}") from e

        try:
            return self._run(['rev-parse', '--verify', '--quiet', f'{commit}^']).strip()
        except GitCommandError:
            logger.debug(f"{commit} has no parent, diffing against the empty tree")
            return EMPTY_TREE_SHA

    def _numstat(self, base: str, commit: str) -> Dict[str, DiffStats]:
        try:
            output = self._run(['diff', '--numstat', '--no-renames', base, commit])
        except GitCommandError as e:
            raise RepositoryUnavailable(str(e)) from e

        stats = {}
        for line in output.splitlines():
            # Format: "<added>\t<deleted>\t<path>", binary files use "-"
            parts = line.split('\t', 2)
            if len(parts) != 3:
                continue
            added, deleted, path = parts
            binary = added == '-' and deleted == '-'
            stats[path] = DiffStats(
                insertions=0 if binary else int(added),
                deletions=0 if binary else int(deleted),
                binary=binary,
            )
        return stats

    def _file_diff(self, args: List[str], path: str, ok_codes=(0,)) -> Optional[str]:
        try:
            return self._run(args, ok_codes=ok_codes)
        except GitCommandError as e:
            logger.warning(f"Failed to get diff for file {path}: {e}")
            return None

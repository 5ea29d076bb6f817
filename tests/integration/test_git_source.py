"""
Git Integration Tests

Runs the git change source against a temporary repository. Skipped when
the git binary is not installed.
"""

import shutil
import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest

from ai_code_review.config import PipelineConfig
from ai_code_review.exceptions import RepositoryUnavailable
from ai_code_review.git.parser import DiffExtractor, LocalFileSystem
from ai_code_review.git.source import COMMIT_RANGE, STAGED, WORKING_TREE, GitSource
from ai_code_review.review.eligibility import EligibilityDecision, decide
from ai_code_review.review.pipeline import ReviewPipeline


pytestmark = pytest.mark.skipif(shutil.which('git') is None, reason="git binary not available")


def git(repo, *args):
    subprocess.run(['git', *args], cwd=repo, check=True, capture_output=True)


@pytest.fixture
def repo(tmp_path):
    git(tmp_path, 'init', '-q')
    git(tmp_path, 'config', 'user.email', 'dev@example.com')
    git(tmp_path, 'config', 'user.name', 'Dev')
    git(tmp_path, 'config', 'commit.gpgsign', 'false')

    (tmp_path / 'app.py').write_text("import os\n\nprint(os.getcwd())\n", encoding='utf-8')
    (tmp_path / 'old.py').write_text("print('bye')\n", encoding='utf-8')
    git(tmp_path, 'add', '.')
    git(tmp_path, 'commit', '-q', '-m', 'initial')
    return tmp_path


class TestGitSource:
    """Test the three change modes against a real repository."""

    def extract(self, repo, file_diffs):
        return DiffExtractor(filesystem=LocalFileSystem(str(repo))).extract_all(file_diffs)

    def test_not_a_repository(self, tmp_path):
        with pytest.raises(RepositoryUnavailable) as exc_info:
            GitSource(str(tmp_path)).validate_repository()
        assert any("git init" in hint for hint in exc_info.value.remediation)

    def test_clean_tree(self, repo):
        assert GitSource(str(repo)).get_changes(WORKING_TREE) == []

    def test_working_tree_changes(self, repo):
        (repo / 'app.py').write_text("import sys\n\nprint(sys.argv)\n", encoding='utf-8')
        (repo / 'new.py').write_text("x = 1\ny = 2\n", encoding='utf-8')

        records = self.extract(repo, GitSource(str(repo)).get_changes(WORKING_TREE))
        by_path = {r.path: r for r in records}

        assert set(by_path) == {'app.py', 'new.py'}
        assert (by_path['app.py'].added_lines, by_path['app.py'].removed_lines) == (2, 2)
        assert by_path['new.py'].is_new_file
        assert by_path['new.py'].added_lines == 2
        assert by_path['new.py'].size_bytes == len("x = 1\ny = 2\n")

    def test_staged_changes(self, repo):
        (repo / 'old.py').unlink()
        git(repo, 'add', '-A')
        (repo / 'app.py').write_text("unstaged\n", encoding='utf-8')

        records = self.extract(repo, GitSource(str(repo)).get_changes(STAGED))

        assert [r.path for r in records] == ['old.py']
        assert records[0].is_deleted_file
        assert records[0].size_bytes is None

    def test_root_commit(self, repo):
        records = self.extract(repo, GitSource(str(repo)).get_changes(COMMIT_RANGE, commit='HEAD'))

        assert sorted(r.path for r in records) == ['app.py', 'old.py']
        assert all(r.is_new_file for r in records)
        app = next(r for r in records if r.path == 'app.py')
        assert app.added_lines == 3

    def test_commit_with_parent(self, repo):
        (repo / 'app.py').write_text("import os\n\nprint(os.getcwd())\nprint('done')\n", encoding='utf-8')
        (repo / 'data.bin').write_bytes(b'\x00\x01\x02\x00' * 10)
        git(repo, 'add', '.')
        git(repo, 'commit', '-q', '-m', 'second')

        records = self.extract(repo, GitSource(str(repo)).get_changes(COMMIT_RANGE))
        by_path = {r.path: r for r in records}

        assert (by_path['app.py'].added_lines, by_path['app.py'].removed_lines) == (1, 0)
        assert by_path['data.bin'].is_binary

    def test_unknown_commit(self, repo):
        with pytest.raises(RepositoryUnavailable):
            GitSource(str(repo)).get_changes(COMMIT_RANGE, commit='deadbeefdeadbeef')

    def test_unknown_mode(self, repo):
        with pytest.raises(ValueError):
            GitSource(str(repo)).get_changes('everything')


class TestGitSourceFromSubdirectory:
    """Test that changes are found when running below the repository root."""

    @pytest.fixture
    def nested_repo(self, repo):
        (repo / 'src').mkdir()
        (repo / 'src' / 'a.py').write_text("x = 1\n", encoding='utf-8')
        git(repo, 'add', '.')
        git(repo, 'commit', '-q', '-m', 'add src')
        return repo

    def test_top_level_resolved(self, nested_repo):
        source = GitSource(str(nested_repo / 'src'))
        source.validate_repository()

        assert Path(source.top_level).resolve() == nested_repo.resolve()

    def test_working_tree_from_subdirectory(self, nested_repo, monkeypatch):
        (nested_repo / 'src' / 'a.py').write_text("x = 2\ny = 3\n", encoding='utf-8')
        monkeypatch.chdir(nested_repo / 'src')

        file_diffs = GitSource().get_changes(WORKING_TREE)

        assert [d.path for d in file_diffs] == ['src/a.py']
        assert file_diffs[0].diff_text.strip()

    def test_staged_from_subdirectory(self, nested_repo, monkeypatch):
        (nested_repo / 'src' / 'a.py').write_text("x = 2\n", encoding='utf-8')
        git(nested_repo, 'add', '-A')
        monkeypatch.chdir(nested_repo / 'src')

        file_diffs = GitSource().get_changes(STAGED)

        assert [d.path for d in file_diffs] == ['src/a.py']
        assert file_diffs[0].diff_text.strip()

    def test_collect_sizes_from_work_tree_root(self, nested_repo, monkeypatch):
        content = "x = 2\n" * 50
        (nested_repo / 'src' / 'a.py').write_text(content, encoding='utf-8')
        monkeypatch.chdir(nested_repo / 'src')

        config = PipelineConfig(
            model_url="http://localhost:11434",
            model_name="codellama:7b-instruct",
            temperature=0.0,
            max_tokens=2048,
            max_file_size=100,
            timeout_seconds=5.0,
        )
        pipeline = ReviewPipeline(config, client=Mock())
        [record] = pipeline.collect(GitSource(), WORKING_TREE)

        assert record.path == 'src/a.py'
        assert record.size_bytes == len(content)
        assert decide(record, pipeline.rules, config.max_file_size) is EligibilityDecision.SKIP_TOO_LARGE

"""
Unit tests for the eligibility filter.
"""

import pytest

from ai_code_review.config import DEFAULT_EXCLUDE_PATTERNS
from ai_code_review.models.change import ChangeRecord
from ai_code_review.review.eligibility import EligibilityDecision, FilterRules, decide, partition


def make_record(path, size=None, binary=False):
    return ChangeRecord(
        path=path,
        added_lines=1,
        removed_lines=0,
        raw_change_text="+x",
        is_binary=binary,
        size_bytes=size,
    )


class TestFilterRules:
    """Test include/exclude pattern matching."""

    def test_no_patterns_keep_everything(self):
        assert not FilterRules().excludes('anything.py')

    def test_exclude_pattern(self):
        rules = FilterRules.from_patterns(exclude_patterns=['node_modules/'])

        assert rules.excludes('web/node_modules/react/index.js')
        assert not rules.excludes('web/src/index.js')

    def test_include_patterns_restrict(self):
        rules = FilterRules.from_patterns(include_patterns=[r'\.py$'])

        assert not rules.excludes('src/app.py')
        assert rules.excludes('README.md')

    def test_exclude_wins_over_include(self):
        rules = FilterRules.from_patterns(include_patterns=[r'\.js$'], exclude_patterns=[r'\.min\.js$'])

        assert not rules.excludes('app.js')
        assert rules.excludes('app.min.js')

    def test_invalid_pattern(self):
        with pytest.raises(ValueError, match="Invalid pattern"):
            FilterRules.from_patterns(exclude_patterns=['(unclosed'])

    @pytest.mark.parametrize("path", [
        'package-lock.json',
        'assets/logo.png',
        'dist/bundle.js',
        'static/app.min.css',
        'logs/server.log',
    ])
    def test_default_excludes(self, path):
        rules = FilterRules.from_patterns(exclude_patterns=DEFAULT_EXCLUDE_PATTERNS)
        assert rules.excludes(path)


class TestDecide:
    """Test the per-record decision order."""

    def setup_method(self):
        self.rules = FilterRules.from_patterns(exclude_patterns=[r'\.lock$'])

    def test_analyze(self):
        assert decide(make_record('src/a.py', size=100), self.rules, 1000) is EligibilityDecision.ANALYZE

    def test_pattern_before_binary(self):
        record = make_record('yarn.lock', binary=True)
        assert decide(record, self.rules, 1000) is EligibilityDecision.SKIP_PATTERN

    def test_binary_before_size(self):
        record = make_record('img.bin', size=5000, binary=True)
        assert decide(record, self.rules, 1000) is EligibilityDecision.SKIP_BINARY

    def test_too_large(self):
        assert decide(make_record('big.py', size=1001), self.rules, 1000) is EligibilityDecision.SKIP_TOO_LARGE

    def test_size_at_limit_is_analyzed(self):
        assert decide(make_record('edge.py', size=1000), self.rules, 1000) is EligibilityDecision.ANALYZE

    def test_unknown_size_is_analyzed(self):
        assert decide(make_record('new.py'), self.rules, 1000) is EligibilityDecision.ANALYZE

    @pytest.mark.parametrize("limit", [None, 0])
    def test_no_size_limit(self, limit):
        assert decide(make_record('big.py', size=10 ** 9), self.rules, limit) is EligibilityDecision.ANALYZE

    def test_is_skip(self):
        assert not EligibilityDecision.ANALYZE.is_skip
        assert EligibilityDecision.SKIP_BINARY.is_skip


class TestPartition:
    def test_pattern_skips_are_dropped(self):
        rules = FilterRules.from_patterns(exclude_patterns=[r'\.lock$'])
        records = [
            make_record('a.py'),
            make_record('yarn.lock'),
            make_record('b.png', binary=True),
        ]

        decided = partition(records, rules, 1000)

        assert [(d, r.path) for d, r in decided] == [
            (EligibilityDecision.ANALYZE, 'a.py'),
            (EligibilityDecision.SKIP_BINARY, 'b.png'),
        ]

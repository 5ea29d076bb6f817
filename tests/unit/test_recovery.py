"""
Unit tests for the response recovery parser.

Covers fenced and prose-wrapped replies, truncated replies, alternative
list keys and malformed documents.
"""

import json

import pytest

from ai_code_review.llm.recovery import MALFORMED_MESSAGE, ResponseParser, closing_brackets, malformed_finding
from ai_code_review.models.finding import DEFAULT_MESSAGE, Severity
from ai_code_review.models.service import ParsedMalformed, ParsedOk


class TestResponseParser:
    """Test reply parsing."""

    def setup_method(self):
        self.parser = ResponseParser()

    def test_plain_json(self):
        reply = json.dumps({'reviews': [
            {'severity': 'error', 'line': 12, 'message': 'unsafe eval', 'category': 'security'},
            {'severity': 'info', 'message': 'Consider a constant'},
        ]})

        outcome = self.parser.parse(reply, 'src/auth.js')

        assert isinstance(outcome, ParsedOk)
        assert len(outcome.findings) == 2
        first = outcome.findings[0]
        assert first.file_path == 'src/auth.js'
        assert first.severity is Severity.ERROR
        assert first.line == 12
        assert first.category == 'security'

    def test_empty_reviews(self):
        outcome = self.parser.parse('{"reviews":[]}', 'a.py')
        assert outcome == ParsedOk(findings=[])

    def test_json_code_fence(self):
        reply = 'Here is my review:\n```json\n{"reviews":[{"severity":"warning","message":"x"}]}\n```\nThanks!'
        outcome = self.parser.parse(reply, 'a.py')

        assert [f.message for f in outcome.findings] == ['x']

    def test_unlabelled_code_fence(self):
        reply = '```\n{"reviews":[{"severity":"info","message":"y"}]}\n```'
        assert [f.message for f in self.parser.parse(reply, 'a.py').findings] == ['y']

    def test_prose_wrapped(self):
        reply = 'Sure! {"reviews":[{"severity":"error","message":"bug"}]} Let me know.'
        outcome = self.parser.parse(reply, 'a.py')

        assert outcome.findings[0].severity is Severity.ERROR

    def test_truncated_string_is_repaired(self):
        reply = '{"reviews":[{"severity":"warning","message":"ab'
        outcome = self.parser.parse(reply, 'a.py')

        assert isinstance(outcome, ParsedOk)
        assert len(outcome.findings) == 1
        assert outcome.findings[0].severity is Severity.WARNING
        assert outcome.findings[0].message == 'ab'

    def test_truncated_fence_is_repaired(self):
        reply = '```json\n{"reviews":[{"severity":"error","message":"cut off'
        outcome = self.parser.parse(reply, 'a.py')

        assert [f.message for f in outcome.findings] == ['cut off']

    def test_truncated_after_complete_entry(self):
        reply = '{"reviews":[{"severity":"error","message":"first"},{"severity":"warning","line":'
        outcome = self.parser.parse(reply, 'a.py')

        assert [f.message for f in outcome.findings] == ['first']

    @pytest.mark.parametrize("reply", [
        "",
        "I could not find any issues.",
        "{{{{",
        "]]]",
        '{"reviews": [tru',
    ])
    def test_unparseable_means_no_findings(self, reply):
        assert self.parser.parse(reply, 'a.py') == ParsedOk(findings=[])

    @pytest.mark.parametrize("reply", [
        '{"reviews": "none"}',
        '{"summary": "looks fine"}',
        '[{"severity":"error","message":"x"}]',
    ])
    def test_missing_review_list_is_malformed(self, reply):
        outcome = self.parser.parse(reply, 'a.py')

        assert isinstance(outcome, ParsedMalformed)
        assert outcome.original_text == reply

    @pytest.mark.parametrize("key", ['findings', 'issues'])
    def test_alternative_list_keys(self, key):
        reply = json.dumps({key: [{'severity': 'warning', 'message': 'alt'}]})
        assert [f.message for f in self.parser.parse(reply, 'a.py').findings] == ['alt']

    def test_entries_with_defaults(self):
        reply = '{"reviews":[{"severity":"CRITICAL","line":"7"}, "plain string note", 42, null]}'
        findings = self.parser.parse(reply, 'a.py').findings

        assert len(findings) == 2
        assert findings[0].severity is Severity.INFO
        assert findings[0].message == DEFAULT_MESSAGE
        assert findings[0].line == 7
        assert findings[1].message == 'plain string note'

    def test_never_raises_on_deep_nesting(self):
        reply = '[' * 100000
        assert self.parser.parse(reply, 'a.py') == ParsedOk(findings=[])


class TestClosingBrackets:
    @pytest.mark.parametrize("text,expected", [
        ('{"a":[1,2', ']}'),
        ('{"a":"}"', '}'),
        ('{}', ''),
        ('{"a":"b', None),
        ('{]', None),
    ])
    def test_closing_brackets(self, text, expected):
        assert closing_brackets(text) == expected


def test_malformed_finding():
    finding = malformed_finding('a.py')

    assert finding.severity is Severity.INFO
    assert finding.message == MALFORMED_MESSAGE
    assert finding.category == 'general'

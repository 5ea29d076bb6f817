"""
Unit tests for prompt building.
"""

from ai_code_review.llm.prompts import RESPONSE_FORMAT_INSTRUCTIONS, TRUNCATION_MARKER, PromptBuilder
from ai_code_review.models.change import ChangeRecord


class TestPromptBuilder:
    """Test per-file prompt construction."""

    def setup_method(self):
        self.builder = PromptBuilder("Review this code.", max_diff_chars=50)

    def test_prompt_sections(self):
        record = ChangeRecord("src/auth.js", 1, 0, "+eval(input)", is_new_file=True)
        prompt = self.builder.build_review_prompt(record)

        assert prompt.startswith("Review this code.")
        assert "File: src/auth.js" in prompt
        assert "NEW FILE" in prompt
        assert "Changes: +1 -0" in prompt
        assert "```diff\n+eval(input)\n```" in prompt
        assert prompt.endswith(RESPONSE_FORMAT_INSTRUCTIONS)

    def test_deleted_file_marker(self):
        record = ChangeRecord("old.py", 0, 2, "-a\n-b", is_deleted_file=True)
        prompt = self.builder.build_review_prompt(record)

        assert "DELETED FILE" in prompt
        assert "NEW FILE" not in prompt

    def test_short_diff_untouched(self):
        assert self.builder.truncate_diff("+x") == "+x"

    def test_long_diff_truncated(self):
        diff = "+" + "a" * 100
        truncated = self.builder.truncate_diff(diff)

        assert truncated == diff[:50] + TRUNCATION_MARKER
        assert "(file truncated)" in truncated

    def test_exact_limit_not_truncated(self):
        diff = "b" * 50
        assert self.builder.truncate_diff(diff) == diff

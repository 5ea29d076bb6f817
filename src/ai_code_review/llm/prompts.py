"""
Prompt Builder

Builds the per-file review prompt: review instructions, file identity,
the (truncated) diff body and the JSON reply contract.
"""

import logging

from ..models.change import ChangeRecord


logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 10000
TRUNCATION_MARKER = "\n... (file truncated)"

RESPONSE_FORMAT_INSTRUCTIONS = """IMPORTANT: Reply ONLY with valid JSON. No additional text before or after. Format:
{
  "reviews": [
    {
      "severity": "error",
      "line": 123,
      "message": "Short problem description",
      "suggestion": "How to fix it",
      "category": "bugs"
    }
  ]
}

Allowed severities: error, warning, info.
Allowed categories: bugs, performance, security, architecture, style.
If no issues found, return: {"reviews":[]}
Keep messages short and avoid special characters in strings."""


class PromptBuilder:
    """
    Builds review prompts for the model service.

    The diff body is cut at ``max_diff_chars`` characters with an explicit
    marker so the model knows it is looking at a partial file.
    """

    def __init__(self, review_prompt: str, max_diff_chars: int = MAX_DIFF_CHARS):
        """
        Initialize prompt builder.

        Args:
            review_prompt: Review instructions placed at the top of every prompt
            max_diff_chars: Character ceiling for the diff body
        """
        self.review_prompt = review_prompt.strip()
        self.max_diff_chars = max_diff_chars

    def build_review_prompt(self, record: ChangeRecord) -> str:
        """
        Build complete review prompt for a single changed file.

        Args:
            record: ChangeRecord to review

        Returns:
            Complete prompt string
        """
        logger.debug(f"Building review prompt for {record.path}")

        sections = [
            self.review_prompt,
            self._file_info(record),
            "Changes:\n```diff\n" + self.truncate_diff(record.raw_change_text) + "\n```",
            RESPONSE_FORMAT_INSTRUCTIONS,
        ]
        return "\n\n".join(sections)

    def truncate_diff(self, diff_text: str) -> str:
        """Cut the diff body to the character ceiling, marking the cut."""
        if len(diff_text) <= self.max_diff_chars:
            return diff_text
        return diff_text[:self.max_diff_chars] + TRUNCATION_MARKER

    def _file_info(self, record: ChangeRecord) -> str:
        lines = [f"File: {record.path}"]
        if record.is_new_file:
            lines.append("NEW FILE")
        if record.is_deleted_file:
            lines.append("DELETED FILE")
        lines.append(f"Changes: +{record.added_lines} -{record.removed_lines}")
        return "\n".join(lines)

"""
Response Recovery Parser

Recovers a structured finding list from generative model output. Replies
may be wrapped in prose or code fences, cut off by the token budget, or
otherwise syntactically broken; the parser never raises on bad input.
"""

import json
import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from ..models.finding import Finding, RawReview, Severity
from ..models.service import ParsedMalformed, ParsedOk, ParseOutcome


logger = logging.getLogger(__name__)

REVIEW_LIST_KEYS = ('reviews', 'findings', 'issues')

MALFORMED_MESSAGE = "AI analysis failed - model response was malformed"

_JSON_FENCE_PATTERN = re.compile(r'```json\s*([\s\S]*?)\s*```', re.IGNORECASE)
_ANY_FENCE_PATTERN = re.compile(r'```[\w+-]*\s*([\s\S]*?)\s*```')
_OPEN_FENCE_PATTERN = re.compile(r'```[\w+-]*[ \t]*\n?')

_UNPARSED = object()


def _decode(text: str) -> Tuple[Any, Optional[json.JSONDecodeError]]:
    """json.loads returning (value, error) instead of raising."""
    try:
        return json.loads(text), None
    except json.JSONDecodeError as e:
        return _UNPARSED, e
    except (ValueError, RecursionError):
        return _UNPARSED, None


def closing_brackets(text: str) -> Optional[str]:
    """
    Compute the brackets needed to close every open object/array.

    Args:
        text: JSON prefix

    Returns:
        Closing sequence (possibly empty), or None when the prefix ends
        inside a string or contains a mismatched bracket
    """
    stack = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == '{':
            stack.append('}')
        elif char == '[':
            stack.append(']')
        elif char in '}]':
            if not stack or stack.pop() != char:
                return None

    if in_string:
        return None
    return ''.join(reversed(stack))


class ResponseParser:
    """
    Parses raw model replies into findings.

    Pipeline: extract the JSON-looking part, try to parse it, repair an
    unterminated trailing string, fall back to the longest parseable prefix,
    and finally to an empty result. A reply that parses but carries no
    review list is reported as malformed.
    """

    def parse(self, text: str, file_path: str) -> ParseOutcome:
        """
        Parse a model reply.

        Args:
            text: Raw reply text
            file_path: File the reply is about

        Returns:
            ParsedOk with findings, or ParsedMalformed
        """
        extracted = self.extract_json_text(text or '')
        data = self.repair(extracted)

        if data is _UNPARSED:
            data = self.recover_truncated(extracted)

        if data is _UNPARSED:
            logger.debug(f"No parseable JSON in reply for {file_path}, assuming no issues")
            return ParsedOk(findings=[])

        entries = self._review_entries(data)
        if entries is None:
            logger.debug(f"Reply for {file_path} has no review list")
            return ParsedMalformed(original_text=text)

        return ParsedOk(findings=self._to_findings(entries, file_path))

    def extract_json_text(self, text: str) -> str:
        """Isolate the JSON document from surrounding prose or fences."""
        candidate = text.strip()

        match = _JSON_FENCE_PATTERN.search(candidate) or _ANY_FENCE_PATTERN.search(candidate)
        if match:
            candidate = match.group(1).strip()
        else:
            # Fence opened but never closed (reply cut off)
            opening = _OPEN_FENCE_PATTERN.search(candidate)
            if opening:
                candidate = candidate[opening.end():].strip()

        if not candidate.startswith('{'):
            start = candidate.find('{')
            if start != -1:
                end = candidate.rfind('}')
                candidate = candidate[start:end + 1] if end > start else candidate[start:]

        return candidate.strip()

    def repair(self, text: str) -> Any:
        """Parse directly, closing an unterminated trailing string once."""
        data, error = _decode(text)
        if data is not _UNPARSED:
            return data
        if error is None or not error.msg.startswith('Unterminated string'):
            return _UNPARSED

        # A dangling escape would swallow the closing quote
        trailing_backslashes = len(text) - len(text.rstrip('\\'))
        if trailing_backslashes % 2:
            text = text[:-1]

        fixed = text + '"'
        closers = closing_brackets(fixed)
        if closers:
            fixed += closers

        data, _ = _decode(fixed)
        if data is not _UNPARSED:
            logger.debug("Repaired unterminated string in model reply")
        return data

    def recover_truncated(self, text: str) -> Any:
        """Longest prefix ending at a closing bracket that parses."""
        for end in range(len(text) - 1, -1, -1):
            if text[end] not in '}]':
                continue

            prefix = text[:end + 1]
            closers = closing_brackets(prefix)
            if closers is None:
                continue

            data, _ = _decode(prefix + closers)
            if data is not _UNPARSED:
                logger.debug(f"Recovered {end + 1} of {len(text)} characters from truncated reply")
                return data

        return _UNPARSED

    def _review_entries(self, data: Any) -> Optional[List[Any]]:
        if not isinstance(data, dict):
            return None
        for key in REVIEW_LIST_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                return value
        return None

    def _to_findings(self, entries: List[Any], file_path: str) -> List[Finding]:
        findings = []

        for entry in entries:
            if isinstance(entry, str):
                if entry.strip():
                    findings.append(Finding(
                        file_path=file_path,
                        severity=Severity.INFO,
                        message=entry.strip(),
                    ))
                continue

            if not isinstance(entry, dict):
                logger.debug(f"Ignoring non-object review entry: {entry!r}")
                continue

            try:
                findings.append(RawReview.model_validate(entry).to_finding(file_path))
            except ValidationError as e:
                logger.debug(f"Ignoring invalid review entry for {file_path}: {e}")

        return findings


def malformed_finding(file_path: str) -> Finding:
    """The single informational finding standing in for a malformed reply."""
    return Finding(
        file_path=file_path,
        severity=Severity.INFO,
        message=MALFORMED_MESSAGE,
        category='general',
    )

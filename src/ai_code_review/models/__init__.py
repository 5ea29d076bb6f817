"""
Data Models

AI Code Review 시스템의 핵심 데이터 모델들
"""

from .change import ChangeRecord, DiffStats, FileDiff
from .finding import Finding, RawReview, ReviewSummary, Severity
from .service import ParsedMalformed, ParsedOk, ParseOutcome, ServiceHealth

__all__ = [
    "ChangeRecord",
    "DiffStats",
    "FileDiff",
    "Finding",
    "RawReview",
    "ReviewSummary",
    "Severity",
    "ParsedOk",
    "ParsedMalformed",
    "ParseOutcome",
    "ServiceHealth",
]

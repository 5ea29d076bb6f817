"""
AI Code Review

로컬 Git 변경 사항을 로컬 LLM으로 리뷰하는 커맨드라인 도구
"""

__version__ = "1.0.0"

from .review.pipeline import ReviewPipeline
from .review.aggregator import ReviewReport

__all__ = ["ReviewPipeline", "ReviewReport", "__version__"]

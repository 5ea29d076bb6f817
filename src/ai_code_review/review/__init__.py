"""
Review Processing Engine

This module decides which changed files are analyzed, runs the sequential
review loop and aggregates findings into the final report.
"""

from .eligibility import EligibilityDecision, FilterRules, decide
from .aggregator import FindingAggregator, ReviewReport
from .pipeline import ReviewPipeline, ProgressEvent

__all__ = [
    'EligibilityDecision',
    'FilterRules',
    'decide',
    'FindingAggregator',
    'ReviewReport',
    'ReviewPipeline',
    'ProgressEvent',
]

"""
Model Service Data Models

Health probe results and parse outcomes for generative model replies.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .finding import Finding


@dataclass(frozen=True)
class ServiceHealth:
    """Result of a model service health probe."""
    healthy: bool
    error: Optional[str] = None
    available_models: List[str] = field(default_factory=list)

    def __post_init__(self):
        """데이터 검증"""
        if not self.healthy and not self.error:
            raise ValueError("Unhealthy result must carry an error description")


@dataclass(frozen=True)
class ParsedOk:
    """The model reply yielded a (possibly empty) list of findings."""
    findings: List[Finding]


@dataclass(frozen=True)
class ParsedMalformed:
    """The model reply parsed but did not contain a list of findings."""
    original_text: str


ParseOutcome = Union[ParsedOk, ParsedMalformed]

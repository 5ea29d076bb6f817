"""
Finding Data Models

리뷰 결과 관련 데이터 모델들
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator


DEFAULT_MESSAGE = "No description"


class Severity(str, Enum):
    """Closed set of finding severities, most severe first."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def coerce(cls, value: Any) -> "Severity":
        """Map arbitrary model output onto the enum; unknown values become INFO."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.INFO

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
}


@dataclass(frozen=True)
class Finding:
    """개별 리뷰 결과"""
    file_path: str
    severity: Severity
    message: str
    line: Optional[int] = None
    suggestion: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        """데이터 검증"""
        if not isinstance(self.severity, Severity):
            raise ValueError(f"Invalid severity: {self.severity}")
        if not self.file_path.strip():
            raise ValueError("File path cannot be empty")
        if not self.message.strip():
            raise ValueError("Message cannot be empty")
        if self.line is not None and self.line <= 0:
            raise ValueError("Line number must be positive")

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """JSON 직렬화용 딕셔너리"""
        return {
            'file': self.file_path,
            'severity': self.severity.value,
            'line': self.line,
            'message': self.message,
            'suggestion': self.suggestion,
            'category': self.category,
        }


@dataclass(frozen=True)
class ReviewSummary:
    """Severity counts across a whole report."""
    errors: int = 0
    warnings: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.errors + self.warnings + self.info

    @property
    def has_errors(self) -> bool:
        return self.errors > 0

    def count(self, severity: Severity) -> int:
        return {
            Severity.ERROR: self.errors,
            Severity.WARNING: self.warnings,
            Severity.INFO: self.info,
        }[severity]

    def to_dict(self) -> Dict[str, int]:
        return {
            'error': self.errors,
            'warning': self.warnings,
            'info': self.info,
            'total': self.total,
        }


# Pydantic model for validating model replies
class RawReview(BaseModel):
    """One element of the ``reviews`` list as returned by the model."""
    model_config = ConfigDict(extra='ignore')

    severity: Severity = Severity.INFO
    line: Optional[int] = None
    message: str = DEFAULT_MESSAGE
    suggestion: Optional[str] = None
    category: Optional[str] = None

    @field_validator('severity', mode='before')
    @classmethod
    def coerce_severity(cls, v):
        return Severity.coerce(v)

    @field_validator('line', mode='before')
    @classmethod
    def coerce_line(cls, v):
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, float):
            v = int(v) if v.is_integer() else None
        elif isinstance(v, str):
            v = int(v.strip()) if v.strip().isdigit() else None
        elif not isinstance(v, int):
            return None
        if v is None or v <= 0:
            return None
        return v

    @field_validator('message', mode='before')
    @classmethod
    def default_message(cls, v):
        if v is None:
            return DEFAULT_MESSAGE
        text = str(v).strip()
        return text or DEFAULT_MESSAGE

    @field_validator('suggestion', 'category', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    def to_finding(self, file_path: str) -> Finding:
        return Finding(
            file_path=file_path,
            severity=self.severity,
            line=self.line,
            message=self.message,
            suggestion=self.suggestion,
            category=self.category,
        )

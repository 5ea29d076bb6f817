"""
Review Errors

Exception hierarchy shared by the version-control source, the model client
and the command-line entry point.
"""

from typing import List, Optional


class ReviewError(Exception):
    """Base class for all review pipeline errors."""

    def __init__(self, message: str, remediation: Optional[List[str]] = None):
        super().__init__(message)
        self.remediation = remediation or []


class RepositoryUnavailable(ReviewError):
    """The version-control source cannot be queried."""

    def __init__(self, message: str):
        super().__init__(
            message,
            remediation=[
                "Run the command inside a Git repository",
                "Or initialize one: git init",
            ],
        )


class ModelServiceError(ReviewError):
    """Model service related errors"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        remediation: Optional[List[str]] = None,
    ):
        super().__init__(message, remediation=remediation)
        self.status_code = status_code


class ServiceUnavailable(ModelServiceError):
    """The model service cannot be reached."""

    def __init__(self, message: str, model_url: Optional[str] = None):
        remediation = ["Make sure the model service is running: ollama serve"]
        if model_url:
            remediation.append(f"Check that the URL is correct: {model_url}")
        super().__init__(message, remediation=remediation)
        self.model_url = model_url


class ModelNotInstalled(ModelServiceError):
    """The service is reachable but the configured model is absent."""

    def __init__(self, model_name: str, available_models: Optional[List[str]] = None):
        self.model_name = model_name
        self.available_models = available_models or []
        available = ', '.join(self.available_models) or 'none'
        super().__init__(
            f"Model {model_name} not found. Available models: {available}",
            remediation=[f"Download the model: ollama pull {model_name}"],
        )


class AnalysisTimeout(ModelServiceError):
    """A single analysis request exceeded its time budget."""

    def __init__(self, timeout_seconds: float):
        super().__init__(f"Timeout when calling AI model (after {timeout_seconds:g}s)")
        self.timeout_seconds = timeout_seconds

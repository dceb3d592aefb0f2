"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse, HealthStatus, ReadinessStatus
from .questionnaire import (
    QuestionResponse,
    QuestionView,
    ResponseSubmissionResult,
    SessionStartResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthStatus",
    "ReadinessStatus",
    "QuestionResponse",
    "QuestionView",
    "ResponseSubmissionResult",
    "SessionStartResponse",
]

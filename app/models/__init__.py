"""SQLAlchemy models."""

from .base import Base
from .questionnaire_session import QuestionnaireSessionRecord  # noqa: F401

__all__ = [
    "Base",
    "QuestionnaireSessionRecord",
]

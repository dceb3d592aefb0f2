from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.domain.errors import SessionClosedError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_category(value: str) -> str:
    return value.strip().lower()


class Question(BaseModel):
    """Domain model for one questionnaire question"""

    id: int
    text: str
    valid_categories: tuple[str, ...]

    model_config = {"frozen": True}

    def canonical_category(self, category: Optional[str]) -> Optional[str]:
        """Return the catalog spelling of ``category`` or None when it is not accepted."""

        if not category or not category.strip():
            return None
        needle = _normalize_category(category)
        for valid in self.valid_categories:
            if _normalize_category(valid) == needle:
                return valid
        return None

    def is_valid_category(self, category: Optional[str]) -> bool:
        return self.canonical_category(category) is not None


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class UserResponse(BaseModel):
    """Accepted answer to a single question"""

    question_id: int
    transcript: str
    classified_category: str
    confidence: float
    recorded_at: datetime = Field(default_factory=utc_now)


class ClassificationResult(BaseModel):
    """Outcome of classifying one transcript against one question.

    Produced by a classifier for a single processing call and never
    persisted; only the derived :class:`UserResponse` is stored.
    """

    matched: bool = False
    category: Optional[str] = None
    confidence: float = 0.0
    retry_message: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: object) -> float:
        if value is None:
            return 0.0
        confidence = float(value)
        if not math.isfinite(confidence):
            return 0.0
        return max(0.0, min(1.0, confidence))

    @model_validator(mode="after")
    def require_category_when_matched(self) -> "ClassificationResult":
        if self.category is not None and not self.category.strip():
            self.category = None
        if self.matched and self.category is None:
            self.matched = False
        return self

    def is_valid(self, min_confidence: float) -> bool:
        """A match only counts when it names a category with enough confidence."""

        return (
            self.matched
            and self.category is not None
            and bool(self.category.strip())
            and self.confidence >= min_confidence
        )


class Session(BaseModel):
    """State of one questionnaire run, serialised as a whole into the session store."""

    session_id: str
    current_question_index: int = 0
    retry_count: int = 0
    responses: dict[int, UserResponse] = Field(default_factory=dict)
    transcript_history: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    last_modified_at: datetime = Field(default_factory=utc_now)
    status: SessionStatus = SessionStatus.ACTIVE
    max_retries_exceeded: bool = False
    version: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def _ensure_active(self) -> None:
        if not self.is_active:
            raise SessionClosedError(
                f"Session {self.session_id} is {self.status.value} and can no longer change"
            )

    def _touch(self) -> None:
        self.last_modified_at = utc_now()

    def record_response(self, response: UserResponse) -> None:
        """Store an accepted answer and move on to the next question."""

        self._ensure_active()
        self.responses[response.question_id] = response
        self.transcript_history.append(
            f"Q{response.question_id}: {response.transcript} -> {response.classified_category}"
        )
        self.current_question_index += 1
        self.retry_count = 0
        self._touch()

    def increment_retry(self, question_id: int, transcript: str = "") -> None:
        self._ensure_active()
        self.retry_count += 1
        heard = transcript or "<no speech>"
        self.transcript_history.append(
            f"Q{question_id} retry {self.retry_count}: {heard}"
        )
        self._touch()

    def mark_max_retries_exceeded(self) -> None:
        self.max_retries_exceeded = True
        self._touch()

    def complete(self) -> None:
        self._ensure_active()
        self.status = SessionStatus.COMPLETED
        self._touch()

    def expire(self) -> None:
        self.status = SessionStatus.EXPIRED
        self._touch()

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, payload: str | bytes) -> "Session":
        return cls.model_validate_json(payload)

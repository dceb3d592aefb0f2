"""Schemas for questionnaire endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.models import Question


class QuestionView(BaseModel):
    id: int
    text: str
    validCategories: List[str]

    @classmethod
    def from_question(cls, question: Optional[Question]) -> Optional["QuestionView"]:
        if question is None:
            return None
        return cls(
            id=question.id,
            text=question.text,
            validCategories=list(question.valid_categories),
        )


class SessionStartResponse(BaseModel):
    """Response schema for a newly started questionnaire session."""

    sessionId: str = Field(..., description="Opaque session identifier")
    message: str
    expiresInSeconds: int = Field(
        ..., description="Seconds of inactivity before the session expires"
    )


class QuestionResponse(BaseModel):
    """Current question plus progress information."""

    question: Optional[QuestionView] = None
    message: str
    completed: bool
    totalQuestions: int
    currentQuestionNumber: int


class ResponseSubmissionResult(BaseModel):
    """Result of processing one spoken answer."""

    status: str
    message: str
    transcript: Optional[str] = None
    nextQuestion: Optional[QuestionView] = None
    completed: bool
    confidence: float = 0.0
    retryMessage: Optional[str] = None
    retryCount: int = 0
    isSuccessful: bool = Field(
        False, description="True once every question has an accepted answer"
    )

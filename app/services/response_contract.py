"""Pydantic models for validating LLM classification replies.

The classifier asks the model for a small JSON object; this module turns
that text into a :class:`ClassificationResult` the orchestrator can trust.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from app.domain.models import ClassificationResult, Question


class ResponseContractError(RuntimeError):
    """Raised when the LLM response contract cannot be validated."""


class ClassificationResponse(BaseModel):
    matched: bool = False
    category: Optional[str] = None
    confidence: Optional[float] = Field(default=None, allow_inf_nan=False)
    retry_message: Optional[str] = Field(default=None, alias="retryMessage")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("category", mode="before")
    @classmethod
    def stringify_numeric_category(cls, value: Any) -> Any:
        # Numeric answers such as "0" sometimes come back as bare JSON numbers.
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @model_validator(mode="after")
    def normalize_fields(self) -> "ClassificationResponse":
        if self.confidence is not None:
            self.confidence = max(0.0, min(1.0, float(self.confidence)))
        if self.category is not None:
            self.category = self.category.strip() or None
        if self.retry_message is not None:
            self.retry_message = self.retry_message.strip() or None
        return self

    @classmethod
    def from_json(cls, payload: str) -> "ClassificationResponse":
        cleaned = _clean_json_payload(payload)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ResponseContractError(f"Model reply is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ResponseContractError("Model reply must be a JSON object.")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ResponseContractError(f"Model reply has an invalid shape: {exc}") from exc

    def to_result(self, question: Question) -> ClassificationResult:
        """Apply the classification contract against the question's categories."""

        confidence = self.confidence or 0.0
        category = question.canonical_category(self.category) if self.matched else None
        if category is None:
            return ClassificationResult(
                matched=False,
                category=None,
                confidence=confidence,
                retry_message=self.retry_message or default_retry_message(question),
            )
        return ClassificationResult(
            matched=True,
            category=category,
            confidence=confidence,
            retry_message=self.retry_message,
        )


def default_retry_message(question: Question) -> str:
    options = ", ".join(question.valid_categories)
    return f"Sorry, I couldn't match that to an answer. You can say: {options}."


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code blocks and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = [
    "ClassificationResponse",
    "ResponseContractError",
    "default_retry_message",
]

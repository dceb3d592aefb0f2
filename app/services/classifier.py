"""Classify spoken answers against a question's categories with Amazon Bedrock."""

from __future__ import annotations

import logging
import time
from functools import lru_cache

from app.application.interfaces import ClassifierInterface
from app.domain.errors import ClassificationFailedError
from app.domain.models import ClassificationResult, Question
from app.services.llm_client import BedrockLlmClient, LlmInvocationError
from app.services.response_contract import ClassificationResponse, ResponseContractError
from app.telemetry import CLASSIFICATION, observe_capability

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a health questionnaire response classifier. Decide whether a user's "
    "spoken answer matches one of the predefined valid categories for a question. "
    "Respond with ONLY a JSON object, no markdown and no preamble."
)


def build_classification_prompt(question: Question, transcript: str) -> str:
    categories = ", ".join(f'"{category}"' for category in question.valid_categories)
    return (
        f'Question: "{question.text}"\n'
        f"Valid categories: {categories}\n"
        f'User\'s spoken response: "{transcript.strip()}"\n\n'
        "Classification rules:\n"
        '1. Be flexible with synonyms (e.g., "pretty confident" matches "somewhat confident").\n'
        '2. Handle numbers as words or digits (e.g., "zero days" or "0" both match "0").\n'
        '3. Pay attention to negation ("not really confident" is not "very confident").\n'
        "4. Ignore filler words and minor variations.\n"
        "5. If the response clearly maps to a category, set matched=true and copy the "
        "category string exactly.\n"
        "6. If it is ambiguous or matches nothing, set matched=false, category=null and "
        "write a short, friendly retryMessage that helps the user answer, mentioning "
        "the accepted options.\n\n"
        "Respond in exactly this format:\n"
        '{"matched": true/false, "category": "exact category string or null", '
        '"confidence": 0.0-1.0, "retryMessage": "text or null"}\n\n'
        "Examples:\n"
        '- "I felt quite confident" -> {"matched": true, "category": "somewhat confident", '
        '"confidence": 0.85, "retryMessage": null}\n'
        '- "zero" -> {"matched": true, "category": "0", "confidence": 0.95, "retryMessage": null}\n'
        '- "I don\'t know" -> {"matched": false, "category": null, "confidence": 0.1, '
        '"retryMessage": "No problem. Could you pick the closest option: ..."}'
    )


class BedrockResponseClassifier(ClassifierInterface):
    """LLM-backed implementation of the classification contract."""

    def __init__(self, llm_client: BedrockLlmClient | None = None) -> None:
        self._llm_client = llm_client or BedrockLlmClient()

    async def classify(self, question: Question, transcript: str) -> ClassificationResult:
        if question is None or not transcript or not transcript.strip():
            raise ValueError("Question and response cannot be null or empty")

        logger.info("Classifying response for Q%s: '%s'", question.id, transcript)
        started = time.perf_counter()
        try:
            raw_response = await self._llm_client.invoke(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=build_classification_prompt(question, transcript),
            )
            logger.debug("Classifier raw reply: %s", raw_response)
            result = ClassificationResponse.from_json(raw_response).to_result(question)
        except (LlmInvocationError, ResponseContractError) as exc:
            observe_capability(CLASSIFICATION, False, time.perf_counter() - started)
            logger.error("Classification failed for Q%s: %s", question.id, exc)
            raise ClassificationFailedError("Failed to classify response") from exc

        observe_capability(CLASSIFICATION, True, time.perf_counter() - started)
        logger.info(
            "Classification result for Q%s: matched=%s, category=%s, confidence=%.2f",
            question.id,
            result.matched,
            result.category,
            result.confidence,
        )
        return result


@lru_cache
def get_response_classifier() -> BedrockResponseClassifier:
    """Return the lazily-instantiated Bedrock classifier singleton."""

    return BedrockResponseClassifier()


__all__ = [
    "BedrockResponseClassifier",
    "build_classification_prompt",
    "get_response_classifier",
]

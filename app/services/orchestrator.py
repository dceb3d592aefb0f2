"""Questionnaire orchestration: question progression, answer processing and retries.

Every operation loads the session from the store, changes it in memory and
writes the whole session back. A submitted answer moves through:

1. audio validation (rejects bad uploads before anything else happens),
2. speech-to-text, bounded by a timeout,
3. classification against the current question's categories,
4. the validity rule (matched, has a category, confidence >= threshold),
5. advance to the next question, or count a retry and ask again.

Failures of the speech or classification backends never abort a session;
they are turned into a retry so the user is simply asked again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import uuid4

from app.application.interfaces import (
    ClassifierInterface,
    SessionStoreInterface,
    SpeechToTextInterface,
    TextToSpeechInterface,
)
from app.config.settings import Settings, settings
from app.domain.errors import (
    ClassificationFailedError,
    SessionNotFoundError,
    TranscriptionTimeoutError,
)
from app.domain.models import ClassificationResult, Question, Session, UserResponse
from app.services.audio_validator import AudioValidator
from app.services.question_catalog import QuestionCatalog, get_question_catalog
from app.telemetry import increment_outcome

logger = logging.getLogger(__name__)
transcript_logger = logging.getLogger("app.logs.transcript")

COMPLETION_MESSAGE = (
    "Thank you for completing the questionnaire. Your responses have been recorded."
)
FALLBACK_RETRY_MESSAGE = "I didn't quite catch that. Let me repeat the question."


class ProcessingStatus(str, Enum):
    SUCCESS = "SUCCESS"
    RETRY = "RETRY"
    COMPLETED = "COMPLETED"
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"


@dataclass(frozen=True)
class OrchestratorConfig:
    """Immutable policy knobs for the orchestrator.

    ``max_retries=None`` means a question can be retried indefinitely.
    """

    confidence_threshold: float = 0.6
    max_retries: Optional[int] = None
    transcription_timeout_seconds: float = 60.0
    classification_timeout_seconds: float = 30.0
    completion_message: str = COMPLETION_MESSAGE
    fallback_retry_message: str = FALLBACK_RETRY_MESSAGE

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be within [0, 1]")
        if self.max_retries is not None and self.max_retries < 1:
            raise ValueError("max_retries must be at least 1 or None for unlimited")
        if self.transcription_timeout_seconds <= 0 or self.classification_timeout_seconds <= 0:
            raise ValueError("timeouts must be positive")

    @classmethod
    def from_settings(cls, app_settings: Settings = settings) -> "OrchestratorConfig":
        return cls(
            confidence_threshold=app_settings.questionnaire.confidence_threshold,
            max_retries=app_settings.questionnaire.max_retries,
            transcription_timeout_seconds=app_settings.transcribe.timeout_seconds,
            classification_timeout_seconds=(
                app_settings.questionnaire.classification_timeout_seconds
            ),
        )


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of one submitted answer, returned to the boundary layer."""

    status: ProcessingStatus
    session: Session
    classification: Optional[ClassificationResult]
    transcript: Optional[str]
    next_question: Optional[Question]
    message: str
    retry_message: Optional[str] = None

    @property
    def confidence(self) -> float:
        return self.classification.confidence if self.classification else 0.0

    @classmethod
    def success(
        cls,
        session: Session,
        classification: ClassificationResult,
        transcript: str,
        next_question: Question,
    ) -> "ProcessingResult":
        return cls(
            ProcessingStatus.SUCCESS,
            session,
            classification,
            transcript,
            next_question,
            "Response recorded successfully",
        )

    @classmethod
    def retry(
        cls,
        session: Session,
        question: Question,
        transcript: str,
        classification: Optional[ClassificationResult],
        retry_message: str,
    ) -> "ProcessingResult":
        return cls(
            ProcessingStatus.RETRY,
            session,
            classification,
            transcript,
            question,
            "Please try answering again",
            retry_message,
        )

    @classmethod
    def max_retries_exceeded(
        cls,
        session: Session,
        question: Question,
        transcript: str,
        classification: Optional[ClassificationResult],
        retry_message: str,
    ) -> "ProcessingResult":
        return cls(
            ProcessingStatus.MAX_RETRIES_EXCEEDED,
            session,
            classification,
            transcript,
            question,
            "Maximum retries exceeded for this question",
            retry_message,
        )

    @classmethod
    def completed(
        cls,
        session: Session,
        classification: Optional[ClassificationResult] = None,
        transcript: Optional[str] = None,
    ) -> "ProcessingResult":
        return cls(
            ProcessingStatus.COMPLETED,
            session,
            classification,
            transcript,
            None,
            "Questionnaire completed successfully",
        )


class QuestionnaireOrchestrator:
    """Drive sessions through the question catalog."""

    def __init__(
        self,
        *,
        session_store: SessionStoreInterface,
        speech_to_text: SpeechToTextInterface,
        text_to_speech: TextToSpeechInterface,
        classifier: ClassifierInterface,
        audio_validator: AudioValidator | None = None,
        catalog: QuestionCatalog | None = None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self._store = session_store
        self._stt = speech_to_text
        self._tts = text_to_speech
        self._classifier = classifier
        self._audio_validator = audio_validator or AudioValidator()
        self._catalog = catalog or get_question_catalog()
        self._config = config or OrchestratorConfig.from_settings()

    @property
    def catalog(self) -> QuestionCatalog:
        return self._catalog

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    async def start_session(self) -> str:
        session_id = str(uuid4())
        await self._store.create(session_id)
        logger.info("Started questionnaire session=%s", session_id)
        return session_id

    async def get_session(self, session_id: str) -> Session:
        session = await self._store.get(session_id)
        if not session.is_active and not session.is_completed:
            raise SessionNotFoundError(session_id)
        return session

    async def end_session(self, session_id: str) -> bool:
        return await self._store.delete(session_id)

    async def get_current_question(self, session_id: str) -> Question | None:
        session = await self.get_session(session_id)
        return await self._resolve_question(session)

    async def get_question_audio(self, session_id: str) -> bytes:
        question = await self.get_current_question(session_id)
        text = question.text if question is not None else self._config.completion_message
        return await self._tts.synthesize(text)

    async def get_retry_audio(self, message: str) -> bytes:
        return await self._tts.synthesize(message)

    async def get_responses(self, session_id: str) -> dict[int, str]:
        session = await self.get_session(session_id)
        return {
            question_id: response.classified_category
            for question_id, response in sorted(session.responses.items())
        }

    async def process_response(self, session_id: str, audio: bytes) -> ProcessingResult:
        self._audio_validator.validate(audio)

        session = await self.get_session(session_id)
        question = await self._resolve_question(session)
        if question is None:
            return self._finish(ProcessingResult.completed(session))

        logger.info(
            "Processing response for session=%s, question=%s, attempt=%s",
            session_id,
            question.id,
            session.retry_count + 1,
        )

        transcript = ""
        classification: ClassificationResult | None = None
        try:
            transcript = await self._transcribe(audio)
            if transcript:
                classification = await self._classify(question, transcript)
            else:
                logger.warning("Empty transcript for session=%s", session_id)
        except Exception as exc:
            logger.error(
                "Speech or classification backend failed for session=%s: %s",
                session_id,
                exc,
                exc_info=exc,
            )
            transcript = ""
            classification = None

        if classification is not None and classification.is_valid(
            self._config.confidence_threshold
        ):
            result = await self._handle_success(session, question, classification, transcript)
        else:
            if classification is not None:
                logger.info(
                    "Classification rejected: matched=%s, category=%s, confidence=%.2f",
                    classification.matched,
                    classification.category,
                    classification.confidence,
                )
            result = await self._handle_failure(session, question, transcript, classification)
        return self._finish(result)

    async def _resolve_question(self, session: Session) -> Question | None:
        question = self._catalog.at(session.current_question_index)
        if question is not None:
            return question
        if session.is_active:
            session.complete()
            await self._store.put(session)
            logger.info("Questionnaire completed for session=%s", session.session_id)
        return None

    async def _transcribe(self, audio: bytes) -> str:
        timeout = self._config.transcription_timeout_seconds
        try:
            transcript = await asyncio.wait_for(self._stt.transcribe(audio), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise TranscriptionTimeoutError(timeout) from exc
        return (transcript or "").strip()

    async def _classify(self, question: Question, transcript: str) -> ClassificationResult:
        try:
            return await asyncio.wait_for(
                self._classifier.classify(question, transcript),
                timeout=self._config.classification_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ClassificationFailedError("Classification timed out") from exc

    async def _handle_success(
        self,
        session: Session,
        question: Question,
        classification: ClassificationResult,
        transcript: str,
    ) -> ProcessingResult:
        session.record_response(
            UserResponse(
                question_id=question.id,
                transcript=transcript,
                classified_category=classification.category,
                confidence=classification.confidence,
            )
        )
        next_question = self._catalog.at(session.current_question_index)
        if next_question is None:
            session.complete()
        await self._store.put(session)

        logger.info(
            "Response recorded: Q%s=%s (confidence=%.2f)",
            question.id,
            classification.category,
            classification.confidence,
        )
        transcript_logger.info(
            "accepted | session=%s | question=%s | category=%s | confidence=%.2f | text=%s",
            session.session_id,
            question.id,
            classification.category,
            classification.confidence,
            transcript,
        )

        if next_question is None:
            return ProcessingResult.completed(session, classification, transcript)
        return ProcessingResult.success(session, classification, transcript, next_question)

    async def _handle_failure(
        self,
        session: Session,
        question: Question,
        transcript: str,
        classification: ClassificationResult | None,
    ) -> ProcessingResult:
        session.increment_retry(question.id, transcript)
        max_retries = self._config.max_retries
        exceeded = max_retries is not None and session.retry_count >= max_retries
        if exceeded:
            session.mark_max_retries_exceeded()
        await self._store.put(session)

        retry_message = self._retry_message(question, classification, session.retry_count)
        transcript_logger.info(
            "retry | session=%s | question=%s | attempt=%s | text=%s",
            session.session_id,
            question.id,
            session.retry_count,
            transcript,
        )

        if exceeded:
            logger.warning(
                "Max retries exceeded for session=%s, question=%s",
                session.session_id,
                question.id,
            )
            return ProcessingResult.max_retries_exceeded(
                session, question, transcript, classification, retry_message
            )

        logger.info(
            "Session=%s, question=%s, retryMessage='%s'",
            session.session_id,
            question.id,
            retry_message,
        )
        return ProcessingResult.retry(session, question, transcript, classification, retry_message)

    def _retry_message(
        self,
        question: Question,
        classification: ClassificationResult | None,
        attempt: int,
    ) -> str:
        if classification is not None and (classification.retry_message or "").strip():
            return classification.retry_message.strip()
        if self._config.max_retries is None or attempt <= 1:
            return self._config.fallback_retry_message
        if attempt == 2:
            return f"Let me ask that another way. {question.text}"
        options = ", ".join(question.valid_categories)
        return f"{question.text} Please answer with one of: {options}."

    @staticmethod
    def _finish(result: ProcessingResult) -> ProcessingResult:
        increment_outcome(result.status.value)
        return result


__all__ = [
    "COMPLETION_MESSAGE",
    "FALLBACK_RETRY_MESSAGE",
    "OrchestratorConfig",
    "ProcessingResult",
    "ProcessingStatus",
    "QuestionnaireOrchestrator",
]

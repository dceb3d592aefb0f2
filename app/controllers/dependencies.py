"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.application.interfaces import SessionStoreInterface
from app.config.settings import settings
from app.services.classifier import get_response_classifier
from app.services.orchestrator import OrchestratorConfig, QuestionnaireOrchestrator
from app.services.polly_tts import PollyTtsService, get_polly_tts_service
from app.services.question_catalog import get_question_catalog
from app.services.session_memory import InMemorySessionStore
from app.services.transcribe import get_transcribe_service


@lru_cache
def get_session_store() -> SessionStoreInterface:
    """Return the configured session store backend."""

    if settings.session.backend == "database":
        from app.database import get_session_factory
        from app.services.session_repository import SqlSessionStore

        return SqlSessionStore(get_session_factory())
    return InMemorySessionStore()


@lru_cache
def get_orchestrator() -> QuestionnaireOrchestrator:
    """Wire the orchestrator with the AWS-backed capabilities."""

    return QuestionnaireOrchestrator(
        session_store=get_session_store(),
        speech_to_text=get_transcribe_service(),
        text_to_speech=get_polly_tts_service(),
        classifier=get_response_classifier(),
        catalog=get_question_catalog(),
        config=OrchestratorConfig.from_settings(settings),
    )


def get_tts_service() -> PollyTtsService:
    return get_polly_tts_service()


OrchestratorDep = Annotated[QuestionnaireOrchestrator, Depends(get_orchestrator)]
SessionStoreDep = Annotated[SessionStoreInterface, Depends(get_session_store)]
TtsServiceDep = Annotated[PollyTtsService, Depends(get_tts_service)]


__all__ = [
    "get_orchestrator",
    "get_session_store",
    "get_tts_service",
    "OrchestratorDep",
    "SessionStoreDep",
    "TtsServiceDep",
]

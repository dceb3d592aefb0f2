"""Service layer: the questionnaire core and its external integrations."""

from .audio_validator import AudioValidator, detect_format
from .classifier import BedrockResponseClassifier, get_response_classifier
from .orchestrator import (
    OrchestratorConfig,
    ProcessingResult,
    ProcessingStatus,
    QuestionnaireOrchestrator,
)
from .polly_tts import PollyTtsService, get_polly_tts_service
from .question_catalog import QuestionCatalog, get_question_catalog
from .session_memory import InMemorySessionStore
from .session_repository import SqlSessionStore
from .transcribe import TranscribeService, get_transcribe_service

__all__ = [
    "AudioValidator",
    "detect_format",
    "BedrockResponseClassifier",
    "get_response_classifier",
    "OrchestratorConfig",
    "ProcessingResult",
    "ProcessingStatus",
    "QuestionnaireOrchestrator",
    "PollyTtsService",
    "get_polly_tts_service",
    "QuestionCatalog",
    "get_question_catalog",
    "InMemorySessionStore",
    "SqlSessionStore",
    "TranscribeService",
    "get_transcribe_service",
]

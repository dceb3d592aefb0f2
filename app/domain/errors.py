"""Error taxonomy shared by the questionnaire core and the HTTP boundary."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_AUDIO = "INVALID_AUDIO"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_CONFLICT = "SESSION_CONFLICT"
    SESSION_CLOSED = "SESSION_CLOSED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    CLASSIFICATION_FAILED = "CLASSIFICATION_FAILED"


class QuestionnaireError(RuntimeError):
    """Base class for failures the boundary layer knows how to report."""

    kind: ErrorKind = ErrorKind.SERVICE_UNAVAILABLE


class InvalidAudioError(QuestionnaireError):
    """Raised when an uploaded recording fails size or format checks."""

    kind = ErrorKind.INVALID_AUDIO


class SessionNotFoundError(QuestionnaireError):
    """Raised when a session id is unknown or its TTL has elapsed."""

    kind = ErrorKind.SESSION_NOT_FOUND

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found or expired: {session_id}")
        self.session_id = session_id


class SessionConflictError(QuestionnaireError):
    """Raised when a concurrent request already wrote a newer session version."""

    kind = ErrorKind.SESSION_CONFLICT

    def __init__(self, session_id: str, expected_version: int) -> None:
        super().__init__(
            f"Session {session_id} was modified concurrently (expected version {expected_version})"
        )
        self.session_id = session_id
        self.expected_version = expected_version


class SessionClosedError(QuestionnaireError):
    """Raised when a completed or expired session is asked to change."""

    kind = ErrorKind.SESSION_CLOSED


class ServiceUnavailableError(QuestionnaireError):
    """Raised when a speech or language backend cannot serve the request."""

    kind = ErrorKind.SERVICE_UNAVAILABLE

    def __init__(self, service: str, message: str | None = None) -> None:
        super().__init__(message or f"{service} service is unavailable")
        self.service = service


class TranscriptionTimeoutError(ServiceUnavailableError):
    """Raised when speech-to-text does not finish within its time bound."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            "Speech-to-Text",
            f"Transcription timed out after {timeout_seconds:g}s",
        )
        self.timeout_seconds = timeout_seconds


class ClassificationFailedError(QuestionnaireError):
    """Raised when the classifier cannot produce a result for a transcript."""

    kind = ErrorKind.CLASSIFICATION_FAILED


__all__ = [
    "ErrorKind",
    "QuestionnaireError",
    "InvalidAudioError",
    "SessionNotFoundError",
    "SessionConflictError",
    "SessionClosedError",
    "ServiceUnavailableError",
    "TranscriptionTimeoutError",
    "ClassificationFailedError",
]

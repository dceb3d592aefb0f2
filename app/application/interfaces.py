from abc import ABC, abstractmethod

from app.domain.models import ClassificationResult, Question, Session


class SessionStoreInterface(ABC):
    """Key/value persistence contract for questionnaire sessions with per-key TTL"""

    @abstractmethod
    async def create(self, session_id: str) -> Session:
        ...

    @abstractmethod
    async def get(self, session_id: str) -> Session:
        """Return the stored session or raise ``SessionNotFoundError``."""
        ...

    @abstractmethod
    async def put(self, session: Session) -> None:
        """Replace the stored session, refresh its TTL and bump ``session.version``."""
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        ...

    @abstractmethod
    async def exists(self, session_id: str) -> bool:
        ...

    @abstractmethod
    async def touch(self, session_id: str) -> None:
        ...


class TextToSpeechInterface(ABC):
    """Speech synthesis capability"""

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        ...


class SpeechToTextInterface(ABC):
    """Speech recognition capability; returns an empty string when nothing was said"""

    @abstractmethod
    async def transcribe(self, audio: bytes) -> str:
        ...


class ClassifierInterface(ABC):
    """Maps a transcript onto one of a question's categories"""

    @abstractmethod
    async def classify(self, question: Question, transcript: str) -> ClassificationResult:
        ...

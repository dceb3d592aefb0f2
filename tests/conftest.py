"""Shared fakes and fixtures for the questionnaire test-suite."""

from __future__ import annotations

from pathlib import Path
import sys
from collections import deque
from typing import Any, Iterable

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from app.application.interfaces import (  # noqa: E402
    ClassifierInterface,
    SpeechToTextInterface,
    TextToSpeechInterface,
)
from app.domain.errors import ServiceUnavailableError  # noqa: E402
from app.domain.models import ClassificationResult, Question  # noqa: E402
from app.services.audio_validator import AudioValidator  # noqa: E402
from app.services.orchestrator import (  # noqa: E402
    OrchestratorConfig,
    QuestionnaireOrchestrator,
)
from app.services.question_catalog import QuestionCatalog  # noqa: E402
from app.services.session_memory import InMemorySessionStore  # noqa: E402

MP3_AUDIO = b"\xff\xfb\x90\x64" + b"\x00" * 2048
WAV_AUDIO = b"RIFF" + b"\x00" * 2048

QUESTIONS = (
    Question(id=1, text="How confident do you feel?", valid_categories=("very confident", "neutral")),
    Question(id=2, text="How many active days?", valid_categories=("0", "1-3", "4-5", "6-7")),
)


def matched(category: str, confidence: float = 0.9) -> ClassificationResult:
    return ClassificationResult(matched=True, category=category, confidence=confidence)


def unmatched(retry_message: str | None = None, confidence: float = 0.1) -> ClassificationResult:
    return ClassificationResult(matched=False, confidence=confidence, retry_message=retry_message)


class FakeSpeechToText(SpeechToTextInterface):
    """Returns scripted transcripts (or raises scripted exceptions) in order."""

    def __init__(self, outcomes: Iterable[Any] = ()) -> None:
        self.outcomes = deque(outcomes)
        self.calls: list[bytes] = []

    async def transcribe(self, audio: bytes) -> str:
        self.calls.append(audio)
        outcome = self.outcomes.popleft() if self.outcomes else "some answer"
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome


class FakeClassifier(ClassifierInterface):
    """Returns scripted classification results (or raises) in order."""

    def __init__(self, outcomes: Iterable[Any] = ()) -> None:
        self.outcomes = deque(outcomes)
        self.calls: list[tuple[int, str]] = []

    async def classify(self, question: Question, transcript: str) -> ClassificationResult:
        self.calls.append((question.id, transcript))
        outcome = self.outcomes.popleft() if self.outcomes else unmatched()
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome


class FakeTextToSpeech(TextToSpeechInterface):
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.spoken: list[str] = []

    async def synthesize(self, text: str) -> bytes:
        if self.fail:
            raise ServiceUnavailableError("Text-to-Speech")
        self.spoken.append(text)
        return b"ID3" + text.encode("utf-8")

    async def ping(self) -> None:
        if self.fail:
            raise ServiceUnavailableError("Text-to-Speech")


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(ttl_seconds=1800, key_prefix="test:", clock=clock)


@pytest.fixture
def stt() -> FakeSpeechToText:
    return FakeSpeechToText()


@pytest.fixture
def classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def tts() -> FakeTextToSpeech:
    return FakeTextToSpeech()


@pytest.fixture
def catalog() -> QuestionCatalog:
    return QuestionCatalog(QUESTIONS)


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(
        confidence_threshold=0.6,
        transcription_timeout_seconds=1.0,
        classification_timeout_seconds=1.0,
    )


@pytest.fixture
def orchestrator(store, stt, tts, classifier, catalog, orchestrator_config) -> QuestionnaireOrchestrator:
    return QuestionnaireOrchestrator(
        session_store=store,
        speech_to_text=stt,
        text_to_speech=tts,
        classifier=classifier,
        audio_validator=AudioValidator(min_size_bytes=1000, max_size_bytes=10 * 1024 * 1024),
        catalog=catalog,
        config=orchestrator_config,
    )

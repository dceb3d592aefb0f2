"""Tests for the Polly and Transcribe adapters with the AWS calls stubbed out."""

from __future__ import annotations

import asyncio
import io
import subprocess
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from app.domain.errors import ServiceUnavailableError, TranscriptionTimeoutError
from app.services.polly_tts import PollyTtsService
from app.services.transcribe import TranscribeService, _FinalTranscriptHandler, iter_audio_chunks


class FakePollyClient:
    def __init__(self, audio: bytes = b"mp3-bytes", error: Exception | None = None) -> None:
        self.audio = audio
        self.error = error
        self.requests: list[dict] = []

    def synthesize_speech(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return {"AudioStream": io.BytesIO(self.audio)}

    def describe_voices(self, **kwargs):
        return {"Voices": []}


def test_polly_synthesize_uses_configured_voice():
    client = FakePollyClient()
    service = PollyTtsService(client=client, voice_id="Joanna", engine="neural", output_format="mp3")

    audio = asyncio.run(service.synthesize("How are you?"))

    assert audio == b"mp3-bytes"
    assert client.requests == [
        {"Text": "How are you?", "VoiceId": "Joanna", "OutputFormat": "mp3", "Engine": "neural"}
    ]


@pytest.mark.parametrize(
    "client",
    [
        FakePollyClient(audio=b""),
        FakePollyClient(
            error=ClientError({"Error": {"Code": "Throttling", "Message": "slow down"}}, "SynthesizeSpeech")
        ),
    ],
)
def test_polly_failures_become_service_unavailable(client):
    service = PollyTtsService(client=client)

    with pytest.raises(ServiceUnavailableError) as excinfo:
        asyncio.run(service.synthesize("Hello"))

    assert excinfo.value.service == "Text-to-Speech"


def test_polly_rejects_empty_text():
    with pytest.raises(ValueError):
        asyncio.run(PollyTtsService(client=FakePollyClient()).synthesize("  "))


def test_iter_audio_chunks_preserves_order():
    audio = bytes(range(10))

    chunks = list(iter_audio_chunks(audio, 4))

    assert chunks == [bytes([0, 1, 2, 3]), bytes([4, 5, 6, 7]), bytes([8, 9])]
    assert b"".join(chunks) == audio
    assert list(iter_audio_chunks(b"", 4)) == []
    with pytest.raises(ValueError):
        list(iter_audio_chunks(audio, 0))


def _event(*results):
    return SimpleNamespace(transcript=SimpleNamespace(results=list(results)))


def _result(text, *, partial=False, alternatives=None):
    alternatives = alternatives or [text]
    return SimpleNamespace(
        is_partial=partial,
        alternatives=[SimpleNamespace(transcript=alt) for alt in alternatives],
    )


def test_final_transcript_handler_keeps_best_final_alternatives():
    handler = _FinalTranscriptHandler(SimpleNamespace())

    async def feed():
        await handler.handle_transcript_event(_event(_result("some", partial=True)))
        await handler.handle_transcript_event(
            _event(_result("somewhat confident", alternatives=["somewhat confident", "some what"]))
        )
        await handler.handle_transcript_event(_event(_result("I think")))

    asyncio.run(feed())

    assert handler.transcript == "somewhat confident I think"


@pytest.fixture
def transcribe_service() -> TranscribeService:
    return TranscribeService(
        region="us-east-1",
        timeout_seconds=0.5,
        realtime_pacing=False,
    )


def test_transcribe_times_out(monkeypatch, transcribe_service):
    async def slow(audio):
        await asyncio.sleep(5)
        return "late"

    monkeypatch.setattr(transcribe_service, "_transcribe", slow)

    with pytest.raises(TranscriptionTimeoutError):
        asyncio.run(transcribe_service.transcribe(b"\xff\xfb" + b"\x00" * 2000))


def test_transcribe_missing_ffmpeg_is_service_unavailable(monkeypatch, transcribe_service):
    def missing(*args, **kwargs):
        raise FileNotFoundError("ffmpeg")

    monkeypatch.setattr(subprocess, "run", missing)

    with pytest.raises(ServiceUnavailableError) as excinfo:
        asyncio.run(transcribe_service.transcribe(b"RIFF" + b"\x00" * 2000))

    assert "ffmpeg is not installed" in str(excinfo.value)


def test_transcribe_silence_returns_empty_transcript(monkeypatch, transcribe_service):
    monkeypatch.setattr(
        subprocess,
        "run",
        lambda *args, **kwargs: SimpleNamespace(stdout=b"", stderr=b"no audio"),
    )

    assert asyncio.run(transcribe_service.transcribe(b"RIFF" + b"\x00" * 2000)) == ""


class _HangingResults:
    """Result stream that never yields, recording whether it was cancelled."""

    def __init__(self) -> None:
        self.cancelled = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        raise StopAsyncIteration


class _BrokenInput:
    async def send_audio_event(self, audio_chunk):
        raise RuntimeError("connection reset")

    async def end_stream(self):
        return None


def test_transcribe_stops_reading_when_sending_fails(monkeypatch, transcribe_service):
    results = _HangingResults()

    async def start_stream_transcription(**kwargs):
        return SimpleNamespace(input_stream=_BrokenInput(), output_stream=results)

    async def fake_pcm(audio):
        return b"\x00" * 6400

    monkeypatch.setattr(
        transcribe_service,
        "_client",
        SimpleNamespace(start_stream_transcription=start_stream_transcription),
    )
    monkeypatch.setattr(transcribe_service, "_convert_to_pcm", fake_pcm)

    async def scenario():
        with pytest.raises(ServiceUnavailableError):
            await transcribe_service.transcribe(b"RIFF" + b"\x00" * 2000)
        for _ in range(3):
            await asyncio.sleep(0)
        return results.cancelled

    assert asyncio.run(scenario()) is True

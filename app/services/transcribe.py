"""Amazon Transcribe integration helpers using Streaming API."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import tempfile
import time
from functools import lru_cache
from typing import Iterator

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent
from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import SpeechToTextInterface
from app.config.settings import settings
from app.domain.errors import ServiceUnavailableError, TranscriptionTimeoutError
from app.services.aws import export_credentials_to_environment
from app.telemetry import STT, observe_capability

logger = logging.getLogger(__name__)

_SERVICE_NAME = "Speech-to-Text"


def iter_audio_chunks(audio: bytes, chunk_size: int) -> Iterator[bytes]:
    """Yield ``audio`` in order as consecutive slices of at most ``chunk_size`` bytes."""

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    for offset in range(0, len(audio), chunk_size):
        yield audio[offset : offset + chunk_size]


class TranscribeService(SpeechToTextInterface):
    """High-level facade for streaming audio to Amazon Transcribe."""

    def __init__(
        self,
        region: str,
        language_code: str = settings.transcribe.language_code,
        media_sample_rate_hz: int = settings.transcribe.media_sample_rate_hz,
        chunk_size: int = settings.transcribe.chunk_size,
        timeout_seconds: float = settings.transcribe.timeout_seconds,
        realtime_pacing: bool = settings.transcribe.realtime_pacing,
    ) -> None:
        self._region = region
        self._language_code = language_code
        self._media_sample_rate_hz = media_sample_rate_hz
        self._chunk_size = chunk_size
        self._timeout_seconds = timeout_seconds
        self._realtime_pacing = realtime_pacing

        # The streaming SDK resolves credentials from the environment only.
        export_credentials_to_environment()
        self._client = TranscribeStreamingClient(region=region)

    async def transcribe(self, audio: bytes) -> str:
        """Stream audio to Transcribe and return the final transcript ("" when silent)."""

        if not audio:
            raise ValueError("Audio data cannot be empty")

        logger.info("Starting transcription for %s bytes", len(audio))
        started = time.perf_counter()
        try:
            transcript = await asyncio.wait_for(
                self._transcribe(audio),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            observe_capability(STT, False, time.perf_counter() - started)
            logger.error("Transcription timeout after %ss", self._timeout_seconds)
            raise TranscriptionTimeoutError(self._timeout_seconds) from exc
        except ServiceUnavailableError:
            observe_capability(STT, False, time.perf_counter() - started)
            raise
        except Exception as exc:
            observe_capability(STT, False, time.perf_counter() - started)
            logger.error("Streaming transcription failed: %s", exc)
            raise ServiceUnavailableError(
                _SERVICE_NAME, f"Streaming transcription failed: {exc}"
            ) from exc

        duration = time.perf_counter() - started
        observe_capability(STT, True, duration)
        logger.info("Transcription complete: '%s' (%.0fms)", transcript, duration * 1000)
        return transcript

    async def _transcribe(self, audio: bytes) -> str:
        pcm_data = await self._convert_to_pcm(audio)
        if not pcm_data:
            logger.warning("Audio conversion produced no samples; treating as silence")
            return ""

        stream = await self._client.start_stream_transcription(
            language_code=self._language_code,
            media_sample_rate_hz=self._media_sample_rate_hz,
            media_encoding="pcm",
        )
        handler = _FinalTranscriptHandler(stream.output_stream)

        async def write_chunks() -> None:
            # 16-bit mono PCM: two bytes per sample.
            bytes_per_sec = self._media_sample_rate_hz * 2
            sleep_time = self._chunk_size / bytes_per_sec if self._realtime_pacing else 0
            total_sent = 0
            for chunk in iter_audio_chunks(pcm_data, self._chunk_size):
                await stream.input_stream.send_audio_event(audio_chunk=chunk)
                total_sent += len(chunk)
                if sleep_time:
                    await asyncio.sleep(sleep_time)
            logger.debug("Streamed %s/%s bytes. Ending stream.", total_sent, len(pcm_data))
            await stream.input_stream.end_stream()

        writer = asyncio.ensure_future(write_chunks())
        reader = asyncio.ensure_future(handler.handle_events())
        try:
            await asyncio.gather(writer, reader)
        except BaseException:
            # gather leaves the sibling running when one side fails.
            for task in (writer, reader):
                task.cancel()
            raise
        return handler.transcript

    async def _convert_to_pcm(self, audio: bytes) -> bytes:
        """Convert input audio to raw PCM s16le via ffmpeg using a thread."""
        return await run_in_threadpool(self._convert_to_pcm_sync, audio)

    def _convert_to_pcm_sync(self, audio: bytes) -> bytes:
        """Synchronous ffmpeg conversion using a temporary file to support seeking."""

        with tempfile.NamedTemporaryFile(delete=False, suffix=".tmp") as tmp_file:
            tmp_file.write(audio)
            tmp_path = tmp_file.name

        try:
            process = subprocess.run(
                [
                    "ffmpeg",
                    "-y",
                    "-i", tmp_path,
                    "-f", "s16le",
                    "-ac", "1",
                    "-ar", str(self._media_sample_rate_hz),
                    "pipe:1",
                ],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
            if not process.stdout:
                logger.warning(
                    "ffmpeg produced empty output. stderr: %s",
                    process.stderr.decode("utf-8", errors="replace"),
                )
            return process.stdout
        except FileNotFoundError as exc:
            raise ServiceUnavailableError(_SERVICE_NAME, "ffmpeg is not installed") from exc
        except subprocess.CalledProcessError as exc:
            error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
            logger.error("ffmpeg failed. stderr: %s", error_msg)
            raise ServiceUnavailableError(
                _SERVICE_NAME, f"ffmpeg failed to convert audio to PCM: {error_msg}"
            ) from exc
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


class _FinalTranscriptHandler(TranscriptResultStreamHandler):
    def __init__(self, transcript_result_stream):
        super().__init__(transcript_result_stream)
        self._fragments: list[str] = []

    @property
    def transcript(self) -> str:
        return " ".join(self._fragments).strip()

    async def handle_transcript_event(self, transcript_event: TranscriptEvent):
        for result in transcript_event.transcript.results:
            if result.is_partial:
                continue
            # Alternatives are ranked; only the best one is kept.
            for alt in result.alternatives[:1]:
                text = (alt.transcript or "").strip()
                if text:
                    logger.debug("Transcript fragment: %s", text)
                    self._fragments.append(text)


@lru_cache
def get_transcribe_service() -> TranscribeService:
    """Return a lazily-instantiated transcribe service singleton."""

    return TranscribeService(region=settings.transcribe.region or settings.aws.region)


__all__ = [
    "TranscribeService",
    "get_transcribe_service",
    "iter_audio_chunks",
]

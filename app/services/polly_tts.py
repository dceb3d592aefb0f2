"""Amazon Polly speech synthesis for question prompts."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import TextToSpeechInterface
from app.config.settings import settings
from app.domain.errors import ServiceUnavailableError
from app.services.aws import create_boto3_client
from app.telemetry import TTS, observe_capability

logger = logging.getLogger(__name__)

_SERVICE_NAME = "Text-to-Speech"


class PollyTtsService(TextToSpeechInterface):
    """Turn question text into MP3 audio using Amazon Polly."""

    def __init__(
        self,
        *,
        client: Any | None = None,
        voice_id: str = settings.polly.voice_id,
        engine: str = settings.polly.engine,
        output_format: str = settings.polly.output_format,
    ) -> None:
        self._client = client or create_boto3_client(
            "polly",
            region_name=settings.polly.region,
        )
        self._voice_id = voice_id
        self._engine = engine
        self._output_format = output_format

    @property
    def client(self) -> Any:
        return self._client

    async def synthesize(self, text: str) -> bytes:
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        logger.info("Synthesizing speech for text (length: %s)", len(text))
        started = time.perf_counter()
        try:
            audio_bytes = await run_in_threadpool(self._synthesize_sync, text)
        except ServiceUnavailableError:
            observe_capability(TTS, False, time.perf_counter() - started)
            raise
        except (BotoCoreError, ClientError) as exc:
            observe_capability(TTS, False, time.perf_counter() - started)
            logger.exception("Polly synthesis failed for voice '%s'", self._voice_id)
            raise ServiceUnavailableError(
                _SERVICE_NAME, f"Failed to synthesize speech: {exc}"
            ) from exc

        duration = time.perf_counter() - started
        observe_capability(TTS, True, duration)
        logger.info(
            "Speech synthesis successful: %s bytes in %.0fms",
            len(audio_bytes),
            duration * 1000,
        )
        return audio_bytes

    def _synthesize_sync(self, text: str) -> bytes:
        response: dict[str, Any] = self._client.synthesize_speech(
            Text=text,
            VoiceId=self._voice_id,
            OutputFormat=self._output_format,
            Engine=self._engine,
        )
        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise ServiceUnavailableError(_SERVICE_NAME, "Polly returned no audio stream.")
        try:
            audio_bytes = audio_stream.read()
        finally:
            audio_stream.close()
        if not audio_bytes:
            raise ServiceUnavailableError(_SERVICE_NAME, "Polly returned an empty audio stream.")
        return audio_bytes

    async def ping(self) -> None:
        """Cheap call used by the readiness probe."""

        await run_in_threadpool(self._client.describe_voices, LanguageCode="en-US")


@lru_cache
def get_polly_tts_service() -> PollyTtsService:
    """Return the lazily-instantiated Polly service singleton."""

    return PollyTtsService()


__all__ = ["PollyTtsService", "get_polly_tts_service"]

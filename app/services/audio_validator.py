"""Upload checks applied before any speech service sees the audio."""

from __future__ import annotations

import logging
from typing import Final, Literal

from app.config.settings import settings
from app.domain.errors import InvalidAudioError

logger = logging.getLogger(__name__)

_WAV_HEADER: Final[bytes] = b"RIFF"
_MP3_FRAME_SYNC: Final[tuple[bytes, ...]] = (b"\xff\xfb", b"\xff\xf3", b"\xff\xf2")

AudioFormat = Literal["wav", "mp3"]


def detect_format(data: bytes | None) -> AudioFormat | None:
    """Sniff the container from the leading bytes."""

    if not data or len(data) < 4:
        return None
    if data[:4] == _WAV_HEADER:
        return "wav"
    if data[:2] in _MP3_FRAME_SYNC:
        return "mp3"
    return None


class AudioValidator:
    """Reject recordings that are empty, out of bounds or in an unknown container."""

    def __init__(
        self,
        *,
        min_size_bytes: int = settings.audio.min_size_bytes,
        max_size_bytes: int = settings.audio.max_size_bytes,
    ) -> None:
        self._min_size_bytes = min_size_bytes
        self._max_size_bytes = max_size_bytes

    def validate(self, data: bytes | None) -> None:
        if not data:
            raise InvalidAudioError("Audio data is empty")

        size = len(data)
        if size < self._min_size_bytes:
            raise InvalidAudioError(
                f"Audio too short: {size} bytes (minimum: {self._min_size_bytes} bytes)"
            )
        if size > self._max_size_bytes:
            raise InvalidAudioError(
                f"Audio too large: {size} bytes (maximum: {self._max_size_bytes} bytes)"
            )
        if detect_format(data) is None:
            raise InvalidAudioError("Unsupported audio format. Please use WAV or MP3.")

        logger.debug("Audio validation passed: %s bytes", size)


__all__ = ["AudioValidator", "detect_format"]

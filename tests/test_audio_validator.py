"""Tests for the upload checks run before speech recognition."""

from __future__ import annotations

import pytest

from app.domain.errors import InvalidAudioError
from app.services.audio_validator import AudioValidator, detect_format

validator = AudioValidator(min_size_bytes=1000, max_size_bytes=4000)


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        (b"RIFF\x00\x00\x00\x00WAVE", "wav"),
        (b"\xff\xfb\x90\x00", "mp3"),
        (b"\xff\xf3\x00\x00", "mp3"),
        (b"\xff\xf2\x00\x00", "mp3"),
        (b"ID3\x04\x00", None),
        (b"RIF", None),
        (b"", None),
    ],
)
def test_detect_format(payload, expected):
    assert detect_format(payload) == expected


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        (b"", "Audio data is empty"),
        (None, "Audio data is empty"),
        (b"RIFF" + b"\x00" * 495, "Audio too short: 499 bytes (minimum: 1000 bytes)"),
        (b"RIFF" + b"\x00" * 4000, "Audio too large: 4004 bytes (maximum: 4000 bytes)"),
        (b"OggS" + b"\x00" * 2000, "Unsupported audio format. Please use WAV or MP3."),
    ],
)
def test_validate_rejects(payload, message):
    with pytest.raises(InvalidAudioError) as excinfo:
        validator.validate(payload)

    assert str(excinfo.value) == message


def test_validate_accepts_size_bounds():
    validator.validate(b"\xff\xfb" + b"\x00" * 998)
    validator.validate(b"RIFF" + b"\x00" * 3996)

"""Tests for typed configuration loading and environment refresh."""

from collections.abc import Generator
from pathlib import Path

import pytest

import textvid.config as config

_ENV_VARS = (
    "TEXTVID_FPS",
    "TEXTVID_SAMPLE_RATE",
    "TEXTVID_SILENCE_THRESHOLD_DB",
    "TEXTVID_SILENCE_MIN_SECONDS",
    "TEXTVID_SILENCE_PADDING_SECONDS",
    "TEXTVID_TTS_BASE_URL",
    "TEXTVID_TTS_MODEL",
    "TEXTVID_TTS_TIMEOUT",
    "TEXTVID_TTS_POLL_INTERVAL",
    "TEXTVID_TTS_MAX_POLLS",
    "TEXTVID_MAX_WORKERS",
    "TEXTVID_FFMPEG_BIN",
    "TEXTVID_FFPROBE_BIN",
    "TEXTVID_OUTGOING_SENDER",
    "TEXTVID_WORK_ROOT",
)


@pytest.fixture(autouse=True)
def _reset_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keeps global settings stable across tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config.reload_settings()
    yield
    monkeypatch.undo()
    config.reload_settings()


def test_defaults_without_environment() -> None:
    """Unset variables fall back to the documented defaults."""
    settings = config.reload_settings()

    assert settings.video.fps == 30
    assert (settings.video.width, settings.video.height) == (1080, 1920)
    assert settings.audio.sample_rate == 44100
    assert settings.silence.threshold_db == -60.0
    assert settings.silence.min_silence_seconds == pytest.approx(0.16)
    assert settings.silence.keep_padding_seconds == pytest.approx(0.08)
    assert settings.synthesis.poll_interval_seconds == pytest.approx(0.6)
    assert settings.pagination.page_size_text == 9
    assert settings.pagination.page_size_with_image == 6
    assert settings.outgoing_sender == "me"
    assert settings.work_root is None


def test_reload_settings_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables should be reflected in loaded settings."""
    monkeypatch.setenv("TEXTVID_FPS", "60")
    monkeypatch.setenv("TEXTVID_SAMPLE_RATE", "48000")
    monkeypatch.setenv("TEXTVID_SILENCE_THRESHOLD_DB", "-50")
    monkeypatch.setenv("TEXTVID_TTS_BASE_URL", "https://tts.example/")
    monkeypatch.setenv("TEXTVID_TTS_MAX_POLLS", "10")
    monkeypatch.setenv("TEXTVID_MAX_WORKERS", "2")
    monkeypatch.setenv("TEXTVID_FFMPEG_BIN", "/opt/ffmpeg")
    monkeypatch.setenv("TEXTVID_OUTGOING_SENDER", "Me")
    monkeypatch.setenv("TEXTVID_WORK_ROOT", "custom/work")

    settings = config.reload_settings()

    assert settings.video.fps == 60
    assert settings.audio.sample_rate == 48000
    assert settings.silence.threshold_db == -50.0
    assert settings.synthesis.base_url == "https://tts.example"
    assert settings.synthesis.max_polls == 10
    assert settings.synthesis.max_workers == 2
    assert settings.encoder.ffmpeg_bin == "/opt/ffmpeg"
    assert settings.outgoing_sender == "me"
    assert settings.work_root == Path("custom/work")


def test_get_settings_caches_until_reload(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings are cached until ``reload_settings`` is called."""
    first = config.get_settings()
    monkeypatch.setenv("TEXTVID_FPS", "24")

    assert config.get_settings() is first
    assert config.reload_settings().video.fps == 24


@pytest.mark.parametrize(
    ("name", "value"),
    [("TEXTVID_FPS", "fast"), ("TEXTVID_FPS", "0"), ("TEXTVID_TTS_TIMEOUT", "soon")],
)
def test_invalid_values_raise(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    """Malformed or out-of-range values are rejected with the variable name."""
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        config.reload_settings()


def test_resolve_theme() -> None:
    """Theme names are case-insensitive and default to dark."""
    assert config.resolve_theme(None).name == "dark"
    assert config.resolve_theme(" Light ").name == "light"
    with pytest.raises(ValueError):
        config.resolve_theme("neon")

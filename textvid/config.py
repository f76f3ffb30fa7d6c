"""Typed runtime configuration for the textvid pipeline.

Settings are read from the environment once and cached; call
``reload_settings`` after changing the environment (tests do this).
Nothing in the pipeline mutates these values: they are threaded through
every component as part of the job context.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Final, Literal

type ThemeName = Literal["dark", "light"]
type RGB = tuple[int, int, int]


@dataclass(frozen=True)
class Theme:
    """Colour palette used by the renderer for one UI theme."""

    name: ThemeName
    chat_background: RGB
    bubble_outgoing: RGB
    bubble_incoming: RGB
    header_background: RGB
    name_fill: RGB
    incoming_text: RGB
    outgoing_text: RGB = (255, 255, 255)


THEMES: Final[Mapping[str, Theme]] = MappingProxyType(
    {
        "dark": Theme(
            name="dark",
            chat_background=(0, 0, 0),
            bubble_outgoing=(29, 119, 254),
            bubble_incoming=(39, 39, 39),
            header_background=(27, 25, 28),
            name_fill=(233, 233, 233),
            incoming_text=(255, 255, 255),
        ),
        "light": Theme(
            name="light",
            chat_background=(254, 254, 254),
            bubble_outgoing=(32, 141, 246),
            bubble_incoming=(232, 232, 232),
            header_background=(242, 242, 247),
            name_fill=(17, 17, 17),
            incoming_text=(0, 0, 0),
        ),
    }
)


def resolve_theme(name: str | None) -> Theme:
    """Returns the theme for ``name`` (case-insensitive), defaulting to dark."""
    key = (name or "dark").strip().lower()
    theme = THEMES.get(key)
    if theme is None:
        raise ValueError(
            f"Unknown theme {name!r}. Expected one of: {', '.join(sorted(THEMES))}."
        )
    return theme


@dataclass(frozen=True)
class VideoConfig:
    """Output canvas and frame-rate settings."""

    fps: int = 30
    width: int = 1080
    height: int = 1920
    chat_width: int = 930
    background: RGB = (20, 255, 20)


@dataclass(frozen=True)
class AudioConfig:
    """Intermediate audio format and notification-sound fallbacks."""

    sample_rate: int = 44100
    channels: int = 1
    placeholder_notification_seconds: float = 0.5


@dataclass(frozen=True)
class SilenceConfig:
    """Silence-detection thresholds for the trimming stage."""

    threshold_db: float = -60.0
    min_silence_seconds: float = 0.16
    keep_padding_seconds: float = 0.08
    analysis_sample_rate: int = 16000


@dataclass(frozen=True)
class SynthesisConfig:
    """Speech-synthesis collaborator settings."""

    base_url: str = "https://api.ai33.pro"
    model_id: str = "eleven_multilingual_v2"
    output_format: str = "mp3_44100_128"
    request_timeout_seconds: float = 30.0
    download_timeout_seconds: float = 60.0
    poll_interval_seconds: float = 0.6
    max_polls: int = 200
    max_workers: int = 4
    voice_settings: Mapping[str, float | bool] = field(
        default_factory=lambda: MappingProxyType(
            {
                "stability": 0.5,
                "similarity": 0.75,
                "exaggeration": 0.0,
                "speed": 1.17,
                "style": 0.5,
                "speaker_boost": True,
            }
        )
    )


@dataclass(frozen=True)
class PaginationConfig:
    """Message windowing for cumulative scene rendering."""

    page_size_text: int = 9
    page_size_with_image: int = 6
    reaction_context_messages: int = 3


@dataclass(frozen=True)
class EncoderConfig:
    """External encoder/prober binaries and encode presets."""

    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    frame_preset: str = "ultrafast"
    frame_crf: int = 23
    frame_threads: int = 2
    jpeg_quality: int = 95
    trim_preset: str = "medium"
    trim_crf: int = 18
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"


@dataclass(frozen=True)
class AppConfig:
    """Complete pipeline configuration."""

    video: VideoConfig = field(default_factory=VideoConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    silence: SilenceConfig = field(default_factory=SilenceConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    encoder: EncoderConfig = field(default_factory=EncoderConfig)
    outgoing_sender: str = "me"
    tts_cache_dirname: str = "tts_cache"
    output_prefix: str = "textvid_1080p"
    work_root: Path | None = None


def _read_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _read_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as err:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from err
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}.")
    return value


def _read_float(name: str, default: float, *, minimum: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as err:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from err
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}.")
    return value


def _load_settings() -> AppConfig:
    work_root_raw = os.getenv("TEXTVID_WORK_ROOT")
    return AppConfig(
        video=VideoConfig(fps=_read_int("TEXTVID_FPS", 30, minimum=1)),
        audio=AudioConfig(
            sample_rate=_read_int("TEXTVID_SAMPLE_RATE", 44100, minimum=8000),
        ),
        silence=SilenceConfig(
            threshold_db=_read_float("TEXTVID_SILENCE_THRESHOLD_DB", -60.0),
            min_silence_seconds=_read_float(
                "TEXTVID_SILENCE_MIN_SECONDS", 0.16, minimum=0.0
            ),
            keep_padding_seconds=_read_float(
                "TEXTVID_SILENCE_PADDING_SECONDS", 0.08, minimum=0.0
            ),
        ),
        synthesis=SynthesisConfig(
            base_url=_read_str("TEXTVID_TTS_BASE_URL", "https://api.ai33.pro").rstrip(
                "/"
            ),
            model_id=_read_str("TEXTVID_TTS_MODEL", "eleven_multilingual_v2"),
            request_timeout_seconds=_read_float(
                "TEXTVID_TTS_TIMEOUT", 30.0, minimum=0.1
            ),
            poll_interval_seconds=_read_float(
                "TEXTVID_TTS_POLL_INTERVAL", 0.6, minimum=0.0
            ),
            max_polls=_read_int("TEXTVID_TTS_MAX_POLLS", 200, minimum=1),
            max_workers=_read_int("TEXTVID_MAX_WORKERS", 4, minimum=1),
        ),
        encoder=EncoderConfig(
            ffmpeg_bin=_read_str("TEXTVID_FFMPEG_BIN", "ffmpeg"),
            ffprobe_bin=_read_str("TEXTVID_FFPROBE_BIN", "ffprobe"),
        ),
        outgoing_sender=_read_str("TEXTVID_OUTGOING_SENDER", "me").lower(),
        work_root=Path(work_root_raw) if work_root_raw else None,
    )


_SETTINGS: AppConfig | None = None


def reload_settings() -> AppConfig:
    """Reloads settings from the current environment and caches them."""
    global _SETTINGS
    _SETTINGS = _load_settings()
    return _SETTINGS


def get_settings() -> AppConfig:
    """Returns cached settings, loading them on first access."""
    if _SETTINGS is None:
        return reload_settings()
    return _SETTINGS

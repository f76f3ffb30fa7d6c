"""Intermediate WAV handling for scene audio.

Every scene clip is normalised to the same PCM layout so the final track
can be concatenated sample-accurately with ``soundfile`` instead of a
second encoder pass.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import ffmpeg
import numpy as np
import soundfile as sf

from textvid.config import AudioConfig
from textvid.media.process import ProcessRunner
from textvid.utils.common_utils import round_half_up
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

WAV_SUBTYPE = "PCM_16"
_BLOCK_FRAMES = 65536


class AudioOps(Protocol):
    """Audio operations the timeline builder and assembler depend on."""

    def to_wav(self, source: Path, target: Path) -> Path: ...

    def silence(self, duration_seconds: float, target: Path) -> Path: ...

    def concat(self, sources: Sequence[Path], target: Path) -> Path: ...

    def duration(self, path: Path) -> float: ...


class AudioToolkit:
    """``AudioOps`` backed by ffmpeg (decoding) and soundfile (PCM work)."""

    def __init__(self, settings: AudioConfig, runner: ProcessRunner) -> None:
        self.settings = settings
        self._runner = runner

    def to_wav(self, source: Path, target: Path) -> Path:
        """Decodes any supported input into the pipeline's PCM layout."""
        target.parent.mkdir(parents=True, exist_ok=True)
        stream = (
            ffmpeg.input(str(source))
            .output(
                str(target),
                acodec="pcm_s16le",
                ar=self.settings.sample_rate,
                ac=self.settings.channels,
                vn=None,
            )
            .global_args("-hide_banner", "-loglevel", "error")
            .overwrite_output()
        )
        self._runner.run(stream, stage="audio_convert")
        return target

    def silence(self, duration_seconds: float, target: Path) -> Path:
        """Writes exactly ``round(duration * sample_rate)`` zero samples."""
        if duration_seconds < 0:
            raise ValueError(f"Silence duration must be >= 0, got {duration_seconds}.")
        frames = round_half_up(duration_seconds * self.settings.sample_rate)
        data = np.zeros((frames, self.settings.channels), dtype=np.int16)
        target.parent.mkdir(parents=True, exist_ok=True)
        sf.write(target, data, self.settings.sample_rate, subtype=WAV_SUBTYPE)
        return target

    def concat(self, sources: Sequence[Path], target: Path) -> Path:
        """Appends WAV files end to end into ``target``.

        Raises:
            ValueError: If ``sources`` is empty or their formats differ.
        """
        if not sources:
            raise ValueError("Nothing to concatenate.")
        first = sf.info(str(sources[0]))
        target.parent.mkdir(parents=True, exist_ok=True)
        with sf.SoundFile(
            target,
            mode="w",
            samplerate=first.samplerate,
            channels=first.channels,
            subtype=WAV_SUBTYPE,
        ) as out:
            for source in sources:
                with sf.SoundFile(source) as clip:
                    if (
                        clip.samplerate != first.samplerate
                        or clip.channels != first.channels
                    ):
                        raise ValueError(
                            f"Cannot concatenate {source}: {clip.samplerate} Hz/"
                            f"{clip.channels}ch, expected {first.samplerate} Hz/"
                            f"{first.channels}ch."
                        )
                    for block in clip.blocks(
                        blocksize=_BLOCK_FRAMES, dtype="int16", always_2d=True
                    ):
                        out.write(block)
        return target

    def duration(self, path: Path) -> float:
        """Measures a clip, preferring the exact sample count of PCM files."""
        try:
            info = sf.info(str(path))
            if info.samplerate > 0:
                return info.frames / info.samplerate
        except RuntimeError as err:
            logger.debug("soundfile could not read %s (%s); probing.", path, err)

        probe = self._runner.probe(path)
        for stream in probe.get("streams", []):
            if stream.get("codec_type") == "audio" and stream.get("duration"):
                return float(stream["duration"])
        format_duration = (probe.get("format") or {}).get("duration")
        if format_duration is None:
            raise ValueError(f"Could not determine the duration of {path}.")
        return float(format_duration)

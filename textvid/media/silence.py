"""
Silence trimming with protected windows.

Keep-ranges are computed on a mono analysis track. Without protected
ranges the whole track is analysed once. With protected ranges the track
is split into alternating slabs: protected slabs are kept verbatim and
never analysed; every unprotected slab is analysed on its own, and its
speech spans are padded, clamped to the slab and shifted back into global
time. All ranges are then coalesced and the clip is re-encoded once with a
select/aselect predicate built from them.

Trimming never fails a job: when no keep-range survives, or the trim
encode fails, the input is copied to the output unchanged.
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import ffmpeg
import soundfile as sf
from halo import Halo

from textvid.config import EncoderConfig, SilenceConfig
from textvid.domain import ProtectedRange
from textvid.media.process import EncoderError, ProcessRunner
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

type TimeRange = tuple[float, float]
type DetectCallable = Callable[[float, float], list[TimeRange]]

_SILENCE_START_RE: Final = re.compile(r"silence_start:\s*(-?\d+(?:\.\d+)?)")
_SILENCE_END_RE: Final = re.compile(r"silence_end:\s*(-?\d+(?:\.\d+)?)")
_MIN_SLAB_SECONDS: Final[float] = 1e-3


@dataclass(frozen=True)
class VideoInfo:
    """Stream facts needed to trim a clip."""

    fps: float
    width: int
    height: int
    duration: float


def _parse_rate(rate: str | None) -> float:
    if not rate:
        return 0.0
    if "/" in rate:
        numerator, denominator = rate.split("/", 1)
        return float(numerator) / float(denominator) if float(denominator) else 0.0
    return float(rate)


def video_info_from_probe(probe: dict[str, Any]) -> VideoInfo:
    """Extracts ``VideoInfo`` from ffprobe JSON."""
    streams = probe.get("streams", [])
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    if video is None:
        raise ValueError("Input has no video stream.")
    duration_raw = (probe.get("format") or {}).get("duration") or video.get("duration")
    if duration_raw is None:
        raise ValueError("Input duration is unknown.")
    return VideoInfo(
        fps=_parse_rate(video.get("avg_frame_rate")) or _parse_rate(video.get("r_frame_rate")),
        width=int(video.get("width", 0)),
        height=int(video.get("height", 0)),
        duration=float(duration_raw),
    )


def probe_video(runner: ProcessRunner, path: Path) -> VideoInfo:
    """Measures duration, frame rate and size of ``path``."""
    return video_info_from_probe(runner.probe(path))


def parse_silencedetect(stderr: str, total_duration: float) -> list[TimeRange]:
    """Parses ``silencedetect`` output into silent intervals.

    A trailing ``silence_start`` without a matching end is silence that
    lasts until ``total_duration``.
    """
    silences: list[TimeRange] = []
    pending: float | None = None
    for line in stderr.splitlines():
        start_match = _SILENCE_START_RE.search(line)
        if start_match:
            pending = max(0.0, float(start_match.group(1)))
            continue
        end_match = _SILENCE_END_RE.search(line)
        if end_match and pending is not None:
            silences.append((pending, min(total_duration, float(end_match.group(1)))))
            pending = None
    if pending is not None and pending < total_duration:
        silences.append((pending, total_duration))
    return silences


def invert_ranges(silences: Iterable[TimeRange], total_duration: float) -> list[TimeRange]:
    """Returns the complement of ``silences`` within ``[0, total_duration]``."""
    sounding: list[TimeRange] = []
    cursor = 0.0
    for start, end in sorted(silences):
        if start > cursor:
            sounding.append((cursor, min(start, total_duration)))
        cursor = max(cursor, end)
    if cursor < total_duration:
        sounding.append((cursor, total_duration))
    return [(start, end) for start, end in sounding if end > start]


def coalesce_ranges(ranges: Iterable[TimeRange]) -> list[TimeRange]:
    """Sorts ranges and merges overlapping or touching ones.

    Example:
        >>> coalesce_ranges([(1.0, 2.0), (1.9, 3.0), (3.5, 4.0)])
        [(1.0, 3.0), (3.5, 4.0)]
    """
    merged: list[TimeRange] = []
    for start, end in sorted(ranges):
        if end <= start:
            continue
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def pad_ranges(
    ranges: Iterable[TimeRange], padding: float, lower: float, upper: float
) -> list[TimeRange]:
    """Widens each range by ``padding`` on both sides, clamped to the bounds."""
    return [
        (max(lower, start - padding), min(upper, end + padding))
        for start, end in ranges
        if end > start
    ]


def compute_keep_ranges(
    duration: float,
    protected: Sequence[ProtectedRange],
    detect: DetectCallable,
    padding: float,
) -> list[TimeRange]:
    """Computes the coalesced keep-ranges of a clip.

    Args:
        duration: Clip length in seconds.
        protected: Windows kept verbatim.
        detect: ``detect(start, end)`` returns the sounding spans of that
            slab, relative to ``start``.
        padding: Guard interval added on each side of sounding spans.
    """
    if duration <= 0:
        return []
    windows = coalesce_ranges(
        (max(0.0, p.start_seconds), min(duration, p.end_seconds)) for p in protected
    )
    if not windows:
        return coalesce_ranges(pad_ranges(detect(0.0, duration), padding, 0.0, duration))

    keep: list[TimeRange] = []
    cursor = 0.0
    slabs: list[TimeRange] = []
    for start, end in windows:
        if start - cursor > _MIN_SLAB_SECONDS:
            slabs.append((cursor, start))
        keep.append((start, end))
        cursor = end
    if duration - cursor > _MIN_SLAB_SECONDS:
        slabs.append((cursor, duration))

    for slab_start, slab_end in slabs:
        spans = [
            (slab_start + start, slab_start + end)
            for start, end in detect(slab_start, slab_end)
        ]
        keep.extend(pad_ranges(spans, padding, slab_start, slab_end))
    return coalesce_ranges(keep)


def build_select_expression(ranges: Sequence[TimeRange]) -> str:
    """Builds the ``select``/``aselect`` predicate keeping ``ranges``."""
    return "+".join(f"between(t,{start:.6f},{end:.6f})" for start, end in ranges)


class SilenceTrimmer:
    """Removes silent stretches from a finished clip, sparing protected ranges."""

    def __init__(
        self,
        silence: SilenceConfig,
        encoder: EncoderConfig,
        runner: ProcessRunner,
    ) -> None:
        self._silence = silence
        self._encoder = encoder
        self._runner = runner

    def detect_nonsilent_ranges(self, wav_path: Path, duration: float) -> list[TimeRange]:
        """Runs ``silencedetect`` over ``wav_path`` and returns sounding spans."""
        stream = (
            ffmpeg.input(str(wav_path))
            .output(
                "-",
                af=(
                    f"silencedetect=noise={self._silence.threshold_db}dB"
                    f":d={self._silence.min_silence_seconds}"
                ),
                f="null",
            )
            .global_args("-hide_banner", "-nostats")
        )
        result = self._runner.run(stream, stage="silence_detect")
        return invert_ranges(parse_silencedetect(result.stderr, duration), duration)

    def trim(
        self,
        input_path: Path,
        output_path: Path,
        protected: Sequence[ProtectedRange] = (),
    ) -> Path:
        """Writes the trimmed clip to ``output_path`` and returns it."""
        analysis = output_path.with_name(f"{output_path.stem}_analysis.wav")
        slab_dir = output_path.with_name(f"{output_path.stem}_slabs")
        try:
            info = probe_video(self._runner, input_path)
            self._extract_analysis_track(input_path, analysis)
            detect = self._slab_detector(analysis, slab_dir, info.duration)
            keep = compute_keep_ranges(
                info.duration, protected, detect, self._silence.keep_padding_seconds
            )
            if not keep:
                logger.warning("No keep-ranges found; copying %s unchanged.", input_path.name)
                return self._copy_through(input_path, output_path)

            kept = sum(end - start for start, end in keep)
            logger.info(
                "Trimming %.2fs -> %.2fs across %d range(s), %d protected.",
                info.duration,
                kept,
                len(keep),
                len(protected),
            )
            self._encode_selection(input_path, output_path, keep, info)
            return output_path
        except (EncoderError, ValueError, RuntimeError) as err:
            logger.warning("Silence trim failed (%s); copying input unchanged.", err)
            return self._copy_through(input_path, output_path)
        finally:
            analysis.unlink(missing_ok=True)
            shutil.rmtree(slab_dir, ignore_errors=True)

    def _extract_analysis_track(self, input_path: Path, analysis: Path) -> None:
        stream = (
            ffmpeg.input(str(input_path))
            .output(
                str(analysis),
                acodec="pcm_s16le",
                ac=1,
                ar=self._silence.analysis_sample_rate,
                vn=None,
            )
            .global_args("-hide_banner", "-loglevel", "error")
            .overwrite_output()
        )
        self._runner.run(stream, stage="silence_analysis")

    def _slab_detector(self, analysis: Path, slab_dir: Path, duration: float) -> DetectCallable:
        counter = 0

        def detect(start: float, end: float) -> list[TimeRange]:
            nonlocal counter
            if start <= 0.0 and end >= duration:
                return self.detect_nonsilent_ranges(analysis, duration)
            sample_rate = sf.info(str(analysis)).samplerate
            data, _ = sf.read(
                str(analysis),
                start=int(start * sample_rate),
                stop=int(end * sample_rate),
                dtype="int16",
            )
            slab_dir.mkdir(parents=True, exist_ok=True)
            slab_path = slab_dir / f"slab_{counter:04d}.wav"
            counter += 1
            sf.write(slab_path, data, sample_rate, subtype="PCM_16")
            return self.detect_nonsilent_ranges(slab_path, len(data) / sample_rate)

        return detect

    def _encode_selection(
        self,
        input_path: Path,
        output_path: Path,
        keep: Sequence[TimeRange],
        info: VideoInfo,
    ) -> None:
        expression = build_select_expression(keep)
        source = ffmpeg.input(str(input_path))
        video = source.video.filter("select", expression).filter(
            "setpts", "N/FRAME_RATE/TB"
        )
        audio = source.audio.filter("aselect", expression).filter("asetpts", "N/SR/TB")
        output_options: dict[str, Any] = {
            "vcodec": "libx264",
            "preset": self._encoder.trim_preset,
            "crf": self._encoder.trim_crf,
            "pix_fmt": "yuv420p",
            "acodec": self._encoder.audio_codec,
            "audio_bitrate": self._encoder.audio_bitrate,
        }
        if info.fps > 0:
            output_options["r"] = round(info.fps, 3)
        stream = (
            ffmpeg.output(video, audio, str(output_path), **output_options)
            .global_args("-hide_banner", "-loglevel", "error")
            .overwrite_output()
        )
        with Halo(text="Trimming silence...", spinner="dots", text_color="green"):
            self._runner.run(stream, stage="silence_trim")

    @staticmethod
    def _copy_through(input_path: Path, output_path: Path) -> Path:
        if input_path.resolve() != output_path.resolve():
            shutil.copyfile(input_path, output_path)
        return output_path

"""
Scene-sequence to muxed video.

Each scene contributes exactly ``frame_count`` frames of its image (or of
the most recent image when the scene has none) and its audio clip, in
order. Frames are written as hard links to one reference JPEG per framed
scene, encoded at a constant frame rate, then muxed with the
sample-accurately concatenated audio track.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Final

import ffmpeg
from halo import Halo

from textvid.config import AudioConfig, EncoderConfig
from textvid.domain import RenderedFrame, Scene
from textvid.media.audio import AudioOps
from textvid.media.process import ProcessRunner
from textvid.render.contracts import FrameRenderer
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

FRAME_PATTERN: Final[str] = "frame_%06d.jpg"


def resolve_scene_frames(
    scenes: Sequence[Scene], placeholder: RenderedFrame | None = None
) -> list[RenderedFrame]:
    """Returns the frame each scene actually shows.

    Frameless scenes carry the previous frame forward. Frameless scenes
    before the first frame borrow the first upcoming frame; when no scene
    has a frame at all, ``placeholder`` is used.

    Raises:
        ValueError: If no scene has a frame and no placeholder is given.
    """
    first = next((scene.frame for scene in scenes if scene.frame is not None), None)
    current = first if first is not None else placeholder
    if current is None:
        raise ValueError("No scene has a frame and no placeholder was supplied.")
    resolved: list[RenderedFrame] = []
    for scene in scenes:
        if scene.frame is not None:
            current = scene.frame
        resolved.append(current)
    return resolved


def _link_or_copy(source: Path, target: Path) -> None:
    try:
        os.link(source, target)
    except OSError:
        shutil.copyfile(source, target)


class MediaAssembler:
    """Turns an ordered scene list into one muxed video file."""

    def __init__(
        self,
        encoder: EncoderConfig,
        audio_settings: AudioConfig,
        renderer: FrameRenderer,
        audio: AudioOps,
        runner: ProcessRunner,
    ) -> None:
        self._encoder = encoder
        self._audio_settings = audio_settings
        self._renderer = renderer
        self._audio = audio
        self._runner = runner

    def assemble(self, scenes: Sequence[Scene], fps: int, output_path: Path) -> Path:
        """Encodes ``scenes`` at ``fps`` into ``output_path``.

        Raises:
            ValueError: If there are no scenes or no frames to encode.
            EncoderError: If encoding or muxing fails.
        """
        if not scenes:
            raise ValueError("Cannot assemble an empty scene list.")
        total_frames = sum(scene.frame_count for scene in scenes)
        if total_frames <= 0:
            raise ValueError("Scene list produces no video frames.")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        frames_dir = output_path.with_name(f"{output_path.stem}_frames")
        video_only = output_path.with_name(f"{output_path.stem}_video.mp4")
        audio_track = output_path.with_name(f"{output_path.stem}_audio.wav")
        try:
            self._write_frames(scenes, frames_dir)
            self._encode_frames(frames_dir, fps, video_only)
            self._audio.concat([scene.audio_path for scene in scenes], audio_track)
            self._check_sync(audio_track, total_frames, fps)
            self._mux(video_only, audio_track, output_path)
        finally:
            shutil.rmtree(frames_dir, ignore_errors=True)
            video_only.unlink(missing_ok=True)
            audio_track.unlink(missing_ok=True)

        logger.info(
            "Assembled %d scene(s), %d frame(s) -> %s", len(scenes), total_frames, output_path
        )
        return output_path

    def _write_frames(self, scenes: Sequence[Scene], frames_dir: Path) -> None:
        placeholder = None
        if all(scene.frame is None for scene in scenes):
            logger.warning("No scene carries a frame; using the placeholder frame.")
            placeholder = self._renderer.placeholder()
        frames = resolve_scene_frames(scenes, placeholder)

        frames_dir.mkdir(parents=True, exist_ok=True)
        references: dict[int, Path] = {}
        frame_number = 0
        for scene, frame in zip(scenes, frames, strict=True):
            if scene.frame_count <= 0:
                continue
            reference = references.get(id(frame))
            if reference is None:
                reference = frames_dir / f"ref_{len(references):05d}.jpg"
                self._renderer.save(frame, reference, quality=self._encoder.jpeg_quality)
                references[id(frame)] = reference
            for _ in range(scene.frame_count):
                _link_or_copy(reference, frames_dir / (FRAME_PATTERN % frame_number))
                frame_number += 1
        logger.debug(
            "Wrote %d frame(s) from %d reference image(s).", frame_number, len(references)
        )

    def _encode_frames(self, frames_dir: Path, fps: int, video_only: Path) -> None:
        stream = (
            ffmpeg.input(
                str(frames_dir / FRAME_PATTERN), framerate=fps, start_number=0
            )
            .output(
                str(video_only),
                vcodec="libx264",
                preset=self._encoder.frame_preset,
                crf=self._encoder.frame_crf,
                pix_fmt="yuv420p",
                threads=self._encoder.frame_threads,
                r=fps,
                an=None,
            )
            .global_args("-hide_banner", "-loglevel", "error")
            .overwrite_output()
        )
        with Halo(text="Encoding video frames...", spinner="dots", text_color="green"):
            self._runner.run(stream, stage="video_encode")

    def _check_sync(self, audio_track: Path, total_frames: int, fps: int) -> None:
        audio_seconds = self._audio.duration(audio_track)
        video_seconds = total_frames / fps
        if abs(audio_seconds - video_seconds) > 1.0 / fps:
            logger.warning(
                "Audio (%.3fs) and video (%.3fs) differ by more than one frame.",
                audio_seconds,
                video_seconds,
            )

    def _mux(self, video_only: Path, audio_track: Path, output_path: Path) -> None:
        video = ffmpeg.input(str(video_only))
        audio = ffmpeg.input(str(audio_track))
        stream = (
            ffmpeg.output(
                video.video,
                audio.audio,
                str(output_path),
                vcodec="copy",
                acodec=self._encoder.audio_codec,
                audio_bitrate=self._encoder.audio_bitrate,
                ar=self._audio_settings.sample_rate,
                shortest=None,
            )
            .global_args("-hide_banner", "-loglevel", "error")
            .overwrite_output()
        )
        with Halo(text="Muxing audio and video...", spinner="dots", text_color="green"):
            self._runner.run(stream, stage="mux")

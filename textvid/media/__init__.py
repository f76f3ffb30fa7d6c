"""Encoder orchestration: audio intermediates, assembly and silence trimming."""

from .assembler import MediaAssembler, resolve_scene_frames
from .audio import AudioOps, AudioToolkit
from .process import EncoderError, ProcessResult, ProcessRunner
from .silence import (
    SilenceTrimmer,
    VideoInfo,
    build_select_expression,
    coalesce_ranges,
    compute_keep_ranges,
    parse_silencedetect,
    probe_video,
)

__all__ = [
    "AudioOps",
    "AudioToolkit",
    "EncoderError",
    "MediaAssembler",
    "ProcessResult",
    "ProcessRunner",
    "SilenceTrimmer",
    "VideoInfo",
    "build_select_expression",
    "coalesce_ranges",
    "compute_keep_ranges",
    "parse_silencedetect",
    "probe_video",
    "resolve_scene_frames",
]

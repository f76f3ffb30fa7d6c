"""Drift-free frame scheduling and the append-only scene timeline."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from textvid.domain import (
    ProtectedRange,
    RenderedFrame,
    Scene,
    SceneKind,
    TimelineEntry,
)
from textvid.utils.common_utils import round_half_up
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


def schedule_frame_counts(durations: Iterable[float], fps: int) -> list[int]:
    """Converts clip durations into per-scene frame counts without drift.

    Each count is the difference between consecutive rounded cumulative
    frame positions, so the counts always sum to
    ``round_half_up(sum(durations) * fps)``.

    Example:
        >>> schedule_frame_counts([0.333, 0.333, 0.334], 30)
        [10, 10, 10]
    """
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}.")
    counts: list[int] = []
    cursor = 0.0
    previous = 0
    for duration in durations:
        if duration < 0:
            raise ValueError(f"Scene duration must be >= 0, got {duration}.")
        cursor += duration
        cumulative = round_half_up(cursor * fps)
        counts.append(cumulative - previous)
        previous = cumulative
    return counts


class Timeline:
    """Ordered scenes with a cumulative time cursor.

    Scenes are only ever appended. The cursor and the cumulative frame
    position advance together so ``total_frames`` always equals
    ``round_half_up(total_duration * fps)``.
    """

    def __init__(self, fps: int) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}.")
        self.fps = fps
        self._scenes: list[Scene] = []
        self._protected: list[ProtectedRange] = []
        self._entries: list[TimelineEntry] = []
        self._cursor = 0.0
        self._frame_position = 0

    @property
    def scenes(self) -> tuple[Scene, ...]:
        return tuple(self._scenes)

    @property
    def protected_ranges(self) -> tuple[ProtectedRange, ...]:
        return tuple(self._protected)

    @property
    def entries(self) -> tuple[TimelineEntry, ...]:
        return tuple(self._entries)

    @property
    def cursor(self) -> float:
        return self._cursor

    @property
    def total_duration(self) -> float:
        return self._cursor

    @property
    def total_frames(self) -> int:
        return self._frame_position

    def __len__(self) -> int:
        return len(self._scenes)

    def add_scene(
        self,
        frame: RenderedFrame | None,
        audio_path: Path,
        duration_seconds: float,
        kind: SceneKind,
        *,
        text: str | None = None,
    ) -> Scene:
        """Appends one scene and advances the cursor by its measured duration.

        When ``text`` is given a message-level ``TimelineEntry`` spanning the
        scene is recorded as well.
        """
        if duration_seconds < 0:
            raise ValueError(f"Scene duration must be >= 0, got {duration_seconds}.")
        start = self._cursor
        self._cursor = start + duration_seconds
        cumulative = round_half_up(self._cursor * self.fps)
        frame_count = cumulative - self._frame_position
        self._frame_position = cumulative

        scene = Scene(
            frame=frame,
            audio_path=audio_path,
            duration_seconds=duration_seconds,
            frame_count=frame_count,
            kind=kind,
        )
        self._scenes.append(scene)
        if text is not None:
            self._entries.append(
                TimelineEntry(
                    text=text, start_seconds=start, end_seconds=self._cursor, kind=kind
                )
            )
        logger.debug(
            "Scene %d (%s): %.3fs, %d frame(s), cursor=%.3fs",
            len(self._scenes) - 1,
            kind,
            duration_seconds,
            frame_count,
            self._cursor,
        )
        return scene

    def add_break(
        self, audio_path: Path, duration_seconds: float, *, text: str | None = None
    ) -> ProtectedRange:
        """Appends a frameless silent scene and protects its time window."""
        start = self._cursor
        self.add_scene(None, audio_path, duration_seconds, SceneKind.BREAK, text=text)
        protected = ProtectedRange(start_seconds=start, end_seconds=self._cursor)
        self._protected.append(protected)
        return protected

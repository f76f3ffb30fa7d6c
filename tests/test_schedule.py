"""Tests for drift-free frame scheduling and the scene timeline."""

import random
from pathlib import Path

import pytest

from textvid.domain import RenderedFrame, SceneKind
from textvid.timeline.schedule import Timeline, schedule_frame_counts
from textvid.utils.common_utils import round_half_up


def test_whole_seconds_schedule_exactly() -> None:
    """One-second clips at 30 fps get 30 frames each."""
    assert schedule_frame_counts([1.0, 1.0, 1.0], 30) == [30, 30, 30]


def test_fractional_clips_do_not_drift() -> None:
    """Cumulative rounding absorbs per-clip fractions."""
    assert schedule_frame_counts([0.333, 0.333, 0.334], 30) == [10, 10, 10]


def test_frame_total_matches_rounded_duration() -> None:
    """Frame counts always sum to the rounded total duration."""
    rng = random.Random(1234)
    for _ in range(50):
        durations = [rng.uniform(0.0, 4.0) for _ in range(rng.randint(1, 200))]
        counts = schedule_frame_counts(durations, 30)

        assert sum(counts) == round_half_up(sum(durations) * 30)
        assert all(count >= 0 for count in counts)


def test_zero_duration_clip_gets_zero_frames() -> None:
    """Very short clips may be absorbed into the previous frame."""
    assert schedule_frame_counts([1.0, 0.0, 0.01, 1.0], 30) == [30, 0, 0, 30]


def test_round_half_up_ties_go_up() -> None:
    """Halves always round upward."""
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2


def test_invalid_inputs_raise() -> None:
    """Non-positive fps and negative durations are rejected."""
    with pytest.raises(ValueError):
        schedule_frame_counts([1.0], 0)
    with pytest.raises(ValueError):
        schedule_frame_counts([-0.1], 30)
    with pytest.raises(ValueError):
        Timeline(0)


def test_timeline_tracks_cursor_entries_and_breaks(tmp_path: Path) -> None:
    """Breaks are protected and frameless; text scenes become entries."""
    frame = RenderedFrame(handle="f", width=1080, height=1920)
    timeline = Timeline(30)

    first = timeline.add_scene(
        frame, tmp_path / "a.wav", 1.2, SceneKind.SPEECH, text="Hi"
    )
    protected = timeline.add_break(tmp_path / "b.wav", 2.0)
    last = timeline.add_scene(None, tmp_path / "c.wav", 0.5, SceneKind.NOTIFICATION)

    assert first.frame_count == 36
    assert protected.start_seconds == pytest.approx(1.2)
    assert protected.end_seconds == pytest.approx(3.2)
    assert timeline.protected_ranges == (protected,)
    assert timeline.scenes[1].kind is SceneKind.BREAK
    assert timeline.scenes[1].frame is None
    assert last.frame_count == 15
    assert len(timeline) == 3
    assert timeline.total_duration == pytest.approx(3.7)
    assert timeline.total_frames == 111
    assert [entry.text for entry in timeline.entries] == ["Hi"]
    assert timeline.entries[0].end_seconds == pytest.approx(1.2)

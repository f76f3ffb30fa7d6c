"""Behavior tests for timeline printing and CSV export."""

import csv
from pathlib import Path

import pytest

from textvid.domain import SceneKind, TimelineEntry
from textvid.utils.common_utils import display_elapsed_time
from textvid.utils.timeline_utils import color_txt, print_timeline, save_timeline_to_csv

ENTRIES = [
    TimelineEntry("Hi", 0.0, 1.234, SceneKind.SPEECH),
    TimelineEntry("let me ask", 1.234, 2.5, SceneKind.REACTION_INTRO),
]


def test_save_timeline_to_csv_forces_csv_suffix(tmp_path: Path) -> None:
    """The CSV lands next to the video with rounded times."""
    csv_path = save_timeline_to_csv(ENTRIES, tmp_path / "video.mp4")

    assert csv_path == tmp_path / "video.csv"
    with csv_path.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows == [
        ["Start (s)", "End (s)", "Kind", "Text"],
        ["0.0", "1.23", "speech", "Hi"],
        ["1.23", "2.5", "reaction_intro", "let me ask"],
    ]


def test_print_timeline_renders_rows(capsys: pytest.CaptureFixture[str]) -> None:
    """Every entry is printed with its start time and kind."""
    print_timeline(ENTRIES)

    output = capsys.readouterr().out
    assert "Message" in output
    assert "1.23s" in output
    assert "reaction_intro" in output
    assert "let me ask" in output


def test_print_timeline_skips_empty_timeline(capsys: pytest.CaptureFixture[str]) -> None:
    """Nothing is printed for an empty timeline."""
    print_timeline([])

    assert capsys.readouterr().out == ""


def test_color_txt_pads_before_colouring() -> None:
    """Padding applies to the visible text."""
    assert "Time  " in color_txt("Time", "black", "green", 6)


def test_display_elapsed_time_formats() -> None:
    """Long and short formats cover minutes and seconds."""
    assert display_elapsed_time(1.5) == "1.50 seconds"
    assert display_elapsed_time(65.25) == "1 min 5.25 seconds"
    assert display_elapsed_time(1.5, _format="short") == "1.50s"
    assert display_elapsed_time(65.25, _format="short") == "1m05.25s"

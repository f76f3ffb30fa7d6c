"""
Message timeline output helpers.

Prints the message timeline returned by a job and saves it to CSV.
"""

import csv
import logging
from collections.abc import Sequence
from pathlib import Path

from colored import attr, bg, fg
from halo import Halo

from textvid.domain import TimelineEntry
from textvid.utils.common_utils import display_elapsed_time
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


def save_timeline_to_csv(timeline: Sequence[TimelineEntry], file_path: Path) -> Path:
    """
    Saves the timeline to a CSV file.

    Arguments:
        timeline (Sequence[TimelineEntry]): The timeline rows to save.
        file_path (Path): Destination; the suffix is forced to ``.csv``.

    Returns:
        Path: The path to the saved CSV file.
    """
    csv_path = file_path.with_suffix(".csv")
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Starting to save timeline to CSV.")

    with Halo(
        text=f"Saving timeline to {csv_path}",
        spinner="dots",
        text_color="green",
    ):
        with csv_path.open(mode="w", newline="", encoding="utf-8") as file:
            writer = csv.writer(file)
            writer.writerow(["Start (s)", "End (s)", "Kind", "Text"])
            for entry in timeline:
                row = [
                    round(entry.start_seconds, 2),
                    round(entry.end_seconds, 2),
                    str(entry.kind),
                    entry.text,
                ]
                writer.writerow(row)
                logger.debug("Written row: %s", row)

    logger.info("Timeline successfully saved to %s", csv_path)
    return csv_path


def color_txt(string: str, fg_color: str, bg_color: str, padding: int = 0) -> str:
    """
    Colorizes a string.

    Arguments:
        string (str): String to be colorized.
        fg_color (str): Foreground color.
        bg_color (str): Background color.
        padding (int): Minimum width; the string is left-justified to it.

    Returns:
        str: Colorized string.
    """
    if padding:
        string = string.ljust(padding)

    return f"{fg(fg_color)}{bg(bg_color)}{string}{attr('reset')}"


def print_timeline(timeline: Sequence[TimelineEntry]) -> None:
    """Prints the message timeline as an aligned, coloured table."""
    if not timeline:
        logger.info("Timeline is empty; nothing to print.")
        return
    logger.info("Printing timeline with %d entries.", len(timeline))
    times = [
        display_elapsed_time(entry.start_seconds, _format="short") for entry in timeline
    ]
    time_width = max(len("Time"), *(len(value) for value in times))
    kind_width = max(len("Kind"), *(len(str(entry.kind)) for entry in timeline))
    text_width = max(len("Message"), *(len(entry.text.strip()) for entry in timeline))

    print(color_txt("Time", "black", "green", time_width + 1), end="")
    print(color_txt("Kind", "black", "yellow", kind_width + 1), end="")
    print(color_txt("Message", "black", "blue", text_width))

    for time_str, entry in zip(times, timeline, strict=True):
        print(
            f"{time_str.ljust(time_width)} "
            f"{str(entry.kind).ljust(kind_width)} "
            f"{entry.text.strip().ljust(text_width)}"
        )

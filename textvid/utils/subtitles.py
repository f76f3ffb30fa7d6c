import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from textvid.domain import SceneKind, TimelineEntry
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


def _split_time(seconds: float) -> tuple[int, int, int, int]:
    total_millis: int = max(0, int(round(seconds * 1000)))
    hours, remainder = divmod(total_millis, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return hours, minutes, secs, millis


class SubtitleFormatter(ABC):
    """Abstract base class for subtitle formatters."""

    header: str = ""

    @abstractmethod
    def format_time(self, seconds: float) -> str:
        """Convert time in seconds to formatted time string."""

    @abstractmethod
    def generate_entry(self, index: int, entry: TimelineEntry) -> str:
        """Generate a single subtitle entry."""

    def generate_file(self, entries: Sequence[TimelineEntry], output_file: Path) -> Path:
        """Write every captioned entry to ``output_file``; breaks are skipped."""
        logger.info("Generating subtitle file: %s", output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with output_file.open("w", encoding="utf-8") as handle:
            handle.write(self.header)
            captions = [entry for entry in entries if entry.kind is not SceneKind.BREAK]
            for index, entry in enumerate(captions, 1):
                handle.write(self.generate_entry(index, entry) + "\n")
        logger.info("Subtitle file generated successfully: %s", output_file)
        return output_file


class SRTFormatter(SubtitleFormatter):
    """Formatter for SRT subtitles."""

    def format_time(self, seconds: float) -> str:
        hours, minutes, secs, millis = _split_time(seconds)
        return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"

    def generate_entry(self, index: int, entry: TimelineEntry) -> str:
        start_time = self.format_time(entry.start_seconds)
        end_time = self.format_time(entry.end_seconds)
        logger.debug("SRT Entry: Start %s, End %s, Text %s", start_time, end_time, entry.text)
        return f"{index}\n{start_time} --> {end_time}\n{entry.text}\n"


class VTTFormatter(SubtitleFormatter):
    """Formatter for WebVTT subtitles."""

    header = "WEBVTT\n\n"

    def format_time(self, seconds: float) -> str:
        hours, minutes, secs, millis = _split_time(seconds)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"

    def generate_entry(self, index: int, entry: TimelineEntry) -> str:
        start_time = self.format_time(entry.start_seconds)
        end_time = self.format_time(entry.end_seconds)
        logger.debug("VTT Entry: Start %s, End %s, Text %s", start_time, end_time, entry.text)
        return f"{index}\n{start_time} --> {end_time}\n{entry.text}\n"


FORMATTERS: dict[str, type[SubtitleFormatter]] = {
    ".srt": SRTFormatter,
    ".vtt": VTTFormatter,
}


def write_subtitles(entries: Sequence[TimelineEntry], output_file: Path) -> Path:
    """Writes ``entries`` in the format implied by the file extension."""
    formatter_cls = FORMATTERS.get(output_file.suffix.lower())
    if formatter_cls is None:
        raise ValueError(
            f"Unsupported subtitle format {output_file.suffix!r}; use .srt or .vtt."
        )
    return formatter_cls().generate_file(entries, output_file)

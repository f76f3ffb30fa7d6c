"""Blocking execution of encoder/prober commands.

Graphs are built with ``ffmpeg-python`` and compiled to an argument list;
execution goes through ``subprocess.run`` so exit status and both output
streams are always captured. A non-zero exit is never swallowed: it
becomes an ``EncoderError`` naming the pipeline stage.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import ffmpeg

from textvid.config import EncoderConfig
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

_STDERR_TAIL_CHARS = 2000


class EncoderError(RuntimeError):
    """Raised when an encoder/prober subprocess exits unsuccessfully."""

    def __init__(self, stage: str, returncode: int, stderr: str) -> None:
        tail = stderr.strip()[-_STDERR_TAIL_CHARS:]
        super().__init__(
            f"{stage} failed with exit status {returncode}"
            + (f": {tail}" if tail else ".")
        )
        self.stage = stage
        self.returncode = returncode
        self.stderr = stderr


@dataclass(frozen=True)
class ProcessResult:
    """Captured outcome of one subprocess invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


class ProcessRunner:
    """Runs ffmpeg graphs and ffprobe queries with the configured binaries."""

    def __init__(self, encoder: EncoderConfig, *, timeout: float | None = None) -> None:
        self._encoder = encoder
        self._timeout = timeout

    def run(self, stream: Any, *, stage: str) -> ProcessResult:
        """Compiles an ``ffmpeg-python`` output node and executes it."""
        args = ffmpeg.compile(stream, cmd=self._encoder.ffmpeg_bin)
        return self.run_args(args, stage=stage)

    def run_args(self, args: Sequence[str], *, stage: str) -> ProcessResult:
        """Executes a prepared argument list."""
        logger.debug("[%s] %s", stage, " ".join(str(arg) for arg in args))
        try:
            completed = subprocess.run(
                [str(arg) for arg in args],
                capture_output=True,
                check=False,
                timeout=self._timeout,
            )
        except FileNotFoundError as err:
            raise EncoderError(stage, 127, f"Executable not found: {args[0]}") from err
        except subprocess.TimeoutExpired as err:
            stderr = (err.stderr or b"").decode("utf-8", errors="replace")
            raise EncoderError(stage, -1, f"Timed out after {self._timeout}s. {stderr}") from err

        result = ProcessResult(
            args=tuple(str(arg) for arg in args),
            returncode=completed.returncode,
            stdout=completed.stdout.decode("utf-8", errors="replace"),
            stderr=completed.stderr.decode("utf-8", errors="replace"),
        )
        if result.returncode != 0:
            raise EncoderError(stage, result.returncode, result.stderr)
        return result

    def probe(self, path: Path) -> dict[str, Any]:
        """Returns ffprobe's JSON description of ``path``."""
        try:
            return ffmpeg.probe(str(path), cmd=self._encoder.ffprobe_bin)
        except ffmpeg.Error as err:
            stderr = (err.stderr or b"").decode("utf-8", errors="replace")
            raise EncoderError("probe", 1, stderr) from err
        except FileNotFoundError as err:
            raise EncoderError(
                "probe", 127, f"Executable not found: {self._encoder.ffprobe_bin}"
            ) from err

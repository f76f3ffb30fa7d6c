"""Phase timing for job logs.

Every job phase logs a start line and exactly one end line (completed or
failed) carrying the elapsed wall-clock time. ``timed_phase`` wraps a
block and also records the duration into the job's timing map.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from time import perf_counter

from textvid.runtime.phase_contract import phase_label


def format_duration(duration_seconds: float) -> str:
    """Formats a duration for log lines: ``250ms``, ``4.20s`` or ``2m 05s``."""
    milliseconds = max(0, round(duration_seconds * 1000.0))
    if milliseconds < 1:
        return "<1ms"
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    if milliseconds < 60_000:
        return f"{milliseconds / 1000.0:.2f}s"
    minutes, seconds = divmod(milliseconds // 1000, 60)
    return f"{minutes}m {seconds:02d}s"


def log_phase_started(logger: logging.Logger, *, phase_name: str) -> float:
    """Logs phase start and returns the ``perf_counter`` start mark."""
    logger.info("%s started.", phase_label(phase_name))
    return perf_counter()


def _log_phase_end(
    logger: logging.Logger,
    phase_name: str,
    started_at: float,
    outcome: str,
    level: int,
) -> float:
    elapsed_seconds = perf_counter() - started_at
    logger.log(
        level,
        "%s %s (%s).",
        phase_label(phase_name),
        outcome,
        format_duration(elapsed_seconds),
    )
    return elapsed_seconds


def log_phase_completed(
    logger: logging.Logger,
    *,
    phase_name: str,
    started_at: float,
    level: int = logging.INFO,
) -> float:
    """Logs phase completion and returns elapsed seconds."""
    return _log_phase_end(logger, phase_name, started_at, "completed", level)


def log_phase_failed(
    logger: logging.Logger,
    *,
    phase_name: str,
    started_at: float,
    level: int = logging.WARNING,
) -> float:
    """Logs phase failure and returns elapsed seconds."""
    return _log_phase_end(logger, phase_name, started_at, "failed", level)


@contextmanager
def timed_phase(
    logger: logging.Logger, phase_name: str, timings: dict[str, float]
) -> Iterator[None]:
    """Times one phase, storing its duration in ``timings`` on either outcome."""
    started_at = log_phase_started(logger, phase_name=phase_name)
    succeeded = False
    try:
        yield
        succeeded = True
    finally:
        end = log_phase_completed if succeeded else log_phase_failed
        timings[phase_name] = end(
            logger, phase_name=phase_name, started_at=started_at
        )

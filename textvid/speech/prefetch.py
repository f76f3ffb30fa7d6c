"""Concurrent speech resolution with results kept in request order."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Final, NamedTuple

from textvid.runtime.contracts import JobCancelledError
from textvid.speech.cache import SpeechCache
from textvid.speech.voices import normalize_speaker
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

CANCEL_POLL_SECONDS: Final[float] = 0.2


class SpeechRequest(NamedTuple):
    """One spoken line to resolve ahead of timeline construction."""

    speaker: str
    text: str


def prefetch_speech(
    cache: SpeechCache,
    requests: Sequence[SpeechRequest],
    *,
    max_workers: int = 4,
    cancel_event: threading.Event | None = None,
) -> list[Path]:
    """Resolves every request through ``cache`` and returns paths in order.

    Duplicate ``(speaker, text)`` pairs are resolved once. The first
    ``SynthesisError`` raised by any worker propagates after outstanding
    work is cancelled. A set ``cancel_event`` raises ``JobCancelledError``
    between completions; requests already sent to the synthesizer finish,
    queued ones never start.
    """
    if not requests:
        return []

    unique: dict[tuple[str, str], SpeechRequest] = {}
    for request in requests:
        unique.setdefault((normalize_speaker(request.speaker), request.text), request)

    logger.info(
        "Prefetching speech for %d line(s) (%d distinct).", len(requests), len(unique)
    )
    resolved: dict[tuple[str, str], Path] = {}
    workers = max(1, min(max_workers, len(unique)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="speech") as pool:
        futures: dict[Future[Path], tuple[str, str]] = {
            pool.submit(cache.resolve, request.speaker, request.text): key
            for key, request in unique.items()
        }
        pending: set[Future[Path]] = set(futures)
        try:
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    raise JobCancelledError("Job cancelled during speech prefetch.")
                done, pending = wait(
                    pending, timeout=CANCEL_POLL_SECONDS, return_when=FIRST_COMPLETED
                )
                for future in done:
                    resolved[futures[future]] = future.result()
        except BaseException:
            for future in pending:
                future.cancel()
            raise

    return [
        resolved[(normalize_speaker(request.speaker), request.text)]
        for request in requests
    ]

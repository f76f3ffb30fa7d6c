"""Content-addressed on-disk cache for synthesized speech clips."""

from __future__ import annotations

import hashlib
import json
import os
import re
import threading
from dataclasses import dataclass
from logging import Logger
from pathlib import Path

from textvid.speech.client import SpeechSynthesizer
from textvid.speech.voices import normalize_speaker
from textvid.utils.logger import get_logger

logger: Logger = get_logger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class SpeechCacheEntry:
    """Lookup result for one ``(speaker, text)`` pair."""

    path: Path
    cache_key: str
    cache_hit: bool


def speech_cache_key(speaker: str, text: str) -> str:
    """Stable sha256 key over the normalized speaker and the spoken text."""
    payload = json.dumps(
        {"speaker": normalize_speaker(speaker), "text": text},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class SpeechCache:
    """Write-once speech cache backed by a directory of audio files.

    Entries are never rewritten or evicted. Concurrent misses for the same
    key are serialized so the synthesizer is called once per key.
    """

    def __init__(
        self,
        cache_dir: Path,
        synthesizer: SpeechSynthesizer,
        *,
        fallback_dir: Path | None = None,
    ) -> None:
        """Initializes cache location.

        Args:
            cache_dir: Directory holding cached clips; created if missing.
            synthesizer: Collaborator invoked on cache misses.
            fallback_dir: Job-local directory used when a cache file cannot
                be written.
        """
        self._cache_dir: Path = cache_dir
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        self._synthesizer = synthesizer
        self._fallback_dir = fallback_dir
        self._guard = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}
        self._fallbacks: dict[str, Path] = {}

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def path_for(self, speaker: str, text: str) -> Path:
        """Deterministic cache path for one ``(speaker, text)`` pair."""
        key = speech_cache_key(speaker, text)
        slug = _SLUG_RE.sub("_", normalize_speaker(speaker)).strip("_") or "speaker"
        return self._cache_dir / f"{slug}_{key[:16]}.mp3"

    def resolve(self, speaker: str, text: str) -> Path:
        """Returns an audio file for ``text`` spoken by ``speaker``."""
        return self.lookup(speaker, text).path

    def lookup(self, speaker: str, text: str) -> SpeechCacheEntry:
        """Returns the cached clip or synthesizes and stores it.

        Raises:
            SynthesisError: If the synthesizer fails on a cache miss.
        """
        key = speech_cache_key(speaker, text)
        cache_path = self.path_for(speaker, text)
        if _is_populated(cache_path):
            logger.debug("Speech cache hit -> %s", cache_path.name)
            return SpeechCacheEntry(path=cache_path, cache_key=key, cache_hit=True)

        with self._lock_for(key):
            if _is_populated(cache_path):
                return SpeechCacheEntry(path=cache_path, cache_key=key, cache_hit=True)
            fallback = self._fallbacks.get(key)
            if fallback is not None and _is_populated(fallback):
                return SpeechCacheEntry(path=fallback, cache_key=key, cache_hit=True)

            logger.info("Speech cache miss; synthesizing speaker=%r", speaker)
            payload: bytes = self._synthesizer.synthesize(speaker, text)
            stored = self._store(key, cache_path, payload)
            return SpeechCacheEntry(path=stored, cache_key=key, cache_hit=False)

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _store(self, key: str, cache_path: Path, payload: bytes) -> Path:
        try:
            _write_atomic(cache_path, payload)
            logger.debug("Speech cache saved -> %s", cache_path.name)
            return cache_path
        except OSError as err:
            if self._fallback_dir is None:
                raise
            fallback = self._fallback_dir / "speech" / cache_path.name
            logger.warning(
                "Could not write speech cache entry %s (%s); keeping a job-local copy.",
                cache_path,
                err,
            )
            _write_atomic(fallback, payload)
            self._fallbacks[key] = fallback
            return fallback


def _is_populated(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def _write_atomic(path: Path, payload: bytes) -> None:
    """Writes ``payload`` via a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{threading.get_ident()}.tmp")
    try:
        with tmp_path.open("wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)

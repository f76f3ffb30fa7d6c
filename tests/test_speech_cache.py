"""Tests for the content-addressed speech cache."""

import threading
from pathlib import Path

import pytest

from conftest import FakeSynthesizer
from textvid.speech.cache import SpeechCache, speech_cache_key
from textvid.speech.client import SynthesisError


def test_cache_key_normalizes_speaker_only() -> None:
    """Speaker case and padding are ignored; the text is not normalized."""
    assert speech_cache_key(" Bob ", "Hi") == speech_cache_key("bob", "Hi")
    assert speech_cache_key("bob", "Hi") != speech_cache_key("bob", "hi")
    assert speech_cache_key("bob", "Hi") != speech_cache_key("alice", "Hi")


def test_miss_then_hit_calls_synthesizer_once(
    tmp_path: Path, fake_synthesizer: FakeSynthesizer
) -> None:
    """The second lookup of the same pair is served from disk."""
    cache = SpeechCache(tmp_path / "cache", fake_synthesizer)

    first = cache.lookup("Bob", "Hi")
    second = cache.lookup("bob", "Hi")

    assert first.cache_hit is False
    assert second.cache_hit is True
    assert first.path == second.path
    assert first.path.read_bytes() == b"speech:bob:Hi"
    assert fake_synthesizer.calls == [("Bob", "Hi")]


def test_cache_persists_across_instances(
    tmp_path: Path, fake_synthesizer: FakeSynthesizer
) -> None:
    """A new cache over the same directory reuses existing clips."""
    SpeechCache(tmp_path / "cache", fake_synthesizer).resolve("Bob", "Hi")
    other = FakeSynthesizer()

    path = SpeechCache(tmp_path / "cache", other).resolve("Bob", "Hi")

    assert path.is_file()
    assert other.calls == []


def test_write_leaves_no_temporary_files(
    tmp_path: Path, fake_synthesizer: FakeSynthesizer
) -> None:
    """Only the final clip remains after an atomic write."""
    cache = SpeechCache(tmp_path / "cache", fake_synthesizer)
    path = cache.resolve("Bob", "Hi")

    assert sorted(p.name for p in cache.cache_dir.iterdir()) == [path.name]
    assert path.name.startswith("bob_")
    assert path.suffix == ".mp3"


def test_empty_file_is_treated_as_miss(
    tmp_path: Path, fake_synthesizer: FakeSynthesizer
) -> None:
    """A zero-byte leftover does not count as a cached clip."""
    cache = SpeechCache(tmp_path / "cache", fake_synthesizer)
    cache.path_for("Bob", "Hi").write_bytes(b"")

    entry = cache.lookup("Bob", "Hi")

    assert entry.cache_hit is False
    assert entry.path.read_bytes() == b"speech:bob:Hi"


def test_synthesis_failure_propagates_and_writes_nothing(tmp_path: Path) -> None:
    """A failed synthesis raises and leaves no cache entry."""
    cache = SpeechCache(tmp_path / "cache", FakeSynthesizer(fail_on="Hi"))

    with pytest.raises(SynthesisError):
        cache.resolve("Bob", "Hi")

    assert list(cache.cache_dir.iterdir()) == []


def test_concurrent_misses_synthesize_once(tmp_path: Path) -> None:
    """Parallel lookups of one key share a single synthesis call."""
    release = threading.Event()
    synthesizer = FakeSynthesizer(delay=release)
    cache = SpeechCache(tmp_path / "cache", synthesizer)
    results: list[Path] = []

    workers = [
        threading.Thread(target=lambda: results.append(cache.resolve("Bob", "Hi")))
        for _ in range(4)
    ]
    for worker in workers:
        worker.start()
    release.set()
    for worker in workers:
        worker.join(timeout=10)

    assert len(results) == 4
    assert len(set(results)) == 1
    assert synthesizer.calls == [("Bob", "Hi")]


def test_unwritable_cache_entry_falls_back_to_job_dir(
    tmp_path: Path, fake_synthesizer: FakeSynthesizer
) -> None:
    """A failed cache write keeps a job-local copy instead of failing."""
    cache = SpeechCache(
        tmp_path / "cache", fake_synthesizer, fallback_dir=tmp_path / "job"
    )
    # A directory squatting on the entry path makes the final rename fail.
    cache.path_for("Bob", "Hi").mkdir()

    first = cache.resolve("Bob", "Hi")
    second = cache.resolve("Bob", "Hi")

    assert first == second
    assert first.parent == tmp_path / "job" / "speech"
    assert first.read_bytes() == b"speech:bob:Hi"
    assert fake_synthesizer.calls == [("Bob", "Hi")]


def test_unwritable_cache_entry_without_fallback_raises(
    tmp_path: Path, fake_synthesizer: FakeSynthesizer
) -> None:
    """Without a fallback directory the write error propagates."""
    cache = SpeechCache(tmp_path / "cache", fake_synthesizer)
    cache.path_for("Bob", "Hi").mkdir()

    with pytest.raises(OSError):
        cache.resolve("Bob", "Hi")

import sys
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import numpy as np
import pytest
import soundfile as sf

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from textvid.config import EncoderConfig, Theme  # noqa: E402
from textvid.domain import ReactionKind, RenderedFrame, ScriptSettings  # noqa: E402
from textvid.media.process import EncoderError, ProcessResult, ProcessRunner  # noqa: E402
from textvid.render.contracts import (  # noqa: E402
    BubbleSpec,
    ReactionCard,
    ReactionCardError,
    ThreadHeader,
)
from textvid.speech.client import SynthesisError  # noqa: E402


class _AutoHalo:
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    def __enter__(self) -> "_AutoHalo":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        return False


@pytest.fixture(autouse=True)
def _quiet_spinners(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keeps Halo spinners off the test terminal."""
    import textvid.media.assembler as assembler
    import textvid.media.silence as silence
    import textvid.utils.timeline_utils as timeline_utils

    for module in (assembler, silence, timeline_utils):
        monkeypatch.setattr(module, "Halo", _AutoHalo)


class FakeSynthesizer:
    """Deterministic synthesizer that records every call."""

    def __init__(
        self,
        *,
        fail_on: str | None = None,
        delay: threading.Event | None = None,
    ) -> None:
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()
        self._fail_on = fail_on
        self._delay = delay

    def synthesize(self, speaker: str, text: str) -> bytes:
        with self._lock:
            self.calls.append((speaker, text))
        if self._delay is not None:
            self._delay.wait(timeout=5)
        if self._fail_on is not None and text == self._fail_on:
            raise SynthesisError(f"synthesis failed for {text!r}")
        return f"speech:{speaker.strip().lower()}:{text}".encode("utf-8")


class FakeRenderer:
    """Renderer returning tuple handles that describe what was drawn."""

    def __init__(self) -> None:
        self.windows: list[tuple[ThreadHeader | None, tuple[BubbleSpec, ...]]] = []
        self.contexts: list[tuple[BubbleSpec, ...]] = []
        self.saved: list[Path] = []

    def render_window(
        self,
        header: ThreadHeader | None,
        bubbles: Sequence[BubbleSpec],
        settings: ScriptSettings,
    ) -> RenderedFrame:
        self.windows.append((header, tuple(bubbles)))
        handle = (
            "window",
            header.contact_name if header else None,
            tuple(b.message.display_text for b in bubbles),
        )
        return RenderedFrame(handle=handle, width=1080, height=1920)

    def render_context(
        self, bubbles: Sequence[BubbleSpec], settings: ScriptSettings
    ) -> RenderedFrame:
        self.contexts.append(tuple(bubbles))
        handle = ("context", tuple(b.message.display_text for b in bubbles))
        return RenderedFrame(handle=handle, width=930, height=400)

    def placeholder(self, label: str = "") -> RenderedFrame:
        return RenderedFrame(handle=("placeholder", label), width=1080, height=1920)

    def save(self, frame: RenderedFrame, path: Path, *, quality: int = 95) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(repr(frame.handle).encode("utf-8"))
        self.saved.append(path)
        return path


class FakeReactionCards:
    """Reaction-card generator mirroring the plug/rizz frame split."""

    def __init__(self, *, error: Exception | None = None) -> None:
        self.calls: list[tuple[ReactionKind, str, RenderedFrame]] = []
        self._error = error

    def generate(
        self,
        kind: ReactionKind,
        reply_text: str,
        context: RenderedFrame,
        theme: Theme,
    ) -> ReactionCard:
        self.calls.append((kind, reply_text, context))
        if self._error is not None:
            raise self._error
        if kind == "plug":
            return ReactionCard(
                intro_frame=RenderedFrame(("card", kind, reply_text), 1080, 1920)
            )
        return ReactionCard(
            intro_frame=RenderedFrame(("card-partial", kind, reply_text), 1080, 1920),
            reply_frame=RenderedFrame(("card-full", kind, reply_text), 1080, 1920),
        )


class FakeAudio:
    """In-memory ``AudioOps``: durations are tracked per written path.

    Converted clips take their duration from ``clip_durations`` keyed by
    the source bytes, falling back to ``default_duration``.
    """

    def __init__(
        self,
        clip_durations: dict[bytes, float] | None = None,
        *,
        default_duration: float = 1.0,
        failing_sources: Sequence[str] = (),
    ) -> None:
        self.clip_durations = dict(clip_durations or {})
        self.default_duration = default_duration
        self.failing_sources = set(failing_sources)
        self.durations: dict[Path, float] = {}
        self.converted: list[Path] = []
        self.silences: list[float] = []
        self.concats: list[list[Path]] = []

    def to_wav(self, source: Path, target: Path) -> Path:
        if source.name in self.failing_sources:
            raise EncoderError("audio_convert", 1, f"cannot decode {source.name}")
        payload = source.read_bytes()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
        self.converted.append(source)
        self.durations[target] = self.clip_durations.get(payload, self.default_duration)
        return target

    def silence(self, duration_seconds: float, target: Path) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"")
        self.silences.append(duration_seconds)
        self.durations[target] = duration_seconds
        return target

    def concat(self, sources: Sequence[Path], target: Path) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"".join(source.read_bytes() for source in sources))
        self.concats.append(list(sources))
        self.durations[target] = sum(self.durations[source] for source in sources)
        return target

    def duration(self, path: Path) -> float:
        return self.durations[path]


def _option_value(args: Sequence[str], flag: str) -> str | None:
    for index, arg in enumerate(args[:-1]):
        if arg == flag:
            return args[index + 1]
    return None


class FakeRunner(ProcessRunner):
    """ProcessRunner that compiles real ffmpeg graphs but never executes them.

    Output files named in the command are created. The ``silence_analysis``
    stage writes a real silent WAV of ``media_duration`` seconds so slab
    analysis can read it.
    """

    def __init__(
        self,
        *,
        media_duration: float = 5.0,
        silence_stderr: str | Callable[[Sequence[str]], str] = "",
        fail_stages: Sequence[str] = (),
        on_run: Callable[[str, Sequence[str]], None] | None = None,
    ) -> None:
        super().__init__(EncoderConfig())
        self.media_duration = media_duration
        self.silence_stderr = silence_stderr
        self.fail_stages = set(fail_stages)
        self.on_run = on_run
        self.commands: list[tuple[str, tuple[str, ...]]] = []

    def stages(self) -> list[str]:
        return [stage for stage, _ in self.commands]

    def args_for(self, stage: str) -> tuple[str, ...]:
        for recorded_stage, args in self.commands:
            if recorded_stage == stage:
                return args
        raise AssertionError(f"stage {stage!r} never ran; ran {self.stages()}")

    def run_args(self, args: Sequence[str], *, stage: str) -> ProcessResult:
        arguments = tuple(str(arg) for arg in args)
        self.commands.append((stage, arguments))
        if self.on_run is not None:
            self.on_run(stage, arguments)
        if stage in self.fail_stages:
            raise EncoderError(stage, 1, f"{stage} exploded")

        stderr = ""
        if stage == "silence_detect":
            stderr = (
                self.silence_stderr(arguments)
                if callable(self.silence_stderr)
                else self.silence_stderr
            )
        for index, arg in enumerate(arguments):
            if index == 0 or arguments[index - 1] == "-i":
                continue
            if not arg.endswith((".mp4", ".wav")):
                continue
            path = Path(arg)
            path.parent.mkdir(parents=True, exist_ok=True)
            if stage == "silence_analysis":
                sample_rate = int(_option_value(arguments, "-ar") or 16000)
                frames = int(round(self.media_duration * sample_rate))
                sf.write(path, np.zeros(frames, dtype=np.int16), sample_rate)
            else:
                path.write_bytes(f"{stage}".encode("utf-8"))
        return ProcessResult(args=arguments, returncode=0, stdout="", stderr=stderr)

    def probe(self, path: Path) -> dict[str, Any]:
        return {
            "streams": [
                {
                    "codec_type": "video",
                    "avg_frame_rate": "30/1",
                    "width": 1080,
                    "height": 1920,
                },
                {"codec_type": "audio", "duration": str(self.media_duration)},
            ],
            "format": {"duration": str(self.media_duration)},
        }


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def fake_cards() -> FakeReactionCards:
    return FakeReactionCards()


@pytest.fixture
def fake_audio() -> FakeAudio:
    return FakeAudio()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


__all__ = [
    "FakeAudio",
    "FakeReactionCards",
    "FakeRenderer",
    "FakeRunner",
    "FakeSynthesizer",
    "ReactionCardError",
]

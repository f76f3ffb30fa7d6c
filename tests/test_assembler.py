"""Tests for scene-sequence assembly."""

from pathlib import Path

import pytest

from conftest import FakeAudio, FakeRenderer, FakeRunner
from textvid.config import AudioConfig, EncoderConfig
from textvid.domain import RenderedFrame, Scene, SceneKind
from textvid.media.assembler import MediaAssembler, resolve_scene_frames
from textvid.media.process import EncoderError


def _frame(name: str) -> RenderedFrame:
    return RenderedFrame(handle=name, width=1080, height=1920)


def _scene(
    frame: RenderedFrame | None, frames: int, audio: Path, kind: SceneKind = SceneKind.SPEECH
) -> Scene:
    return Scene(
        frame=frame,
        audio_path=audio,
        duration_seconds=frames / 30,
        frame_count=frames,
        kind=kind,
    )


def test_resolve_scene_frames_carries_forward(tmp_path: Path) -> None:
    """Frameless scenes repeat the previous frame; leading ones borrow the first."""
    a, b = _frame("a"), _frame("b")
    clip = tmp_path / "x.wav"
    scenes = [
        _scene(None, 3, clip),
        _scene(a, 3, clip),
        _scene(None, 3, clip, SceneKind.BREAK),
        _scene(b, 3, clip),
        _scene(None, 3, clip),
    ]

    assert resolve_scene_frames(scenes) == [a, a, a, b, b]


def test_resolve_scene_frames_needs_a_frame(tmp_path: Path) -> None:
    """Without any frame a placeholder is required."""
    scenes = [_scene(None, 3, tmp_path / "x.wav")]
    placeholder = _frame("placeholder")

    assert resolve_scene_frames(scenes, placeholder) == [placeholder]
    with pytest.raises(ValueError):
        resolve_scene_frames(scenes)


def _clips(tmp_path: Path, audio: FakeAudio, *durations: float) -> list[Path]:
    paths = []
    for index, duration in enumerate(durations):
        paths.append(audio.silence(duration, tmp_path / "clips" / f"{index}.wav"))
    return paths


def test_assemble_writes_exact_frame_stream(tmp_path: Path) -> None:
    """Each scene contributes exactly its frame count, then everything is cleaned up."""
    renderer = FakeRenderer()
    audio = FakeAudio()
    seen: dict[str, list[str]] = {}

    def capture(stage: str, args: object) -> None:
        if stage == "video_encode":
            frames_dir = tmp_path / "out" / "raw_frames"
            seen["frames"] = sorted(p.name for p in frames_dir.iterdir())
            seen["contents"] = [
                (frames_dir / name).read_text()
                for name in sorted(p.name for p in frames_dir.iterdir())
                if name.startswith("frame_")
            ]

    runner = FakeRunner(on_run=capture)
    clips = _clips(tmp_path, audio, 0.1, 2 / 30, 0.1)
    a, b = _frame("a"), _frame("b")
    scenes = [
        _scene(a, 3, clips[0]),
        _scene(None, 2, clips[1], SceneKind.BREAK),
        _scene(b, 3, clips[2]),
    ]
    output = tmp_path / "out" / "raw.mp4"

    MediaAssembler(EncoderConfig(), AudioConfig(), renderer, audio, runner).assemble(
        scenes, 30, output
    )

    frame_names = [name for name in seen["frames"] if name.startswith("frame_")]
    assert frame_names == [f"frame_{index:06d}.jpg" for index in range(8)]
    assert seen["contents"] == ["'a'"] * 5 + ["'b'"] * 3
    assert len(renderer.saved) == 2
    assert runner.stages() == ["video_encode", "mux"]
    assert audio.concats == [clips]
    assert output.is_file()
    assert sorted(p.name for p in output.parent.iterdir()) == ["raw.mp4"]


def test_encode_and_mux_arguments(tmp_path: Path) -> None:
    """Frames encode at a constant rate; muxing copies video and transcodes audio."""
    audio = FakeAudio()
    runner = FakeRunner()
    clips = _clips(tmp_path, audio, 1.0)

    MediaAssembler(
        EncoderConfig(), AudioConfig(), FakeRenderer(), audio, runner
    ).assemble([_scene(_frame("a"), 30, clips[0])], 30, tmp_path / "raw.mp4")

    encode = runner.args_for("video_encode")
    assert encode[encode.index("-framerate") + 1] == "30"
    assert encode[encode.index("-r") + 1] == "30"
    assert "libx264" in encode and "-an" in encode
    mux = runner.args_for("mux")
    assert mux[mux.index("-vcodec") + 1] == "copy"
    assert mux[mux.index("-acodec") + 1] == "aac"
    assert "-shortest" in mux


def test_all_frameless_scenes_use_placeholder(tmp_path: Path) -> None:
    """A timeline without frames still encodes, using the placeholder image."""
    renderer = FakeRenderer()
    audio = FakeAudio()
    clips = _clips(tmp_path, audio, 0.1)

    MediaAssembler(
        EncoderConfig(), AudioConfig(), renderer, audio, FakeRunner()
    ).assemble([_scene(None, 3, clips[0])], 30, tmp_path / "raw.mp4")

    assert len(renderer.saved) == 1


def test_empty_or_frameless_input_is_rejected(tmp_path: Path) -> None:
    """There must be at least one frame to encode."""
    audio = FakeAudio()
    assembler = MediaAssembler(
        EncoderConfig(), AudioConfig(), FakeRenderer(), audio, FakeRunner()
    )
    clips = _clips(tmp_path, audio, 0.0)

    with pytest.raises(ValueError):
        assembler.assemble([], 30, tmp_path / "raw.mp4")
    with pytest.raises(ValueError):
        assembler.assemble([_scene(_frame("a"), 0, clips[0])], 30, tmp_path / "raw.mp4")


def test_failed_mux_cleans_intermediates(tmp_path: Path) -> None:
    """Encoder failures propagate and leave no working files behind."""
    audio = FakeAudio()
    clips = _clips(tmp_path, audio, 0.1)
    out_dir = tmp_path / "out"

    with pytest.raises(EncoderError):
        MediaAssembler(
            EncoderConfig(), AudioConfig(), FakeRenderer(), audio, FakeRunner(fail_stages=["mux"])
        ).assemble([_scene(_frame("a"), 3, clips[0])], 30, out_dir / "raw.mp4")

    assert list(out_dir.iterdir()) == []

"""Domain data structures for scripts, scenes, and the assembled timeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Literal, NamedTuple

type ReactionKind = Literal["plug", "rizz"]


@dataclass(frozen=True, slots=True)
class ScriptSettings:
    """Global directives extracted from a script before message parsing."""

    unread_count: str = "999999+"
    corner_radius: int = 50


@dataclass(frozen=True, slots=True)
class TextMessage:
    """A chat bubble (or audio-only line) spoken by ``speaker``."""

    sender: str
    speaker: str
    display_text: str
    speech_text: str
    sfx_ref: str | None = None
    audio_only: bool = False


@dataclass(frozen=True, slots=True)
class ImageMessage:
    """A chat line whose display text resolves to an image file reference."""

    sender: str
    speaker: str
    display_text: str
    speech_text: str
    image_ref: str
    sfx_ref: str | None = None
    audio_only: bool = False


@dataclass(frozen=True, slots=True)
class ReactionIntro:
    """Optional spoken line that precedes a plug/rizz reply."""

    speaker: str
    display_text: str
    speech_text: str
    sfx_ref: str | None = None
    silent: bool = False


@dataclass(frozen=True, slots=True)
class ReactionMessage:
    """Two-part plug/rizz interaction rendered by the reaction-card service."""

    kind: ReactionKind
    speaker: str
    display_text: str
    speech_text: str
    silent: bool = False
    intro: ReactionIntro | None = None


@dataclass(frozen=True, slots=True)
class BreakMessage:
    """Author-inserted silence that must survive trimming."""

    duration_seconds: float


type ChatMessage = TextMessage | ImageMessage
type Message = TextMessage | ImageMessage | ReactionMessage | BreakMessage


@dataclass(frozen=True, slots=True)
class Thread:
    """One conversation with a single contact."""

    contact_name: str
    messages: tuple[Message, ...]
    avatar_ref: str | None = None


@dataclass(frozen=True, slots=True)
class ParsedScript:
    """Parser output: global directives plus ordered threads."""

    settings: ScriptSettings
    threads: tuple[Thread, ...]


class SceneKind(StrEnum):
    """How a scene's audio was sourced."""

    SPEECH = "speech"
    NOTIFICATION = "notification"
    BREAK = "break"
    REACTION_INTRO = "reaction_intro"
    REACTION_REPLY = "reaction_reply"


@dataclass(frozen=True, slots=True)
class RenderedFrame:
    """Opaque renderer output; the pipeline only inspects its dimensions."""

    handle: object
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Scene:
    """One timeline unit pairing an audio clip with an optional frame.

    ``frame`` is ``None`` when the scene keeps showing the previous frame.
    """

    frame: RenderedFrame | None
    audio_path: Path
    duration_seconds: float
    frame_count: int
    kind: SceneKind


class ProtectedRange(NamedTuple):
    """Time window the silence trimmer must keep verbatim."""

    start_seconds: float
    end_seconds: float


class TimelineEntry(NamedTuple):
    """Message-level timeline record returned to the job caller."""

    text: str
    start_seconds: float
    end_seconds: float
    kind: SceneKind = SceneKind.SPEECH

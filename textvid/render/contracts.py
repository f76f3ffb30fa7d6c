"""Contracts for the frame renderer and the reaction-card collaborator.

The pipeline never looks at pixels: frames are opaque ``RenderedFrame``
handles that only the renderer that produced them knows how to save.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from textvid.config import Theme
from textvid.domain import ChatMessage, ReactionKind, RenderedFrame, ScriptSettings


class ReactionCardError(RuntimeError):
    """Raised when the reaction-card collaborator cannot produce a card."""


@dataclass(frozen=True, slots=True)
class BubbleSpec:
    """Everything a renderer needs to draw one chat bubble."""

    message: ChatMessage
    outgoing: bool
    show_tail: bool


@dataclass(frozen=True, slots=True)
class ThreadHeader:
    """Contact header drawn above the first window of a thread."""

    contact_name: str
    avatar_ref: str | None
    unread_count: str


@dataclass(frozen=True, slots=True)
class ReactionCard:
    """Frames produced for one plug/rizz interaction.

    ``reply_frame`` is ``None`` when the reply keeps showing the intro card.
    """

    intro_frame: RenderedFrame
    reply_frame: RenderedFrame | None = None


class FrameRenderer(Protocol):
    """Draws chat frames for one job's theme and asset directory."""

    def render_window(
        self,
        header: ThreadHeader | None,
        bubbles: Sequence[BubbleSpec],
        settings: ScriptSettings,
    ) -> RenderedFrame:
        """Renders the cumulative bubble window, optionally under a header."""
        ...

    def render_context(
        self, bubbles: Sequence[BubbleSpec], settings: ScriptSettings
    ) -> RenderedFrame:
        """Renders the short context strip handed to the reaction-card service."""
        ...

    def placeholder(self, label: str = "") -> RenderedFrame:
        """Returns a neutral full-canvas frame."""
        ...

    def save(self, frame: RenderedFrame, path: Path, *, quality: int = 95) -> Path:
        """Writes ``frame`` as a JPEG at canvas size."""
        ...


class ReactionCardGenerator(Protocol):
    """Produces the card frames for plug/rizz messages."""

    def generate(
        self,
        kind: ReactionKind,
        reply_text: str,
        context: RenderedFrame,
        theme: Theme,
    ) -> ReactionCard:
        """Returns the intro (and for rizz, the reveal) frame.

        Raises:
            ReactionCardError: When no card could be produced.
            TimeoutError: When the collaborator did not answer in time.
        """
        ...

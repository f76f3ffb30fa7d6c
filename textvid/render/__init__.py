"""Frame renderer and reaction-card collaborators."""

from .contracts import (
    BubbleSpec,
    FrameRenderer,
    ReactionCard,
    ReactionCardError,
    ReactionCardGenerator,
    ThreadHeader,
)
from .placeholder import PillowChatRenderer, PlaceholderReactionCards

__all__ = [
    "BubbleSpec",
    "FrameRenderer",
    "PillowChatRenderer",
    "PlaceholderReactionCards",
    "ReactionCard",
    "ReactionCardError",
    "ReactionCardGenerator",
    "ThreadHeader",
]

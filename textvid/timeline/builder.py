"""
Timeline construction from parsed threads.

Speech for every spoken line is resolved up front (concurrently, through
the speech cache). Scenes are then produced strictly in script order: each
scene's start time is the exact cumulative duration of everything before
it, so nothing after the prefetch runs out of order.

Per message:

    break            ->  exact-length silence, protected range, no new frame
    plug / rizz      ->  optional intro scene, then the reply scene, both
                         framed by one reaction-card call
    image / "..." /
    audio-only line  ->  side-specific notification sound, plus any effect
    anything else    ->  speech, with an optional sound effect appended
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, assert_never

from textvid.domain import (
    BreakMessage,
    ChatMessage,
    ImageMessage,
    Message,
    ParsedScript,
    ReactionIntro,
    ReactionMessage,
    RenderedFrame,
    SceneKind,
    ScriptSettings,
    TextMessage,
    Thread,
)
from textvid.media.audio import AudioOps
from textvid.media.process import EncoderError
from textvid.render.contracts import (
    BubbleSpec,
    FrameRenderer,
    ReactionCard,
    ReactionCardError,
    ReactionCardGenerator,
    ThreadHeader,
)
from textvid.runtime.contracts import JobCancelledError
from textvid.script.text import is_dots_only
from textvid.speech.cache import SpeechCache
from textvid.speech.prefetch import SpeechRequest, prefetch_speech
from textvid.speech.voices import normalize_speaker
from textvid.timeline.schedule import Timeline
from textvid.utils.logger import get_logger

if TYPE_CHECKING:
    from textvid.runtime.contracts import JobContext

logger: logging.Logger = get_logger(__name__)


def paginate(
    messages: Sequence[Message], *, page_size_text: int, page_size_with_image: int
) -> list[tuple[Message, ...]]:
    """Splits a thread into display windows.

    A tentative window of ``page_size_text`` messages shrinks to
    ``page_size_with_image`` when it contains an image.
    """
    if page_size_text <= 0 or page_size_with_image <= 0:
        raise ValueError("Page sizes must be positive.")
    windows: list[tuple[Message, ...]] = []
    start = 0
    while start < len(messages):
        tentative = messages[start : start + page_size_text]
        size = (
            page_size_with_image
            if any(isinstance(message, ImageMessage) for message in tentative)
            else page_size_text
        )
        windows.append(tuple(messages[start : start + size]))
        start += size
    return windows


def is_visible(message: Message) -> bool:
    """Whether ``message`` draws a bubble."""
    return isinstance(message, (TextMessage, ImageMessage)) and not message.audio_only


def uses_notification_sound(message: ChatMessage) -> bool:
    """Images, typing beats and audio-only lines play a notification sound."""
    return (
        isinstance(message, ImageMessage)
        or message.audio_only
        or is_dots_only(message.display_text)
    )


def collect_speech_requests(parsed: ParsedScript) -> list[SpeechRequest]:
    """Lists every line that will be synthesized, in script order."""
    requests: list[SpeechRequest] = []
    for thread in parsed.threads:
        for message in thread.messages:
            match message:
                case BreakMessage():
                    pass
                case ReactionMessage(intro=intro):
                    if intro is not None and not intro.silent:
                        requests.append(SpeechRequest(intro.speaker, intro.speech_text))
                    if not message.silent:
                        requests.append(
                            SpeechRequest(message.speaker, message.speech_text)
                        )
                case TextMessage() | ImageMessage():
                    if not uses_notification_sound(message):
                        requests.append(
                            SpeechRequest(message.speaker, message.speech_text)
                        )
                case _:
                    assert_never(message)
    return requests


def _window_bubbles(window: Sequence[Message], outgoing_sender: str) -> list[BubbleSpec]:
    """Bubble specs for the visible messages of one window, tails resolved."""
    visible: list[ChatMessage] = [
        m
        for m in window
        if isinstance(m, (TextMessage, ImageMessage)) and not m.audio_only
    ]
    specs: list[BubbleSpec] = []
    for index, message in enumerate(visible):
        sender = normalize_speaker(message.sender)
        following = visible[index + 1] if index + 1 < len(visible) else None
        specs.append(
            BubbleSpec(
                message=message,
                outgoing=sender == outgoing_sender,
                show_tail=following is None
                or normalize_speaker(following.sender) != sender,
            )
        )
    return specs


@dataclass
class _ThreadCursor:
    """Rendering state for the window currently being built."""

    header: ThreadHeader | None
    bubbles: list[BubbleSpec]
    shown: list[BubbleSpec]


class TimelineBuilder:
    """Resolves parsed messages into an ordered, frame-accurate timeline."""

    def __init__(
        self,
        context: JobContext,
        cache: SpeechCache,
        renderer: FrameRenderer,
        reaction_cards: ReactionCardGenerator,
        audio: AudioOps,
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._context = context
        self._settings = context.settings
        self._cache = cache
        self._renderer = renderer
        self._reaction_cards = reaction_cards
        self._audio = audio
        self._cancel_event = cancel_event
        self._scene_dir = context.work_dir / "scenes"
        self._speech: dict[tuple[str, str], Path] = {}
        self._notifications: dict[bool, Path] = {}
        self._clip_counter = 0
        self._script_settings = ScriptSettings()
        self._rendered: list[BubbleSpec] = []

    def build(self, parsed: ParsedScript) -> Timeline:
        """Builds the timeline for every thread of ``parsed`` in order."""
        self._scene_dir.mkdir(parents=True, exist_ok=True)
        self._script_settings = parsed.settings
        self._rendered = []
        self._check_cancelled()
        self._prefetch(parsed)

        timeline = Timeline(self._settings.video.fps)
        for thread in parsed.threads:
            self._build_thread(thread, timeline)
        logger.info(
            "Timeline built: %d scene(s), %.2fs, %d frame(s), %d protected range(s).",
            len(timeline),
            timeline.total_duration,
            timeline.total_frames,
            len(timeline.protected_ranges),
        )
        return timeline

    # Speech

    def _prefetch(self, parsed: ParsedScript) -> None:
        requests = collect_speech_requests(parsed)
        paths = prefetch_speech(
            self._cache,
            requests,
            max_workers=self._settings.synthesis.max_workers,
            cancel_event=self._cancel_event,
        )
        for request, path in zip(requests, paths, strict=True):
            self._speech[(normalize_speaker(request.speaker), request.text)] = path

    def _speech_clip(self, speaker: str, text: str) -> Path:
        key = (normalize_speaker(speaker), text)
        source = self._speech.get(key)
        if source is None:
            source = self._cache.resolve(speaker, text)
            self._speech[key] = source
        return self._audio.to_wav(source, self._next_clip("speech"))

    def _next_clip(self, label: str) -> Path:
        self._clip_counter += 1
        return self._scene_dir / f"clip_{self._clip_counter:05d}_{label}.wav"

    # Effects and notifications

    def _resolve_sfx(self, sfx_ref: str, scene_index: int) -> Path | None:
        asset_dir = self._context.asset_dir
        for candidate in (asset_dir / f"{sfx_ref}.mp3", asset_dir / sfx_ref):
            if candidate.is_file():
                try:
                    return self._audio.to_wav(candidate, self._next_clip("sfx"))
                except EncoderError as err:
                    logger.warning(
                        "Scene %d: could not convert sound effect %s (%s); skipping it.",
                        scene_index,
                        candidate.name,
                        err,
                    )
                    return None
        logger.warning(
            "Scene %d: sound effect %r not found in %s; skipping it.",
            scene_index,
            sfx_ref,
            asset_dir,
        )
        return None

    def _with_sfx(self, speech: Path, sfx_ref: str | None, scene_index: int) -> Path:
        if not sfx_ref:
            return speech
        effect = self._resolve_sfx(sfx_ref, scene_index)
        if effect is None:
            return speech
        return self._audio.concat([speech, effect], self._next_clip("speech_sfx"))

    def _notification_clip(self, outgoing: bool, scene_index: int) -> Path:
        cached = self._notifications.get(outgoing)
        if cached is not None:
            return cached
        source = self._context.sent_sfx if outgoing else self._context.received_sfx
        side = "sent" if outgoing else "received"
        clip: Path | None = None
        if source.is_file():
            try:
                clip = self._audio.to_wav(source, self._scene_dir / f"notification_{side}.wav")
            except EncoderError as err:
                logger.warning(
                    "Scene %d: could not convert %s notification %s (%s).",
                    scene_index,
                    side,
                    source.name,
                    err,
                )
        else:
            logger.warning(
                "Scene %d: %s notification sound %s is missing.",
                scene_index,
                side,
                source,
            )
        if clip is None:
            clip = self._audio.silence(
                self._settings.audio.placeholder_notification_seconds,
                self._scene_dir / f"notification_{side}_placeholder.wav",
            )
            logger.info(
                "Using %.2fs of silence as the %s notification.",
                self._settings.audio.placeholder_notification_seconds,
                side,
            )
        self._notifications[outgoing] = clip
        return clip

    # Scenes

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise JobCancelledError("Job cancelled during timeline build.")

    def _is_outgoing(self, sender: str) -> bool:
        return normalize_speaker(sender) == self._settings.outgoing_sender

    def _build_thread(self, thread: Thread, timeline: Timeline) -> None:
        pagination = self._settings.pagination
        windows = paginate(
            thread.messages,
            page_size_text=pagination.page_size_text,
            page_size_with_image=pagination.page_size_with_image,
        )
        logger.debug(
            "Thread %r: %d message(s) in %d window(s).",
            thread.contact_name,
            len(thread.messages),
            len(windows),
        )
        for window_index, window in enumerate(windows):
            header = (
                ThreadHeader(
                    contact_name=thread.contact_name,
                    avatar_ref=thread.avatar_ref,
                    unread_count=self._script_settings.unread_count,
                )
                if window_index == 0
                else None
            )
            cursor = _ThreadCursor(
                header=header,
                bubbles=_window_bubbles(window, self._settings.outgoing_sender),
                shown=[],
            )
            for message in window:
                self._check_cancelled()
                self._add_message(message, cursor, timeline)

    def _add_message(
        self, message: Message, cursor: _ThreadCursor, timeline: Timeline
    ) -> None:
        scene_index = len(timeline)
        match message:
            case BreakMessage(duration_seconds=seconds):
                clip = self._audio.silence(seconds, self._next_clip("break"))
                protected = timeline.add_break(
                    clip, self._audio.duration(clip), text=f"<break:{seconds:g}s>"
                )
                logger.debug(
                    "Scene %d: break protected %.3fs-%.3fs.",
                    scene_index,
                    protected.start_seconds,
                    protected.end_seconds,
                )
            case ReactionMessage():
                self._add_reaction(message, timeline)
            case TextMessage() | ImageMessage():
                self._add_chat(message, cursor, timeline)
            case _:
                assert_never(message)

    def _add_chat(
        self, message: ChatMessage, cursor: _ThreadCursor, timeline: Timeline
    ) -> None:
        scene_index = len(timeline)
        frame: RenderedFrame | None = None
        if is_visible(message):
            bubble = cursor.bubbles[len(cursor.shown)]
            cursor.shown.append(bubble)
            self._rendered.append(bubble)
            frame = self._renderer.render_window(
                cursor.header, cursor.shown, self._script_settings
            )

        if uses_notification_sound(message):
            notification = self._notification_clip(
                self._is_outgoing(message.sender), scene_index
            )
            clip = self._with_sfx(notification, message.sfx_ref, scene_index)
            kind = SceneKind.NOTIFICATION
        else:
            speech = self._speech_clip(message.speaker, message.speech_text)
            clip = self._with_sfx(speech, message.sfx_ref, scene_index)
            kind = SceneKind.SPEECH
        timeline.add_scene(
            frame, clip, self._audio.duration(clip), kind, text=message.display_text
        )

    def _reaction_card(self, message: ReactionMessage, scene_index: int) -> ReactionCard:
        context_size = self._settings.pagination.reaction_context_messages
        context = self._renderer.render_context(
            self._rendered[-context_size:], self._script_settings
        )
        try:
            return self._reaction_cards.generate(
                message.kind, message.display_text, context, self._context.theme
            )
        except (ReactionCardError, TimeoutError) as err:
            logger.warning(
                "Scene %d: %s card generation failed (%s); using placeholder frame.",
                scene_index,
                message.kind,
                err,
            )
            return ReactionCard(
                intro_frame=self._renderer.placeholder(message.display_text)
            )

    def _intro_clip(self, intro: ReactionIntro, scene_index: int) -> Path | None:
        if not intro.silent:
            speech = self._speech_clip(intro.speaker, intro.speech_text)
            return self._with_sfx(speech, intro.sfx_ref, scene_index)
        if intro.sfx_ref:
            return self._resolve_sfx(intro.sfx_ref, scene_index)
        return None

    def _add_reaction(self, message: ReactionMessage, timeline: Timeline) -> None:
        scene_index = len(timeline)
        card = self._reaction_card(message, scene_index)

        intro_shown = False
        if message.intro is not None:
            clip = self._intro_clip(message.intro, scene_index)
            if clip is not None:
                timeline.add_scene(
                    card.intro_frame,
                    clip,
                    self._audio.duration(clip),
                    SceneKind.REACTION_INTRO,
                    text=message.intro.display_text,
                )
                intro_shown = True

        if message.silent:
            return
        frame = card.reply_frame if intro_shown else (card.reply_frame or card.intro_frame)
        clip = self._speech_clip(message.speaker, message.speech_text)
        timeline.add_scene(
            frame,
            clip,
            self._audio.duration(clip),
            SceneKind.REACTION_REPLY,
            text=message.display_text,
        )

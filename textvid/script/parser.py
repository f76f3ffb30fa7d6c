"""
Conversation script parser.

Turns the line-oriented script format into ordered threads of typed
messages. Parsing runs in two passes over the trimmed, non-empty lines:
the first pass lifts the global ``UM`` (unread count) and ``CR`` (corner
radius) directives out of the stream, the second classifies every other
line by the first pattern it matches:

    break  ->  plug/rizz intro  ->  plug/rizz reply  ->  thread header
           ->  "speaker > sender: text"  ->  "sender: text"

Lines matching none of these are dropped unless ``strict`` is set.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Final, NamedTuple

from textvid.domain import (
    BreakMessage,
    ImageMessage,
    Message,
    ParsedScript,
    ReactionIntro,
    ReactionKind,
    ReactionMessage,
    ScriptSettings,
    TextMessage,
    Thread,
)
from textvid.script.text import (
    image_reference,
    speech_for,
    split_sfx_suffix,
    split_speech_override,
)
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

CORNER_RADIUS_SCALE: Final[float] = 1.5
SILENT_SPEAKER: Final[str] = "none"
AUDIO_ONLY_SENDER: Final[str] = "audio"

_UNREAD_RE = re.compile(r"^UM[:\s]+(\d+)$", re.IGNORECASE)
_CORNER_RE = re.compile(r"^CR[:\s]+(\d+)$", re.IGNORECASE)
_LEGACY_RE = re.compile(r"^rizz_say:|^rizz:", re.IGNORECASE)
_BREAK_RE = re.compile(r"^<break\s*:\s*(\d+(?:\.\d+)?)\s*s\s*:?>$", re.IGNORECASE)
_INTRO_RE = re.compile(r"^(plug|rizz)say\s*>\s*([^:]+)\s*:\s*(.+)$", re.IGNORECASE)
_REPLY_RE = re.compile(r"^(plug|rizz)\s*>\s*([^:]+)\s*:\s*(.+)$", re.IGNORECASE)
_THREAD_RE = re.compile(r"^iMessage[:\s]+([^:]+)(?:\s*:\s*(.+))?$", re.IGNORECASE)


class ScriptParseError(ValueError):
    """Raised in strict mode for a line that matches no known pattern."""

    def __init__(self, line_number: int, line: str) -> None:
        super().__init__(f"Unrecognized script line {line_number}: {line!r}")
        self.line_number = line_number
        self.line = line


class IntroState(StrEnum):
    """Plug/rizz intro buffering state for the open thread."""

    IDLE = "idle"
    PENDING_INTRO = "pending_intro"


@dataclass
class _IntroBuffer:
    """Two-state machine holding at most one pending intro per reaction kind."""

    state: IntroState = IntroState.IDLE
    pending: dict[str, ReactionIntro] = field(default_factory=dict)

    def hold(self, kind: str, intro: ReactionIntro) -> None:
        self.pending[kind] = intro
        self.state = IntroState.PENDING_INTRO

    def take(self, kind: str) -> ReactionIntro | None:
        intro = self.pending.pop(kind, None)
        if not self.pending:
            self.state = IntroState.IDLE
        return intro

    def clear(self) -> None:
        self.pending.clear()
        self.state = IntroState.IDLE


@dataclass
class _OpenThread:
    contact_name: str
    avatar_ref: str | None
    messages: list[Message] = field(default_factory=list)

    def close(self) -> Thread:
        return Thread(
            contact_name=self.contact_name,
            messages=tuple(self.messages),
            avatar_ref=self.avatar_ref,
        )


def _extract_directives(
    lines: list[tuple[int, str]],
) -> tuple[ScriptSettings, list[tuple[int, str]]]:
    """First pass: lifts global directives out of the numbered line stream."""
    defaults = ScriptSettings()
    unread_count = defaults.unread_count
    corner_radius = defaults.corner_radius
    remaining: list[tuple[int, str]] = []
    for number, line in lines:
        unread = _UNREAD_RE.match(line)
        if unread:
            unread_count = unread.group(1)
            continue
        corner = _CORNER_RE.match(line)
        if corner:
            corner_radius = int(
                float(corner.group(1)) * CORNER_RADIUS_SCALE + 0.5
            )
            continue
        remaining.append((number, line))
    return (
        ScriptSettings(unread_count=unread_count, corner_radius=corner_radius),
        remaining,
    )


def _parse_intro(speaker: str, raw_text: str) -> ReactionIntro:
    clean_text, sfx_ref = split_sfx_suffix(raw_text)
    display_text, speech_text = split_speech_override(clean_text)
    return ReactionIntro(
        speaker=speaker,
        display_text=display_text,
        speech_text=speech_for(display_text, speech_text),
        sfx_ref=sfx_ref,
        silent=speaker.lower() == SILENT_SPEAKER,
    )


def _parse_reply(
    kind: ReactionKind, speaker: str, raw_text: str, intro: ReactionIntro | None
) -> ReactionMessage:
    display_text, speech_text = split_speech_override(raw_text.strip())
    return ReactionMessage(
        kind=kind,
        speaker=speaker,
        display_text=display_text,
        speech_text=speech_for(display_text, speech_text),
        silent=speaker.lower() == SILENT_SPEAKER,
        intro=intro,
    )


def _parse_chat_line(
    sender: str, speaker: str, raw_text: str, *, audio_only: bool
) -> TextMessage | ImageMessage | None:
    clean_text, sfx_ref = split_sfx_suffix(raw_text)
    display_text, speech_text = split_speech_override(clean_text)
    if not display_text:
        return None
    spoken = speech_for(display_text, speech_text)
    image_ref = image_reference(display_text)
    if image_ref is not None and not audio_only:
        return ImageMessage(
            sender=sender,
            speaker=speaker,
            display_text=display_text,
            speech_text=spoken,
            image_ref=image_ref,
            sfx_ref=sfx_ref,
        )
    return TextMessage(
        sender=sender,
        speaker=speaker,
        display_text=display_text,
        speech_text=spoken,
        sfx_ref=sfx_ref,
        audio_only=audio_only,
    )


class _ChatLine(NamedTuple):
    sender: str
    speaker: str
    raw_text: str
    audio_only: bool


def _split_chat_line(line: str) -> _ChatLine | None:
    """Matches the two-part and single-part message forms."""
    if ">" in line and ":" in line[line.index(">") :]:
        gt_index = line.index(">")
        colon_index = line.index(":", gt_index)
        sender = line[gt_index + 1 : colon_index].strip()
        return _ChatLine(
            sender=sender,
            speaker=line[:gt_index].strip(),
            raw_text=line[colon_index + 1 :],
            audio_only=sender.lower() == AUDIO_ONLY_SENDER,
        )
    if ":" in line:
        colon_index = line.index(":")
        sender = line[:colon_index].strip()
        return _ChatLine(
            sender=sender,
            speaker=sender,
            raw_text=line[colon_index + 1 :],
            audio_only=False,
        )
    return None


def parse_script(raw_text: str, *, strict: bool = False) -> ParsedScript:
    """Parses script text into global settings and ordered threads.

    Args:
        raw_text: Full script contents.
        strict: Raise ``ScriptParseError`` for unrecognized lines instead of
            dropping them.

    Returns:
        Parsed settings and the threads in script order. Threads without
        messages are omitted.
    """
    numbered = [
        (number, line.strip())
        for number, line in enumerate(raw_text.splitlines(), start=1)
        if line.strip()
    ]
    settings, lines = _extract_directives(numbered)

    threads: list[Thread] = []
    current: _OpenThread | None = None
    intros = _IntroBuffer()

    for line_number, line in lines:
        if _LEGACY_RE.match(line):
            continue

        brk = _BREAK_RE.match(line)
        if brk:
            if current is not None:
                current.messages.append(BreakMessage(float(brk.group(1))))
                logger.debug("Break detected: %ss", brk.group(1))
            continue

        intro_match = _INTRO_RE.match(line)
        if intro_match:
            kind = intro_match.group(1).lower()
            intros.hold(
                kind,
                _parse_intro(intro_match.group(2).strip(), intro_match.group(3).strip()),
            )
            continue

        reply_match = _REPLY_RE.match(line)
        if reply_match:
            kind = reply_match.group(1).lower()
            intro = intros.take(kind)
            if current is not None:
                current.messages.append(
                    _parse_reply(
                        "plug" if kind == "plug" else "rizz",
                        reply_match.group(2).strip(),
                        reply_match.group(3),
                        intro,
                    )
                )
            continue

        header = _THREAD_RE.match(line)
        if header:
            if current is not None and current.messages:
                threads.append(current.close())
            avatar = header.group(2).strip() if header.group(2) else None
            current = _OpenThread(contact_name=header.group(1).strip(), avatar_ref=avatar)
            intros.clear()
            continue

        chat_line = _split_chat_line(line)
        if chat_line is not None:
            message = _parse_chat_line(
                chat_line.sender,
                chat_line.speaker,
                chat_line.raw_text,
                audio_only=chat_line.audio_only,
            )
            if message is None:
                logger.debug("Dropping message with empty text: %r", line)
            elif current is not None:
                current.messages.append(message)
            else:
                logger.debug("Dropping message outside any thread: %r", line)
            continue

        if strict:
            raise ScriptParseError(line_number, line)
        logger.debug("Dropping unrecognized script line: %r", line)

    if current is not None and current.messages:
        threads.append(current.close())

    return ParsedScript(settings=settings, threads=tuple(threads))


def parse_script_file(path: str | Path, *, strict: bool = False) -> ParsedScript:
    """Reads a UTF-8 script file and parses it."""
    script_path = Path(path)
    logger.info("Parsing script %s", script_path)
    return parse_script(script_path.read_text(encoding="utf-8"), strict=strict)

"""Inline markup helpers for script message text."""

from __future__ import annotations

import re
from typing import Final

SPEECH_OVERRIDE_SEPARATOR: Final[str] = " == "
IMAGE_EXTENSIONS: Final[tuple[str, ...]] = (".png", ".jpg", ".jpeg", ".gif", ".webp")

_SFX_SUFFIX_RE = re.compile(r"\s*\[([^\]]+)\]\s*$")
_REDACTION_RE = re.compile(r"\{([^}]*)\}")
_DOTS_ONLY_RE = re.compile(r"^[.\s…]+$")


def split_sfx_suffix(text: str) -> tuple[str, str | None]:
    """Splits a trailing ``[name]`` sound-effect reference off ``text``."""
    match = _SFX_SUFFIX_RE.search(text)
    if match is None:
        return text.strip(), None
    return text[: match.start()].strip(), match.group(1).strip()


def split_speech_override(text: str) -> tuple[str, str]:
    """Returns ``(display_text, speech_text)`` split on ``" == "``."""
    index = text.find(SPEECH_OVERRIDE_SEPARATOR)
    if index == -1:
        return text, text
    return (
        text[:index].strip(),
        text[index + len(SPEECH_OVERRIDE_SEPARATOR) :].strip(),
    )


def strip_redactions(text: str) -> str:
    """Removes ``{...}`` redaction markers, keeping the enclosed text."""
    return _REDACTION_RE.sub(r"\1", text)


def redaction_runs(text: str) -> list[tuple[str, bool]]:
    """Splits text into ``(chunk, redacted)`` runs for renderers."""
    runs: list[tuple[str, bool]] = []
    cursor = 0
    for match in _REDACTION_RE.finditer(text):
        if match.start() > cursor:
            runs.append((text[cursor : match.start()], False))
        runs.append((match.group(1), True))
        cursor = match.end()
    if cursor < len(text):
        runs.append((text[cursor:], False))
    return runs


def speech_for(display_text: str, speech_text: str) -> str:
    """Speech text with redactions stripped, falling back to the display text."""
    spoken = strip_redactions(speech_text).strip()
    if spoken:
        return spoken
    return strip_redactions(display_text).strip()


def image_reference(display_text: str) -> str | None:
    """Returns the image file name when the last token is an image path."""
    tokens = strip_redactions(display_text).strip().split()
    if not tokens:
        return None
    candidate = tokens[-1]
    if candidate.lower().endswith(IMAGE_EXTENSIONS):
        return candidate
    return None


def is_dots_only(text: str) -> bool:
    """Whether a bubble holds nothing but dots/ellipses (a typing beat)."""
    return bool(_DOTS_ONLY_RE.match(text))

"""Conversation script parsing."""

from .parser import ScriptParseError, parse_script, parse_script_file
from .text import (
    image_reference,
    is_dots_only,
    redaction_runs,
    split_sfx_suffix,
    split_speech_override,
    strip_redactions,
)

__all__ = [
    "ScriptParseError",
    "image_reference",
    "is_dots_only",
    "parse_script",
    "parse_script_file",
    "redaction_runs",
    "split_sfx_suffix",
    "split_speech_override",
    "strip_redactions",
]

"""Canonical runtime phase names for job observability."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

PHASE_WORKFLOW_TOTAL: Final[str] = "workflow_total"
PHASE_PARSE: Final[str] = "parse"
PHASE_TIMELINE_BUILD: Final[str] = "timeline_build"
PHASE_ASSEMBLE: Final[str] = "assemble"
PHASE_SILENCE_TRIM: Final[str] = "silence_trim"

PHASE_LABELS: Final[Mapping[str, str]] = {
    PHASE_WORKFLOW_TOTAL: "Video job",
    PHASE_PARSE: "Script parse",
    PHASE_TIMELINE_BUILD: "Timeline build",
    PHASE_ASSEMBLE: "Video assembly",
    PHASE_SILENCE_TRIM: "Silence trim",
}


def phase_label(phase_name: str) -> str:
    """Returns a human-readable label for one phase identifier."""
    label = PHASE_LABELS.get(phase_name)
    if label is not None:
        return label
    fallback = phase_name.strip().replace("_", " ")
    if not fallback:
        return "Workflow step"
    return fallback[0].upper() + fallback[1:]

"""Runtime contracts for job orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from textvid.config import AppConfig, Theme
from textvid.domain import ProtectedRange, TimelineEntry

SENT_SFX_DEFAULT: Final[str] = "sent.mp3"
RECEIVED_SFX_DEFAULT: Final[str] = "received.mp3"


class JobCancelledError(RuntimeError):
    """Raised when a job's cancellation event is set mid-pipeline."""


class EmptyScriptError(ValueError):
    """Raised when a script yields no threads; nothing is synthesized."""


class PipelineStageError(RuntimeError):
    """Single structured error surfaced to the caller for a fatal failure."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


@dataclass(frozen=True)
class JobRequest:
    """Input contract for one video job."""

    script_path: Path
    asset_dir: Path
    api_key: str = ""
    theme: str = "dark"
    sent_sfx: Path | None = None
    received_sfx: Path | None = None
    output_dir: Path | None = None
    strict: bool = False


@dataclass(frozen=True)
class JobContext:
    """Everything a job's components need, threaded explicitly."""

    request: JobRequest
    settings: AppConfig
    theme: Theme
    work_dir: Path
    cache_dir: Path

    @property
    def asset_dir(self) -> Path:
        return self.request.asset_dir

    @property
    def sent_sfx(self) -> Path:
        return self.request.sent_sfx or self.asset_dir / SENT_SFX_DEFAULT

    @property
    def received_sfx(self) -> Path:
        return self.request.received_sfx or self.asset_dir / RECEIVED_SFX_DEFAULT


@dataclass(frozen=True)
class JobResult:
    """Output contract for one finished job."""

    output_path: Path
    entries: list[TimelineEntry]
    protected_ranges: list[ProtectedRange]
    total_duration_seconds: float
    phase_timings_seconds: dict[str, float] = field(default_factory=dict)

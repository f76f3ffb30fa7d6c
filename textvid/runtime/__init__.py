"""Job contracts, phase bookkeeping and orchestration.

``run_job`` lives in ``textvid.runtime.pipeline``; it is re-exported from the
top-level ``textvid`` package.
"""

from .contracts import (
    EmptyScriptError,
    JobCancelledError,
    JobContext,
    JobRequest,
    JobResult,
    PipelineStageError,
)
from .phase_timing import format_duration

__all__ = [
    "EmptyScriptError",
    "JobCancelledError",
    "JobContext",
    "JobRequest",
    "JobResult",
    "PipelineStageError",
    "format_duration",
]

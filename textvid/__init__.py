from .config import AppConfig, get_settings, reload_settings, resolve_theme
from .domain import ParsedScript, ProtectedRange, Scene, SceneKind, Thread, TimelineEntry
from .runtime.contracts import (
    EmptyScriptError,
    JobCancelledError,
    JobRequest,
    JobResult,
    PipelineStageError,
)
from .runtime.pipeline import run_job
from .script.parser import ScriptParseError, parse_script, parse_script_file
from .timeline.schedule import Timeline, schedule_frame_counts

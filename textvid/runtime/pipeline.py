"""End-to-end job orchestration: parse, build, assemble, trim."""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from pathlib import Path

from textvid.config import AppConfig, get_settings, resolve_theme
from textvid.media.assembler import MediaAssembler
from textvid.media.audio import AudioOps, AudioToolkit
from textvid.media.process import ProcessRunner
from textvid.media.silence import SilenceTrimmer
from textvid.render.contracts import FrameRenderer, ReactionCardGenerator
from textvid.render.placeholder import PillowChatRenderer, PlaceholderReactionCards
from textvid.runtime.contracts import (
    EmptyScriptError,
    JobCancelledError,
    JobContext,
    JobRequest,
    JobResult,
    PipelineStageError,
)
from textvid.runtime.phase_contract import (
    PHASE_ASSEMBLE,
    PHASE_PARSE,
    PHASE_SILENCE_TRIM,
    PHASE_TIMELINE_BUILD,
    PHASE_WORKFLOW_TOTAL,
)
from textvid.runtime.phase_timing import (
    log_phase_completed,
    log_phase_failed,
    log_phase_started,
    timed_phase,
)
from textvid.script.parser import parse_script_file
from textvid.speech.cache import SpeechCache
from textvid.speech.client import SpeechSynthesizer, SynthesisClient
from textvid.timeline.builder import TimelineBuilder
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


def next_output_path(output_dir: Path, prefix: str, theme: str) -> Path:
    """First free ``<prefix>_<theme>_<NNN>.mp4`` path in ``output_dir``."""
    counter = 1
    while True:
        candidate = output_dir / f"{prefix}_{theme}_{counter:03d}.mp4"
        if not candidate.exists():
            return candidate
        counter += 1


def _check_cancelled(cancel_event: threading.Event | None, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise JobCancelledError(f"Job cancelled before {stage}.")


def run_job(
    request: JobRequest,
    *,
    settings: AppConfig | None = None,
    synthesizer: SpeechSynthesizer | None = None,
    renderer: FrameRenderer | None = None,
    reaction_cards: ReactionCardGenerator | None = None,
    runner: ProcessRunner | None = None,
    audio: AudioOps | None = None,
    cancel_event: threading.Event | None = None,
) -> JobResult:
    """Runs one job and returns the final video path and message timeline.

    Collaborators default to the real implementations; tests inject fakes.
    The working directory is removed on every exit path, and no final file
    is left behind unless the job succeeds.

    Raises:
        JobCancelledError: If ``cancel_event`` is set mid-pipeline.
        PipelineStageError: For any other fatal failure, naming the stage.
    """
    app_settings = settings or get_settings()
    timings: dict[str, float] = {}
    stage = PHASE_PARSE
    final_path: Path | None = None
    succeeded = False

    started_at = log_phase_started(logger, phase_name=PHASE_WORKFLOW_TOTAL)
    work_root = app_settings.work_root
    if work_root is not None:
        work_root.mkdir(parents=True, exist_ok=True)
    work_dir = Path(tempfile.mkdtemp(prefix="textvid_", dir=work_root))
    logger.debug("Working directory: %s", work_dir)
    try:
        theme = resolve_theme(request.theme)
        with timed_phase(logger, PHASE_PARSE, timings):
            parsed = parse_script_file(request.script_path, strict=request.strict)
            if not parsed.threads:
                raise EmptyScriptError(
                    f"Script {request.script_path} contains no threads with messages."
                )

        context = JobContext(
            request=request,
            settings=app_settings,
            theme=theme,
            work_dir=work_dir,
            cache_dir=request.asset_dir / app_settings.tts_cache_dirname,
        )
        process_runner = runner or ProcessRunner(app_settings.encoder)
        audio_ops = audio or AudioToolkit(app_settings.audio, process_runner)
        frame_renderer = renderer or PillowChatRenderer(
            theme, app_settings.video, request.asset_dir
        )
        cards = reaction_cards or PlaceholderReactionCards(
            frame_renderer
            if isinstance(frame_renderer, PillowChatRenderer)
            else PillowChatRenderer(theme, app_settings.video, request.asset_dir)
        )

        stage = PHASE_TIMELINE_BUILD
        with timed_phase(logger, PHASE_TIMELINE_BUILD, timings):
            cache = SpeechCache(
                context.cache_dir,
                synthesizer or SynthesisClient(app_settings.synthesis, request.api_key),
                fallback_dir=work_dir,
            )
            timeline = TimelineBuilder(
                context,
                cache,
                frame_renderer,
                cards,
                audio_ops,
                cancel_event=cancel_event,
            ).build(parsed)

        stage = PHASE_ASSEMBLE
        _check_cancelled(cancel_event, stage)
        raw_path = work_dir / "raw.mp4"
        with timed_phase(logger, PHASE_ASSEMBLE, timings):
            MediaAssembler(
                app_settings.encoder,
                app_settings.audio,
                frame_renderer,
                audio_ops,
                process_runner,
            ).assemble(timeline.scenes, timeline.fps, raw_path)

        stage = PHASE_SILENCE_TRIM
        _check_cancelled(cancel_event, stage)
        output_dir = request.output_dir or request.script_path.parent
        output_dir.mkdir(parents=True, exist_ok=True)
        final_path = next_output_path(output_dir, app_settings.output_prefix, theme.name)
        with timed_phase(logger, PHASE_SILENCE_TRIM, timings):
            SilenceTrimmer(
                app_settings.silence, app_settings.encoder, process_runner
            ).trim(raw_path, final_path, timeline.protected_ranges)
        _check_cancelled(cancel_event, "delivery")

        succeeded = True
        logger.info("Final video -> %s", final_path)
        return JobResult(
            output_path=final_path,
            entries=list(timeline.entries),
            protected_ranges=list(timeline.protected_ranges),
            total_duration_seconds=timeline.total_duration,
            phase_timings_seconds=timings,
        )
    except JobCancelledError:
        logger.warning("Job cancelled during %s.", stage)
        raise
    except Exception as err:
        logger.error("Job failed during %s: %s", stage, err)
        raise PipelineStageError(stage, err) from err
    finally:
        if not succeeded and final_path is not None:
            final_path.unlink(missing_ok=True)
        shutil.rmtree(work_dir, ignore_errors=True)
        if succeeded:
            timings[PHASE_WORKFLOW_TOTAL] = log_phase_completed(
                logger, phase_name=PHASE_WORKFLOW_TOTAL, started_at=started_at
            )
        else:
            log_phase_failed(
                logger, phase_name=PHASE_WORKFLOW_TOTAL, started_at=started_at
            )

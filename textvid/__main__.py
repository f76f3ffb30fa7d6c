"""
Fake text-message video generator.

Command-line entry point: renders a conversation script into one video,
prints the message timeline and optionally exports it as CSV or subtitles.

Usage:
    textvid SCRIPT --asset-dir ASSETS [--theme dark|light] [--api-key KEY]
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from textvid.config import THEMES, get_settings
from textvid.runtime.contracts import JobCancelledError, JobRequest, PipelineStageError
from textvid.runtime.pipeline import run_job
from textvid.utils import configure_logging, get_logger, print_timeline, save_timeline_to_csv
from textvid.utils.subtitles import FORMATTERS, write_subtitles

logger: logging.Logger = get_logger("textvid")

API_KEY_ENV = "TEXTVID_API_KEY"


def build_parser() -> argparse.ArgumentParser:
    """Builds the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="textvid",
        description="Render a text-message conversation script into a video",
    )
    parser.add_argument("script", type=Path, help="Path to the conversation script")
    parser.add_argument(
        "--asset-dir",
        type=Path,
        default=None,
        help="Directory with images, avatars and sound effects (default: script folder)",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help=f"Speech-synthesis API key (default: ${API_KEY_ENV})",
    )
    parser.add_argument(
        "--theme",
        choices=tuple(sorted(THEMES)),
        default="dark",
        help="UI theme",
    )
    parser.add_argument("--sent-sfx", type=Path, help="Outgoing notification sound")
    parser.add_argument("--received-sfx", type=Path, help="Incoming notification sound")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Where to write the final video (default: script folder)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on script lines that match no known pattern",
    )
    parser.add_argument(
        "--save-timeline",
        action="store_true",
        help="Save the message timeline next to the video as CSV",
    )
    parser.add_argument(
        "--subtitle-output",
        type=Path,
        help=(
            "Export the message timeline as subtitles; the format is inferred "
            f"from the extension ({', '.join(sorted(FORMATTERS))})"
        ),
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """
    Main function to handle the command line interface logic.
    """
    args: argparse.Namespace = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if (
        args.subtitle_output is not None
        and args.subtitle_output.suffix.lower() not in FORMATTERS
    ):
        logger.error(
            "Unable to infer subtitle format from %s. Use one of: %s.",
            args.subtitle_output,
            ", ".join(sorted(FORMATTERS)),
        )
        sys.exit(1)

    script_path: Path = args.script
    if not script_path.is_file():
        logger.error("Script file not found: %s", script_path)
        sys.exit(1)

    request = JobRequest(
        script_path=script_path,
        asset_dir=args.asset_dir or script_path.parent,
        api_key=args.api_key or os.getenv(API_KEY_ENV, ""),
        theme=args.theme,
        sent_sfx=args.sent_sfx,
        received_sfx=args.received_sfx,
        output_dir=args.output_dir,
        strict=args.strict,
    )

    try:
        result = run_job(request, settings=get_settings())
    except JobCancelledError:
        logger.error("Job cancelled.")
        sys.exit(1)
    except PipelineStageError as err:
        logger.error("Video generation failed during %s: %s", err.stage, err.cause)
        sys.exit(1)

    print_timeline(result.entries)
    if args.save_timeline:
        csv_path = save_timeline_to_csv(result.entries, result.output_path)
        logger.info("Timeline saved to %s", csv_path)

    if args.subtitle_output is not None:
        if not result.entries:
            logger.warning("Timeline did not produce any subtitle entries to export.")
        else:
            write_subtitles(result.entries, args.subtitle_output)
            logger.info("Subtitle file exported to %s", args.subtitle_output)

    logger.info("Video written to %s", result.output_path)


if __name__ == "__main__":
    main()

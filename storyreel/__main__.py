"""
Storyreel Main Entry Point

Run the API server, or the whole pipeline headless on a story file.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from storyreel.core.config import load_config, set_config
from storyreel.core.constants import PROJECT_NAME, AudioType
from storyreel.core.exceptions import StoryreelError
from storyreel.core.logging_config import LogLevel, get_logger, setup_logging
from storyreel.core.settings import get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Storyreel - turn a story into shot lists and image/video prompts"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to pipeline configuration file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=True,
        help="Enable verbose logging (default: True)"
    )

    parser.add_argument(
        "--quiet", "-q",
        dest="verbose",
        action="store_false",
        help="Only log warnings and errors"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the FastAPI backend")
    serve.add_argument("--host", type=str, default=None, help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="Port for the API server (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    run = commands.add_parser("run", help="Run every stage on a story and write the snapshot")
    run.add_argument("--story", type=str, required=True, help="Path to the story text")
    run.add_argument("--duration", type=str, default="auto", help="Target seconds, or 'auto'")
    run.add_argument(
        "--audio",
        type=str,
        default=AudioType.AUTO.value,
        choices=[a.value for a in AudioType],
        help="Audio mode (default: auto)"
    )
    run.add_argument("--style", type=str, default="", help="Art style preference")
    run.add_argument("--out", type=str, default=None, help="Snapshot output path")

    return parser


async def run_headless(args, config) -> int:
    """Full pipeline on one story, written out as an export snapshot."""
    from storyreel.llm import AnthropicClient
    from storyreel.pipelines import StoryPipeline
    from storyreel.project.history import GenerationHistory
    from storyreel.project.snapshot import dumps_snapshot, export_snapshot, snapshot_filename
    from storyreel.project.state import ProjectState

    logger = get_logger("main")
    settings = get_settings()

    story_path = Path(args.story)
    try:
        story = story_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot read story file {story_path}: {e}")
        return 1

    # no store: the result is only written as a snapshot
    state = ProjectState()
    state.name = story_path.stem
    state.update_script_input(story)

    duration = args.duration.strip().lower()
    state.config_input.auto_duration = duration == "auto"
    state.config_input.expected_duration = "" if duration == "auto" else duration
    state.config_input.audio_type = args.audio
    state.config_input.style_preference = args.style

    llm = AnthropicClient(
        api_key=settings.anthropic_api_key or None,
        base_url=settings.anthropic_base_url,
        version=settings.anthropic_version,
        model=config.model,
        timeout=settings.request_timeout,
        history=GenerationHistory(settings.history_file),
    )

    def on_progress(progress: dict) -> None:
        logger.info(f"[{progress['stage']}] {progress['message']}")

    pipeline = StoryPipeline(state, llm, config, progress_callback=on_progress)
    results = await pipeline.run_all()

    out_path = Path(args.out) if args.out else Path(snapshot_filename(state.name))
    out_path.write_text(dumps_snapshot(export_snapshot(state)), encoding="utf-8")
    logger.info(f"Wrote snapshot to {out_path}")

    if state.error:
        logger.error(state.error)
        return 1
    for result in results:
        logger.info(f"{result.stage}: {result.status.value} ({result.duration_seconds:.1f}s)")
    return 0


def main():
    """Main entry point for Storyreel."""
    args = build_parser().parse_args()

    settings = get_settings()

    # Setup logging
    if args.debug:
        log_level = LogLevel.DEBUG
    elif args.verbose:
        log_level = LogLevel.from_name(settings.log_level)
    else:
        log_level = LogLevel.WARNING
    setup_logging(level=log_level, log_file=settings.log_file, verbose=args.debug)

    logger = get_logger("main")
    logger.info(f"Starting {PROJECT_NAME}...")

    config_path = Path(args.config) if args.config else settings.pipeline_config
    try:
        config = load_config(config_path)
    except StoryreelError as e:
        logger.error(f"Could not load config {config_path}: {e}")
        sys.exit(2)
    set_config(config)

    if args.command == "serve":
        from storyreel.api.main import start_server
        host = args.host or settings.host
        port = args.port or settings.port
        logger.info(f"Starting API server on {host}:{port}")
        start_server(host=host, port=port, reload=args.reload)
        return

    try:
        exit_code = asyncio.run(run_headless(args, config))
    except StoryreelError as e:
        logger.error(f"Pipeline aborted: {e.message}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

"""
Command line runner: parses flags, wires collaborators, runs the pipeline.
"""

import argparse
import functools
import logging
from pathlib import Path

from channeldigest.core.analysis import OpenAIAnalyzer
from channeldigest.core.config import PipelineConfig, load_config
from channeldigest.core.constants import APP_NAME, APP_VERSION
from channeldigest.core.models import RunOptions, RunSummary
from channeldigest.core.pipeline import Pipeline
from channeldigest.core.report import MarkdownReporter, post_digest
from channeldigest.core.source_ytdlp import YtDlpSource
from channeldigest.core.state_store import StateStore, get_stats
from channeldigest.core.transcribe_whisper import transcribe_audio
from channeldigest.core.transcription import TranscriptionClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="channel-digest",
        description="Transcribe and analyze recent videos from a set of YouTube channels.",
    )
    parser.add_argument("--channel", help="Process a single channel handle (e.g. @WesRoth).")
    parser.add_argument("--limit", type=int, help="Maximum videos attempted per channel.")
    parser.add_argument("--test", action="store_true",
                        help="Reduced run: first channels only, small limit, reprocess seen videos.")
    parser.add_argument("--reprocess", action="store_true",
                        help="Attempt videos even if already processed.")
    parser.add_argument("--config", type=Path, help="Path to a JSON config file.")
    parser.add_argument("--stats", action="store_true",
                        help="Print processing statistics and exit.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    return parser


def options_from_args(args: argparse.Namespace) -> RunOptions:
    if args.limit is not None and args.limit < 1:
        raise SystemExit("--limit must be a positive integer")
    return RunOptions(
        source_override=args.channel,
        item_limit=args.limit,
        test_mode=args.test,
        reprocess=args.reprocess,
    )


def build_pipeline(config: PipelineConfig) -> Pipeline:
    transcribe_fn = functools.partial(
        transcribe_audio, api_key=config.openai_api_key, model=config.transcription_model)
    notify = functools.partial(post_digest, config.webhook_url) if config.webhook_url else None
    return Pipeline(
        config=config,
        state_store=StateStore(config.state_path),
        source=YtDlpSource(),
        transcriber=TranscriptionClient(transcribe_fn),
        analyzer=OpenAIAnalyzer(config.openai_api_key, model=config.analysis_model),
        reporter=MarkdownReporter(config.reports_dir),
        notify=notify,
    )


def print_stats(config: PipelineConfig):
    stats = get_stats(StateStore(config.state_path).load())
    print(f"Videos processed: {stats['processed_count']}")
    for label, key in (("Last run", 'last_run'),
                       ("Oldest processed", 'oldest_processed'),
                       ("Newest processed", 'newest_processed')):
        value = stats[key]
        print(f"{label}: {value.isoformat() if value else 'Never'}")


def run(argv: list[str] | None = None) -> RunSummary | None:
    """Parse argv and execute. Exceptions propagate to the entry point."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    if args.stats:
        print_stats(config)
        return None

    options = options_from_args(args)
    if not config.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; transcription and analysis will be unavailable")

    for directory in (config.scratch_dir, config.reports_dir):
        directory.mkdir(parents=True, exist_ok=True)

    summary = build_pipeline(config).run(options)
    print(summary.digest)
    return summary

"""
Pipeline orchestrator.
Processes sources in configuration order and items in fetch order, one at
a time, persisting state after every attempted item.
"""

import logging
from typing import Callable, Optional

from channeldigest.core.config import PipelineConfig
from channeldigest.core.constants import ItemStatus, AGGREGATE_UNAVAILABLE
from channeldigest.core.error_codes import error_record
from channeldigest.core.models import (
    Item, ItemResult, ProcessingState, RunOptions, RunSummary,
)
from channeldigest.core.state_store import (
    StateStore, is_processed, mark_processed, update_last_run, get_stats,
)
from channeldigest.core.security_utils import safe_item_dir
from channeldigest.core.cleanup import cleanup_item_workspace

logger = logging.getLogger(__name__)


class Pipeline:
    """
    Drives the fetch, transcribe, analyze and report loop.

    Collaborators are injected: ``source`` lists items and fetches media,
    ``transcriber`` turns an audio asset into text, ``analyzer`` produces
    analysis results and ``reporter`` renders the run report. Failures are
    caught at the smallest scope that keeps the run going: an item failure
    is recorded on its result, a source fetch failure skips that source.
    """

    def __init__(self, config: PipelineConfig, state_store: StateStore,
                 source, transcriber, analyzer, reporter,
                 notify: Optional[Callable[[str], bool]] = None):
        self.config = config
        self.state_store = state_store
        self.source = source
        self.transcriber = transcriber
        self.analyzer = analyzer
        self.reporter = reporter
        self.notify = notify
        self.state = ProcessingState()

    # ── Run policy ────────────────────────────────────────────────────

    def resolve_sources(self, options: RunOptions) -> list[str]:
        if options.source_override:
            return [options.source_override]
        if options.test_mode:
            return list(self.config.sources[:self.config.test_source_count])
        return list(self.config.sources)

    def resolve_item_limit(self, options: RunOptions) -> int:
        if options.item_limit is not None:
            return max(1, options.item_limit)
        if options.test_mode:
            return self.config.test_item_limit
        return self.config.videos_per_source

    # ── Run ───────────────────────────────────────────────────────────

    def run(self, options: RunOptions | None = None) -> RunSummary:
        options = options or RunOptions()

        self.state = self.state_store.load()
        stats = get_stats(self.state)
        logger.info("Previous videos processed: %d", stats['processed_count'])
        logger.info("Last run: %s", stats['last_run'].isoformat() if stats['last_run'] else 'Never')

        sources = self.resolve_sources(options)
        item_limit = self.resolve_item_limit(options)
        reprocess = options.reprocess or options.test_mode
        if options.source_override:
            logger.info("Processing single channel: %s", options.source_override)
        elif options.test_mode:
            logger.info("Test mode: processing first %d channels", len(sources))

        summary = RunSummary(sources=sources, results=[])

        for source_id in sources:
            self._process_source(source_id, item_limit, reprocess, summary)

        aggregate_text = ""
        if len(summary.results) > 1:
            aggregate_text = self._aggregate(summary.results)

        summary.report_path = self.reporter.render(summary.results, aggregate_text)
        summary.digest = self.reporter.summarize(summary.results, summary.report_path)
        if self.notify:
            self.notify(summary.digest)

        self.state = update_last_run(self.state)
        self.state_store.save(self.state)

        logger.info("Channels processed: %d | Videos analyzed: %d | New videos: %d",
                    len(sources), len(summary.results), summary.new_count)
        return summary

    def _aggregate(self, results: list[ItemResult]) -> str:
        logger.info("Generating aggregate insights across %d videos", len(results))
        try:
            return self.analyzer.aggregate(results)
        except Exception as e:
            logger.error("Aggregate insights failed: %s", e)
            return AGGREGATE_UNAVAILABLE

    # ── Per-source loop ───────────────────────────────────────────────

    def _process_source(self, source_id: str, item_limit: int, reprocess: bool,
                        summary: RunSummary):
        logger.info("Processing channel: %s", source_id)
        fetch_count = max(self.config.videos_per_source, item_limit)

        try:
            items = self.source.list_recent_items(source_id, fetch_count)
        except Exception as e:
            logger.error("Error processing channel %s: %s", source_id, e)
            summary.failed_sources.append(source_id)
            return

        logger.info("Found %d recent videos", len(items))
        if not items:
            logger.info("No videos found for %s, skipping", source_id)
            return

        attempted = 0
        for item in items:
            if attempted >= item_limit:
                logger.info("Reached limit of %d videos for %s", item_limit, source_id)
                break

            is_new = not is_processed(self.state, item.id)
            if not is_new and not reprocess:
                logger.info("Skipping already processed: %s", item.title)
                summary.skipped_duplicate += 1
                continue

            if item.duration_sec and item.duration_sec > self.config.max_item_duration_sec:
                logger.info("Skipping long video (%ds): %s", item.duration_sec, item.title)
                summary.skipped_too_long += 1
                continue

            result = self.process_item(item, is_new)
            summary.results.append(result)
            attempted += 1
            if result.status == ItemStatus.COMPLETED and is_new:
                summary.new_count += 1

            # Persist after every item so a crash loses at most this one
            self.state_store.save(self.state)

    # ── Per-item pipeline ─────────────────────────────────────────────

    def process_item(self, item: Item, is_new: bool) -> ItemResult:
        """
        Metadata, thumbnail, audio, transcript, analysis for one item.
        Any exception is recorded on the result; the item is only marked
        processed when every step completed.
        """
        logger.info("Processing: %s (id=%s, duration=%s)", item.title, item.id,
                    f"{round(item.duration_sec / 60)} min" if item.duration_sec else "Unknown")
        result = ItemResult(item=item, is_new=is_new)
        workspace = safe_item_dir(self.config.scratch_dir, item.id)

        try:
            metadata = self.source.fetch_extended_metadata(item.id)
            result.metadata = metadata

            if metadata and metadata.thumbnail_url:
                thumbnail_path = self.source.fetch_thumbnail(
                    item.id, metadata.thumbnail_url, workspace)
                if thumbnail_path:
                    result.thumbnail_analysis = self.analyzer.analyze_image(
                        thumbnail_path, item.title)

            asset = self.source.fetch_media_asset(item.id, workspace)
            if asset:
                result.transcript = self.transcriber.transcribe(
                    asset, self.config.size_budget_bytes)
                if result.transcript is None:
                    logger.warning("No transcript for %s", item.id)
                result.analysis = self.analyzer.analyze_content(
                    item, metadata, result.transcript)
            else:
                logger.warning("No audio for %s, skipping transcription", item.id)

            self.state = mark_processed(self.state, item.id)
            result.status = ItemStatus.COMPLETED

        except Exception as e:
            logger.error("Error processing video %s: %s", item.id, e, exc_info=True)
            result.error = error_record(e)
            result.status = ItemStatus.FAILED

        finally:
            cleanup_item_workspace(workspace)

        return result

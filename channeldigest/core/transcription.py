"""
Transcription client adapter.

Sends an asset that fits the upload budget straight to the transcription
capability; anything larger is probed, planned, split, and transcribed
chunk by chunk in index order. A failed chunk contributes an empty string
instead of aborting the item. Chunk files and the source asset are
removed before transcribe() returns, whatever the outcome.
"""

import logging
from typing import Callable, Optional
from pathlib import Path

from channeldigest.core.error_codes import (
    ProbeError, SegmentationError, TranscriptionCallError,
)
from channeldigest.core.merge import merge_chunk_texts
from channeldigest.core.models import AudioAsset, Chunk
from channeldigest.core.segmenter import (
    probe_duration, plan_chunks, materialize_chunks, cleanup_chunks, chunks_dir_for,
)

logger = logging.getLogger(__name__)


class TranscriptionClient:
    """Drives one asset through direct or chunked transcription."""

    def __init__(self, transcribe_fn: Callable[[Path], str]):
        self.transcribe_fn = transcribe_fn

    def transcribe(self, asset: AudioAsset, size_budget_bytes: int) -> Optional[str]:
        try:
            if asset.size_bytes <= size_budget_bytes:
                return self._transcribe_direct(asset)
            return self._transcribe_chunked(asset, size_budget_bytes)
        finally:
            self._discard_asset(asset)

    def _transcribe_direct(self, asset: AudioAsset) -> Optional[str]:
        try:
            return self.transcribe_fn(asset.path)
        except (TranscriptionCallError, OSError) as e:
            logger.warning("Transcription failed for %s: %s", asset.path.name, e)
            return None

    def _transcribe_chunked(self, asset: AudioAsset, size_budget_bytes: int) -> Optional[str]:
        logger.info("%s is %.2fMB, over the %.2fMB budget; splitting",
                    asset.path.name, asset.size_bytes / (1024 * 1024),
                    size_budget_bytes / (1024 * 1024))
        chunks_dir = chunks_dir_for(asset)
        try:
            duration = probe_duration(asset)
            ranges = plan_chunks(
                AudioAsset(asset.path, asset.size_bytes, duration), size_budget_bytes)
            chunks = materialize_chunks(asset, ranges, chunks_dir)
        except (ProbeError, SegmentationError) as e:
            logger.warning("Cannot split %s: %s", asset.path.name, e)
            cleanup_chunks([], chunks_dir)
            return None

        try:
            texts = self._transcribe_chunks(chunks)
        finally:
            cleanup_chunks(chunks, chunks_dir)

        if not any(text for _, text in texts):
            logger.warning("Every chunk of %s failed to transcribe", asset.path.name)
            return None
        return merge_chunk_texts(texts, len(ranges))

    def _transcribe_chunks(self, chunks: list[Chunk]) -> list[tuple[int, str]]:
        """Transcribe chunks sequentially in ascending index order."""
        texts = []
        total = len(chunks)
        for n, chunk in enumerate(sorted(chunks, key=lambda c: c.index), start=1):
            logger.info("Transcribing chunk %d/%d (%.0fs-%.0fs)",
                        n, total, chunk.start_sec, chunk.end_sec)
            try:
                text = self.transcribe_fn(chunk.local_path)
            except (TranscriptionCallError, OSError) as e:
                logger.warning("Chunk %d failed, leaving it empty: %s", chunk.index, e)
                text = ""
            texts.append((chunk.index, text))
        return texts

    def _discard_asset(self, asset: AudioAsset):
        try:
            asset.path.unlink()
            logger.debug("Deleted: %s", asset.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete %s: %s", asset.path, e)

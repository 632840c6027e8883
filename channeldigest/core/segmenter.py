"""
Size-constrained audio segmentation using ffprobe/ffmpeg.
Splits an oversized asset into time ranges whose estimated byte size
fits the transcription upload budget.
"""

import logging
import math
from pathlib import Path

from channeldigest.core.security_utils import run_subprocess_capture
from channeldigest.core.error_codes import ProbeError, SegmentationError
from channeldigest.core.constants import (
    MIN_CHUNK_SEC, PROBE_TIMEOUT_SEC, SPLIT_TIMEOUT_SEC, DOWNLOAD_FORMAT,
)
from channeldigest.core.models import AudioAsset, Chunk, ChunkRange

logger = logging.getLogger(__name__)


def probe_duration(asset: AudioAsset) -> float:
    """Get audio duration in seconds using ffprobe. Raises ProbeError."""
    args = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(asset.path),
    ]

    try:
        result = run_subprocess_capture(args, timeout=PROBE_TIMEOUT_SEC)
    except FileNotFoundError:
        raise ProbeError("ffprobe not found on PATH")
    except Exception as e:
        raise ProbeError(f"ffprobe failed for {asset.path.name}: {e}")

    if result.returncode != 0:
        stderr = result.stderr or ""
        raise ProbeError(f"ffprobe failed (rc={result.returncode}): {stderr[:200]}")

    try:
        duration = float(result.stdout.strip())
    except (TypeError, ValueError):
        raise ProbeError(f"ffprobe returned no usable duration: {result.stdout[:100]!r}")

    if not math.isfinite(duration) or duration <= 0:
        raise ProbeError(f"Non-positive duration {duration} for {asset.path.name}")

    return duration


def chunk_duration_for(size_bytes: int, duration_sec: float, size_budget_bytes: int) -> int:
    """
    Whole seconds of audio that fit the budget at the asset's average
    bitrate. Constant bitrate is assumed; the budget carries the headroom.
    """
    bytes_per_second = size_bytes / duration_sec
    return max(MIN_CHUNK_SEC, math.floor(size_budget_bytes / bytes_per_second))


def plan_chunks(asset: AudioAsset, size_budget_bytes: int) -> list[ChunkRange]:
    """
    Plan consecutive, non-overlapping ranges covering [0, duration).
    An asset within budget gets a single whole-asset range.
    """
    if size_budget_bytes <= 0:
        raise ValueError("size_budget_bytes must be positive")

    if asset.size_bytes <= size_budget_bytes:
        return [ChunkRange(index=0, start_sec=0.0, end_sec=float(asset.duration_sec or 0.0))]

    duration = asset.duration_sec
    if not duration or duration <= 0:
        raise ProbeError(f"Cannot plan chunks for {asset.path.name} without a duration")

    chunk_sec = chunk_duration_for(asset.size_bytes, duration, size_budget_bytes)
    count = math.ceil(duration / chunk_sec)

    ranges = []
    for idx in range(count):
        start = float(idx * chunk_sec)
        end = min(float((idx + 1) * chunk_sec), float(duration))
        if start >= end:
            break
        ranges.append(ChunkRange(index=idx, start_sec=start, end_sec=end))

    logger.debug("Planned %d chunks of %ds for %.1fs asset", len(ranges), chunk_sec, duration)
    return ranges


def chunks_dir_for(asset: AudioAsset) -> Path:
    return asset.path.with_name(f"{asset.path.stem}_chunks")


def materialize_chunks(asset: AudioAsset, ranges: list[ChunkRange],
                       chunks_dir: Path | None = None) -> list[Chunk]:
    """
    Split the asset with ffmpeg stream copy (no re-encode).
    A range whose split fails is logged and left out; raises
    SegmentationError if no chunk at all was produced.
    """
    chunks_dir = chunks_dir or chunks_dir_for(asset)
    chunks_dir.mkdir(parents=True, exist_ok=True)
    chunks = []

    for entry in ranges:
        chunk_file = chunks_dir / f"chunk_{entry.index:03d}.{DOWNLOAD_FORMAT}"

        args = [
            "ffmpeg",
            "-y",
            "-i", str(asset.path),
            "-ss", str(entry.start_sec),
            "-t", str(entry.duration_sec),
            "-codec:a", "copy",
            str(chunk_file),
        ]

        try:
            result = run_subprocess_capture(args, timeout=SPLIT_TIMEOUT_SEC)
        except Exception as e:
            logger.warning("Chunk %d creation failed: %s", entry.index, e)
            continue

        if result.returncode != 0:
            logger.warning("ffmpeg chunk %d failed: %s", entry.index,
                           result.stderr[:200] if result.stderr else 'unknown error')
            continue

        if not chunk_file.exists():
            logger.warning("Chunk file %d not created", entry.index)
            continue

        chunks.append(Chunk(index=entry.index, start_sec=entry.start_sec,
                            end_sec=entry.end_sec, local_path=chunk_file))

    if not chunks:
        cleanup_chunks([], chunks_dir)
        raise SegmentationError(f"Splitting {asset.path.name} produced no chunks")

    logger.info("Created %d/%d chunks in %s", len(chunks), len(ranges), chunks_dir)
    return chunks


def cleanup_chunks(chunks: list[Chunk], chunks_dir: Path | None = None):
    """
    Best-effort deletion of chunk files, then of the chunk directory if it
    is empty. Individual failures never stop the remaining deletions.
    """
    for chunk in chunks:
        try:
            chunk.local_path.unlink()
            logger.debug("Deleted: %s", chunk.local_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete %s: %s", chunk.local_path, e)

    if chunks_dir is not None:
        try:
            for leftover in chunks_dir.glob("chunk_*"):
                leftover.unlink()
            chunks_dir.rmdir()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove chunk dir %s: %s", chunks_dir, e)

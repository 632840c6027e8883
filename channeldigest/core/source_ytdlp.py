"""
YouTube source via yt-dlp: channel listings, metadata, audio and thumbnails.
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import requests

from channeldigest.core.security_utils import run_subprocess_capture
from channeldigest.core.error_codes import FetchError
from channeldigest.core.constants import (
    YOUTUBE_CHANNEL_URL, YOUTUBE_WATCH_URL, DOWNLOAD_FORMAT, DOWNLOAD_BITRATE,
    LIST_TIMEOUT_SEC, METADATA_TIMEOUT_SEC, DOWNLOAD_TIMEOUT_SEC, THUMBNAIL_TIMEOUT_SEC,
)
from channeldigest.core.models import AudioAsset, ExtendedMetadata, Item

logger = logging.getLogger(__name__)


def parse_upload_date(value) -> Optional[date]:
    """yt-dlp upload dates are YYYYMMDD strings."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value), "%Y%m%d").date()
    except ValueError:
        return None


def _optional_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def item_from_entry(entry: dict, source_id: str) -> Optional[Item]:
    """Map one yt-dlp JSON entry to an Item; entries without an id are dropped."""
    video_id = entry.get('id')
    if not video_id:
        return None
    url = entry.get('url') or ''
    if not url.startswith('http'):
        url = YOUTUBE_WATCH_URL.format(video_id=video_id)
    return Item(
        id=video_id,
        title=entry.get('title') or f"video_{video_id}",
        source_ref=source_id,
        url=url,
        duration_sec=_optional_int(entry.get('duration')),
        upload_date=parse_upload_date(entry.get('upload_date')),
        view_count=_optional_int(entry.get('view_count')),
        description=entry.get('description') or '',
    )


def parse_playlist_lines(stdout: str, source_id: str) -> list[Item]:
    """Parse --dump-json output: one JSON object per line, in listing order."""
    items = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse video JSON: %s", e)
            continue
        if not isinstance(entry, dict):
            continue
        item = item_from_entry(entry, source_id)
        if item:
            items.append(item)
    return items


class YtDlpSource:
    """Source collaborator backed by the yt-dlp command line tool."""

    def list_recent_items(self, source_id: str, limit: int) -> list[Item]:
        """Most recent items first. Raises FetchError."""
        channel_url = YOUTUBE_CHANNEL_URL.format(handle=source_id)
        args = [
            "yt-dlp",
            "--flat-playlist",
            "--dump-json",
            "--playlist-end", str(limit),
            channel_url,
        ]

        try:
            result = run_subprocess_capture(args, timeout=LIST_TIMEOUT_SEC)
        except Exception as e:
            raise FetchError(f"yt-dlp listing failed for {source_id}: {e}")

        if result.returncode != 0:
            stderr = result.stderr or ""
            raise FetchError(f"yt-dlp failed for {source_id} (rc={result.returncode}): {stderr[:300]}")

        return parse_playlist_lines(result.stdout or "", source_id)[:limit]

    def fetch_extended_metadata(self, item_id: str) -> Optional[ExtendedMetadata]:
        """Detailed metadata for one item, or None if unavailable."""
        args = [
            "yt-dlp",
            "--dump-json",
            "--no-playlist",
            "--skip-download",
            YOUTUBE_WATCH_URL.format(video_id=item_id),
        ]

        try:
            result = run_subprocess_capture(args, timeout=METADATA_TIMEOUT_SEC)
        except Exception as e:
            logger.error("Error getting metadata for %s: %s", item_id, e)
            return None

        if result.returncode != 0:
            logger.error("Error getting metadata for %s: %s", item_id, (result.stderr or "")[:200])
            return None

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse metadata JSON for %s: %s", item_id, e)
            return None

        return ExtendedMetadata(
            description=data.get('description') or '',
            tags=list(data.get('tags') or []),
            thumbnail_url=data.get('thumbnail'),
            channel_name=data.get('channel'),
        )

    def fetch_media_asset(self, item_id: str, workspace: Path) -> Optional[AudioAsset]:
        """
        Download audio-only as mp3 into <workspace>/source/.
        An existing file from an interrupted run is reused.
        """
        source_dir = workspace / "source"
        output_path = source_dir / f"{item_id}.{DOWNLOAD_FORMAT}"

        if output_path.exists() and output_path.stat().st_size > 0:
            logger.info("Audio already downloaded: %s", output_path)
            return AudioAsset.from_path(output_path)

        source_dir.mkdir(parents=True, exist_ok=True)
        args = [
            "yt-dlp",
            "--no-playlist",
            "-x",
            "--audio-format", DOWNLOAD_FORMAT,
            "--audio-quality", DOWNLOAD_BITRATE,
            "-o", str(source_dir / f"{item_id}.%(ext)s"),
            YOUTUBE_WATCH_URL.format(video_id=item_id),
        ]

        try:
            result = run_subprocess_capture(args, timeout=DOWNLOAD_TIMEOUT_SEC)
        except Exception as e:
            logger.error("Error downloading audio for %s: %s", item_id, e)
            return None

        if result.returncode != 0:
            logger.error("yt-dlp download failed for %s (rc=%d): %s",
                         item_id, result.returncode, (result.stderr or "")[:300])
            return None

        if not output_path.exists():
            logger.error("No audio file found after download for %s", item_id)
            return None

        logger.info("Downloaded audio: %s", output_path)
        return AudioAsset.from_path(output_path)

    def fetch_thumbnail(self, item_id: str, thumbnail_url: str, workspace: Path) -> Optional[Path]:
        output_path = workspace / "thumbnails" / f"{item_id}.jpg"
        if output_path.exists():
            logger.info("Thumbnail already downloaded: %s", output_path)
            return output_path

        try:
            resp = requests.get(thumbnail_url, timeout=THUMBNAIL_TIMEOUT_SEC)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("Error downloading thumbnail for %s: %s", item_id, e)
            return None

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(resp.content)
        logger.info("Downloaded thumbnail: %s", output_path)
        return output_path

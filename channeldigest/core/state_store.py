"""
Durable record of processed items.

The state document is a single JSON object:

    {"lastRun": "<ISO-8601>" | null,
     "processedVideos": {"<item id>": "<ISO-8601>", ...}}

Loading never fails the run: a missing or corrupt file yields a fresh
state. Saving writes a temp file in the same directory and renames it
over the target, so a crash mid-write leaves either the old or the new
document on disk, never a truncated one.
"""

import json
import logging
import os
import tempfile
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from channeldigest.core.constants import DEFAULT_STATE_PATH
from channeldigest.core.error_codes import StateIOError
from channeldigest.core.models import ProcessingState

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def state_to_dict(state: ProcessingState) -> dict:
    return {
        'lastRun': format_timestamp(state.last_run) if state.last_run else None,
        'processedVideos': {
            item_id: format_timestamp(ts)
            for item_id, ts in state.processed_items.items()
        },
    }


def state_from_dict(data) -> ProcessingState:
    """
    Build a state from a decoded document.
    Raises StateIOError when the document shape is unusable.
    """
    if not isinstance(data, dict):
        raise StateIOError("state document is not an object")

    processed_raw = data.get('processedVideos', {})
    if processed_raw is None:
        processed_raw = {}
    if not isinstance(processed_raw, dict):
        raise StateIOError("processedVideos is not an object")

    processed = {}
    for item_id, raw_ts in processed_raw.items():
        try:
            processed[str(item_id)] = parse_timestamp(raw_ts)
        except ValueError as e:
            # Membership is what matters; keep the id.
            logger.warning("Bad timestamp for %s (%s), stamping with load time", item_id, e)
            processed[str(item_id)] = _now()

    last_run = None
    raw_last = data.get('lastRun')
    if raw_last:
        try:
            last_run = parse_timestamp(raw_last)
        except ValueError as e:
            logger.warning("Ignoring bad lastRun %r: %s", raw_last, e)

    return ProcessingState(last_run=last_run, processed_items=processed)


class StateStore:
    """Loads and atomically persists ProcessingState at a fixed path."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path or DEFAULT_STATE_PATH)

    def load(self) -> ProcessingState:
        if not self.path.exists():
            logger.info("No state file at %s, starting fresh", self.path)
            return ProcessingState()
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            state = state_from_dict(data)
        except (OSError, ValueError, StateIOError) as e:
            logger.warning("Failed to load state from %s (%s), starting fresh", self.path, e)
            return ProcessingState()
        logger.debug("Loaded state with %d processed items", len(state.processed_items))
        return state

    def save(self, state: ProcessingState) -> bool:
        """Write the full state atomically. Failures are logged, not raised."""
        payload = json.dumps(state_to_dict(state), indent=2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("Error saving state to %s: %s", self.path, e)
            if tmp_name:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            return False
        logger.debug("State saved: %s", self.path)
        return True


def is_processed(state: ProcessingState, item_id: str) -> bool:
    return item_id in state.processed_items


def mark_processed(state: ProcessingState, item_id: str) -> ProcessingState:
    """Return a new state with item_id stamped now. No I/O."""
    processed = dict(state.processed_items)
    processed[item_id] = _now()
    return replace(state, processed_items=processed)


def update_last_run(state: ProcessingState) -> ProcessingState:
    return replace(state, last_run=_now())


def get_stats(state: ProcessingState) -> dict:
    """Processed count, last run, and oldest/newest processed timestamps."""
    stamps = list(state.processed_items.values())
    return {
        'processed_count': len(state.processed_items),
        'last_run': state.last_run,
        'oldest_processed': min(stamps) if stamps else None,
        'newest_processed': max(stamps) if stamps else None,
    }

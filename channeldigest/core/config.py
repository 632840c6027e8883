"""
Pipeline configuration.
Optional JSON file merged over defaults; secrets come from the environment.
The result is an immutable PipelineConfig handed to the orchestrator.
"""

import json
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path

from channeldigest.core.constants import (
    CONFIG_PATH, DEFAULT_STATE_PATH, DEFAULT_REPORTS_DIR, DEFAULT_SCRATCH_DIR,
    DEFAULT_SOURCES, VIDEOS_PER_SOURCE, TEST_SOURCE_COUNT, TEST_ITEM_LIMIT,
    MAX_ITEM_DURATION_SEC, TRANSCRIPTION_MAX_BYTES, CHUNK_SIZE_HEADROOM,
    TRANSCRIPTION_MODEL, ANALYSIS_MODEL,
)

# Validation bounds
_HEADROOM_MIN = 0.1
_HEADROOM_MAX = 1.0
_MAX_DURATION_MIN = 60
_MAX_BYTES_MIN = 1024 * 1024

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'sources': list(DEFAULT_SOURCES),
    'state_path': str(DEFAULT_STATE_PATH),
    'reports_dir': str(DEFAULT_REPORTS_DIR),
    'scratch_dir': str(DEFAULT_SCRATCH_DIR),
    'videos_per_source': VIDEOS_PER_SOURCE,
    'test_source_count': TEST_SOURCE_COUNT,
    'test_item_limit': TEST_ITEM_LIMIT,
    'max_item_duration_sec': MAX_ITEM_DURATION_SEC,
    'transcription_max_bytes': TRANSCRIPTION_MAX_BYTES,
    'chunk_size_headroom': CHUNK_SIZE_HEADROOM,
    'transcription_model': TRANSCRIPTION_MODEL,
    'analysis_model': ANALYSIS_MODEL,
}

_POSITIVE_INT_KEYS = ('videos_per_source', 'test_source_count', 'test_item_limit')
_PATH_KEYS = ('state_path', 'reports_dir', 'scratch_dir')
_NAME_KEYS = ('transcription_model', 'analysis_model')


@dataclass(frozen=True)
class PipelineConfig:
    sources: tuple[str, ...] = DEFAULT_SOURCES
    state_path: Path = DEFAULT_STATE_PATH
    reports_dir: Path = DEFAULT_REPORTS_DIR
    scratch_dir: Path = DEFAULT_SCRATCH_DIR
    videos_per_source: int = VIDEOS_PER_SOURCE
    test_source_count: int = TEST_SOURCE_COUNT
    test_item_limit: int = TEST_ITEM_LIMIT
    max_item_duration_sec: int = MAX_ITEM_DURATION_SEC
    transcription_max_bytes: int = TRANSCRIPTION_MAX_BYTES
    chunk_size_headroom: float = CHUNK_SIZE_HEADROOM
    transcription_model: str = TRANSCRIPTION_MODEL
    analysis_model: str = ANALYSIS_MODEL
    openai_api_key: str | None = None
    webhook_url: str | None = None

    @property
    def size_budget_bytes(self) -> int:
        """Bytes a single upload is planned against, headroom applied."""
        return math.floor(self.transcription_max_bytes * self.chunk_size_headroom)


def _validate(key: str, value):
    """Validate and coerce config values to safe ranges."""
    default = _DEFAULTS.get(key)

    if key == 'chunk_size_headroom':
        try:
            value = float(value)
        except (TypeError, ValueError):
            logger.warning("Invalid chunk_size_headroom %r, using default", value)
            return default
        return max(_HEADROOM_MIN, min(_HEADROOM_MAX, value))

    if key in _POSITIVE_INT_KEYS:
        try:
            value = int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid %s %r, using default", key, value)
            return default
        return max(1, value)

    if key == 'max_item_duration_sec':
        try:
            value = int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid max_item_duration_sec %r, using default", value)
            return default
        return max(_MAX_DURATION_MIN, value)

    if key == 'transcription_max_bytes':
        try:
            value = int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid transcription_max_bytes %r, using default", value)
            return default
        return max(_MAX_BYTES_MIN, value)

    if key in _PATH_KEYS or key in _NAME_KEYS:
        if not isinstance(value, str) or not value.strip():
            logger.warning("Invalid %s %r, using default", key, value)
            return default
        return value.strip()

    if key == 'sources':
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)) or not all(isinstance(s, str) for s in value):
            logger.warning("Invalid sources %r, using default", value)
            return default
        cleaned = [s.strip() for s in value if s.strip()]
        return cleaned or default

    return value


def load_config(config_path: Path | None = None, env: dict | None = None) -> PipelineConfig:
    """Load config from disk, merging with defaults and the environment."""
    path = config_path or CONFIG_PATH
    env = os.environ if env is None else env
    data = dict(_DEFAULTS)

    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                saved = json.load(f)
            if isinstance(saved, dict):
                data.update({k: v for k, v in saved.items() if k in _DEFAULTS})
            else:
                logger.warning("Ignoring config %s: top level is not an object", path)
        except Exception as e:
            logger.warning("Failed to load config: %s", e)

    data = {k: _validate(k, v) for k, v in data.items()}

    return PipelineConfig(
        sources=tuple(data['sources']),
        state_path=Path(data['state_path']),
        reports_dir=Path(data['reports_dir']),
        scratch_dir=Path(data['scratch_dir']),
        videos_per_source=data['videos_per_source'],
        test_source_count=data['test_source_count'],
        test_item_limit=data['test_item_limit'],
        max_item_duration_sec=data['max_item_duration_sec'],
        transcription_max_bytes=data['transcription_max_bytes'],
        chunk_size_headroom=data['chunk_size_headroom'],
        transcription_model=data['transcription_model'],
        analysis_model=data['analysis_model'],
        openai_api_key=env.get('OPENAI_API_KEY') or None,
        webhook_url=env.get('DISCORD_WEBHOOK_URL') or None,
    )

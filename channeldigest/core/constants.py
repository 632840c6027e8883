"""
Shared constants for ChannelDigest.
Single source of truth, imported by every other module.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "ChannelDigest"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

DEFAULT_STATE_PATH = pathlib.Path("state.json")
DEFAULT_REPORTS_DIR = pathlib.Path("reports")
DEFAULT_SCRATCH_DIR = pathlib.Path("downloads")
CONFIG_PATH = pathlib.Path("config.json")
LOG_DIR = HOME / ".cache" / APP_NAME / "logs"

# ── Sources (YouTube channel handles) ─────────────────────────────────
DEFAULT_SOURCES = (
    "@nicksaraev",
    "@matthew_berman",
    "@trycluely",
    "@ThePrimeTimeagen",
    "@GregIsenberg",
    "@DorianDevelops",
    "@WesRoth",
    "@AlexFinnOfficial",
    "@Alex.Followell",
    "@DavidOndrej",
    "@SaminYasar_",
    "@BrockMesarich",
    "@starterstory",
    "@TwoMinutePapers",
    "@intheworldofai",
    "@AICodeKing",
    "@aisamsonreal",
)

# ── Attempted item status ─────────────────────────────────────────────
class ItemStatus:
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    FETCH_FAILED = "ERR_FETCH_FAILED"
    PROBE_FAILED = "ERR_PROBE_FAILED"
    SEGMENTATION = "ERR_SEGMENTATION"
    TRANSCRIPTION_CALL = "ERR_TRANSCRIPTION_CALL"
    TRANSCRIPTION_TIMEOUT = "ERR_TRANSCRIPTION_TIMEOUT"
    ANALYSIS_FAILED = "ERR_ANALYSIS_FAILED"
    STATE_IO = "ERR_STATE_IO"
    UNEXPECTED = "ERR_UNEXPECTED"

MAX_ERROR_MESSAGE_LEN = 2000

# ── Run policy defaults ──────────────────────────────────────────────
VIDEOS_PER_SOURCE = 5
TEST_SOURCE_COUNT = 2
TEST_ITEM_LIMIT = 2
MAX_ITEM_DURATION_SEC = 3600   # 1 hour

# ── Audio pipeline defaults ───────────────────────────────────────────
TRANSCRIPTION_MAX_BYTES = 25 * 1024 * 1024
# Chunk durations assume constant bitrate; real chunk sizes drift, so
# only this fraction of the hard upload limit is planned against.
CHUNK_SIZE_HEADROOM = 0.8
MIN_CHUNK_SEC = 1
DOWNLOAD_FORMAT = "mp3"
DOWNLOAD_BITRATE = "96K"

# ── Timeouts (seconds) ────────────────────────────────────────────────
LIST_TIMEOUT_SEC = 120
METADATA_TIMEOUT_SEC = 60
DOWNLOAD_TIMEOUT_SEC = 300
THUMBNAIL_TIMEOUT_SEC = 30
PROBE_TIMEOUT_SEC = 30
SPLIT_TIMEOUT_SEC = 120
MIN_TRANSCRIBE_TIMEOUT_SEC = 120
ANALYSIS_TIMEOUT_SEC = 120
WEBHOOK_TIMEOUT_SEC = 15

# ── OpenAI ────────────────────────────────────────────────────────────
OPENAI_API_BASE = "https://api.openai.com/v1"
TRANSCRIPTION_MODEL = "whisper-1"
ANALYSIS_MODEL = "gpt-4o"
MAX_TRANSCRIPT_CHARS = 80000

# ── Misc ──────────────────────────────────────────────────────────────
YOUTUBE_CHANNEL_URL = "https://www.youtube.com/{handle}/videos"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
DIGEST_MAX_NEW_ITEMS = 10
MAX_REPORT_TAGS = 10
WEBHOOK_MAX_CHARS = 2000

# Characters forbidden in scratch directory names
UNSAFE_FILENAME_CHARS = r'[<>:"/\\|?*\x00-\x1f]'
MAX_FOLDER_NAME_LEN = 200

# ── Degraded-result markers ───────────────────────────────────────────
THUMBNAIL_UNAVAILABLE = "Thumbnail analysis unavailable"
CONTENT_UNAVAILABLE = "Content analysis unavailable"
AGGREGATE_UNAVAILABLE = "Aggregate insights unavailable"

#!/usr/bin/env python3
"""
ChannelDigest v1.0.0 — Main entry point.
Incrementally transcribes and analyzes recent videos from YouTube channels.
"""

import sys
import os
import logging
import shutil
import traceback
from pathlib import Path
from datetime import datetime

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from channeldigest.core.constants import APP_NAME, APP_VERSION, LOG_DIR

logger = logging.getLogger(APP_NAME)


def setup_logging():
    """Log to the console and to LOG_DIR/app.log."""
    handlers = [logging.StreamHandler(sys.stderr)]
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / "app.log", encoding="utf-8"))
    except OSError as e:
        print(f"Warning: file logging disabled ({e})", file=sys.stderr)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def check_prerequisites():
    """Check that yt-dlp, ffmpeg and ffprobe are available, exit if not."""
    from channeldigest.core.diagnostics import missing_tools, get_diagnostics

    missing = missing_tools()
    if missing:
        logger.error("Missing tools. PATH = %s", os.environ.get("PATH", ""))
        logger.error("Missing required tools:\n  %s", "\n  ".join(missing))
        sys.exit(1)

    # Log found tools for debugging
    for tool, version in get_diagnostics().items():
        logger.info("%s found at %s (%s)", tool, shutil.which(tool), version)


def main(argv: list[str] | None = None):
    setup_logging()
    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("=" * 60)

    try:
        from channeldigest.cli.runner import run
        argv = sys.argv[1:] if argv is None else argv
        if not {"--stats", "--help", "-h", "--version"} & set(argv):
            check_prerequisites()
        run(argv)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.critical("Fatal error: %s\n%s", error_msg, traceback.format_exc())
        sys.exit(1)

    logger.info("Done!")


if __name__ == "__main__":
    main()

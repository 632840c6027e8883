"""
Diagnostics: external tool detection and version checks.
"""

import shutil
import logging

from channeldigest.core.security_utils import run_subprocess_capture

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = {
    "yt-dlp": "yt-dlp (install with: pip install yt-dlp)",
    "ffmpeg": "ffmpeg (install with your package manager)",
    "ffprobe": "ffprobe (ships with ffmpeg)",
}

_VERSION_FLAGS = {
    "yt-dlp": "--version",
    "ffmpeg": "-version",
    "ffprobe": "-version",
}


def get_tool_version(tool: str) -> str:
    """Return the first line of a tool's version output, or an error message."""
    try:
        result = run_subprocess_capture([tool, _VERSION_FLAGS.get(tool, "--version")], timeout=10)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip().splitlines()[0]
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def missing_tools() -> list[str]:
    """Install hints for every required tool not found on PATH."""
    return [hint for tool, hint in REQUIRED_TOOLS.items() if not shutil.which(tool)]


def get_diagnostics() -> dict:
    return {tool: get_tool_version(tool) for tool in REQUIRED_TOOLS}

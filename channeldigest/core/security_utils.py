"""
Security utilities for ChannelDigest.
- Scratch path confinement
- Safe subprocess execution (argument arrays only)
"""

import re
import subprocess
import pathlib
import logging

from channeldigest.core.constants import UNSAFE_FILENAME_CHARS, MAX_FOLDER_NAME_LEN

logger = logging.getLogger(__name__)


# ── Filename / path safety ────────────────────────────────────────────

def sanitize_name(name: str) -> str:
    """Sanitize an item id or title for use as a directory name."""
    if not name:
        return ""
    safe = re.sub(UNSAFE_FILENAME_CHARS, '_', name)
    safe = safe.replace('..', '')
    safe = re.sub(r'\s+', '_', safe).strip('_')
    if len(safe) > MAX_FOLDER_NAME_LEN:
        safe = safe[:MAX_FOLDER_NAME_LEN]
    # Leading dots would make hidden directories
    safe = safe.strip('.')
    return safe


def safe_item_dir(scratch_root: pathlib.Path, item_id: str) -> pathlib.Path:
    """
    Build the per-item scratch directory.  Enforces that the resolved path
    stays under the resolved scratch root; falls back to 'item_unknown'.
    """
    sanitized = sanitize_name(item_id) or "item_unknown"
    candidate = scratch_root / sanitized
    real_root = scratch_root.resolve(strict=False)
    real_candidate = candidate.resolve(strict=False)
    if real_candidate.parent != real_root:
        logger.warning("Rejected scratch path for item %r", item_id)
        candidate = scratch_root / "item_unknown"
    return candidate


# ── Subprocess safety ─────────────────────────────────────────────────

def run_subprocess(args: list[str], **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    kwargs.pop('shell', None)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.run(args, shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int = 300, **kwargs) -> subprocess.CompletedProcess:
    """Run subprocess and capture stdout/stderr."""
    return run_subprocess(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        **kwargs,
    )

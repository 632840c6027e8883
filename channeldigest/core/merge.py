"""
Merge per-chunk transcript texts into a single transcript.
"""

import logging
from typing import Iterable

logger = logging.getLogger(__name__)


def merge_chunk_texts(chunk_texts: Iterable[tuple[int, str]], chunk_count: int) -> str:
    """
    Join chunk texts with a single space in ascending chunk index order,
    whatever order the (index, text) pairs arrive in. Indices with no text
    contribute an empty string so positions are preserved.
    """
    slots = [""] * chunk_count
    for idx, text in chunk_texts:
        if not 0 <= idx < chunk_count:
            logger.warning("Ignoring text for out-of-range chunk %d", idx)
            continue
        slots[idx] = text or ""
    return " ".join(slots)

"""
Cleanup: delete an item's scratch workspace once the item resolves.
"""

import shutil
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def cleanup_item_workspace(workspace: Path):
    """
    Delete source/, thumbnails/ and any chunk leftovers under the item's
    workspace, then the workspace itself if it ends up empty.
    """
    if not workspace.exists():
        return

    for dirname in ('source', 'thumbnails'):
        dir_path = workspace / dirname
        if dir_path.exists():
            try:
                shutil.rmtree(dir_path)
                logger.debug("Deleted: %s", dir_path)
            except OSError as e:
                logger.warning("Failed to delete %s: %s", dir_path, e)

    try:
        if not any(workspace.iterdir()):
            workspace.rmdir()
            logger.debug("Removed empty workspace: %s", workspace)
    except OSError as e:
        logger.warning("Failed to remove workspace %s: %s", workspace, e)

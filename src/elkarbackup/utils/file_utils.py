"""
Filesystem helpers.
"""

import logging
import os
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


def atomic_write_text(path: str, content: str, mode: Optional[int] = None) -> None:
    """
    Replace the content of a file without ever exposing a partial write.

    The content is written to a temporary file in the same directory, flushed
    to disk and renamed over the target.

    Args:
        path: Destination file
        content: Full new content
        mode: Optional permission bits applied before the rename
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(
        dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as temp_file:
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        if mode is not None:
            os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except Exception:
        logger.error(f"Failed to write {path}, discarding {temp_path}")
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

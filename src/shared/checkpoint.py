"""Checkpoint file helpers for resumable scraping.

This module provides atomic JSON save/load used by the progress ledger,
so that an interrupted write never leaves a truncated checkpoint behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

__all__ = [
    'load_checkpoint',
    'save_checkpoint',
]


def save_checkpoint(data: Any, filepath: str) -> None:
    """Save progress using atomic write (temp file + rename).

    The temporary file is created in the target directory so that the final
    os.replace() stays on one filesystem and is atomic on POSIX and Windows.

    Args:
        data: Data to save (will be JSON serialized)
        filepath: Path where checkpoint should be saved

    Raises:
        OSError: If filesystem operations fail
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        temp_fd, temp_path = tempfile.mkstemp(
            suffix='.tmp',
            dir=path.parent,
            prefix=path.name + '.'
        )

        try:
            with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
                json.dump(data, f)

            os.replace(temp_path, str(path))
            logging.debug(f"Checkpoint saved: {filepath}")

        except Exception:
            # fdopen may have failed before taking ownership of the fd
            try:
                os.close(temp_fd)
            except OSError:
                pass
            try:
                Path(temp_path).unlink(missing_ok=True)
            except OSError:
                pass
            raise

    except OSError as e:
        logging.error(f"Failed to save checkpoint {filepath}: {e}")
        raise


def load_checkpoint(filepath: str) -> Optional[Any]:
    """Load previous progress from checkpoint file.

    Args:
        filepath: Path to checkpoint file

    Returns:
        Loaded checkpoint data, or None if the file doesn't exist

    Raises:
        ValueError: If the file exists but is not valid UTF-8 JSON
        OSError: If the file exists but cannot be read
    """
    path = Path(filepath)
    if not path.exists():
        return None

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    logging.info(f"Checkpoint loaded: {filepath}")
    return data

"""Logging configuration and setup.

This module provides thread-safe logging configuration with file rotation
and console output.
"""

import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path

from src.shared.constants import LOGGING

__all__ = [
    'setup_logging',
]


_logging_lock = threading.Lock()


def setup_logging(
    log_file: str = "logs/scraper.log",
    max_bytes: int = LOGGING.MAX_BYTES,
    backup_count: int = LOGGING.BACKUP_COUNT,
    level: int = logging.INFO,
) -> None:
    """Setup logging configuration with rotation.

    Idempotent and thread-safe: calling it again does not add duplicate
    handlers, it only reconfigures a file handler whose rotation settings
    changed.

    Args:
        log_file: Path to log file
        max_bytes: Maximum file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
        level: Root logger level
    """
    with _logging_lock:
        root_logger = logging.getLogger()
        log_path = Path(log_file)
        root_logger.setLevel(level)

        has_file_handler = False
        for handler in root_logger.handlers[:]:
            if isinstance(handler, RotatingFileHandler) and handler.baseFilename == str(log_path.absolute()):
                if handler.maxBytes == max_bytes and handler.backupCount == backup_count:
                    has_file_handler = True
                    break
                root_logger.removeHandler(handler)
                handler.close()

        # FileHandler is the base class of every file-based handler
        has_console_handler = any(
            isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
            for h in root_logger.handlers
        )

        if has_file_handler and has_console_handler:
            return

        log_path.parent.mkdir(parents=True, exist_ok=True)

        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

        if not has_file_handler:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8',
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        if not has_console_handler:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

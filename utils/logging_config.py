"""
Structured logging configuration for the library cleaner.

This module sets up the application log (rotating file, optional console)
and the run log: a transcript of every message shown to the operator, kept
in memory during the run and written to disk once at the end.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

APP_LOGGER_NAME = 'discocleaner'
TRANSCRIPT_LOGGER_NAME = 'discocleaner.transcript'


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = False
) -> logging.Logger:
    """
    Set up application logging.

    The terminal is the operator-facing surface, so console output is off
    unless explicitly requested.

    Args:
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to output logs to stderr

    Returns:
        Configured logger instance
    """
    # Clear any existing handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    # Set logging level
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    root_logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # File handler with rotation
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(numeric_level)

    app_logger.info(f"Logging initialized - Level: {level}")
    if log_file:
        app_logger.info(f"Log file: {log_file}")

    return app_logger


class RunLog:
    """
    In-memory transcript of operator-facing messages.

    Records are buffered by a MemoryHandler whose flush level can never be
    reached, so nothing touches the disk until write() is called.
    """

    def __init__(self, log_file: Path):
        self.log_file = Path(log_file)
        self.logger = logging.getLogger(TRANSCRIPT_LOGGER_NAME)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self._handler = logging.handlers.MemoryHandler(
            capacity=sys.maxsize,
            flushLevel=logging.CRITICAL + 1,
            target=None,
            flushOnClose=False
        )
        self.logger.addHandler(self._handler)

    @property
    def records(self) -> list:
        return list(self._handler.buffer)

    def write(self) -> Path:
        """Write the buffered transcript to log_file and detach the buffer."""
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        target = logging.FileHandler(str(self.log_file), mode='w', encoding='utf-8')
        target.setFormatter(logging.Formatter('%(message)s'))
        try:
            self._handler.setTarget(target)
            self._handler.flush()
        finally:
            self.close()
            target.close()
        return self.log_file

    def close(self):
        self.logger.removeHandler(self._handler)
        self._handler.close()


def configure_library_logging():
    """Configure logging for external libraries to reduce noise."""
    logging.getLogger('mutagen').setLevel(logging.WARNING)

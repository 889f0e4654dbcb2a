"""
Logging configuration for the library.

Modules log through get_logger(__name__). Nothing is printed unless the host
process configures logging, either itself or through setup_logging().
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .paths import get_log_file_path

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def rotate_log_files(log_file: Optional[Path] = None, old_log_file: Optional[Path] = None) -> None:
    """
    Rotate log files before starting a new logging session.

    The current log is moved to '<stem>.old<suffix>' (log.txt -> log.old.txt),
    replacing any previous one, so only the last two sessions are kept.

    Args:
        log_file: Log file to rotate. Defaults to the persistent log file.
        old_log_file: Destination of the rotated log.
    """
    if log_file is None:
        log_file = get_log_file_path()
    if old_log_file is None:
        old_log_file = log_file.with_name(f"{log_file.stem}.old{log_file.suffix}")

    if not log_file.exists():
        return

    try:
        # replace() overwrites the previous rotated log
        log_file.replace(old_log_file)
    except OSError as e:
        print(f"Warning: Could not rotate log file: {e}", file=sys.stderr)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level: {level}")
        return resolved
    return level


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    log_to_file: bool = False
) -> None:
    """
    Configure logging for a process using bidschannels.

    Args:
        level: Logging level (e.g., logging.DEBUG or 'DEBUG').
        log_file: Optional path to a log file. If None and log_to_file=True, uses default location.
        format_string: Optional custom format string for log messages.
        log_to_file: Whether to also log to a file. The previous file is rotated first.

    Raises:
        ValueError: If level is an unknown level name.
    """
    level = _resolve_level(level)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]

    if log_to_file:
        if log_file is None:
            log_file = get_log_file_path()

        rotate_log_files(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8', mode='w')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    # Silence overly verbose third-party loggers
    logging.getLogger("yaml").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        A configured logger instance.
    """
    return logging.getLogger(name)

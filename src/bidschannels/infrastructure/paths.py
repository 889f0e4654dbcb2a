"""
Path utilities and constants.

This module provides helper functions for locating the application's
persistent data (settings and log files).
"""

import platform
from pathlib import Path

APP_NAME = "bidschannels"


def get_persistent_data_directory() -> Path:
    """
    Get the persistent data directory for the application (cross-platform).

    Returns:
        Path to the persistent data directory.

    Platform-specific locations:
        - Windows: %APPDATA%/LocalLow/bidschannels
        - macOS: ~/Library/Application Support/bidschannels
        - Linux: ~/.config/bidschannels
    """
    system = platform.system()

    if system == "Windows":
        base = Path.home() / "AppData" / "LocalLow"
    elif system == "Darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".config"

    data_dir = base / APP_NAME
    data_dir.mkdir(parents=True, exist_ok=True)

    return data_dir


def get_log_file_path() -> Path:
    """
    Get the path to the main log file.

    Returns:
        Path to the log.txt file.
    """
    return get_persistent_data_directory() / "log.txt"

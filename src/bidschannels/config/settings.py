"""
Library settings and their persistence.

Settings are kept as JSON in the per-user data directory:

- Windows: %APPDATA%/LocalLow/bidschannels/settings.json
- macOS: ~/Library/Application Support/bidschannels/settings.json
- Linux: ~/.config/bidschannels/settings.json

They are loaded on first access through get_settings() and written back on
every update. Values read from disk are checked before use; a malformed
value is reported and the default is kept.

Example:
    from bidschannels.config.settings import get_settings, get_settings_manager

    # Entities used when no configuration file is given
    print(get_settings().default_loop_over)

    # Update settings (auto-saves)
    manager = get_settings_manager()
    manager.update(default_loop_over=["subject", "session"])
"""

import json
import logging
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Optional

from ..core.entity_config import is_known_entity
from ..infrastructure.logging_config import setup_logging
from ..infrastructure.paths import get_persistent_data_directory


def _default_loop_over() -> list[str]:
    return ['subject', 'session', 'run', 'task']


@dataclass
class AppSettings:
    """Library-wide settings."""

    # Logging
    log_level: int = logging.INFO
    log_to_file: bool = False

    # Grouping
    default_loop_over: list[str] = field(default_factory=_default_loop_over)


def _coerce_log_level(value: Any) -> Optional[int]:
    """Accept a numeric level or a level name such as 'DEBUG'."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        level = getattr(logging, value.strip().upper(), None)
        if isinstance(level, int):
            return level
    return None


def _coerce_loop_over(value: Any) -> Optional[list[str]]:
    if isinstance(value, str):
        value = [value]
    if isinstance(value, list) and value and all(isinstance(v, str) and v for v in value):
        return list(value)
    return None


def _coerce_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


# Setting name -> converter returning the usable value, or None if malformed
_COERCERS = {
    'log_level': _coerce_log_level,
    'log_to_file': _coerce_bool,
    'default_loop_over': _coerce_loop_over,
}


class SettingsManager:
    """
    Loads, checks and saves settings.
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize the settings manager.

        Args:
            config_file: Path to the settings file. If None, uses the default location.
        """
        if config_file is None:
            config_file = get_persistent_data_directory() / "settings.json"

        self.config_file = config_file
        self._settings = AppSettings()
        self._logger = logging.getLogger(__name__)

    def _apply(self, values: dict[str, Any]) -> list[str]:
        """
        Copy checked values onto the current settings.

        Returns:
            Names of the values that were rejected.
        """
        known = {f.name for f in fields(AppSettings)}
        rejected = []

        for key, value in values.items():
            if key not in known:
                self._logger.warning(f"Ignoring unknown setting: {key}")
                continue
            coerced = _COERCERS[key](value)
            if coerced is None:
                rejected.append(key)
                continue
            setattr(self._settings, key, coerced)

        for name in self._settings.default_loop_over:
            if not is_known_entity(name):
                self._logger.warning(f"Default loop_over entity '{name}' is not a BIDS entity")

        return rejected

    def load(self) -> AppSettings:
        """
        Load settings from the settings file.

        Returns:
            The loaded settings object. Defaults are kept for a missing or
            unreadable file and for every malformed value.
        """
        if not self.config_file.exists():
            self._logger.info(f"Settings file not found at {self.config_file}, using defaults")
            return self._settings

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self._logger.error(f"Failed to parse settings file: {e}. Using defaults.")
            return self._settings
        except OSError as e:
            self._logger.error(f"Failed to load settings: {e}. Using defaults.")
            return self._settings

        if not isinstance(data, dict):
            self._logger.error(f"Settings file {self.config_file} does not hold a JSON object. Using defaults.")
            return self._settings

        rejected = self._apply(data)
        if rejected:
            self._logger.warning(f"Invalid values for {', '.join(rejected)} in {self.config_file}, using defaults")

        self._logger.info(f"Settings loaded from {self.config_file}")
        return self._settings

    def save(self, settings: Optional[AppSettings] = None) -> None:
        """
        Save settings to the settings file.

        Args:
            settings: Settings object to save. If None, saves current settings.
        """
        if settings is not None:
            self._settings = settings

        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)

            # Write to a temporary file first so a crash never leaves a truncated file
            temp_file = self.config_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(self._settings), f, indent=2, ensure_ascii=False)
            temp_file.replace(self.config_file)

            self._logger.info(f"Settings saved to {self.config_file}")

        except OSError as e:
            self._logger.error(f"Failed to save settings: {e}")

    def get(self) -> AppSettings:
        """
        Get the current settings.

        Returns:
            The current settings object.
        """
        return self._settings

    def update(self, **kwargs) -> None:
        """
        Update specific settings and auto-save.

        Args:
            **kwargs: Setting names and values to update.

        Raises:
            ValueError: If a value is malformed (e.g., an empty default_loop_over).
        """
        rejected = self._apply(kwargs)
        if rejected:
            raise ValueError(f"Invalid value for setting(s): {', '.join(rejected)}")

        self.save()

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values and save."""
        self._settings = AppSettings()
        self.save()

    def configure_logging(self) -> None:
        """Set up logging from the current log_level and log_to_file values."""
        setup_logging(level=self._settings.log_level, log_to_file=self._settings.log_to_file)


# Global settings instance
_settings_manager: Optional[SettingsManager] = None


def get_settings_manager() -> SettingsManager:
    """
    Get the global settings manager instance.

    Returns:
        The global SettingsManager.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
        _settings_manager.load()
    return _settings_manager


def get_settings() -> AppSettings:
    """
    Get the current settings.

    Returns:
        The current AppSettings object.
    """
    return get_settings_manager().get()

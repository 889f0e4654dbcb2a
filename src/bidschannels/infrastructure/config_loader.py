"""
Grouping configuration loading.

Reads bids2nf-style YAML configuration files and validates them before they
reach the core. Validation failures and missing files are raised as their own
exception types; anything else is wrapped in BidsProcessingError.
"""

from pathlib import Path
from typing import Any, Union

import yaml

from ..config.settings import get_settings
from ..core.config_validator import validate_config
from ..core.errors import ConfigValidationError, MissingFileError, error_context
from .logging_config import get_logger

logger = get_logger(__name__)


def load_config(config_path: Union[str, Path], validate: bool = True) -> dict[str, Any]:
    """
    Load a grouping configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.
        validate: Whether to run structural validation.

    Returns:
        The configuration mapping.

    Raises:
        MissingFileError: If the file does not exist.
        ConfigValidationError: If the content is not a mapping or fails validation.
        BidsProcessingError: If the file cannot be read or parsed.
    """
    config_path = Path(config_path)

    with error_context(f"load_config({config_path})"):
        if not config_path.is_file():
            raise MissingFileError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ConfigValidationError(
                f"Configuration in {config_path} must be a mapping, got {type(config).__name__}"
            )

        if validate:
            result = validate_config(config)
            if not result.is_valid:
                message = f"Configuration validation failed for {config_path}:\n{result}"
                logger.error(message)
                raise ConfigValidationError(message, result)
            if result.warnings:
                logger.warning(f"Configuration warnings for {config_path}:\n  " + "\n  ".join(result.warnings))

    logger.info(f"Loaded BIDS configuration from: {config_path}")
    logger.debug(f"Configuration keys: {list(config.keys())}")
    return config


def load_default_config() -> dict[str, Any]:
    """
    Get the configuration used when no file is given.

    Holds only loop_over (from settings), so it is not validated.
    """
    logger.info("Using default BIDS configuration")
    return {'loop_over': list(get_settings().default_loop_over)}

"""
Exception types for BIDS channel assembly.

Configuration problems, missing inputs and unexpected failures are raised as
distinct types so callers can tell a bad configuration from a bad environment.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from ..infrastructure.logging_config import get_logger

logger = get_logger(__name__)


class BidsChannelsError(Exception):
    """Base exception for all bidschannels errors."""


class InvalidEntityError(BidsChannelsError, ValueError):
    """Raised when an entity is built with an empty name or value."""


class ConfigurationError(BidsChannelsError):
    """Raised when a grouping configuration cannot be used."""


class ConfigValidationError(ConfigurationError):
    """
    Raised when a configuration fails structural validation.

    Attributes:
        result: The ValidationResult holding the errors and warnings.
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class SuffixMappingCollisionError(ConfigurationError):
    """Raised when two configuration entries map to the same BIDS suffix."""

    def __init__(self, suffix: str, first_key: str, second_key: str):
        super().__init__(
            f"Suffix '{suffix}' is targeted by both '{first_key}' and "
            f"'{second_key}' via suffix_maps_to"
        )
        self.suffix = suffix
        self.config_keys = (first_key, second_key)


class MissingFileError(BidsChannelsError, FileNotFoundError):
    """Raised when a required input file does not exist."""


class BidsProcessingError(BidsChannelsError):
    """Raised when processing fails for an unexpected reason."""


class NoDataGroupsError(BidsProcessingError):
    """Raised when grouping produced no output at all."""


@contextmanager
def error_context(context: str) -> Iterator[None]:
    """
    Run a block with an error context label.

    Configuration and missing-file errors propagate unchanged. Any other
    exception is logged and re-raised as a BidsProcessingError chained to the
    original.

    Args:
        context: Short label for the operation (e.g., 'load_config').

    Raises:
        BidsProcessingError: If the block raised an unexpected exception.
    """
    try:
        yield
    except (ConfigurationError, MissingFileError):
        raise
    except Exception as e:
        logger.error(f"[{context}] Error occurred: {e}")
        logger.debug(f"[{context}] Stack trace:", exc_info=True)
        raise BidsProcessingError(f"Error in {context}: {e}") from e


def format_detailed_error(error: str, suggestions: Optional[list[str]] = None) -> str:
    """
    Build a multi-line error message with numbered suggestions.

    Args:
        error: Main error message.
        suggestions: Possible ways to resolve the error.

    Returns:
        The formatted message.
    """
    lines = ["ERROR", error]
    if suggestions:
        lines.append("")
        lines.append("Possible solutions:")
        for index, suggestion in enumerate(suggestions, start=1):
            lines.append(f"  {index}. {suggestion}")
    return "\n".join(lines)

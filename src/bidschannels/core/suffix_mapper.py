"""
Suffix remapping via ``suffix_maps_to``.

A configuration entry may govern a BIDS suffix other than its own key, e.g.
``dwi_fullreverse`` declaring ``suffix_maps_to: dwi``. This lets one suffix
have several independent configuration variants.
"""

from typing import Any, Mapping, Optional

from .errors import SuffixMappingCollisionError
from ..infrastructure.logging_config import get_logger

logger = get_logger(__name__)

SUFFIX_MAPS_TO = 'suffix_maps_to'


def build_suffix_mapping(config: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """
    Build the file suffix -> configuration key table.

    Args:
        config: Full configuration mapping.

    Returns:
        Mapping such as {'dwi': 'dwi_fullreverse'}; empty if no entry
        declares suffix_maps_to.

    Raises:
        SuffixMappingCollisionError: If two entries target the same suffix.
    """
    mapping: dict[str, str] = {}
    if not config:
        return mapping

    for config_key, config_value in config.items():
        if not isinstance(config_value, Mapping):
            continue
        target_suffix = config_value.get(SUFFIX_MAPS_TO)
        if not target_suffix:
            continue

        target_suffix = str(target_suffix)
        if target_suffix in mapping:
            raise SuffixMappingCollisionError(target_suffix, mapping[target_suffix], str(config_key))

        mapping[target_suffix] = str(config_key)
        logger.debug(f"Suffix mapping: {target_suffix} -> {config_key}")

    return mapping


def resolve_config_key(suffix: str, mapping: Optional[Mapping[str, str]]) -> str:
    """
    Get the configuration key governing a file suffix.

    Args:
        suffix: Suffix of a BIDS file.
        mapping: Table from build_suffix_mapping().

    Returns:
        The mapped configuration key, or the suffix itself.
    """
    if not mapping:
        return suffix
    return mapping.get(suffix, suffix)


def get_output_suffix(config_key: str, config_value: Optional[Mapping[str, Any]]) -> str:
    """
    Get the suffix that labels a configuration entry's output.

    Args:
        config_key: Configuration key (e.g., 'dwi_fullreverse').
        config_value: The entry's configuration mapping.

    Returns:
        The suffix_maps_to target (e.g., 'dwi'), or config_key.
    """
    if isinstance(config_value, Mapping) and config_value.get(SUFFIX_MAPS_TO):
        return str(config_value[SUFFIX_MAPS_TO])
    return config_key

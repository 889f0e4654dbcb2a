"""
Structural validation of grouping configurations.

Collects every problem found in a configuration instead of stopping at the
first one, so a user can fix a file in a single pass.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from .config_analyzer import SetType, find_unknown_loop_over_entities, get_set_types
from .errors import SuffixMappingCollisionError
from .suffix_mapper import SUFFIX_MAPS_TO, build_suffix_mapping
from ..infrastructure.logging_config import get_logger

logger = get_logger(__name__)

# Top-level keys that are not suffix entries
GLOBAL_KEYS = {'loop_over', 'plain_sets', 'named_sets', 'sequential_sets', 'mixed_sets'}

VALID_ORDERS = ('hierarchical', 'flat')

# Named-set keys that are not group definitions
NAMED_SET_RESERVED = {'required', 'description'}


@dataclass
class ValidationResult:
    """Errors and warnings found in a configuration."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __str__(self) -> str:
        parts = []
        if self.errors:
            parts.append("ERRORS:\n  " + "\n  ".join(self.errors))
        if self.warnings:
            parts.append("WARNINGS:\n  " + "\n  ".join(self.warnings))
        return "\n\n".join(parts)


def validate_config(config: Any) -> ValidationResult:
    """
    Validate a configuration mapping.

    Args:
        config: Parsed configuration.

    Returns:
        A ValidationResult; the configuration is usable if is_valid is True.
    """
    result = ValidationResult()

    if not isinstance(config, Mapping) or not config:
        result.errors.append("Configuration is null or empty")
        return result

    loop_over = config.get('loop_over')
    if loop_over is not None:
        if isinstance(loop_over, str):
            pass
        elif not isinstance(loop_over, list) or not all(isinstance(e, str) for e in loop_over):
            result.errors.append("Global 'loop_over' must be an entity name or a list of entity names")

    for name in find_unknown_loop_over_entities(config):
        result.warnings.append(f"loop_over entity '{name}' is not a BIDS entity; it will always be 'NA'")

    for suffix, suffix_config in config.items():
        if suffix in GLOBAL_KEYS or not isinstance(suffix_config, Mapping):
            continue
        _validate_suffix_config(str(suffix), suffix_config, result)

    try:
        build_suffix_mapping(config)
    except SuffixMappingCollisionError as e:
        result.errors.append(str(e))

    return result


def _validate_suffix_config(suffix: str, suffix_config: Mapping, result: ValidationResult) -> None:
    if not suffix_config:
        result.errors.append(f"Suffix '{suffix}': configuration is null or empty")
        return

    set_types = get_set_types(suffix_config)
    if not set_types:
        markers = ', '.join(t.marker for t in SetType)
        result.errors.append(f"Suffix '{suffix}': no set type specified (must have one of: {markers})")
    elif len(set_types) > 1:
        found = ', '.join(t.marker for t in set_types)
        result.errors.append(f"Suffix '{suffix}': multiple set types defined ({found}); exactly one is allowed")

    validators = {
        SetType.PLAIN: _validate_plain_set,
        SetType.NAMED: _validate_named_set,
        SetType.SEQUENTIAL: _validate_sequential_set,
        SetType.MIXED: _validate_mixed_set,
    }
    for set_type in set_types:
        block = suffix_config.get(set_type.marker)
        if block is None or block is True:
            continue
        if not isinstance(block, Mapping):
            result.errors.append(f"Suffix '{suffix}' {set_type.marker}: must be a mapping")
            continue
        validators[set_type](suffix, block, result)

    target = suffix_config.get(SUFFIX_MAPS_TO)
    if target is not None and not isinstance(target, str):
        result.errors.append(f"Suffix '{suffix}': suffix_maps_to must be a string")


def _validate_plain_set(suffix: str, config: Mapping, result: ValidationResult) -> None:
    extensions = config.get('additional_extensions')
    if extensions is not None and not isinstance(extensions, list):
        result.errors.append(f"Suffix '{suffix}' plain_set: additional_extensions must be a list")

    cross_modal = config.get('include_cross_modal')
    if cross_modal is not None and not isinstance(cross_modal, (bool, list)):
        result.warnings.append(
            f"Suffix '{suffix}' plain_set: include_cross_modal should be boolean or list of suffixes"
        )


def _validate_named_set(suffix: str, config: Mapping, result: ValidationResult) -> None:
    groups = {
        name: group for name, group in config.items()
        if name not in NAMED_SET_RESERVED
    }
    defined = [name for name, group in groups.items() if isinstance(group, Mapping)]

    if not defined:
        result.errors.append(
            f"Suffix '{suffix}' named_set: no named groups defined. "
            f"Must have at least one group (e.g., MTw: {{flip: 'flip-1'}})"
        )

    for group_name, group in groups.items():
        if not isinstance(group, Mapping):
            result.errors.append(
                f"Suffix '{suffix}' named_set group '{group_name}': must be a map of entity patterns"
            )
            continue
        if not group:
            result.warnings.append(
                f"Suffix '{suffix}' named_set group '{group_name}': empty pattern (will match nothing)"
            )
        for entity, value in group.items():
            if entity != 'description' and value is None:
                result.warnings.append(
                    f"Suffix '{suffix}' named_set group '{group_name}': entity '{entity}' has null value"
                )

    required = config.get('required')
    if required is None:
        return
    if not isinstance(required, list):
        result.errors.append(f"Suffix '{suffix}' named_set: 'required' must be a list of group names")
        return
    for group_name in required:
        if group_name not in defined:
            result.errors.append(f"Suffix '{suffix}' named_set: required group '{group_name}' is not defined")


def _validate_order(suffix: str, set_name: str, config: Mapping, result: ValidationResult) -> None:
    order = config.get('order')
    if order is None:
        return
    if not isinstance(order, str):
        result.errors.append(f"Suffix '{suffix}' {set_name}: 'order' must be a string")
    elif order not in VALID_ORDERS:
        result.errors.append(
            f"Suffix '{suffix}' {set_name}: 'order' must be 'hierarchical' or 'flat', got '{order}'"
        )


def _validate_sequential_set(suffix: str, config: Mapping, result: ValidationResult) -> None:
    by_entity = config.get('by_entity')
    by_entities = config.get('by_entities')
    dimension = config.get('sequential_dimension')

    if not (by_entity or by_entities or dimension):
        result.errors.append(
            f"Suffix '{suffix}' sequential_set: must specify 'by_entity', 'by_entities', "
            f"or 'sequential_dimension'"
        )

    if by_entity is not None and not isinstance(by_entity, str):
        result.errors.append(f"Suffix '{suffix}' sequential_set: 'by_entity' must be a string (entity name)")

    if by_entities is not None:
        if not isinstance(by_entities, list):
            result.errors.append(f"Suffix '{suffix}' sequential_set: 'by_entities' must be a list of entity names")
        elif not by_entities:
            result.errors.append(f"Suffix '{suffix}' sequential_set: 'by_entities' cannot be empty")
        elif len(by_entities) == 1:
            result.warnings.append(
                f"Suffix '{suffix}' sequential_set: 'by_entities' has only one entity, "
                f"consider using 'by_entity' instead"
            )

    if dimension is not None:
        if not isinstance(dimension, str):
            result.errors.append(
                f"Suffix '{suffix}' sequential_set: 'sequential_dimension' must be a string (entity name)"
            )
        if by_entity or by_entities:
            result.warnings.append(
                f"Suffix '{suffix}' sequential_set: both 'sequential_dimension' and "
                f"'by_entity/by_entities' specified. Using 'sequential_dimension'."
            )

    _validate_order(suffix, 'sequential_set', config, result)

    parts = config.get('parts')
    if parts is not None:
        if not isinstance(parts, list):
            result.errors.append(f"Suffix '{suffix}' sequential_set: 'parts' must be a list of part values")
        elif not parts:
            result.warnings.append(f"Suffix '{suffix}' sequential_set: 'parts' is empty (no effect)")
        elif len(parts) == 1:
            result.warnings.append(
                f"Suffix '{suffix}' sequential_set: 'parts' has only one value (grouping has no effect)"
            )

    extensions = config.get('additional_extensions')
    if extensions is not None and not isinstance(extensions, list):
        result.errors.append(f"Suffix '{suffix}' sequential_set: 'additional_extensions' must be a list")


def _validate_mixed_set(suffix: str, config: Mapping, result: ValidationResult) -> None:
    dimension = config.get('sequential_dimension')
    if not dimension:
        result.errors.append(f"Suffix '{suffix}' mixed_set: must specify 'sequential_dimension'")
    elif not isinstance(dimension, str):
        result.errors.append(
            f"Suffix '{suffix}' mixed_set: 'sequential_dimension' must be a string (entity name)"
        )

    named_groups = config.get('named_groups')
    if named_groups is None:
        result.errors.append(f"Suffix '{suffix}' mixed_set: must specify 'named_groups'")
    elif not isinstance(named_groups, Mapping):
        result.errors.append(f"Suffix '{suffix}' mixed_set: 'named_groups' must be a map")
    elif not named_groups:
        result.errors.append(f"Suffix '{suffix}' mixed_set: 'named_groups' cannot be empty")
    else:
        for group_name, group in named_groups.items():
            if not isinstance(group, Mapping):
                result.errors.append(
                    f"Suffix '{suffix}' mixed_set group '{group_name}': must be a map of entity patterns"
                )
            elif not group:
                result.warnings.append(
                    f"Suffix '{suffix}' mixed_set group '{group_name}': empty pattern (will match nothing)"
                )

    for key in ('loop_over', 'named_dimension'):
        value = config.get(key)
        if value is not None and not isinstance(value, str):
            result.errors.append(f"Suffix '{suffix}' mixed_set: '{key}' must be a string (entity name)")

    _validate_order(suffix, 'mixed_set', config, result)


def validate_and_log(config: Any) -> bool:
    """
    Validate a configuration and log the outcome.

    Returns:
        True if the configuration has no errors.
    """
    result = validate_config(config)

    if not result.is_valid:
        logger.error(f"Configuration validation failed:\n{result}")
        return False

    if result.warnings:
        logger.warning(f"Configuration validation warnings:\n{result}")

    return True

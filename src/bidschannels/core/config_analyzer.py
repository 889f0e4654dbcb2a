"""
Configuration analysis.

Inspects a grouping configuration to tell which set types (plain, named,
sequential, mixed) the caller must support, which entities to loop over, and
produces a summary for diagnostics. Nothing here raises on malformed input:
absent or wrong-typed sections contribute False or empty results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .entity_config import is_known_entity
from ..infrastructure.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LOOP_OVER = ['subject', 'session', 'run', 'task']


class SetType(Enum):
    """Grouping policy selected per configuration entry by its marker key."""

    PLAIN = 'plain_set'
    NAMED = 'named_set'
    SEQUENTIAL = 'sequential_set'
    MIXED = 'mixed_set'

    @property
    def marker(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConfigAnalysis:
    """Which set types appear anywhere in a configuration."""

    has_plain_sets: bool = False
    has_named_sets: bool = False
    has_sequential_sets: bool = False
    has_mixed_sets: bool = False

    def needs(self, set_type: SetType) -> bool:
        """True if at least one entry uses the given set type."""
        return {
            SetType.PLAIN: self.has_plain_sets,
            SetType.NAMED: self.has_named_sets,
            SetType.SEQUENTIAL: self.has_sequential_sets,
            SetType.MIXED: self.has_mixed_sets,
        }[set_type]

    def to_dict(self) -> dict[str, bool]:
        return {
            'hasPlainSets': self.has_plain_sets,
            'hasNamedSets': self.has_named_sets,
            'hasSequentialSets': self.has_sequential_sets,
            'hasMixedSets': self.has_mixed_sets,
        }


def _entries(config: Any):
    """Yield (key, value) for every mapping-valued top-level entry."""
    if not isinstance(config, Mapping):
        return
    for key, value in config.items():
        if isinstance(value, Mapping):
            yield key, value


def get_set_types(config_value: Any) -> list[SetType]:
    """
    List the set markers present on one configuration entry.

    Returns:
        Set types in declaration order of SetType; empty for non-mappings.
    """
    if not isinstance(config_value, Mapping):
        return []
    return [set_type for set_type in SetType if set_type.marker in config_value]


def get_set_type(config_value: Any, config_key: str = '') -> Optional[SetType]:
    """
    Get the single set type of a configuration entry.

    Args:
        config_value: The entry's configuration mapping.
        config_key: Entry name, for diagnostics.

    Returns:
        The set type, or None if the entry declares no marker or several.
    """
    set_types = get_set_types(config_value)
    if len(set_types) > 1:
        markers = ', '.join(t.marker for t in set_types)
        logger.warning(f"Entry '{config_key}' declares several set types ({markers}); ignoring it")
        return None
    return set_types[0] if set_types else None


def get_set_config(config_value: Any) -> Optional[Mapping[str, Any]]:
    """
    Get the marker block (e.g., the plain_set mapping) of an entry.

    Returns:
        The block if the entry has exactly one marker whose value is a
        mapping, an empty mapping for a non-mapping marker value such as
        ``plain_set: true``, or None.
    """
    set_type = get_set_type(config_value)
    if set_type is None:
        return None
    block = config_value.get(set_type.marker)
    return block if isinstance(block, Mapping) else {}


def analyze_configuration(config: Any) -> ConfigAnalysis:
    """
    Determine which set types a configuration uses.

    Several flags may be true at once when different suffixes use different
    set types.

    Args:
        config: Configuration mapping.

    Returns:
        The ConfigAnalysis.
    """
    found = {set_type: False for set_type in SetType}

    for key, value in _entries(config):
        for set_type in SetType:
            if set_type.marker in value:
                logger.debug(f"  {key}: found {set_type.marker}")
                found[set_type] = True

    analysis = ConfigAnalysis(
        has_plain_sets=found[SetType.PLAIN],
        has_named_sets=found[SetType.NAMED],
        has_sequential_sets=found[SetType.SEQUENTIAL],
        has_mixed_sets=found[SetType.MIXED],
    )
    logger.info(
        f"Analysis results: named={analysis.has_named_sets}, "
        f"sequential={analysis.has_sequential_sets}, mixed={analysis.has_mixed_sets}, "
        f"plain={analysis.has_plain_sets}"
    )
    return analysis


def get_loop_over_entities(config: Any) -> list[str]:
    """
    Get the ordered entities that define a grouping key.

    Args:
        config: Configuration mapping.

    Returns:
        The loop_over list (a single string is wrapped), or
        ['subject', 'session', 'run', 'task'] when absent or malformed.
    """
    loop_over = config.get('loop_over') if isinstance(config, Mapping) else None

    if isinstance(loop_over, str):
        return [loop_over]
    if isinstance(loop_over, (list, tuple)) and all(isinstance(e, str) for e in loop_over):
        return list(loop_over)

    return list(DEFAULT_LOOP_OVER)


def get_configuration_summary(config: Any) -> dict[str, Any]:
    """
    Summarize the suffixes using each set type.

    Returns:
        {'named_sets': {'count': n, 'suffixes': [...]}, 'sequential_sets': ...,
        'mixed_sets': ..., 'plain_sets': ..., 'total_patterns': total}
    """
    suffixes = {set_type: [] for set_type in SetType}
    for key, value in _entries(config):
        for set_type in SetType:
            if set_type.marker in value:
                suffixes[set_type].append(key)

    summary: dict[str, Any] = {}
    for set_type in (SetType.NAMED, SetType.SEQUENTIAL, SetType.MIXED, SetType.PLAIN):
        summary[f"{set_type.marker}s"] = {
            'count': len(suffixes[set_type]),
            'suffixes': suffixes[set_type],
        }
    summary['total_patterns'] = sum(len(s) for s in suffixes.values())
    return summary


def find_unknown_loop_over_entities(config: Any) -> list[str]:
    """
    List loop_over names that are not BIDS entities.

    Such names still work but render as 'NA' in every group, which usually
    points at a typo.
    """
    return [name for name in get_loop_over_entities(config) if not is_known_entity(name)]

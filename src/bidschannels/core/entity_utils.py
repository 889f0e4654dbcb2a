"""
Entity-based operations over collections of BIDS files.

Filtering, hierarchical grouping, ordered key extraction, consistency checks
and sorting. A missing entity never raises: it reads as 'NA'.
"""

from typing import Mapping, Optional, Sequence, Union

from .entity_config import NA
from .models import BIDSFile

# Nested result of group_by_multiple_entities
GroupTree = Union[list[BIDSFile], dict[str, 'GroupTree']]


def _is_wildcard(value: Optional[str]) -> bool:
    return not value or value == NA


def matches_pattern(bids_file: BIDSFile, pattern: Mapping[str, Optional[str]]) -> bool:
    """
    Check whether a file matches every entity in a pattern.

    Empty or 'NA' required values are wildcards.
    """
    return all(
        _is_wildcard(required) or bids_file.get_entity(name) == required
        for name, required in pattern.items()
    )


def filter_by_entities(
    files: Sequence[BIDSFile],
    entity_filter: Optional[Mapping[str, Optional[str]]],
) -> list[BIDSFile]:
    """
    Keep the files matching all entity criteria.

    Args:
        files: Files to filter.
        entity_filter: Entity name -> required value. Empty or 'NA' values
            match anything; an empty filter keeps every file.

    Returns:
        The matching files, in input order.
    """
    if not entity_filter:
        return list(files)
    return [f for f in files if matches_pattern(f, entity_filter)]


def group_by_entity(files: Sequence[BIDSFile], entity_name: str) -> dict[str, list[BIDSFile]]:
    """
    Partition files by the value of one entity.

    Files without the entity land in the 'NA' bucket, so every input file
    appears in exactly one bucket. Buckets keep first-seen order.

    Args:
        files: Files to group.
        entity_name: Entity to group by (e.g., 'acq', 'dir').

    Returns:
        Entity value -> files.
    """
    grouped: dict[str, list[BIDSFile]] = {}
    for bids_file in files:
        value = bids_file.get_entity(entity_name) or NA
        grouped.setdefault(value, []).append(bids_file)
    return grouped


def group_by_multiple_entities(files: Sequence[BIDSFile], entity_names: Sequence[str]) -> GroupTree:
    """
    Group files hierarchically by several entities.

    Groups by the first name, then recursively inside each bucket by the
    remaining names. The leaves hold all input files.

    Args:
        files: Files to group.
        entity_names: Entity names, outermost level first.

    Returns:
        Nested mapping with file lists at the leaves, or the input itself
        when entity_names is empty.
    """
    if not entity_names:
        return files

    first, remaining = entity_names[0], entity_names[1:]
    grouped = group_by_entity(files, first)
    if not remaining:
        return grouped

    return {
        value: group_by_multiple_entities(bucket, remaining)
        for value, bucket in grouped.items()
    }


def extract_entity_values(bids_file: BIDSFile, entity_names: Sequence[str]) -> list[str]:
    """
    Project a file's entity values in the given order.

    Args:
        bids_file: File to read.
        entity_names: Entity names in the desired order.

    Returns:
        One value per name, 'NA' where the file lacks the entity.
    """
    return [bids_file.get_entity(name) or NA for name in entity_names]


def create_grouping_key(bids_file: BIDSFile, loop_over_entities: Sequence[str]) -> tuple[str, ...]:
    """Build the hashable grouping key used to bucket files into channels."""
    return tuple(extract_entity_values(bids_file, loop_over_entities))


def create_comparison_key(bids_file: BIDSFile, entity_names: Sequence[str]) -> str:
    """Build a pipe-joined key for entity-based comparison and deduplication."""
    return '|'.join(extract_entity_values(bids_file, entity_names))


def get_unique_values(files: Sequence[BIDSFile], entity_name: str) -> list[str]:
    """
    Get all values of an entity across files.

    Returns:
        Sorted unique values, excluding 'NA'.
    """
    return sorted({
        value for value in (f.get_entity(entity_name) for f in files)
        if value and value != NA
    })


def grouping_key_to_map(grouping_key: Sequence[str], entity_names: Sequence[str]) -> dict[str, str]:
    """Pair grouping key values with entity names; missing positions read as 'NA'."""
    entity_map = {}
    for index, name in enumerate(entity_names):
        value = grouping_key[index] if index < len(grouping_key) else None
        entity_map[name] = value or NA
    return entity_map


def has_consistent_entities(files: Sequence[BIDSFile], entity_names: Sequence[str]) -> bool:
    """
    Check that all files share the same values for the given entities.

    An empty collection is consistent.
    """
    if not files:
        return True
    reference = extract_entity_values(files[0], entity_names)
    return all(extract_entity_values(f, entity_names) == reference for f in files)


def has_required_entities(bids_file: BIDSFile, required_entities: Sequence[str]) -> bool:
    return all(bids_file.has_entity(name) for name in required_entities)


def _entity_sort_key(value: str) -> tuple:
    # Digit-only values compare numerically, so run '2' sorts before run '10'
    if value.isascii() and value.isdigit():
        return (0, int(value), value)
    return (1, 0, value)


def sort_by_entity(files: Sequence[BIDSFile], entity_name: str) -> list[BIDSFile]:
    """
    Sort files by an entity value.

    Values made only of ASCII digits compare numerically and come before other
    values, which compare lexicographically. The sort is stable.

    Args:
        files: Files to sort.
        entity_name: Entity to sort by.

    Returns:
        A new sorted list.
    """
    return sorted(files, key=lambda f: _entity_sort_key(f.get_entity(entity_name)))


def to_entity_string(bids_file: BIDSFile, entity_names: Sequence[str]) -> str:
    """
    Build a readable entity string such as 'sub-01_ses-01_run-1'.

    Entities the file lacks are skipped.
    """
    return '_'.join(
        f"{name}-{bids_file.get_entity(name)}"
        for name in entity_names
        if bids_file.has_entity(name)
    )

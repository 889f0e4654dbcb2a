"""
Per-group accumulator for channel output.

One ChannelData collects the suffix payloads, file paths and entity values of a
single grouping key, then renders itself once into the (grouping key, enriched
record) tuple handed to downstream pipelines.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

from .entity_config import NA, long_to_short, short_to_long


@dataclass(eq=False)
class ChannelData:
    """Grouped BIDS data for one grouping key."""

    data: dict[str, Any] = field(default_factory=dict)
    """Suffix -> payload (path, list of paths, or nested mapping)."""

    file_paths: list[str] = field(default_factory=list)
    """All file paths contributing to this group, in insertion order."""

    entities: dict[str, str] = field(default_factory=dict)
    """Short entity code -> value (without prefix)."""

    bids_parent_dir: str = ''
    """Parent directory of the BIDS dataset root."""

    def add_suffix_data(self, suffix: str, suffix_data: Any) -> None:
        """
        Store the payload for a suffix.

        Empty suffixes and None payloads are ignored; an existing payload for
        the suffix is replaced.
        """
        if suffix and suffix_data is not None:
            self.data[suffix] = suffix_data

    def get_suffix_data(self, suffix: str) -> Any:
        return self.data.get(suffix)

    def has_suffix(self, suffix: str) -> bool:
        return suffix in self.data

    @property
    def suffixes(self) -> list[str]:
        return list(self.data.keys())

    def add_file_path(self, file_path: str) -> None:
        if file_path and file_path not in self.file_paths:
            self.file_paths.append(file_path)

    def add_file_paths(self, paths: Iterable[str]) -> None:
        for path in paths:
            self.add_file_path(path)

    def add_entity(self, entity_name: str, entity_value: str) -> None:
        if entity_name and entity_value:
            self.entities[entity_name] = entity_value

    def get_entity(self, entity_name: str) -> str:
        return self.entities.get(entity_name, NA)

    def has_entity(self, entity_name: str) -> bool:
        value = self.entities.get(entity_name)
        return bool(value) and value != NA

    def is_valid(self) -> bool:
        """A group is valid once it holds both data and entities."""
        return bool(self.data) and bool(self.entities)

    def is_empty(self) -> bool:
        return not self.data

    def entity_with_prefix(self, entity_name: str) -> str:
        """
        Get an entity value in full BIDS form.

        Args:
            entity_name: Entity name in long or short form.

        Returns:
            '<short>-<value>' (e.g., 'sub-01'), or 'NA' if absent.
        """
        short_name = long_to_short(entity_name)
        value = self.get_entity(short_name)
        if value == NA:
            return NA
        return f"{short_name}-{value}"

    def to_channel_tuple(self, loop_over_entities: list[str]) -> tuple[list[str], dict[str, Any]]:
        """
        Render this group into its channel tuple.

        The grouping key holds one short-prefixed value (or 'NA') per loop-over
        entity. The enriched record holds the suffix data, the file paths, the
        parent directory and one field per loop-over entity, keyed by the
        entity's long name. Entities outside loop_over are not surfaced.

        Args:
            loop_over_entities: Entity names in long or short form.

        Returns:
            Tuple (grouping_key, enriched_record).
        """
        grouping_key = [self.entity_with_prefix(name) for name in loop_over_entities]

        enriched = {
            'data': self.data,
            'filePaths': self.file_paths,
            'bidsParentDir': self.bids_parent_dir,
        }
        for entity_name, prefixed in zip(loop_over_entities, grouping_key):
            enriched[short_to_long(long_to_short(entity_name))] = prefixed

        return grouping_key, enriched

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChannelData):
            return NotImplemented
        return self.entities == other.entities and self.data == other.data

    def __str__(self) -> str:
        entity_str = ', '.join(f"{k}={v}" for k, v in self.entities.items())
        suffix_str = ', '.join(self.data.keys())
        return (
            f"ChannelData[entities=[{entity_str}], suffixes=[{suffix_str}], "
            f"files={len(self.file_paths)}]"
        )

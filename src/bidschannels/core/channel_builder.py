"""
Assembly of channel tuples from parsed BIDS files.

The builder routes each file to the configuration entry governing its suffix,
buckets files by the loop_over grouping key, fills one ChannelData per bucket
and renders the output tuples. The set-type aggregation policies are not
implemented here; they plug in as a payload builder that turns the files of
one entry within one group into that suffix's payload.
"""

import os
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from .channel_data import ChannelData
from .config_analyzer import (
    analyze_configuration,
    get_configuration_summary,
    get_loop_over_entities,
    get_set_config,
)
from .entity_config import NA, get_entity_full_name, long_to_short, short_to_long
from .entity_utils import (
    create_grouping_key,
    has_consistent_entities,
    matches_pattern,
    sort_by_entity,
)
from .errors import NoDataGroupsError, error_context, format_detailed_error
from .models import BIDSDataset, BIDSFile
from .suffix_mapper import build_suffix_mapping, get_output_suffix, resolve_config_key
from ..infrastructure.logging_config import get_logger

logger = get_logger(__name__)

# (output_suffix, config_value, files) -> payload stored under output_suffix
PayloadBuilder = Callable[[str, Mapping[str, Any], list[BIDSFile]], Any]

ChannelTuple = tuple[list[str], dict[str, Any]]


def default_payload(output_suffix: str, config_value: Mapping[str, Any], files: list[BIDSFile]) -> Any:
    """
    Default payload: the file path, or the run-ordered paths for several files.
    """
    if len(files) == 1:
        return files[0].path
    return [f.path for f in sort_by_entity(files, 'run')]


class BidsChannelBuilder:
    """
    Groups parsed BIDS files into channel tuples according to a configuration.

    The suffix mapping, configuration analysis and loop_over list are computed
    once at construction and only read afterwards, so one builder can serve
    several workers. Each build call creates its own ChannelData instances.
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        bids_dir: str = '',
        payload_builder: Optional[PayloadBuilder] = None,
    ):
        """
        Initialize the builder.

        Args:
            config: Grouping configuration (see config_loader).
            bids_dir: Root of the BIDS dataset; its parent is reported as
                bidsParentDir in every record.
            payload_builder: Callable producing a suffix payload from the
                files of one configuration entry within one group.

        Raises:
            SuffixMappingCollisionError: If two entries map to the same suffix.
        """
        self.config = dict(config or {})
        self.bids_dir = str(bids_dir or '')
        self.payload_builder = payload_builder or default_payload

        self.suffix_mapping = build_suffix_mapping(self.config)
        self.analysis = analyze_configuration(self.config)
        self.summary = get_configuration_summary(self.config)
        self.loop_over = get_loop_over_entities(self.config)
        self._short_loop_over = [long_to_short(name) for name in self.loop_over]

        if self.suffix_mapping:
            logger.info(f"Built suffix mappings: {self.suffix_mapping}")
        self._log_configuration_summary()

    @property
    def bids_parent_dir(self) -> str:
        if not self.bids_dir:
            return ''
        return os.path.dirname(os.path.normpath(self.bids_dir))

    def _log_configuration_summary(self) -> None:
        logger.info("Configuration analysis complete:")
        described = [
            f"{name} ({get_entity_full_name(short)})"
            for name, short in zip(self.loop_over, self._short_loop_over)
        ]
        logger.info(f"  Loop over entities: {', '.join(described)}")
        for label, key in (
            ('Named sets', 'named_sets'),
            ('Sequential sets', 'sequential_sets'),
            ('Mixed sets', 'mixed_sets'),
            ('Plain sets', 'plain_sets'),
        ):
            entry = self.summary[key]
            logger.info(f"  {label}: {entry['count']} patterns ({', '.join(map(str, entry['suffixes']))})")
        logger.info(f"  TOTAL patterns: {self.summary['total_patterns']}")

    def governing_entry(self, bids_file: BIDSFile) -> Optional[tuple[str, Mapping[str, Any]]]:
        """
        Find the configuration entry that governs a file.

        Args:
            bids_file: Parsed file.

        Returns:
            (config_key, config_value), or None if no usable entry exists or
            the entry's filter rejects the file.
        """
        if not bids_file.suffix:
            return None

        config_key = resolve_config_key(bids_file.suffix, self.suffix_mapping)
        config_value = self.config.get(config_key)
        if not isinstance(config_value, Mapping):
            return None

        set_config = get_set_config(config_value)
        if set_config is None:
            return None

        entity_filter = set_config.get('filter')
        if isinstance(entity_filter, Mapping) and not matches_pattern(bids_file, entity_filter):
            return None

        return config_key, config_value

    def _route(self, files: Iterable[BIDSFile]) -> dict[tuple[str, ...], dict[str, list[BIDSFile]]]:
        routed: dict[tuple[str, ...], dict[str, list[BIDSFile]]] = {}
        skipped = 0

        for bids_file in files:
            entry = self.governing_entry(bids_file)
            if entry is None:
                logger.debug(f"No configuration governs {bids_file.filename} (suffix {bids_file.suffix})")
                skipped += 1
                continue
            key = create_grouping_key(bids_file, self._short_loop_over)
            routed.setdefault(key, {}).setdefault(entry[0], []).append(bids_file)

        logger.info(f"Routed files into {len(routed)} groups, {skipped} files not configured")
        return routed

    def group_files(self, files: Iterable[BIDSFile]) -> dict[tuple[str, ...], list[BIDSFile]]:
        """
        Bucket configured files by their grouping key.

        Returns:
            Grouping key (raw entity values, 'NA' where absent) -> files.
        """
        return {
            key: [f for entry_files in by_entry.values() for f in entry_files]
            for key, by_entry in self._route(files).items()
        }

    def build_channel_data(self, files: Iterable[BIDSFile]) -> list[ChannelData]:
        """
        Build one ChannelData per grouping key.

        Returns:
            Accumulators in first-seen group order.
        """
        channels = []
        for key, by_entry in self._route(files).items():
            channel = ChannelData(bids_parent_dir=self.bids_parent_dir)
            bucket: list[BIDSFile] = []

            for config_key, entry_files in by_entry.items():
                config_value = self.config[config_key]
                output_suffix = get_output_suffix(config_key, config_value)
                channel.add_suffix_data(
                    output_suffix,
                    self.payload_builder(output_suffix, config_value, entry_files),
                )
                for bids_file in entry_files:
                    channel.add_file_path(bids_file.path)
                    channel.add_file_paths(bids_file.associated_files)
                bucket.extend(entry_files)

            for short_name, value in zip(self._short_loop_over, key):
                if value != NA:
                    channel.add_entity(short_name, value)

            # Entities shared by the whole group are kept for callers
            shared_names = {name for f in bucket for name in f.entities}
            for name in sorted(shared_names - set(channel.entities)):
                if has_consistent_entities(bucket, [name]):
                    channel.add_entity(name, bucket[0].get_entity(name))

            if channel.is_empty():
                logger.debug(f"Group {key} produced no data, skipping")
                continue
            channels.append(channel)

        return channels

    def to_channel_tuples(self, channels: Iterable[ChannelData]) -> list[ChannelTuple]:
        return [channel.to_channel_tuple(self.loop_over) for channel in channels]

    def unify(self, tuples: Iterable[ChannelTuple]) -> list[ChannelTuple]:
        """
        Merge tuples that share a grouping key.

        Data maps are merged (later suffix payloads win) and file paths are
        concatenated without duplicates.

        Args:
            tuples: Channel tuples, possibly from several producers.

        Returns:
            One tuple per distinct grouping key, in first-seen order.
        """
        grouped: dict[tuple[str, ...], list[dict[str, Any]]] = {}
        for grouping_key, enriched in tuples:
            grouped.setdefault(tuple(grouping_key), []).append(enriched)

        unified = []
        for grouping_key, records in grouped.items():
            merged_data: dict[str, Any] = {}
            file_paths: list[str] = []
            for record in records:
                merged_data.update(record.get('data') or {})
                for path in record.get('filePaths') or []:
                    if path not in file_paths:
                        file_paths.append(path)

            enriched = {
                'data': merged_data,
                'filePaths': file_paths,
                'bidsParentDir': self.bids_parent_dir,
            }
            for name, value in zip(self.loop_over, grouping_key):
                enriched[short_to_long(long_to_short(name))] = value or NA

            unified.append((list(grouping_key), enriched))

        return unified

    def _task_index(self) -> Optional[int]:
        for index, short_name in enumerate(self._short_loop_over):
            if short_name == 'task':
                return index
        return None

    def cross_modal_requests(self, suffix: str) -> list[str]:
        """
        Get the suffixes an output suffix asks to receive from task-less groups.

        Read from include_cross_modal in the governing entry's set block.
        """
        config_key = resolve_config_key(suffix, self.suffix_mapping)
        set_config = get_set_config(self.config.get(config_key))
        if not set_config:
            return []
        requested = set_config.get('include_cross_modal')
        if not isinstance(requested, list):
            return []
        return [str(s) for s in requested]

    def _is_requested_elsewhere(self, suffix: str) -> bool:
        for config_key, config_value in self.config.items():
            if config_key == suffix or not isinstance(config_value, Mapping):
                continue
            output_suffix = get_output_suffix(config_key, config_value)
            if suffix in self.cross_modal_requests(output_suffix):
                return True
        return False

    def apply_cross_modal_broadcasting(self, tuples: Sequence[ChannelTuple]) -> list[ChannelTuple]:
        """
        Share task-less data with task-specific groups that request it.

        Groups whose task is 'NA' provide their suffix data to every group
        with the same non-task key values. A task-specific group receives the
        suffixes listed in its include_cross_modal. A task-less group is kept
        only if it holds a suffix no other entry requested.

        Args:
            tuples: Unified channel tuples.

        Returns:
            The broadcast tuples, grouped by non-task key.
        """
        task_index = self._task_index()
        if task_index is None:
            return list(tuples)

        grouped: dict[tuple[str, ...], list[ChannelTuple]] = {}
        available: dict[tuple[str, ...], dict[str, Any]] = {}

        for grouping_key, enriched in tuples:
            non_task_key = tuple(v for i, v in enumerate(grouping_key) if i != task_index)
            if grouping_key[task_index] == NA:
                available.setdefault(non_task_key, {}).update(enriched.get('data') or {})
            grouped.setdefault(non_task_key, []).append((grouping_key, enriched))

        results = []
        for non_task_key, entries in grouped.items():
            cross_modal = available.get(non_task_key, {})
            for grouping_key, enriched in entries:
                enhanced = dict(enriched)
                enhanced['data'] = dict(enriched.get('data') or {})
                task_less = grouping_key[task_index] == NA

                if not task_less:
                    for suffix in list(enriched.get('data') or {}):
                        for requested in self.cross_modal_requests(suffix):
                            if requested in cross_modal:
                                enhanced['data'][requested] = cross_modal[requested]

                if task_less and all(self._is_requested_elsewhere(s) for s in enhanced['data']):
                    logger.debug(f"Dropping group {grouping_key}: all its data was broadcast")
                    continue
                results.append((grouping_key, enhanced))

        return results

    def build(
        self,
        files: Iterable[BIDSFile],
        extra_tuples: Optional[Iterable[ChannelTuple]] = None,
    ) -> list[ChannelTuple]:
        """
        Run the full grouping pipeline.

        Args:
            files: Parsed BIDS files.
            extra_tuples: Tuples produced elsewhere (e.g., by a set-type
                policy) to merge with the generic groups.

        Returns:
            Channel tuples (grouping_key, enriched_record).

        Raises:
            NoDataGroupsError: If no group was produced.
        """
        with error_context('build_channels'):
            tuples = self.to_channel_tuples(self.build_channel_data(files))
            if extra_tuples:
                tuples.extend(extra_tuples)
            results = self.apply_cross_modal_broadcasting(self.unify(tuples))

        if not results:
            raise NoDataGroupsError(format_detailed_error(
                "No data groups were processed!",
                [
                    "Check that files match the configured suffixes",
                    "Check the BIDS directory structure",
                    "Check entity filters and loop_over entities in the configuration",
                ],
            ))

        logger.info(f"Channel assembly complete: {len(results)} data groups processed")
        return results

    def build_from_dataset(self, dataset: BIDSDataset) -> list[ChannelTuple]:
        """Run build() over every file of a dataset."""
        logger.info(f"Building channels for {dataset}")
        return self.build(dataset.files)

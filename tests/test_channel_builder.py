"""
Tests for channel tuple assembly.

These tests run the grouping pipeline end to end over in-memory file lists.
"""

import logging

import pytest

from bidschannels.core.channel_builder import BidsChannelBuilder, default_payload
from bidschannels.core.errors import (
    BidsProcessingError,
    NoDataGroupsError,
    SuffixMappingCollisionError,
)
from bidschannels.core.models import BIDSFile


class TestBuild:
    """Tests for the full pipeline."""

    def test_two_sessions_make_two_groups(self, t1w_files):
        config = {"loop_over": ["subject", "session"], "T1w": {"plain_set": True}}
        builder = BidsChannelBuilder(config, bids_dir="/data/bids")

        results = builder.build(t1w_files)

        assert [key for key, _ in results] == [["sub-01", "ses-01"], ["sub-01", "ses-02"]]

        _, first = results[0]
        assert first["subject"] == "sub-01"
        assert first["session"] == "ses-01"
        assert first["data"] == {"T1w": t1w_files[0].path}
        assert first["filePaths"] == [t1w_files[0].path]
        assert first["bidsParentDir"] == "/data"

        _, second = results[1]
        assert second["session"] == "ses-02"
        assert second["data"] == {"T1w": t1w_files[1].path}

    def test_default_loop_over(self, mixed_files):
        config = {"T1w": {"plain_set": True}, "bold": {"plain_set": True}}
        builder = BidsChannelBuilder(config)

        keys = [key for key, _ in builder.build(mixed_files)]

        assert keys == [
            ["sub-01", "ses-01", "NA", "NA"],
            ["sub-01", "ses-01", "run-1", "task-rest"],
            ["sub-01", "ses-01", "run-2", "task-rest"],
            ["sub-02", "ses-01", "NA", "NA"],
            ["sub-02", "ses-01", "run-1", "task-rest"],
        ]

    def test_unconfigured_suffixes_are_skipped(self, mixed_files):
        config = {"loop_over": ["subject"], "epi": {"plain_set": True}}
        results = BidsChannelBuilder(config).build(mixed_files)

        assert len(results) == 2
        assert all(list(enriched["data"]) == ["epi"] for _, enriched in results)

    def test_several_files_per_suffix_sorted_by_run(self, file_factory):
        files = [
            file_factory("bold", task="rest", run="10"),
            file_factory("bold", task="rest", run="2"),
        ]
        config = {"loop_over": ["subject", "task"], "bold": {"plain_set": True}}

        (_, enriched), = BidsChannelBuilder(config).build(files)

        assert enriched["data"]["bold"] == [files[1].path, files[0].path]

    def test_suffix_maps_to_labels_output(self, file_factory):
        dwi = file_factory("dwi", dir="AP")
        config = {
            "loop_over": ["subject"],
            "dwi_fullreverse": {"plain_set": True, "suffix_maps_to": "dwi"},
        }

        (_, enriched), = BidsChannelBuilder(config).build([dwi])

        assert enriched["data"] == {"dwi": dwi.path}

    def test_set_filter(self, file_factory):
        files = [
            file_factory("T1w", acq="mprage"),
            file_factory("T1w", sub="02", acq="spgr"),
        ]
        config = {"loop_over": ["subject"], "T1w": {"plain_set": {"filter": {"acq": "mprage"}}}}

        results = BidsChannelBuilder(config).build(files)

        assert [key for key, _ in results] == [["sub-01"]]

    def test_entry_with_several_markers_is_ignored(self, t1w_files):
        config = {"loop_over": ["subject"], "T1w": {"plain_set": True, "named_set": {}}}

        with pytest.raises(NoDataGroupsError):
            BidsChannelBuilder(config).build(t1w_files)

    def test_associated_files_in_file_paths(self):
        dwi = BIDSFile(
            path="/data/bids/sub-01/dwi/sub-01_dwi.nii.gz",
            entities={"sub": "01"},
            associated_files=["/data/bids/sub-01/dwi/sub-01_dwi.bval"],
        )
        config = {"loop_over": ["subject"], "dwi": {"plain_set": True}}

        (_, enriched), = BidsChannelBuilder(config).build([dwi])

        assert enriched["filePaths"] == [dwi.path, "/data/bids/sub-01/dwi/sub-01_dwi.bval"]

    def test_custom_payload_builder(self, mixed_files):
        def count_payload(suffix, config_value, files):
            return {"suffix": suffix, "count": len(files)}

        config = {"loop_over": ["subject"], "bold": {"plain_set": True}}
        builder = BidsChannelBuilder(config, payload_builder=count_payload)

        results = builder.build(mixed_files)

        assert results[0][1]["data"] == {"bold": {"suffix": "bold", "count": 2}}
        assert results[1][1]["data"] == {"bold": {"suffix": "bold", "count": 1}}

    def test_no_groups_raises(self, mixed_files):
        builder = BidsChannelBuilder({"T2w": {"plain_set": True}})

        with pytest.raises(NoDataGroupsError) as exc_info:
            builder.build(mixed_files)

        assert "No data groups were processed" in str(exc_info.value)
        assert isinstance(exc_info.value, BidsProcessingError)

    def test_unexpected_failure_is_wrapped(self, t1w_files):
        def broken_payload(suffix, config_value, files):
            raise RuntimeError("boom")

        builder = BidsChannelBuilder({"T1w": {"plain_set": True}}, payload_builder=broken_payload)

        with pytest.raises(BidsProcessingError) as exc_info:
            builder.build(t1w_files)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_build_from_dataset(self, sample_dataset):
        config = {"loop_over": ["subject"], "T1w": {"plain_set": True}}
        builder = BidsChannelBuilder(config, bids_dir=sample_dataset.path)

        results = builder.build_from_dataset(sample_dataset)

        assert [key for key, _ in results] == [["sub-01"], ["sub-02"]]
        assert builder.bids_dir == "/data/bids"


class TestGrouping:
    """Tests for routing and per-group accumulation."""

    def test_group_files(self, mixed_files):
        config = {"loop_over": ["subject", "session"], "T1w": {"plain_set": True}, "bold": {"plain_set": True}}
        groups = BidsChannelBuilder(config).group_files(mixed_files)

        assert list(groups) == [("01", "01"), ("02", "01")]
        assert len(groups[("01", "01")]) == 3
        assert len(groups[("02", "01")]) == 2

    def test_shared_entities_are_kept(self, mixed_files):
        config = {"loop_over": ["subject"], "bold": {"plain_set": True}}
        channels = BidsChannelBuilder(config).build_channel_data(mixed_files)

        assert channels[0].entities == {"sub": "01", "ses": "01", "task": "rest"}
        assert channels[1].entities == {"sub": "02", "ses": "01", "task": "rest", "run": "1"}

    def test_governing_entry(self, file_factory):
        config = {"T1w": {"plain_set": True}, "bold": "plain_set"}
        builder = BidsChannelBuilder(config)

        assert builder.governing_entry(file_factory("T1w")) == ("T1w", {"plain_set": True})
        assert builder.governing_entry(file_factory("bold")) is None
        assert builder.governing_entry(file_factory("epi")) is None

    def test_bids_parent_dir(self):
        assert BidsChannelBuilder({}, bids_dir="/data/bids/").bids_parent_dir == "/data"
        assert BidsChannelBuilder({}).bids_parent_dir == ""

    def test_summary_logs_full_entity_names(self, caplog):
        with caplog.at_level(logging.INFO, logger="bidschannels.core.channel_builder"):
            BidsChannelBuilder({"loop_over": ["subject", "acq", "flavour"], "T1w": {"plain_set": True}})

        assert "Loop over entities: subject (Subject), acq (Acquisition), flavour (flavour)" in caplog.text

    def test_collision_rejected_at_construction(self):
        config = {
            "dwi_fullreverse": {"plain_set": True, "suffix_maps_to": "dwi"},
            "dwi_halfreverse": {"plain_set": True, "suffix_maps_to": "dwi"},
        }

        with pytest.raises(SuffixMappingCollisionError):
            BidsChannelBuilder(config)


class TestUnify:
    """Tests for merging tuples that share a grouping key."""

    def test_unify_merges_data_and_paths(self):
        builder = BidsChannelBuilder({"loop_over": ["subject"]}, bids_dir="/data/bids")
        tuples = [
            (["sub-01"], {"data": {"T1w": "a"}, "filePaths": ["a"]}),
            (["sub-02"], {"data": {"T1w": "b"}, "filePaths": ["b"]}),
            (["sub-01"], {"data": {"T2w": "c"}, "filePaths": ["c", "a"]}),
        ]

        unified = builder.unify(tuples)

        assert unified == [
            (["sub-01"], {
                "data": {"T1w": "a", "T2w": "c"},
                "filePaths": ["a", "c"],
                "bidsParentDir": "/data",
                "subject": "sub-01",
            }),
            (["sub-02"], {
                "data": {"T1w": "b"},
                "filePaths": ["b"],
                "bidsParentDir": "/data",
                "subject": "sub-02",
            }),
        ]

    def test_extra_tuples_are_merged(self, t1w_files):
        config = {"loop_over": ["subject", "session"], "T1w": {"plain_set": True}}
        extra = [(["sub-01", "ses-01"], {"data": {"MTS": {"T1w": "mts.nii.gz"}}, "filePaths": ["mts.nii.gz"]})]

        results = BidsChannelBuilder(config).build(t1w_files, extra_tuples=extra)

        assert len(results) == 2
        assert results[0][1]["data"] == {"T1w": t1w_files[0].path, "MTS": {"T1w": "mts.nii.gz"}}
        assert results[0][1]["filePaths"] == [t1w_files[0].path, "mts.nii.gz"]


class TestCrossModal:
    """Tests for sharing task-less data with task-specific groups."""

    CONFIG = {
        "loop_over": ["subject", "session", "task"],
        "T1w": {"plain_set": True},
        "bold": {"plain_set": {"include_cross_modal": ["T1w"]}},
    }

    def test_requested_data_is_broadcast(self, mixed_files):
        results = BidsChannelBuilder(self.CONFIG).build(mixed_files)

        assert [key for key, _ in results] == [
            ["sub-01", "ses-01", "task-rest"],
            ["sub-02", "ses-01", "task-rest"],
        ]
        assert results[0][1]["data"]["T1w"] == mixed_files[0].path
        assert results[0][1]["data"]["bold"] == [mixed_files[1].path, mixed_files[2].path]
        assert results[1][1]["data"]["T1w"] == mixed_files[3].path

    def test_task_less_groups_kept_without_requests(self, mixed_files):
        config = {
            "loop_over": ["subject", "session", "task"],
            "T1w": {"plain_set": True},
            "bold": {"plain_set": True},
        }
        results = BidsChannelBuilder(config).build(mixed_files)

        assert len(results) == 4
        assert all("T1w" not in enriched["data"] for key, enriched in results if key[2] != "NA")

    def test_cross_modal_requests(self):
        builder = BidsChannelBuilder(self.CONFIG)

        assert builder.cross_modal_requests("bold") == ["T1w"]
        assert builder.cross_modal_requests("T1w") == []

    def test_without_task_in_loop_over_tuples_are_unchanged(self):
        builder = BidsChannelBuilder({"loop_over": ["subject"], "T1w": {"plain_set": True}})
        tuples = [(["sub-01"], {"data": {"T1w": "a"}})]

        assert builder.apply_cross_modal_broadcasting(tuples) == tuples


def test_default_payload(file_factory):
    single = [file_factory("T1w")]
    runs = [file_factory("bold", run="2"), file_factory("bold", run="1")]

    assert default_payload("T1w", {}, single) == single[0].path
    assert default_payload("bold", {}, runs) == [runs[1].path, runs[0].path]

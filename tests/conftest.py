"""
Pytest configuration and shared fixtures.

This file contains pytest configuration and reusable test fixtures.
"""

import pytest
from pathlib import Path

from bidschannels.core.models import BIDSDataset, BIDSFile


def make_file(suffix: str, sub: str = "01", ses: str = None, **entities) -> BIDSFile:
    """
    Build a BIDSFile with a BIDS-like path from its entities.

    Args:
        suffix: File suffix (e.g., 'T1w').
        sub: Subject label.
        ses: Optional session label.
        **entities: Extra entities (e.g., run='1', task='rest').

    Returns:
        The BIDSFile.
    """
    all_entities = {"sub": sub}
    if ses is not None:
        all_entities["ses"] = ses
    all_entities.update(entities)

    name = "_".join(f"{k}-{v}" for k, v in all_entities.items())
    parts = [f"sub-{sub}"] + ([f"ses-{ses}"] if ses is not None else [])
    path = "/data/bids/" + "/".join(parts) + f"/{name}_{suffix}.nii.gz"
    return BIDSFile(path=path, suffix=suffix, entities=all_entities)


@pytest.fixture
def t1w_files() -> list[BIDSFile]:
    """Two T1w files for one subject in two sessions."""
    return [
        make_file("T1w", sub="01", ses="01"),
        make_file("T1w", sub="01", ses="02"),
    ]


@pytest.fixture
def mixed_files() -> list[BIDSFile]:
    """
    A small heterogeneous dataset.

    Two subjects; anatomical files without task, functional runs with a task,
    and one field map per subject.
    """
    return [
        make_file("T1w", sub="01", ses="01"),
        make_file("bold", sub="01", ses="01", task="rest", run="1"),
        make_file("bold", sub="01", ses="01", task="rest", run="2"),
        make_file("T1w", sub="02", ses="01"),
        make_file("bold", sub="02", ses="01", task="rest", run="1"),
        make_file("epi", sub="01", ses="01", dir="AP"),
        make_file("epi", sub="02", ses="01", dir="PA"),
    ]


@pytest.fixture
def sample_dataset(mixed_files) -> BIDSDataset:
    """
    Create a sample BIDS dataset for testing.

    Returns:
        A BIDSDataset holding the mixed files.
    """
    return BIDSDataset(path="/data/bids", files=list(mixed_files))


@pytest.fixture
def bids_root(tmp_path: Path) -> Path:
    """
    Create a minimal BIDS root with a description and participants table.

    Returns:
        Path to the dataset root.
    """
    root = tmp_path / "ds001"
    root.mkdir()
    (root / "dataset_description.json").write_text(
        '{"Name": "Test Dataset", "BIDSVersion": "1.8.0"}', encoding="utf-8"
    )
    (root / "participants.tsv").write_text(
        "participant_id\tage\nsub-01\t25\nsub-02\t31\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def file_factory():
    """Expose make_file to tests as a fixture."""
    return make_file

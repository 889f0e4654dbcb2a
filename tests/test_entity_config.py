"""
Tests for the entity name tables.
"""

import pytest

from bidschannels.core.entity_config import (
    BIDS_ENTITIES,
    ENTITY_LONG_NAMES,
    ENTITY_SHORT_NAMES,
    get_entity_full_name,
    is_known_entity,
    long_to_short,
    short_to_long,
)

EXPECTED_PAIRS = [
    ("sub", "subject"),
    ("ses", "session"),
    ("acq", "acquisition"),
    ("ce", "ceagent"),
    ("trc", "tracer"),
    ("rec", "reconstruction"),
    ("dir", "direction"),
    ("mod", "modality"),
    ("inv", "inversion"),
    ("mt", "mtransfer"),
    ("proc", "processing"),
    ("hemi", "hemisphere"),
    ("seg", "segmentation"),
    ("res", "resolution"),
    ("den", "density"),
    ("nuc", "nucleus"),
    ("voi", "volume"),
]


def test_table_has_seventeen_pairs():
    assert len(ENTITY_LONG_NAMES) == 17
    assert dict(ENTITY_LONG_NAMES) == dict(EXPECTED_PAIRS)


def test_table_is_read_only():
    with pytest.raises(TypeError):
        ENTITY_LONG_NAMES["foo"] = "bar"


@pytest.mark.parametrize("short,long", EXPECTED_PAIRS)
def test_normalization_is_involutive(short, long):
    assert short_to_long(short) == long
    assert long_to_short(long) == short
    assert long_to_short(short_to_long(short)) == short
    assert short_to_long(long_to_short(long)) == long


@pytest.mark.parametrize("name", ["task", "run", "echo", "desc", "unknown"])
def test_unknown_names_map_to_themselves(name):
    assert short_to_long(name) == name
    assert long_to_short(name) == name


def test_short_names_is_inverse():
    assert len(ENTITY_SHORT_NAMES) == len(ENTITY_LONG_NAMES)
    for short, long in ENTITY_LONG_NAMES.items():
        assert ENTITY_SHORT_NAMES[long] == short


def test_is_known_entity_accepts_both_forms():
    assert is_known_entity("sub")
    assert is_known_entity("subject")
    assert is_known_entity("task")
    assert not is_known_entity("subjet")


def test_full_names():
    assert get_entity_full_name("sub") == "Subject"
    assert get_entity_full_name("xyz") == "xyz"
    assert get_entity_full_name("desc") == BIDS_ENTITIES["desc"]

"""
BIDS entity configuration.

This module provides a centralized mapping of BIDS entity codes to their full names,
and the fixed table used to translate between short entity codes (``sub``) and the
long names (``subject``) used in configuration files and channel output.
"""

from types import MappingProxyType

# Absence sentinel for entity lookups
NA = 'NA'

# Mapping of BIDS entity codes to full names
# Based on BIDS specification: https://bids-specification.readthedocs.io/
BIDS_ENTITIES = {
    'sub': 'Subject',
    'ses': 'Session',
    'sample': 'Sample',
    'task': 'Task',
    'tracksys': 'Tracking System',
    'acq': 'Acquisition',
    'nuc': 'Nucleus',
    'voi': 'Volume of Interest',
    'ce': 'Contrast Enhancing Agent',
    'trc': 'Tracer',
    'stain': 'Stain',
    'rec': 'Reconstruction',
    'dir': 'Phase-Encoding Direction',
    'run': 'Run',
    'mod': 'Corresponding Modality',
    'echo': 'Echo',
    'flip': 'Flip Angle',
    'inv': 'Inversion Time',
    'mt': 'Magnetization Transfer',
    'part': 'Part',
    'proc': 'Processed (on device)',
    'hemi': 'Hemisphere',
    'space': 'Space',
    'split': 'Split',
    'recording': 'Recording',
    'chunk': 'Chunk',
    'seg': 'Segmentation',
    'res': 'Resolution',
    'den': 'Density',
    'label': 'Label',
    'from': 'From',
    'to': 'To',
    'desc': 'Description',
    'roi': 'Region of Interest',
}

# Short entity code -> long name, as written in loop_over and in channel output.
# Read-only: shared by every grouping without locking.
ENTITY_LONG_NAMES = MappingProxyType({
    'sub': 'subject',
    'ses': 'session',
    'acq': 'acquisition',
    'ce': 'ceagent',
    'trc': 'tracer',
    'rec': 'reconstruction',
    'dir': 'direction',
    'mod': 'modality',
    'inv': 'inversion',
    'mt': 'mtransfer',
    'proc': 'processing',
    'hemi': 'hemisphere',
    'seg': 'segmentation',
    'res': 'resolution',
    'den': 'density',
    'nuc': 'nucleus',
    'voi': 'volume',
})

ENTITY_SHORT_NAMES = MappingProxyType(
    {long_name: short for short, long_name in ENTITY_LONG_NAMES.items()}
)


def short_to_long(entity_name: str) -> str:
    """
    Get the long name for a short entity code.

    Args:
        entity_name: Entity code (e.g., 'sub', 'ses').

    Returns:
        The long name (e.g., 'subject'), or the name itself if it has none.
    """
    return ENTITY_LONG_NAMES.get(entity_name, entity_name)


def long_to_short(entity_name: str) -> str:
    """
    Normalize an entity name to its short code.

    Args:
        entity_name: Entity name in long or short form (e.g., 'session' or 'ses').

    Returns:
        The short code (e.g., 'ses'), or the name itself if it has none.
    """
    return ENTITY_SHORT_NAMES.get(entity_name, entity_name)


def is_known_entity(entity_name: str) -> bool:
    """Check whether a name (long or short) refers to a BIDS entity."""
    return long_to_short(entity_name) in BIDS_ENTITIES


def get_entity_full_name(entity_code: str) -> str:
    """
    Get the full name for a BIDS entity code.

    Args:
        entity_code: The BIDS entity code (e.g., 'sub', 'ses', 'task').

    Returns:
        The full name of the entity (e.g., 'Subject', 'Session', 'Task').
        If the entity code is not recognized, returns the code itself.
    """
    return BIDS_ENTITIES.get(entity_code, entity_code)


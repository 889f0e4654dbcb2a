"""
File-record loading from a BIDS parser's CSV output.

The external parser writes one row per file with a header such as
``derivatives,data_type,subject,session,...,suffix,extension,path``. Entity
columns use long names for some entities (subject, session, acquisition) and
short codes for others (task, run, echo); values may carry their entity
prefix ("sub-01"), which is stripped here.
"""

import csv
from collections import Counter
from pathlib import Path
from typing import Optional, Union

from ..core.entity_config import BIDS_ENTITIES, ENTITY_SHORT_NAMES, NA
from ..core.errors import MissingFileError, error_context
from ..core.models import BIDSDataset, BIDSFile
from .logging_config import get_logger

logger = get_logger(__name__)

# Parser column name -> entity code. The parser writes "description" for desc,
# which has no long name in ENTITY_SHORT_NAMES.
COLUMN_ENTITY_NAMES = {**ENTITY_SHORT_NAMES, 'description': 'desc'}

# Columns copied to BIDSFile.metadata
METADATA_COLUMNS = ('data_type', 'derivatives', 'extension')


def strip_entity_prefix(value: str, entity_name: str) -> str:
    """
    Remove a leading '<entity>-' from a value.

    e.g., ('sub-01', 'sub') -> '01'; ('01', 'sub') -> '01'
    """
    prefix = f"{entity_name}-"
    if value and value.startswith(prefix):
        return value[len(prefix):]
    return value


def _cell(row: dict[str, Optional[str]], column: str) -> Optional[str]:
    value = row.get(column)
    if value is None:
        return None
    value = value.strip()
    if not value or value == NA:
        return None
    return value


def parse_row(row: dict[str, Optional[str]]) -> Optional[BIDSFile]:
    """
    Convert one CSV row into a BIDSFile.

    Args:
        row: Column name -> cell value.

    Returns:
        The BIDSFile, or None if the row has no path.
    """
    path = _cell(row, 'path')
    if path is None:
        return None

    bids_file = BIDSFile(path=path, suffix=_cell(row, 'suffix'))

    for column in row:
        if column is None:
            continue
        entity_name = COLUMN_ENTITY_NAMES.get(column, column)
        if entity_name not in BIDS_ENTITIES or bids_file.has_entity(entity_name):
            continue
        value = _cell(row, column)
        if value is not None:
            bids_file.add_entity(entity_name, strip_entity_prefix(value, entity_name))

    for column in METADATA_COLUMNS:
        value = _cell(row, column)
        if value is not None:
            bids_file.add_metadata(column, value)

    return bids_file


def load_file_records(csv_path: Union[str, Path]) -> list[BIDSFile]:
    """
    Load all file records from a parser CSV file.

    Rows without a path or with the wrong number of columns are skipped with
    a warning.

    Args:
        csv_path: Path to the CSV file.

    Returns:
        Parsed files in row order.

    Raises:
        MissingFileError: If the CSV file does not exist.
        BidsProcessingError: If the file cannot be read.
    """
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise MissingFileError(f"CSV file not found: {csv_path}")

    files: list[BIDSFile] = []
    suffix_counts: Counter = Counter()

    with error_context(f"load_file_records({csv_path.name})"):
        with open(csv_path, 'r', encoding='utf-8', newline='') as f:
            reader = csv.DictReader(f)
            if reader.fieldnames is None:
                logger.warning(f"CSV file is empty: {csv_path}")
                return files

            for line_number, row in enumerate(reader, start=2):
                if None in row or any(v is None for v in row.values()):
                    logger.warning(f"Invalid CSV row {line_number} (column count mismatch), skipping")
                    continue
                bids_file = parse_row(row)
                if bids_file is None:
                    logger.warning(f"CSV row {line_number} is missing a path, skipping")
                    continue
                files.append(bids_file)
                if bids_file.suffix:
                    suffix_counts[bids_file.suffix] += 1

    logger.info(f"Parsed {len(files)} BIDS files from CSV with suffixes: {dict(suffix_counts)}")
    return files


def load_dataset_from_csv(csv_path: Union[str, Path], bids_dir: Union[str, Path]) -> BIDSDataset:
    """
    Build a dataset from a parser CSV file.

    The dataset description and participants table are read from bids_dir
    when present.

    Args:
        csv_path: Path to the CSV file.
        bids_dir: Root of the BIDS dataset.

    Returns:
        The BIDSDataset.
    """
    dataset = BIDSDataset(path=str(bids_dir))
    dataset.load_dataset_description()
    dataset.load_participants()
    for bids_file in load_file_records(csv_path):
        dataset.add_file(bids_file)
    return dataset

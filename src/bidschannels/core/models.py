"""
Core domain models for BIDS dataset representation.

This module contains pure data models representing BIDS entities, files and
datasets as produced by an external BIDS parser. The models never require the
filesystem; the few loaders here are best-effort helpers whose failures leave
the defaults in place.
"""

import csv
import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from .entity_config import BIDS_ENTITIES, NA
from .errors import InvalidEntityError
from ..infrastructure.logging_config import get_logger

logger = get_logger(__name__)

# Extensions stripped before reading the suffix from a filename
SUFFIX_EXTENSIONS_PATTERN = re.compile(r'\.(nii\.gz|nii|json|tsv|bval|bvec)$')

ENTITY_NAME_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9_]*$')
ENTITY_VALUE_PATTERN = re.compile(r'^[a-zA-Z0-9]+$')


def derive_suffix(path: str) -> Optional[str]:
    """
    Derive the BIDS suffix from a file path.

    e.g., sub-01_ses-01_T1w.nii.gz -> 'T1w'

    Args:
        path: File path or filename.

    Returns:
        The segment after the last underscore, or None for an empty name.
    """
    filename = os.path.basename(path)
    stem = SUFFIX_EXTENSIONS_PATTERN.sub('', filename)
    if not stem:
        return None
    return stem.split('_')[-1]


@dataclass(frozen=True)
class Entity:
    """A single BIDS key-value pair (e.g., sub-01)."""

    name: str
    """Entity code (e.g., 'sub', 'run')."""

    value: str
    """Entity value without prefix (e.g., '01')."""

    def __post_init__(self):
        if not self.name:
            raise InvalidEntityError("Entity name cannot be null or empty")
        if not self.value:
            raise InvalidEntityError("Entity value cannot be null or empty")

    @classmethod
    def parse(cls, token: str) -> 'Entity':
        """
        Parse a filename token such as 'sub-01'.

        Raises:
            InvalidEntityError: If the token has no name or no value.
        """
        name, _, value = token.partition('-')
        return cls(name, value)

    @property
    def is_known(self) -> bool:
        """True if the name is a BIDS specification entity."""
        return self.name in BIDS_ENTITIES

    @property
    def is_valid_name(self) -> bool:
        return bool(ENTITY_NAME_PATTERN.match(self.name))

    @property
    def is_valid_value(self) -> bool:
        return bool(ENTITY_VALUE_PATTERN.match(self.value))

    def __str__(self) -> str:
        return f"{self.name}-{self.value}"


@dataclass(eq=False)
class BIDSFile:
    """Represents a single parsed file in a BIDS dataset."""

    path: str
    """Path to the file as reported by the parser."""

    suffix: Optional[str] = None
    """File suffix (e.g., 'T1w', 'bold'). Derived from the filename if omitted."""

    entities: dict[str, str] = field(default_factory=dict)
    """BIDS entities without prefixes (e.g., {'sub': '01', 'run': '1'}).

    Never holds the 'NA' sentinel: a missing key means a missing entity.
    """

    associated_files: list[str] = field(default_factory=list)
    """Associated files (JSON sidecar, bval/bvec, ...), without duplicates."""

    sidecar_path: Optional[str] = None
    """Path of the JSON sidecar, if one was associated."""

    metadata: dict[str, Any] = field(default_factory=dict)
    """Free-form metadata reported by the parser (extension, data_type, ...)."""

    file_size: Optional[int] = None
    last_modified: Optional[float] = None

    def __post_init__(self):
        if not self.path:
            raise ValueError("File path cannot be null or empty")
        self.path = str(self.path)
        if not self.suffix:
            self.suffix = derive_suffix(self.path)
        self.entities = {
            name: value for name, value in self.entities.items()
            if value and value != NA
        }
        associated = list(self.associated_files)
        self.associated_files = []
        for associated_path in associated:
            self.add_associated_file(associated_path)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'BIDSFile':
        """
        Build a file from a parser record.

        Args:
            record: Mapping with 'path', 'suffix', 'entities' and
                'associatedFiles' (or 'associated_files').

        Returns:
            The BIDSFile.
        """
        associated = record.get('associatedFiles', record.get('associated_files')) or []
        return cls(
            path=record.get('path', ''),
            suffix=record.get('suffix'),
            entities=dict(record.get('entities') or {}),
            associated_files=list(associated),
        )

    def get_entity(self, entity_name: str) -> str:
        """
        Get entity value by name.

        Args:
            entity_name: Entity code (e.g., 'sub', 'ses').

        Returns:
            The entity value, or 'NA' if not present.
        """
        return self.entities.get(entity_name, NA)

    def has_entity(self, entity_name: str) -> bool:
        value = self.entities.get(entity_name)
        return bool(value) and value != NA

    def add_entity(self, name: str, value: str) -> None:
        """Add an entity; empty and 'NA' values are ignored."""
        if value and value != NA:
            self.entities[name] = value

    def get_metadata(self, key: str) -> Any:
        return self.metadata.get(key)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def add_associated_file(self, file_path: str) -> None:
        """
        Associate a file (sidecar, bval, ...) with this file.

        Adding the same path twice has no effect. A '.json' path is also
        recorded as the sidecar.
        """
        if not file_path or file_path in self.associated_files:
            return
        self.associated_files.append(file_path)
        if file_path.endswith('.json'):
            self.sidecar_path = file_path

    def load_file_metadata(self) -> None:
        """Load size and modification time from disk, if available."""
        try:
            stat = os.stat(self.path)
        except OSError as e:
            # Metadata is optional
            logger.debug(f"Could not stat {self.path}: {e}")
            return
        self.file_size = stat.st_size
        self.last_modified = stat.st_mtime

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)

    @property
    def parent_dir(self) -> str:
        return os.path.dirname(self.path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BIDSFile):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    def __str__(self) -> str:
        return self.path


@dataclass
class BIDSDataset:
    """Represents a parsed BIDS dataset as a flat list of files."""

    path: str
    """Root directory of the BIDS dataset."""

    name: Optional[str] = None
    """Dataset name from dataset_description.json, or the directory name."""

    description: dict = field(default_factory=dict)
    """Contents of dataset_description.json."""

    files: list[BIDSFile] = field(default_factory=list)
    """All parsed files."""

    participants: list[dict[str, str]] = field(default_factory=list)
    """Rows of participants.tsv."""

    def __post_init__(self):
        if not self.path:
            raise ValueError("Dataset path cannot be null or empty")
        self.path = str(self.path)
        if self.name is None:
            self.name = Path(self.path).name

    def load_dataset_description(self) -> dict:
        """
        Load dataset_description.json if it exists.

        Returns:
            The description (empty if missing or unreadable).
        """
        desc_path = Path(self.path) / "dataset_description.json"
        if not desc_path.exists():
            return self.description

        try:
            with open(desc_path, 'r', encoding='utf-8') as f:
                self.description = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read {desc_path}: {e}")
            return self.description

        self.name = self.description.get('Name', self.name)
        return self.description

    def load_participants(self) -> list[dict[str, str]]:
        """
        Load participants.tsv if it exists.

        Returns:
            The participant rows (empty if missing or unreadable).
        """
        participants_path = Path(self.path) / "participants.tsv"
        if not participants_path.exists():
            return self.participants

        try:
            with open(participants_path, 'r', encoding='utf-8', newline='') as f:
                reader = csv.DictReader(f, delimiter='\t')
                self.participants = [
                    {k.strip(): (v or '').strip() for k, v in row.items() if k}
                    for row in reader
                ]
        except OSError as e:
            logger.warning(f"Failed to read {participants_path}: {e}")

        return self.participants

    def add_file(self, bids_file: BIDSFile) -> None:
        if bids_file and bids_file not in self.files:
            self.files.append(bids_file)

    def get_files_by_suffix(self, suffix: str) -> list[BIDSFile]:
        return [f for f in self.files if f.suffix == suffix]

    def get_files_by_entity(self, entity_name: str, entity_value: str) -> list[BIDSFile]:
        return [f for f in self.files if f.get_entity(entity_name) == entity_value]

    def _unique_sorted(self, values) -> list[str]:
        return sorted({v for v in values if v and v != NA})

    def get_subjects(self) -> list[str]:
        """
        Get all unique subjects in the dataset.

        Returns:
            Sorted list of subject labels (without 'sub-').
        """
        return self._unique_sorted(f.get_entity('sub') for f in self.files)

    def get_sessions(self) -> list[str]:
        """
        Get all unique sessions in the dataset.

        Returns:
            Sorted list of session labels (without 'ses-').
        """
        return self._unique_sorted(f.get_entity('ses') for f in self.files)

    def get_suffixes(self) -> list[str]:
        return self._unique_sorted(f.suffix for f in self.files)

    def get_statistics(self) -> dict[str, Any]:
        suffixes = self.get_suffixes()
        return {
            'total_files': len(self.files),
            'subjects': len(self.get_subjects()),
            'sessions': len(self.get_sessions()),
            'suffixes': len(suffixes),
            'unique_suffixes': suffixes,
        }

    def __str__(self) -> str:
        return f"BIDSDataset[path={self.path}, name={self.name}, files={len(self.files)}]"

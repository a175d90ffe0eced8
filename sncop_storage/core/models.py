"""
Copyright 2026 SNCOP File Storage Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Data models for the file storage catalog.

This module provides:
- ContentKind, the closed set of content directories under a subject
- StoredFile and Subject records
- BackupDocument, the denormalized store persisted as JSON

Records serialize with the key spelling already present in existing
backup files (``fileName``, ``fileSize``, ``type``, ``filePath``) and
also accept the longer spellings on read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from sncop_storage.core.errors import InvalidContentTypeError


class ContentKind(Enum):
    """Content directories that live under every subject."""

    NOTES = "notes"
    PRACTICE_TESTS = "practice-tests"
    PRACTICALS = "practicals"
    ASSIGNMENTS = "assignments"

    @property
    def path_segment(self) -> str:
        return self.value

    @property
    def requires_unit(self) -> bool:
        return self is ContentKind.NOTES

    @property
    def backup_key(self) -> str:
        """Name of the matching array in the backup document."""
        return _BACKUP_KEYS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "ContentKind":
        """
        Parse a request-supplied type string.

        Raises:
            InvalidContentTypeError: If the value names no known kind
        """
        candidate = (value or "").strip()
        try:
            return cls(candidate)
        except ValueError as e:
            raise InvalidContentTypeError(f"Invalid type: {candidate}") from e


_BACKUP_KEYS = {
    ContentKind.NOTES: "notes",
    ContentKind.PRACTICE_TESTS: "practiceTests",
    ContentKind.PRACTICALS: "practicals",
    ContentKind.ASSIGNMENTS: "assignments",
}


def new_identifier() -> str:
    """Opaque unique identifier for records and subjects."""
    return uuid.uuid4().hex


def _first(data: Dict[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


@dataclass
class StoredFile:
    """A file persisted under a subject, with its display metadata."""

    kind: ContentKind = ContentKind.NOTES
    id: str = field(default_factory=new_identifier)
    title: str = ""
    description: str = ""
    original_filename: str = ""
    stored_filename: str = ""
    file_size: str = ""
    upload_date: str = ""
    subject: str = ""
    unit: str = ""
    file_type: str = "pdf"
    file_path: str = ""

    def __post_init__(self):
        """Convert string kinds and clear the unit of flat kinds."""
        if isinstance(self.kind, str):
            self.kind = ContentKind.parse(self.kind)
        if not self.kind.requires_unit:
            self.unit = ""

    @property
    def metadata_key(self) -> str:
        return metadata_key(self.subject, self.kind, self.unit, self.stored_filename)

    def matches(self, subject: str, unit: str, stored_filename: str) -> bool:
        """Whether this record occupies the given catalog slot."""
        if self.stored_filename != stored_filename or self.subject != subject:
            return False
        return not self.kind.requires_unit or self.unit == unit

    def metadata_entry(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "originalFileName": self.original_filename,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the backup document and API responses."""
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "fileName": self.original_filename,
            "storedFileName": self.stored_filename,
            "fileSize": self.file_size,
            "uploadDate": self.upload_date,
            "subject": self.subject,
            "type": self.file_type,
            "filePath": self.file_path,
        }
        if self.kind.requires_unit:
            data["unit"] = self.unit
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], kind: ContentKind) -> "StoredFile":
        return cls(
            kind=kind,
            id=str(_first(data, "id", default="") or new_identifier()),
            title=_first(data, "title"),
            description=_first(data, "description"),
            original_filename=_first(data, "fileName", "originalFileName"),
            stored_filename=_first(data, "storedFileName"),
            file_size=_first(data, "fileSize", "fileSizeFormatted"),
            upload_date=_first(data, "uploadDate"),
            subject=_first(data, "subject"),
            unit=_first(data, "unit"),
            file_type=_first(data, "type", "contentKind", default="pdf"),
            file_path=_first(data, "filePath", "absolutePath"),
        )


@dataclass
class Subject:
    """A course; its name doubles as the top-level directory name."""

    name: str
    id: str = field(default_factory=new_identifier)
    units: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "units": list(self.units)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subject":
        return cls(
            id=str(data.get("id") or new_identifier()),
            name=data["name"],
            units=list(dict.fromkeys(data.get("units") or [])),
        )


@dataclass
class BackupDocument:
    """Denormalized store of every subject and every file record."""

    subjects: List[Subject] = field(default_factory=list)
    files: Dict[ContentKind, List[StoredFile]] = field(
        default_factory=lambda: {kind: [] for kind in ContentKind}
    )
    last_backup: Optional[str] = None

    def records(self, kind: ContentKind) -> List[StoredFile]:
        return self.files.setdefault(kind, [])

    def all_records(self) -> List[StoredFile]:
        return [record for kind in ContentKind for record in self.records(kind)]

    def has_content(self) -> bool:
        return any(self.records(kind) for kind in ContentKind)

    def find_subject(self, name: str) -> Optional[Subject]:
        for subject in self.subjects:
            if subject.name == name:
                return subject
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "subjects": [subject.to_dict() for subject in self.subjects]
        }
        for kind in ContentKind:
            data[kind.backup_key] = [record.to_dict() for record in self.records(kind)]
        data["lastBackup"] = self.last_backup
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackupDocument":
        """
        Build a document from parsed JSON.

        Missing arrays are treated as empty.

        Raises:
            ValueError: If the JSON does not have the expected shape
        """
        if not isinstance(data, dict):
            raise ValueError("Backup document must be a JSON object")

        try:
            document = cls(
                subjects=[Subject.from_dict(item) for item in data.get("subjects") or []],
                last_backup=data.get("lastBackup") or data.get("lastBackupTimestamp"),
            )
            for kind in ContentKind:
                document.files[kind] = [
                    StoredFile.from_dict(item, kind)
                    for item in data.get(kind.backup_key) or []
                ]
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed backup document: {e}") from e
        return document


def metadata_key(
    subject: str, kind: ContentKind, unit: Optional[str], stored_filename: str
) -> str:
    """Composite Metadata Map key; flat kinds produce a double hyphen."""
    unit_part = (unit or "") if kind.requires_unit else ""
    return f"{subject}-{kind.value}-{unit_part}-{stored_filename}"


def backup_timestamp() -> str:
    return datetime.now().isoformat()

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
Catalog store for the file storage service.

This module provides:
- The Metadata Map: title/description per stored file, keyed by
  ``{subject}-{kind}-{unit}-{storedFileName}``
- The Backup Document: every subject and file record, denormalized
- Listing of a subject's directory tree merged with catalog titles
- Persistence of both structures as JSON

All access goes through one re-entrant lock, so concurrent requests
mutate and save the catalog one at a time.
"""

from datetime import datetime
import json
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Dict, List, Optional

from sncop_storage.core.errors import StorageIOError
from sncop_storage.core.models import (
    BackupDocument,
    ContentKind,
    StoredFile,
    Subject,
    backup_timestamp,
    metadata_key,
)
from sncop_storage.utils.formatting import (
    derive_display_title,
    file_type_for,
    format_file_size,
    format_local_date,
)
from sncop_storage.utils.logging import get_logger

logger = get_logger(__name__)

MetadataMap = Dict[str, Dict[str, str]]


def _write_json_atomically(path: Path, payload: Any) -> None:
    """Write JSON to a sibling temp file, then rename it over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class CatalogStore:
    """Metadata Map and Backup Document, in memory and on disk."""

    def __init__(self, metadata_file: Path, backup_file: Path):
        """
        Initialize the catalog store.

        Args:
            metadata_file: Path of the flat Metadata Map JSON file
            backup_file: Path of the Backup Document JSON file
        """
        self.metadata_file = Path(metadata_file)
        self.backup_file = Path(backup_file)
        self.metadata: MetadataMap = {}
        self.backup = BackupDocument()
        self.lock = threading.RLock()
        self.logger = get_logger(f"{__name__}.CatalogStore")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Load both structures from disk.

        A missing or unreadable file leaves that structure empty; the
        other file is still loaded.
        """
        with self.lock:
            self.metadata = self._load_metadata()
            self.backup = self._load_backup()

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _load_metadata(self) -> MetadataMap:
        try:
            data = self._read_json(self.metadata_file)
            if data is None:
                return {}
            if not isinstance(data, dict):
                raise ValueError("Metadata file must contain a JSON object")
            metadata = {
                str(key): dict(value) for key, value in data.items() if isinstance(value, dict)
            }
            self.logger.info(f"Loaded {len(metadata)} file metadata entries")
            return metadata
        except (OSError, ValueError) as e:
            self.logger.warning(
                f"Could not load metadata file {self.metadata_file}, starting empty: {e}"
            )
            return {}

    def _load_backup(self) -> BackupDocument:
        try:
            data = self._read_json(self.backup_file)
            if data is None:
                return BackupDocument()
            backup = BackupDocument.from_dict(data)
            self.logger.info(
                f"Loaded backup data with {len(backup.subjects)} subjects, "
                + ", ".join(
                    f"{len(backup.records(kind))} {kind.value}" for kind in ContentKind
                )
            )
            return backup
        except (OSError, ValueError) as e:
            self.logger.warning(
                f"Could not load backup file {self.backup_file}, starting empty: {e}"
            )
            return BackupDocument()

    def save(self) -> None:
        """
        Persist the Metadata Map and the Backup Document.

        Each file is replaced atomically; the two files are written one
        after the other.

        Raises:
            StorageIOError: If either file cannot be written
        """
        with self.lock:
            self.backup.last_backup = backup_timestamp()
            try:
                _write_json_atomically(self.metadata_file, self.metadata)
                _write_json_atomically(self.backup_file, self.backup.to_dict())
            except (OSError, TypeError, ValueError) as e:
                self.logger.error(f"Error saving catalog files: {e}")
                raise StorageIOError(str(e), message="Failed to save catalog") from e

    # ------------------------------------------------------------------
    # File records
    # ------------------------------------------------------------------

    def upsert_file(self, record: StoredFile) -> None:
        """Replace any record in the same slot, then append ``record``."""
        with self.lock:
            records = self.backup.records(record.kind)
            records[:] = [
                existing
                for existing in records
                if not existing.matches(record.subject, record.unit, record.stored_filename)
            ]
            records.append(record)
            self.metadata[record.metadata_key] = record.metadata_entry()

    def remove_file(
        self,
        subject: str,
        kind: ContentKind,
        unit: Optional[str],
        stored_filename: str,
    ) -> bool:
        """
        Remove a file's record and metadata entry; idempotent.

        Returns:
            True if anything was removed
        """
        unit = (unit or "") if kind.requires_unit else ""
        with self.lock:
            records = self.backup.records(kind)
            before = len(records)
            records[:] = [
                record
                for record in records
                if not record.matches(subject, unit, stored_filename)
            ]
            removed_key = self.metadata.pop(
                metadata_key(subject, kind, unit, stored_filename), None
            )
            return len(records) != before or removed_key is not None

    def records(self, kind: ContentKind) -> List[StoredFile]:
        with self.lock:
            return list(self.backup.records(kind))

    def metadata_entry(self, key: str) -> Optional[Dict[str, str]]:
        with self.lock:
            entry = self.metadata.get(key)
            return dict(entry) if entry is not None else None

    def set_metadata_entry(self, key: str, entry: Dict[str, str]) -> None:
        with self.lock:
            self.metadata[key] = dict(entry)

    def has_stored_file(self, stored_filename: str) -> bool:
        """Whether any record in any array uses this stored filename."""
        with self.lock:
            return any(
                record.stored_filename == stored_filename
                for record in self.backup.all_records()
            )

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    def subjects(self) -> List[Subject]:
        with self.lock:
            return [
                Subject(id=subject.id, name=subject.name, units=list(subject.units))
                for subject in self.backup.subjects
            ]

    def upsert_subject(self, name: str, units: Optional[List[str]] = None) -> Subject:
        """Replace the subject named ``name`` or append a new one."""
        units = list(dict.fromkeys(unit.strip() for unit in units or [] if unit.strip()))
        with self.lock:
            existing = self.backup.find_subject(name)
            if existing is not None:
                existing.units = units
                return existing
            subject = Subject(name=name, units=units)
            self.backup.subjects.append(subject)
            return subject

    def add_unit(self, subject_name: str, unit: str) -> bool:
        """
        Append a unit to an existing subject.

        Returns:
            True if the unit was added; False if the subject is unknown or
            already lists it
        """
        with self.lock:
            subject = self.backup.find_subject(subject_name)
            if subject is None or unit in subject.units:
                return False
            subject.units.append(unit)
            return True

    def ensure_subject_unit(self, subject_name: str, unit: Optional[str]) -> Subject:
        """Create the subject if missing and register ``unit`` if new."""
        with self.lock:
            subject = self.backup.find_subject(subject_name)
            if subject is None:
                subject = Subject(name=subject_name, units=[unit] if unit else [])
                self.backup.subjects.append(subject)
            elif unit and unit not in subject.units:
                subject.units.append(unit)
            return subject

    def remove_subject(self, name: str) -> int:
        """
        Drop a subject and every record and metadata entry that belongs to it.

        Returns:
            Number of file records removed
        """
        removed = 0
        removed_keys = set()
        with self.lock:
            self.backup.subjects = [s for s in self.backup.subjects if s.name != name]
            for kind in ContentKind:
                records = self.backup.records(kind)
                removed_keys.update(
                    record.metadata_key for record in records if record.subject == name
                )
                kept = [record for record in records if record.subject != name]
                removed += len(records) - len(kept)
                records[:] = kept

            # Entries without a record are matched by prefix, except those of
            # another subject whose name extends this one (``Bio`` vs ``Bio-notes``)
            remaining = {subject.name for subject in self.backup.subjects}
            remaining.update(record.subject for record in self.backup.all_records())
            own = tuple(f"{name}-{kind.value}-" for kind in ContentKind)
            foreign = tuple(
                f"{other}-{kind.value}-"
                for other in remaining
                if other != name and other.startswith(f"{name}-")
                for kind in ContentKind
            )
            orphaned = {
                key
                for key in self.metadata
                if key.startswith(own) and not (foreign and key.startswith(foreign))
            }
            for key in removed_keys | orphaned:
                self.metadata.pop(key, None)
        return removed

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def _describe_file(
        self,
        file_path: Path,
        subject_name: str,
        kind: ContentKind,
        unit: str = "",
    ) -> Dict[str, Any]:
        filename = file_path.name
        stats = file_path.stat()
        entry = self.metadata_entry(metadata_key(subject_name, kind, unit, filename)) or {}

        stored_title = entry.get("title") or ""
        description: Dict[str, Any] = {
            "filename": filename,
            "title": stored_title if stored_title.strip() else derive_display_title(filename),
            "description": entry.get("description") or "",
            "size": format_file_size(stats.st_size),
            "modified": format_local_date(datetime.fromtimestamp(stats.st_mtime)),
            "type": file_type_for(filename),
            "subject": subject_name,
        }
        if kind.requires_unit:
            description["unit"] = unit
        return description

    def describe_directory(
        self, directory: Path, subject_name: str, kind: ContentKind, unit: str = ""
    ) -> List[Dict[str, Any]]:
        if not directory.is_dir():
            return []
        return [
            self._describe_file(path, subject_name, kind, unit)
            for path in sorted(directory.iterdir())
            if path.is_file()
        ]

    def list_directory(self, subject_path: Path, subject_name: str) -> Dict[str, Any]:
        """
        Walk a subject's tree and describe every file in it.

        Titles come from the Metadata Map when present and non-blank,
        otherwise from the filename.

        Returns:
            ``{"notes": {unit: [...]}, "practice-tests": [...],
            "practicals": [...], "assignments": [...]}``
        """
        contents: Dict[str, Any] = {"notes": {}}
        for kind in ContentKind:
            if not kind.requires_unit:
                contents[kind.path_segment] = []

        try:
            notes_path = subject_path / ContentKind.NOTES.path_segment
            if notes_path.is_dir():
                for unit_path in sorted(notes_path.iterdir()):
                    if unit_path.is_dir():
                        contents["notes"][unit_path.name] = self.describe_directory(
                            unit_path, subject_name, ContentKind.NOTES, unit_path.name
                        )

            for kind in ContentKind:
                if not kind.requires_unit:
                    contents[kind.path_segment] = self.describe_directory(
                        subject_path / kind.path_segment, subject_name, kind
                    )
        except OSError as e:
            self.logger.error(f"Error reading subject files for {subject_name}: {e}")

        return contents

    def snapshot_from_backup(
        self, subject: Optional[str] = None, reserved_names: frozenset = frozenset({"temp"})
    ) -> Dict[str, Any]:
        """
        Build the same structure as ``list_directory`` from backup records.

        Used when a disk scan finds nothing.
        """
        structure: Dict[str, Any] = {}
        with self.lock:
            for subject_record in self.backup.subjects:
                name = subject_record.name
                if name.lower() in reserved_names or (subject and name != subject):
                    continue

                contents: Dict[str, Any] = {"notes": {}}
                for kind in ContentKind:
                    entries = [
                        self._describe_record(record)
                        for record in self.backup.records(kind)
                        if record.subject == name
                    ]
                    if kind.requires_unit:
                        for entry in entries:
                            contents["notes"].setdefault(entry["unit"], []).append(entry)
                    else:
                        contents[kind.path_segment] = entries
                structure[name] = contents
        return structure

    @staticmethod
    def _describe_record(record: StoredFile) -> Dict[str, Any]:
        entry = {
            "filename": record.stored_filename,
            "title": record.title,
            "description": record.description,
            "size": record.file_size,
            "modified": record.upload_date,
            "type": record.file_type,
            "subject": record.subject,
        }
        if record.kind.requires_unit:
            entry["unit"] = record.unit
        return entry

    def backup_snapshot(self) -> Dict[str, Any]:
        """Backup Document as plain JSON data."""
        with self.lock:
            return self.backup.to_dict()

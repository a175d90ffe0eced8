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
Storage service for academic files.

This module provides the single entry point the HTTP layer talks to:
- Subject management (create, add unit, cascade delete, list)
- Uploads through the upload pipeline
- File resolution, listing and deletion with alternate-path fallback
- Existence checks and catalog dumps for client synchronization
- Temp directory cleanup
"""

from dataclasses import dataclass
from pathlib import Path
import shutil
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sncop_storage.core.catalog import CatalogStore
from sncop_storage.core.errors import (
    FileNotFoundInStorageError,
    InvalidPathSegmentError,
    StorageError,
    StorageIOError,
    UploadValidationError,
)
from sncop_storage.core.models import ContentKind, StoredFile, Subject
from sncop_storage.core.paths import PathResolver
from sncop_storage.core.reconciler import ReconciliationReport, Reconciler
from sncop_storage.core.temp_sweeper import sweep_orphaned_temp_files
from sncop_storage.core.upload_pipeline import (
    UploadPipeline,
    UploadRequest,
    UploadResult,
)
from sncop_storage.utils.config import Settings, get_settings
from sncop_storage.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FileCheck:
    """One entry of a batch existence check."""

    id: Optional[str]
    exists: bool
    file_path: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "exists": self.exists}
        if self.file_path is not None:
            data["filePath"] = self.file_path
        if self.error is not None:
            data["error"] = self.error
        return data


class StorageService:
    """File storage facade over the resolver, catalog and upload pipeline."""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the storage service and reconcile the catalog.

        Args:
            settings: Application settings (defaults to the cached settings)
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(f"{__name__}.StorageService")

        self.storage_root = Path(self.settings.storage_dir)
        self.reserved_names = self.settings.reserved_subject_names

        self.resolver = PathResolver(
            self.storage_root,
            temp_dir_name=self.settings.temp_dir_name,
            reserved_names=self.reserved_names,
        )
        self.catalog = CatalogStore(self.settings.metadata_file, self.settings.backup_file)
        self.pipeline = UploadPipeline(
            self.resolver,
            self.catalog,
            max_file_size=self.settings.max_upload_size_mb * 1024 * 1024,
        )

        self.last_reconciliation: ReconciliationReport = Reconciler(
            self.catalog, self.reserved_names
        ).run()
        self.logger.info(f"Storage service ready at {self.storage_root.resolve()}")

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    def create_subject(self, name: Optional[str], units: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Create (or update) a subject and its directory tree.

        Calling this twice with the same arguments is harmless.
        """
        name = (name or "").strip()
        if not name:
            raise UploadValidationError("Subject name is required")
        units = [unit.strip() for unit in units or [] if unit and unit.strip()]

        subject_path = self.resolver.ensure_directory_tree(name, units)
        with self.catalog.lock:
            subject = self.catalog.upsert_subject(name, units)
            self.catalog.save()

        self.logger.info(f"Created subject structure for {name} with {len(units)} units")
        return {"path": str(subject_path), "subject": subject.to_dict()}

    def add_unit(self, subject_name: str, unit_name: Optional[str]) -> Dict[str, Any]:
        unit_name = (unit_name or "").strip()
        if not unit_name:
            raise UploadValidationError("Unit name is required")
        unit_path = self.resolver.ensure_unit_directory(subject_name, unit_name)

        with self.catalog.lock:
            if self.catalog.add_unit(subject_name, unit_name):
                self.catalog.save()
        return {"path": str(unit_path)}

    def delete_subject(self, name: Optional[str]) -> int:
        """
        Remove a subject's directory and every catalog record of it.

        Returns:
            Number of file records purged from the catalog
        """
        name = (name or "").strip()
        if not name:
            raise InvalidPathSegmentError("Invalid subject name")
        name = self.resolver.check_writable_subject(name)

        subject_path = self.storage_root / name
        with self.catalog.lock:
            if subject_path.exists():
                try:
                    shutil.rmtree(subject_path)
                except OSError as e:
                    raise StorageIOError(str(e), message="Failed to delete subject") from e
                self.logger.info(f"Deleted subject folder: {subject_path}")

            removed = self.catalog.remove_subject(name)
            self.catalog.save()
        return removed

    def list_subjects(self) -> List[Subject]:
        return self.catalog.subjects()

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def upload(self, request: UploadRequest) -> UploadResult:
        return self.pipeline.process(request)

    def resolve_file(
        self, subject: str, kind: Any, unit: Optional[str], filename: str
    ) -> Path:
        """
        Locate a stored file, falling back to alternate spellings.

        Raises:
            FileNotFoundInStorageError: If no candidate path exists
        """
        return self.resolver.resolve_read_path(subject, kind, unit, filename)

    def delete_file(
        self, subject: str, kind: Any, unit: Optional[str], filename: str
    ) -> Path:
        """
        Delete a stored file and its catalog entries.

        Returns:
            The path that was removed
        """
        kind = ContentKind.parse(kind) if not isinstance(kind, ContentKind) else kind
        path = self.resolver.resolve_read_path(subject, kind, unit, filename)

        with self.catalog.lock:
            try:
                path.unlink()
            except FileNotFoundError as e:
                raise FileNotFoundInStorageError("File not found") from e
            except OSError as e:
                raise StorageIOError(str(e), message="Failed to delete file") from e

            for slot_subject, slot_unit in self._catalog_slots(path, kind, subject, unit):
                self.catalog.remove_file(slot_subject, kind, slot_unit, filename)
            self.catalog.save()

        self.logger.info(f"Deleted file: {path}")
        return path

    def _catalog_slots(
        self, path: Path, kind: ContentKind, subject: str, unit: Optional[str]
    ) -> List[Tuple[str, str]]:
        """
        ``(subject, unit)`` pairs a resolved file may be cataloged under.

        The spelling found on disk comes first; the requested spelling is
        added when an alternate path matched.
        """
        requested = (subject.strip(), (unit or "").strip() if kind.requires_unit else "")
        try:
            parts = path.relative_to(self.storage_root).parts
        except ValueError:
            return [requested]

        on_disk = (parts[0], parts[2] if kind.requires_unit and len(parts) == 4 else "")
        return [on_disk] if on_disk == requested else [on_disk, requested]

    def list_files(self, subject: str, kind: Any, unit: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Describe every file in one directory, titles included.

        A missing directory lists as empty.
        """
        kind = ContentKind.parse(kind) if not isinstance(kind, ContentKind) else kind
        directory = self.resolver.directory_for(subject, kind, unit)
        unit = unit.strip() if kind.requires_unit else ""
        try:
            return self.catalog.describe_directory(directory, subject, kind, unit)
        except OSError as e:
            raise StorageIOError(str(e), message="Failed to list files") from e

    def verify_files(self, items: Iterable[Dict[str, Any]]) -> List[FileCheck]:
        """Check each ``{id, subject, type, unit?, storedFileName}`` against the disk."""
        results = []
        for item in items:
            file_id = item.get("id")
            try:
                path = self.resolver.canonical_path(
                    item.get("subject") or "",
                    item.get("type"),
                    item.get("unit"),
                    item.get("storedFileName") or "",
                )
            except StorageError as e:
                results.append(FileCheck(id=file_id, exists=False, file_path="unknown", error=e.detail))
                continue

            exists = path.is_file()
            if not exists:
                self.logger.info(f"File not found on server: {path}")
            results.append(FileCheck(id=file_id, exists=exists, file_path=str(path)))
        return results

    def storage_sync(self, subject: Optional[str] = None) -> Dict[str, Any]:
        """
        Dump the storage structure and the backup document.

        The structure is read from disk; when the scan finds nothing the
        backup records are used instead.
        """
        structure: Dict[str, Any] = {}
        if subject:
            subject_path = self.resolver.subject_path(subject)
            if subject_path.is_dir():
                structure[subject] = self.catalog.list_directory(subject_path, subject)
        elif self.storage_root.is_dir():
            for item in sorted(self.storage_root.iterdir()):
                if not item.is_dir() or item.name.lower() in self.reserved_names:
                    continue
                structure[item.name] = self.catalog.list_directory(item, item.name)

        if not structure and self.catalog.subjects():
            self.logger.info("Storage structure empty, using backup data")
            structure = self.catalog.snapshot_from_backup(subject, self.reserved_names)

        return {"storageStructure": structure, "backupData": self.catalog.backup_snapshot()}

    def list_assignments(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.catalog.records(ContentKind.ASSIGNMENTS)]

    def sweep_temp(self) -> List[Path]:
        return sweep_orphaned_temp_files(
            self.settings.temp_dir,
            self.catalog,
            self.settings.temp_file_max_age_minutes,
        )


def upload_response_file(record: StoredFile) -> Dict[str, Any]:
    """Client view of an uploaded record: ``type`` is the kind, ``fileType`` pdf/image."""
    data = record.to_dict()
    data["unit"] = record.unit
    data["type"] = record.kind.value
    data["fileType"] = record.file_type
    return data


# Global storage service instance
_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get the global storage service instance, building it on first use."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service


def reset_storage_service() -> None:
    """Forget the global instance so the next call rebuilds it."""
    global _storage_service
    _storage_service = None

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
Upload pipeline for academic files.

One upload moves through these states::

    RECEIVED -> VALIDATING -> REJECTED
                           -> RESOLVING_DESTINATION -> WRITING -> CATALOGING -> DONE
                                        (I/O failure or deadline passed) -> FAILED

Validation runs before anything touches disk. The file is first written
to its early destination (the directory named by the ``x-subject``/
``x-type``/``x-unit`` hints when it matches the form, ``temp/``
otherwise) and moved to the canonical directory when needed. A request
deadline is checked while streaming and again before cataloging; an
expired upload leaves neither a file nor a record behind.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
import shutil
import time
from typing import BinaryIO, Iterable, Optional

from sncop_storage.core.catalog import CatalogStore
from sncop_storage.core.errors import (
    StorageError,
    StorageIOError,
    UploadTimeoutError,
    UploadValidationError,
)
from sncop_storage.core.models import ContentKind, StoredFile
from sncop_storage.core.paths import PathResolver
from sncop_storage.utils.formatting import (
    file_type_for,
    format_file_size,
    format_local_date,
    generate_stored_filename,
)
from sncop_storage.utils.logging import get_logger
from sncop_storage.utils.security import get_input_validator

ALLOWED_EXTENSIONS = frozenset({"pdf", "jpeg", "jpg", "png", "gif"})
CHUNK_SIZE = 1024 * 1024


class UploadState(Enum):
    """Lifecycle of a single upload request."""

    RECEIVED = "received"
    VALIDATING = "validating"
    REJECTED = "rejected"
    RESOLVING_DESTINATION = "resolving_destination"
    WRITING = "writing"
    CATALOGING = "cataloging"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UploadRequest:
    """Form fields, file and destination hints of one upload."""

    title: Optional[str] = None
    subject: Optional[str] = None
    type: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    original_filename: Optional[str] = None
    content_type: Optional[str] = None
    stream: Optional[BinaryIO] = None
    hint_subject: Optional[str] = None
    hint_type: Optional[str] = None
    hint_unit: Optional[str] = None
    # time.monotonic() value after which the upload is abandoned
    deadline: Optional[float] = None


@dataclass
class UploadResult:
    """Result from an upload operation."""

    success: bool
    message: str
    state: UploadState
    record: Optional[StoredFile] = None
    error: Optional[str] = None
    status_code: int = 200


@dataclass
class _ValidatedUpload:
    title: str
    subject: str
    kind: ContentKind
    unit: str
    description: str
    original_filename: str


class UploadPipeline:
    """Validates, stores and catalogs one uploaded file per call."""

    def __init__(
        self,
        resolver: PathResolver,
        catalog: CatalogStore,
        max_file_size: int,
        allowed_extensions: Iterable[str] = ALLOWED_EXTENSIONS,
    ):
        self.resolver = resolver
        self.catalog = catalog
        self.max_file_size = max_file_size
        self.allowed_extensions = frozenset(allowed_extensions)
        self.validator = get_input_validator()
        self.logger = get_logger(f"{__name__}.UploadPipeline")

    def process(self, request: UploadRequest) -> UploadResult:
        """Run one upload through every stage and report where it ended."""
        state = UploadState.RECEIVED
        try:
            state = UploadState.VALIDATING
            upload = self._validate(request)

            state = UploadState.RESOLVING_DESTINATION
            final_dir = self.resolver.directory_for(upload.subject, upload.kind, upload.unit)
            early_dir = self._early_destination(request, final_dir)

            state = UploadState.WRITING
            stored_path = self._write(
                request.stream, early_dir, upload.original_filename, request.deadline
            )
            size = stored_path.stat().st_size
            if early_dir != final_dir:
                stored_path = self._move(stored_path, final_dir)

            state = UploadState.CATALOGING
            record = self._catalog(upload, stored_path, size, request.deadline)

            self.logger.info(
                f"File uploaded successfully: {upload.original_filename} -> {stored_path}"
            )
            return UploadResult(
                success=True,
                message="File uploaded successfully",
                state=UploadState.DONE,
                record=record,
            )

        except StorageError as e:
            if e.status_code >= 500 or isinstance(e, UploadTimeoutError):
                final_state = UploadState.FAILED
                self.logger.error(f"Upload failed during {state.value}: {e.detail}")
            else:
                final_state = UploadState.REJECTED
                self.logger.info(f"Upload rejected during {state.value}: {e.detail}")
            return UploadResult(
                success=False,
                message=e.detail if e.status_code < 500 else "Failed to upload file",
                state=final_state,
                error=e.detail,
                status_code=e.status_code,
            )

    def _validate(self, request: UploadRequest) -> _ValidatedUpload:
        """
        Check form fields and the file before anything is written.

        Raises:
            UploadValidationError: If a field is missing or the file type is not allowed
            InvalidContentTypeError: If the type is not a known kind
            MissingUnitError: If notes come without a unit
        """
        if request.stream is None or not (request.original_filename or "").strip():
            raise UploadValidationError("No file uploaded")

        title = (request.title or "").strip()
        subject = (request.subject or "").strip()
        type_text = (request.type or "").strip()
        unit = (request.unit or "").strip()

        if not title:
            raise UploadValidationError("Title is required")
        if not subject:
            raise UploadValidationError("Subject is required")
        if not type_text:
            raise UploadValidationError("Type is required")

        kind = ContentKind.parse(type_text)
        if kind.requires_unit and not unit:
            raise UploadValidationError("Unit is required for notes")

        self.resolver.check_writable_subject(subject)

        is_allowed, reason = self.validator.validate_upload(
            request.original_filename, request.content_type, self.allowed_extensions
        )
        if not is_allowed:
            self.logger.info(f"File rejected: {request.original_filename} ({reason})")
            raise UploadValidationError("Only PDF and image files are allowed!")

        return _ValidatedUpload(
            title=title,
            subject=subject,
            kind=kind,
            unit=unit if kind.requires_unit else "",
            description=(request.description or "").strip(),
            original_filename=request.original_filename,
        )

    def _early_destination(self, request: UploadRequest, final_dir: Path) -> Path:
        """
        Directory chosen from the hint headers.

        ``temp`` is used when the hints are unusable or name another scope
        than the form fields; only the final scope's directory is created.
        """
        hint_subject = (request.hint_subject or "").strip()
        hint_type = (request.hint_type or "").strip()
        if not hint_subject or not hint_type:
            return self.resolver.resolve_upload_dir(None, None, None)

        try:
            hinted_dir = self.resolver.directory_for(
                hint_subject, hint_type, (request.hint_unit or "").strip()
            )
        except StorageError as e:
            self.logger.warning(f"Ignoring destination hints ({e.detail}), using temp")
            return self.resolver.resolve_upload_dir(None, None, None)

        if hinted_dir != final_dir:
            self.logger.warning(
                f"Destination hints point to {hinted_dir} but the form to {final_dir}, using temp"
            )
            return self.resolver.resolve_upload_dir(None, None, None)

        return self.resolver.resolve_upload_dir(hint_subject, hint_type, request.hint_unit)

    def _abort_expired(self, path: Path, stage: str) -> None:
        path.unlink(missing_ok=True)
        self.logger.warning(f"Upload deadline passed while {stage}, removed {path}")
        raise UploadTimeoutError(f"Upload timed out while {stage}")

    def _write(
        self,
        stream: BinaryIO,
        directory: Path,
        original_filename: str,
        deadline: Optional[float] = None,
    ) -> Path:
        """
        Stream the upload into ``directory`` under a fresh stored filename.

        Raises:
            UploadValidationError: If the file exceeds the size limit
            UploadTimeoutError: If the deadline passes before the file is written
            StorageIOError: If the file cannot be written
        """
        target = directory / generate_stored_filename(Path(original_filename).name)
        written = 0
        expired = False
        try:
            with open(target, "wb") as out:
                for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
                    if _expired(deadline):
                        expired = True
                        break
                    written += len(chunk)
                    if written > self.max_file_size:
                        break
                    out.write(chunk)
        except OSError as e:
            raise StorageIOError(str(e), message="Failed to write file") from e

        if expired:
            self._abort_expired(target, "receiving the file")

        if written > self.max_file_size:
            target.unlink(missing_ok=True)
            limit_mb = self.max_file_size / (1024 * 1024)
            raise UploadValidationError(f"File too large. Maximum size is {limit_mb:.0f}MB")

        self.logger.debug(f"Wrote {written} bytes to {target}")
        return target

    def _move(self, source: Path, directory: Path) -> Path:
        """
        Move a written file into its canonical directory.

        On failure the file stays where it was written.
        """
        try:
            directory.mkdir(parents=True, exist_ok=True)
            destination = directory / source.name
            shutil.move(str(source), str(destination))
        except OSError as e:
            self.logger.error(f"Failed to move {source} to {directory}: {e}")
            raise StorageIOError(str(e), message="Failed to move file") from e
        self.logger.info(f"Moved file from {source.parent} to: {destination}")
        return destination

    def _catalog(
        self,
        upload: _ValidatedUpload,
        stored_path: Path,
        size: int,
        deadline: Optional[float] = None,
    ) -> StoredFile:
        record = StoredFile(
            kind=upload.kind,
            title=upload.title,
            description=upload.description,
            original_filename=upload.original_filename,
            stored_filename=stored_path.name,
            file_size=format_file_size(size),
            upload_date=format_local_date(),
            subject=upload.subject,
            unit=upload.unit,
            file_type=file_type_for(upload.original_filename),
            file_path=str(stored_path.resolve()),
        )
        with self.catalog.lock:
            if _expired(deadline):
                self._abort_expired(stored_path, "waiting to catalog the file")
            self.catalog.upsert_file(record)
            self.catalog.ensure_subject_unit(upload.subject, upload.unit or None)
            self.catalog.save()
        return record


def _expired(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline

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

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from sncop_storage.api.models import (
    ApiResponse,
    AssignmentsResponse,
    ErrorResponse,
    FileListResponse,
    StorageSyncResponse,
    UploadResponse,
    VerifyFilesRequest,
    VerifyFilesResponse,
)
from sncop_storage.core.errors import MissingUnitError
from sncop_storage.core.models import ContentKind
from sncop_storage.core.storage_service import (
    StorageService,
    get_storage_service,
    upload_response_file,
)
from sncop_storage.core.upload_pipeline import UploadRequest
from sncop_storage.utils.formatting import media_type_for
from sncop_storage.utils.logging import get_logger
from sncop_storage.utils.security import get_input_validator

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["files"])


def _serve(service: StorageService, subject: str, kind: ContentKind, unit: Optional[str], filename: str):
    path = service.resolve_file(subject, kind, unit, filename)
    logger.debug(f"Serving file {path}")
    return FileResponse(path, media_type=media_type_for(path.name))


@router.post("/upload", response_model=UploadResponse)
def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    content_type: Optional[str] = Form(None, alias="type"),
    unit: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    x_subject: Optional[str] = Header(None),
    x_type: Optional[str] = Header(None),
    x_unit: Optional[str] = Header(None),
    service: StorageService = Depends(get_storage_service),
):
    """
    Upload one academic file.

    The ``x-subject``/``x-type``/``x-unit`` headers let the file be
    written straight to its final directory; without them it lands in
    ``temp`` first and is moved once the form is read.
    """
    logger.info(
        f"Upload request received: subject={subject!r} type={content_type!r} unit={unit!r} "
        f"file={file.filename if file else None!r}"
    )

    result = service.upload(
        UploadRequest(
            title=title,
            subject=subject,
            type=content_type,
            unit=unit,
            description=description,
            original_filename=file.filename if file else None,
            content_type=file.content_type if file else None,
            stream=file.file if file else None,
            hint_subject=x_subject,
            hint_type=x_type,
            hint_unit=x_unit,
            deadline=getattr(request.state, "deadline", None),
        )
    )

    if not result.success:
        error = get_input_validator().sanitize_error_message(result.error or result.message)
        return JSONResponse(
            status_code=result.status_code,
            content=ErrorResponse(message=result.message, error=error).model_dump(),
        )

    return UploadResponse(message=result.message, file=upload_response_file(result.record))


@router.get("/files/{subject}/{kind}", response_model=FileListResponse)
def list_files(
    subject: str,
    kind: str,
    service: StorageService = Depends(get_storage_service),
):
    """List a practice-tests, practicals or assignments directory."""
    content_kind = ContentKind.parse(kind)
    if content_kind.requires_unit:
        raise MissingUnitError("Unit is required for notes")
    files = service.list_files(subject, content_kind)
    return FileListResponse(message=f"Found {len(files)} files", files=files)


@router.get("/files/{subject}/{kind}/{name}")
def list_unit_or_serve_file(
    subject: str,
    kind: str,
    name: str,
    service: StorageService = Depends(get_storage_service),
):
    """For notes, list the unit ``name``; for the other kinds, serve the file ``name``."""
    content_kind = ContentKind.parse(kind)
    if content_kind.requires_unit:
        files = service.list_files(subject, content_kind, name)
        return FileListResponse(message=f"Found {len(files)} files", files=files)
    return _serve(service, subject, content_kind, None, name)


@router.get("/files/{subject}/{kind}/{unit}/{filename}")
def serve_file(
    subject: str,
    kind: str,
    unit: str,
    filename: str,
    service: StorageService = Depends(get_storage_service),
):
    """Serve a stored file; the unit segment only matters for notes."""
    return _serve(service, subject, ContentKind.parse(kind), unit, filename)


@router.delete("/files/{subject}/{kind}/{filename}", response_model=ApiResponse)
def delete_flat_file(
    subject: str,
    kind: str,
    filename: str,
    service: StorageService = Depends(get_storage_service),
):
    service.delete_file(subject, ContentKind.parse(kind), None, filename)
    return {"success": True, "message": "File deleted successfully"}


@router.delete("/files/{subject}/{kind}/{unit}/{filename}", response_model=ApiResponse)
def delete_file(
    subject: str,
    kind: str,
    unit: str,
    filename: str,
    service: StorageService = Depends(get_storage_service),
):
    service.delete_file(subject, ContentKind.parse(kind), unit, filename)
    return {"success": True, "message": "File deleted successfully"}


@router.post("/verify-files", response_model=VerifyFilesResponse)
def verify_files(
    request: VerifyFilesRequest,
    service: StorageService = Depends(get_storage_service),
):
    """Report which catalog entries still have a file on disk."""
    if request.files is None:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                message="Files array is required", error="Files array is required"
            ).model_dump(),
        )

    checks = service.verify_files(request.files)
    missing = sum(1 for check in checks if not check.exists)
    return VerifyFilesResponse(
        message=f"Verified {len(checks)} files, {missing} missing",
        verified_files=[check.to_dict() for check in checks],
    )


@router.get("/storage-sync", response_model=StorageSyncResponse)
def storage_sync(service: StorageService = Depends(get_storage_service)):
    """Dump every subject's files together with the backup document."""
    snapshot = service.storage_sync()
    return StorageSyncResponse(
        message="Storage structure loaded",
        storage_structure=snapshot["storageStructure"],
        backup_data=snapshot["backupData"],
    )


@router.get("/storage-sync/{subject}", response_model=StorageSyncResponse)
def storage_sync_subject(
    subject: str,
    service: StorageService = Depends(get_storage_service),
):
    snapshot = service.storage_sync(subject)
    return StorageSyncResponse(
        message=f"Storage structure loaded for {subject}",
        storage_structure=snapshot["storageStructure"],
        backup_data=snapshot["backupData"],
    )


@router.get("/assignments", response_model=AssignmentsResponse)
def list_assignments(service: StorageService = Depends(get_storage_service)):
    assignments = service.list_assignments()
    return AssignmentsResponse(
        message=f"Found {len(assignments)} assignments", data=assignments
    )

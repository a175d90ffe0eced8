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

from fastapi import APIRouter, Depends

from sncop_storage.api.models import (
    AddUnitRequest,
    CreateSubjectRequest,
    SubjectDeleteResponse,
    SubjectListResponse,
    SubjectModel,
    SubjectResponse,
)
from sncop_storage.core.storage_service import StorageService, get_storage_service
from sncop_storage.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


@router.get("", response_model=SubjectListResponse)
def list_subjects(service: StorageService = Depends(get_storage_service)):
    """List every subject in the catalog."""
    subjects = [SubjectModel(**subject.to_dict()) for subject in service.list_subjects()]
    return SubjectListResponse(message=f"Found {len(subjects)} subjects", subjects=subjects)


@router.post("", response_model=SubjectResponse)
def create_subject(
    request: CreateSubjectRequest,
    service: StorageService = Depends(get_storage_service),
):
    """Create a subject's directory structure and record it in the catalog."""
    result = service.create_subject(request.name, request.units)
    return SubjectResponse(
        message="Subject directory structure created successfully",
        path=result["path"],
        subject=SubjectModel(**result["subject"]),
    )


@router.post("/{subject_name}/units", response_model=SubjectResponse)
def add_unit(
    subject_name: str,
    request: AddUnitRequest,
    service: StorageService = Depends(get_storage_service),
):
    result = service.add_unit(subject_name, request.unit_name)
    return SubjectResponse(message="Unit directory created successfully", path=result["path"])


@router.delete("/{subject_name}", response_model=SubjectDeleteResponse)
def delete_subject(
    subject_name: str,
    service: StorageService = Depends(get_storage_service),
):
    """Delete a subject's directory and purge it from the catalog."""
    removed = service.delete_subject(subject_name)
    logger.info(f"Subject {subject_name} deleted with {removed} catalog records")
    return SubjectDeleteResponse(
        message=f"Subject '{subject_name}' deleted successfully",
        removed_files=removed,
    )

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

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(True, description="Whether the request was successful")
    message: str = Field(..., description="Status message")


class ErrorResponse(ApiResponse):
    success: bool = Field(False, description="Always false for failures")
    error: str = Field(..., description="Error detail")


class HealthResponse(ApiResponse):
    storage: str = Field(..., description="Absolute path of the storage root")
    timestamp: datetime = Field(default_factory=datetime.now)


# Subjects


class CreateSubjectRequest(BaseModel):
    name: Optional[str] = Field(None, description="Subject name, used as its directory name")
    units: List[str] = Field(default_factory=list, description="Note units of the subject")

    class Config:
        json_schema_extra = {
            "example": {"name": "Pharmacology", "units": ["Unit 1", "Unit 2"]}
        }


class AddUnitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unit_name: Optional[str] = Field(None, alias="unitName", description="Unit to add")


class SubjectModel(BaseModel):
    id: str = Field(..., description="Subject identifier")
    name: str = Field(..., description="Subject name")
    units: List[str] = Field(default_factory=list, description="Note units")


class SubjectResponse(ApiResponse):
    path: str = Field(..., description="Directory created for the subject or unit")
    subject: Optional[SubjectModel] = Field(None, description="Stored subject record")


class SubjectListResponse(ApiResponse):
    subjects: List[SubjectModel] = Field(default_factory=list)


class SubjectDeleteResponse(ApiResponse):
    removed_files: int = Field(
        0, alias="removedFiles", description="File records purged from the catalog"
    )


# Files


class UploadResponse(ApiResponse):
    file: Dict[str, Any] = Field(..., description="Catalog record of the stored file")


class FileListResponse(ApiResponse):
    files: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="filename, title, description, size, modified, type, subject and unit for notes",
    )


class VerifyFilesRequest(BaseModel):
    files: Optional[List[Dict[str, Any]]] = Field(
        None,
        description="Items of the form {id, subject, type, unit?, storedFileName}",
    )


class VerifyFilesResponse(ApiResponse):
    verified_files: List[Dict[str, Any]] = Field(
        default_factory=list, alias="verifiedFiles"
    )


class StorageSyncResponse(ApiResponse):
    storage_structure: Dict[str, Any] = Field(
        default_factory=dict,
        alias="storageStructure",
        description="Per subject: notes by unit plus the flat kinds",
    )
    backup_data: Dict[str, Any] = Field(
        default_factory=dict, alias="backupData", description="Full backup document"
    )


class AssignmentsResponse(ApiResponse):
    data: List[Dict[str, Any]] = Field(default_factory=list)


# Profile pictures


class ProfilePictureResponse(ApiResponse):
    avatar_url: str = Field(..., alias="avatarUrl")
    filename: str
    profile_updated: bool = Field(
        False,
        alias="profileUpdated",
        description="Whether the user directory accepted the new avatar URL",
    )


class RemoveProfilePictureRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")


class RemoveProfilePictureResponse(ApiResponse):
    removed: int = Field(0, description="Number of picture files deleted")

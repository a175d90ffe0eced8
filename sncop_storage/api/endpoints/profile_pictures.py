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

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from sncop_storage.api.models import (
    ProfilePictureResponse,
    RemoveProfilePictureRequest,
    RemoveProfilePictureResponse,
)
from sncop_storage.core.profile_pictures import (
    ProfileDirectoryClient,
    ProfilePictureStore,
    avatar_url_for,
)
from sncop_storage.utils.config import get_settings
from sncop_storage.utils.formatting import media_type_for
from sncop_storage.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["profile-pictures"])


def get_profile_picture_store() -> ProfilePictureStore:
    """Dependency to get the profile picture store."""
    settings = get_settings()
    return ProfilePictureStore(
        settings.profile_pictures_dir,
        max_size=settings.max_profile_picture_size_mb * 1024 * 1024,
    )


def get_profile_directory_client() -> ProfileDirectoryClient:
    """Dependency to get the user directory client."""
    settings = get_settings()
    return ProfileDirectoryClient(
        settings.supabase_service_url, settings.supabase_service_role_key
    )


@router.post("/upload-profile-picture", response_model=ProfilePictureResponse)
async def upload_profile_picture(
    file: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    store: ProfilePictureStore = Depends(get_profile_picture_store),
    directory: ProfileDirectoryClient = Depends(get_profile_directory_client),
):
    """Store a user's avatar and point their profile at it."""
    filename = await run_in_threadpool(
        store.save,
        user_id,
        file.filename if file else None,
        file.content_type if file else None,
        file.file if file else None,
    )
    avatar_url = avatar_url_for(filename)
    profile_updated = await directory.set_avatar_url(user_id.strip(), avatar_url)

    return ProfilePictureResponse(
        message="Profile picture uploaded successfully",
        avatar_url=avatar_url,
        filename=filename,
        profile_updated=profile_updated,
    )


@router.get("/profile-pictures/{filename}")
def serve_profile_picture(
    filename: str,
    store: ProfilePictureStore = Depends(get_profile_picture_store),
):
    path = store.resolve(filename)
    return FileResponse(
        path,
        media_type=media_type_for(filename),
        headers={
            "Cache-Control": "public, max-age=31536000",
            "ETag": f'"{filename}"',
        },
    )


@router.delete("/remove-profile-picture", response_model=RemoveProfilePictureResponse)
async def remove_profile_picture(
    request: RemoveProfilePictureRequest,
    store: ProfilePictureStore = Depends(get_profile_picture_store),
    directory: ProfileDirectoryClient = Depends(get_profile_directory_client),
):
    """Delete a user's avatar files and clear the URL on their profile."""
    removed = await run_in_threadpool(store.remove, request.user_id)
    await directory.set_avatar_url(request.user_id.strip(), None)
    logger.info(f"Removed {removed} profile pictures for user {request.user_id}")
    return RemoveProfilePictureResponse(
        message="Profile picture removed successfully", removed=removed
    )

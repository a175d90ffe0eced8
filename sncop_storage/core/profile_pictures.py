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
Profile pictures.

Avatars live in their own directory, one current file per user named
``profile_<userId>_<millis><ext>``. When the external user directory is
configured, the user's ``avatar_url`` is updated there as well; failures
of that call are logged and never fail the upload.
"""

from datetime import datetime
from pathlib import Path
from typing import BinaryIO, List, Optional

import httpx

from sncop_storage.core.errors import (
    FileNotFoundInStorageError,
    InvalidPathSegmentError,
    StorageIOError,
    UploadValidationError,
)
from sncop_storage.utils.logging import get_logger
from sncop_storage.utils.security import get_input_validator

logger = get_logger(__name__)

PICTURE_EXTENSIONS = frozenset({"jpeg", "jpg", "png", "gif", "webp"})
AVATAR_URL_PREFIX = "/api/profile-pictures/"


class ProfileDirectoryClient:
    """Updates ``avatar_url`` on the external user directory's profiles table."""

    def __init__(
        self,
        base_url: Optional[str],
        service_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.service_key)

    async def set_avatar_url(self, user_id: str, avatar_url: Optional[str]) -> bool:
        """
        Write the avatar URL (or clear it with ``None``).

        Returns:
            True if the directory accepted the update
        """
        if not self.enabled:
            logger.debug("User directory not configured, skipping avatar update")
            return False

        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        payload = {"avatar_url": avatar_url, "updated_at": datetime.now().isoformat()}

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout), transport=self.transport
            ) as client:
                response = await client.patch(
                    f"{self.base_url}/rest/v1/profiles",
                    params={"id": f"eq.{user_id}"},
                    headers=headers,
                    json=payload,
                )
                response.raise_for_status()
                return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to update profile for user {user_id}: {e}")
            return False


class ProfilePictureStore:
    """Saves, finds and removes user avatars on disk."""

    def __init__(self, directory: Path, max_size: int):
        self.directory = Path(directory)
        self.max_size = max_size
        self.validator = get_input_validator()
        self.logger = get_logger(f"{__name__}.ProfilePictureStore")

    def _check_user_id(self, user_id: Optional[str]) -> str:
        user_id = (user_id or "").strip()
        if not user_id:
            raise UploadValidationError("User ID is required")
        is_safe, error = self.validator.validate_path_segment(user_id)
        if not is_safe:
            raise InvalidPathSegmentError(f"Invalid user ID: {error}")
        return user_id

    def pictures_for(self, user_id: str) -> List[Path]:
        if not self.directory.is_dir():
            return []
        prefix = f"profile_{user_id}_"
        return sorted(
            path
            for path in self.directory.iterdir()
            if path.is_file() and path.name.startswith(prefix)
        )

    def save(
        self,
        user_id: Optional[str],
        original_filename: Optional[str],
        content_type: Optional[str],
        stream: BinaryIO,
    ) -> str:
        """
        Store a new avatar and drop the user's previous ones.

        Returns:
            Filename of the stored picture

        Raises:
            UploadValidationError: If the user ID is missing or the image is not allowed
            StorageIOError: If the file cannot be written
        """
        if not (original_filename or "").strip():
            raise UploadValidationError("No file uploaded")
        user_id = self._check_user_id(user_id)

        is_allowed, _ = self.validator.validate_upload(
            original_filename, content_type, PICTURE_EXTENSIONS
        )
        if not is_allowed:
            raise UploadValidationError(
                "Only image files (JPEG, PNG, GIF, WebP) are allowed!"
            )

        data = stream.read(self.max_size + 1)
        if len(data) > self.max_size:
            raise UploadValidationError(
                f"File too large. Maximum size is {self.max_size // (1024 * 1024)}MB"
            )

        timestamp = int(datetime.now().timestamp() * 1000)
        filename = f"profile_{user_id}_{timestamp}{Path(original_filename).suffix}"
        target = self.directory / filename
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageIOError(str(e), message="Failed to upload profile picture") from e

        for old in self.pictures_for(user_id):
            if old.name != filename:
                try:
                    old.unlink()
                    self.logger.info(f"Deleted old profile picture: {old.name}")
                except OSError as e:
                    self.logger.warning(f"Could not delete old profile picture {old}: {e}")

        self.logger.info(f"Profile picture uploaded: {filename}")
        return filename

    def resolve(self, filename: str) -> Path:
        """
        Raises:
            FileNotFoundInStorageError: If the picture does not exist
        """
        is_safe, error = self.validator.validate_path_segment(filename)
        if not is_safe:
            raise InvalidPathSegmentError(f"Invalid filename: {error}")
        path = self.directory / filename
        if not path.is_file():
            raise FileNotFoundInStorageError(
                "Profile picture not found", message="Profile picture not found"
            )
        return path

    def remove(self, user_id: Optional[str]) -> int:
        """Delete every stored picture of a user; returns how many were removed."""
        user_id = self._check_user_id(user_id)
        removed = 0
        for path in self.pictures_for(user_id):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                raise StorageIOError(
                    str(e), message="Failed to remove profile picture"
                ) from e
        return removed


def avatar_url_for(filename: str) -> str:
    return f"{AVATAR_URL_PREFIX}{filename}"

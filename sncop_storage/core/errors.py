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

"""Exceptions raised by the storage core; each carries the HTTP status it maps to."""


class StorageError(Exception):
    """Base exception for storage system operations."""

    status_code = 500
    message = "Storage operation failed"

    def __init__(self, detail: str = "", message: str = ""):
        self.detail = detail or self.message
        if message:
            self.message = message
        super().__init__(self.detail)


class UploadValidationError(StorageError):
    """A required upload field is missing or the file is not acceptable."""

    status_code = 400
    message = "Upload validation failed"


class InvalidContentTypeError(StorageError):
    """The content type is not one of the four known kinds."""

    status_code = 400
    message = "Invalid type"


class MissingUnitError(StorageError):
    """Notes were addressed without a unit."""

    status_code = 400
    message = "Unit is required for notes"


class InvalidPathSegmentError(StorageError):
    """A subject, unit or filename cannot be used as a path component."""

    status_code = 400
    message = "Invalid path"


class FileNotFoundInStorageError(StorageError):
    """Neither the canonical path nor any alternate spelling exists."""

    status_code = 404
    message = "File not found"


class UploadTimeoutError(StorageError):
    """The request deadline passed before the upload was cataloged."""

    status_code = 408
    message = "Request timeout"


class StorageIOError(StorageError):
    """Filesystem failure while creating, moving, writing or deleting."""

    status_code = 500
    message = "Storage I/O failure"

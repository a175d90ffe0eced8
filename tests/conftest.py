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

"""Shared fixtures: isolated storage roots, a storage service and an API client."""

from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient
import pytest

from sncop_storage.api.endpoints.profile_pictures import (
    get_profile_directory_client,
    get_profile_picture_store,
)
from sncop_storage.api.main import app
from sncop_storage.core.profile_pictures import ProfilePictureStore
from sncop_storage.core.storage_service import StorageService, get_storage_service
from sncop_storage.utils.config import Settings, ensure_directories

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every location into a temporary directory."""
    return Settings(
        _env_file=None,
        storage_dir=tmp_path / "storage",
        metadata_file=tmp_path / "file-metadata.json",
        profile_pictures_dir=tmp_path / "profile-pictures",
        max_upload_size_mb=1,
    )


@pytest.fixture
def service(settings):
    ensure_directories(settings)
    return StorageService(settings)


@pytest.fixture
def directory_client():
    """Stand-in for the external user directory."""
    client = Mock()
    client.set_avatar_url = AsyncMock(return_value=True)
    return client


@pytest.fixture
def client(service, settings, directory_client):
    app.dependency_overrides[get_storage_service] = lambda: service
    app.dependency_overrides[get_profile_picture_store] = lambda: ProfilePictureStore(
        settings.profile_pictures_dir,
        max_size=settings.max_profile_picture_size_mb * 1024 * 1024,
    )
    app.dependency_overrides[get_profile_directory_client] = lambda: directory_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

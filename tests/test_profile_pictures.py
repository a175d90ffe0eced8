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

"""Tests for profile picture storage and the user directory client."""

import asyncio
import io
import json
import re

import httpx
import pytest

from sncop_storage.core.errors import (
    FileNotFoundInStorageError,
    InvalidPathSegmentError,
    UploadValidationError,
)
from sncop_storage.core.profile_pictures import (
    ProfileDirectoryClient,
    ProfilePictureStore,
    avatar_url_for,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def store(tmp_path):
    return ProfilePictureStore(tmp_path / "profile-pictures", max_size=1024)


class TestProfilePictureStore:
    """Test the ProfilePictureStore class."""

    def test_save_names_file_per_user(self, store):
        filename = store.save("user-1", "me.png", "image/png", io.BytesIO(PNG_BYTES))

        assert re.fullmatch(r"profile_user-1_\d{13}\.png", filename)
        assert (store.directory / filename).read_bytes() == PNG_BYTES
        assert avatar_url_for(filename) == f"/api/profile-pictures/{filename}"

    def test_save_replaces_previous_pictures(self, store):
        store.directory.mkdir(parents=True)
        (store.directory / "profile_user-1_1700000000000.jpg").write_bytes(b"old")
        (store.directory / "profile_user-2_1700000000000.jpg").write_bytes(b"other")

        filename = store.save("user-1", "me.webp", "image/webp", io.BytesIO(PNG_BYTES))

        assert [p.name for p in store.pictures_for("user-1")] == [filename]
        assert len(store.pictures_for("user-2")) == 1

    def test_rejects_non_images(self, store):
        with pytest.raises(UploadValidationError, match="Only image files"):
            store.save("user-1", "notes.pdf", "application/pdf", io.BytesIO(b"%PDF"))

    def test_rejects_large_files(self, store):
        with pytest.raises(UploadValidationError, match="File too large"):
            store.save("user-1", "me.png", "image/png", io.BytesIO(b"x" * 2048))
        assert store.pictures_for("user-1") == []

    def test_requires_user_id(self, store):
        with pytest.raises(UploadValidationError, match="User ID is required"):
            store.save(" ", "me.png", "image/png", io.BytesIO(PNG_BYTES))

    def test_rejects_unsafe_user_id(self, store):
        with pytest.raises(InvalidPathSegmentError):
            store.save("../user", "me.png", "image/png", io.BytesIO(PNG_BYTES))

    def test_resolve(self, store):
        filename = store.save("user-1", "me.png", "image/png", io.BytesIO(PNG_BYTES))
        assert store.resolve(filename) == store.directory / filename

        with pytest.raises(FileNotFoundInStorageError):
            store.resolve("profile_nobody_1.png")

    def test_remove(self, store):
        store.save("user-1", "me.png", "image/png", io.BytesIO(PNG_BYTES))

        assert store.remove("user-1") == 1
        assert store.remove("user-1") == 0


class TestProfileDirectoryClient:
    """Test avatar URL updates against a mocked user directory."""

    def test_disabled_without_configuration(self):
        client = ProfileDirectoryClient(None, None)

        assert not client.enabled
        assert asyncio.run(client.set_avatar_url("user-1", "/api/profile-pictures/x.png")) is False

    def test_patches_profile(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[{"id": "user-1"}])

        client = ProfileDirectoryClient(
            "https://directory.example.com/",
            "service-key",
            transport=httpx.MockTransport(handler),
        )

        assert asyncio.run(client.set_avatar_url("user-1", "/api/profile-pictures/x.png")) is True

        request = requests[0]
        assert request.method == "PATCH"
        assert request.url.path == "/rest/v1/profiles"
        assert request.url.params["id"] == "eq.user-1"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["authorization"] == "Bearer service-key"
        body = json.loads(request.content)
        assert body["avatar_url"] == "/api/profile-pictures/x.png"
        assert "updated_at" in body

    def test_failure_is_reported_not_raised(self):
        client = ProfileDirectoryClient(
            "https://directory.example.com",
            "service-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )

        assert asyncio.run(client.set_avatar_url("user-1", None)) is False

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
Tests for the upload pipeline.

This module tests:
- Successful uploads through temp and straight to the destination
- Validation failures that must leave the disk untouched
- I/O failures surfacing as FAILED uploads
"""

from concurrent.futures import ThreadPoolExecutor
import io
import re
import time
from unittest.mock import patch

import pytest

from sncop_storage.core.catalog import CatalogStore
from sncop_storage.core.models import ContentKind
from sncop_storage.core.paths import PathResolver
from sncop_storage.core.upload_pipeline import UploadPipeline, UploadRequest, UploadState

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


@pytest.fixture
def storage_root(tmp_path):
    return tmp_path / "storage"


@pytest.fixture
def catalog(tmp_path, storage_root):
    return CatalogStore(tmp_path / "file-metadata.json", storage_root / "sncop-backup.json")


@pytest.fixture
def resolver(storage_root):
    return PathResolver(storage_root)


@pytest.fixture
def pipeline(resolver, catalog):
    return UploadPipeline(resolver, catalog, max_file_size=1024 * 1024)


def make_request(**overrides) -> UploadRequest:
    values = dict(
        title="Cell Biology",
        subject="Pharmacology",
        type="notes",
        unit="Unit 1",
        description="Membranes and organelles",
        original_filename="cell_biology.pdf",
        content_type="application/pdf",
        stream=io.BytesIO(PDF_BYTES),
    )
    values.update(overrides)
    return UploadRequest(**values)


def stored_files(root):
    return [p for p in root.rglob("*") if p.is_file() and p.suffix != ".json"]


class TestSuccessfulUploads:
    """Test uploads that reach the DONE state."""

    def test_round_trip(self, pipeline, resolver, storage_root):
        """An uploaded file reads back byte for byte from its canonical path."""
        result = pipeline.process(make_request())

        assert result.success
        assert result.state == UploadState.DONE
        record = result.record
        assert re.fullmatch(r"cell_biology_\d{13}\.pdf", record.stored_filename)

        path = resolver.resolve_read_path("Pharmacology", "notes", "Unit 1", record.stored_filename)
        assert path == storage_root / "Pharmacology" / "notes" / "Unit 1" / record.stored_filename
        assert path.read_bytes() == PDF_BYTES
        assert list((storage_root / "temp").iterdir()) == []

    def test_record_fields(self, pipeline):
        record = pipeline.process(make_request(title="  Cell Biology  ")).record

        assert record.kind == ContentKind.NOTES
        assert record.title == "Cell Biology"
        assert record.original_filename == "cell_biology.pdf"
        assert record.file_type == "pdf"
        assert record.file_size.endswith("Bytes")
        assert re.fullmatch(r"\d{1,2}/\d{1,2}/\d{4}", record.upload_date)

    def test_catalog_updated_and_saved(self, pipeline, catalog, storage_root):
        record = pipeline.process(make_request()).record

        assert catalog.records(ContentKind.NOTES) == [record]
        assert catalog.metadata_entry(record.metadata_key)["title"] == "Cell Biology"
        subject = catalog.subjects()[0]
        assert (subject.name, subject.units) == ("Pharmacology", ["Unit 1"])
        assert (storage_root / "sncop-backup.json").exists()

    def test_flat_kind_ignores_unit(self, pipeline, storage_root):
        result = pipeline.process(
            make_request(
                type="practicals",
                unit="Unit 9",
                original_filename="titration.png",
                content_type="image/png",
            )
        )

        assert result.success
        assert result.record.unit == ""
        assert result.record.file_type == "image"
        assert (storage_root / "Pharmacology" / "practicals" / result.record.stored_filename).is_file()

    def test_hints_write_straight_to_destination(self, pipeline):
        request = make_request(hint_subject="Pharmacology", hint_type="notes", hint_unit="Unit 1")

        with patch.object(pipeline, "_move") as mock_move:
            result = pipeline.process(request)

        assert result.success
        mock_move.assert_not_called()

    def test_invalid_hints_fall_back_to_temp(self, pipeline, storage_root):
        request = make_request(hint_subject="Pharmacology", hint_type="videos")

        result = pipeline.process(request)

        assert result.success
        assert (storage_root / "Pharmacology" / "notes" / "Unit 1" / result.record.stored_filename).is_file()
        assert list((storage_root / "temp").iterdir()) == []

    def test_hints_for_another_scope_create_no_directories(self, pipeline, storage_root):
        """Hints naming a different subject than the form leave no empty tree behind."""
        request = make_request(hint_subject="Anatomy", hint_type="assignments")

        result = pipeline.process(request)

        assert result.success
        assert not (storage_root / "Anatomy").exists()
        assert (storage_root / "Pharmacology" / "notes" / "Unit 1" / result.record.stored_filename).is_file()
        assert list((storage_root / "temp").iterdir()) == []

    def test_hints_for_another_unit_go_through_temp(self, pipeline, storage_root):
        request = make_request(hint_subject="Pharmacology", hint_type="notes", hint_unit="Unit 2")

        result = pipeline.process(request)

        assert result.success
        assert not (storage_root / "Pharmacology" / "notes" / "Unit 2").exists()
        assert result.record.unit == "Unit 1"


class TestRejectedUploads:
    """Test validation failures."""

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"stream": None}, "No file uploaded"),
            ({"title": "  "}, "Title is required"),
            ({"subject": None}, "Subject is required"),
            ({"type": ""}, "Type is required"),
            ({"type": "videos"}, "Invalid type: videos"),
            ({"unit": None}, "Unit is required for notes"),
            (
                {"original_filename": "essay.docx", "content_type": "application/msword"},
                "Only PDF and image files are allowed!",
            ),
            (
                {"original_filename": "notes.pdf", "content_type": "text/plain"},
                "Only PDF and image files are allowed!",
            ),
        ],
    )
    def test_validation_messages(self, pipeline, storage_root, overrides, message):
        """Rejected uploads report why and leave nothing on disk."""
        result = pipeline.process(make_request(**overrides))

        assert not result.success
        assert result.state == UploadState.REJECTED
        assert result.status_code == 400
        assert result.message == message
        assert stored_files(storage_root) == []
        assert not (storage_root / "Pharmacology").exists()

    def test_reserved_subject_rejected(self, pipeline):
        result = pipeline.process(make_request(subject="temp"))

        assert result.state == UploadState.REJECTED
        assert result.status_code == 400

    def test_file_too_large(self, resolver, catalog, storage_root):
        pipeline = UploadPipeline(resolver, catalog, max_file_size=10)

        result = pipeline.process(make_request())

        assert result.state == UploadState.REJECTED
        assert result.message.startswith("File too large")
        assert stored_files(storage_root) == []
        assert catalog.records(ContentKind.NOTES) == []


class TestFailedUploads:
    """Test I/O failures."""

    def test_move_failure(self, pipeline, catalog, storage_root):
        with patch(
            "sncop_storage.core.upload_pipeline.shutil.move",
            side_effect=OSError("device not ready"),
        ):
            result = pipeline.process(make_request())

        assert not result.success
        assert result.state == UploadState.FAILED
        assert result.status_code == 500
        assert result.message == "Failed to upload file"
        assert catalog.records(ContentKind.NOTES) == []
        # Left behind for the temp sweeper
        assert len(list((storage_root / "temp").iterdir())) == 1


class SlowStream(io.BytesIO):
    """A client that takes a while to send each chunk."""

    def read(self, size=-1):
        time.sleep(0.2)
        return super().read(size)


class TestTimedOutUploads:
    """Test uploads abandoned once the request deadline passes."""

    def test_expired_deadline_leaves_nothing(self, pipeline, catalog, storage_root):
        result = pipeline.process(make_request(deadline=time.monotonic() - 1))

        assert not result.success
        assert result.state == UploadState.FAILED
        assert result.status_code == 408
        assert stored_files(storage_root) == []
        assert catalog.records(ContentKind.NOTES) == []

    def test_deadline_passing_while_streaming(self, pipeline, catalog, storage_root):
        request = make_request(
            stream=SlowStream(PDF_BYTES), deadline=time.monotonic() + 0.1
        )

        result = pipeline.process(request)

        assert result.status_code == 408
        assert "receiving the file" in result.message
        assert stored_files(storage_root) == []
        assert catalog.records(ContentKind.NOTES) == []

    def test_deadline_passing_before_cataloging(self, pipeline, catalog, storage_root):
        """A file written in time but cataloged too late is removed again."""
        with patch(
            "sncop_storage.core.upload_pipeline._expired", side_effect=[False, True]
        ):
            result = pipeline.process(make_request(deadline=time.monotonic() + 60))

        assert result.status_code == 408
        assert stored_files(storage_root) == []
        assert catalog.records(ContentKind.NOTES) == []
        assert catalog.metadata == {}

    def test_no_deadline_never_expires(self, pipeline):
        result = pipeline.process(make_request(deadline=None))
        assert result.success


class TestConcurrentUploads:
    """Test uploads processed from several threads at once."""

    def test_every_upload_is_cataloged(self, pipeline, catalog, tmp_path, storage_root):
        count = 16

        def upload(index):
            return pipeline.process(
                make_request(
                    title=f"Lecture {index}",
                    original_filename=f"lecture_{index}.pdf",
                    stream=io.BytesIO(PDF_BYTES),
                )
            )

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(upload, range(count)))

        assert all(result.success for result in results)
        stored = {result.record.stored_filename for result in results}
        assert {r.stored_filename for r in catalog.records(ContentKind.NOTES)} == stored

        reloaded = CatalogStore(tmp_path / "file-metadata.json", storage_root / "sncop-backup.json")
        reloaded.load()
        assert {r.stored_filename for r in reloaded.records(ContentKind.NOTES)} == stored
        assert len(reloaded.metadata) == count
        assert reloaded.subjects()[0].units == ["Unit 1"]

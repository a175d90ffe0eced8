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
Tests for the path resolver.

This module tests:
- Upload directory resolution, including the temp fallback
- Idempotent subject tree creation
- Alternate-spelling fallback on reads
- Rejection of unsafe and reserved names
"""

from pathlib import Path
import tempfile
import unittest

from sncop_storage.core.errors import (
    FileNotFoundInStorageError,
    InvalidContentTypeError,
    InvalidPathSegmentError,
    MissingUnitError,
)
from sncop_storage.core.models import ContentKind
from sncop_storage.core.paths import PathResolver


class TestPathResolver(unittest.TestCase):
    """Test the PathResolver class."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name) / "storage"
        self.resolver = PathResolver(self.root)

    def tearDown(self):
        self.temp_dir.cleanup()

    def _store(self, *parts: str) -> Path:
        path = self.root.joinpath(*parts)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"%PDF-1.4 test")
        return path

    def test_blank_subject_or_type_uses_temp(self):
        """Uploads without a known destination go to temp."""
        self.assertEqual(self.resolver.resolve_upload_dir("", "notes", "Unit 1"), self.root / "temp")
        self.assertEqual(self.resolver.resolve_upload_dir("Pharmacology", None, None), self.root / "temp")
        self.assertTrue((self.root / "temp").is_dir())

    def test_notes_directory(self):
        directory = self.resolver.resolve_upload_dir(" Pharmacology ", "notes", " Unit 1 ")
        self.assertEqual(directory, self.root / "Pharmacology" / "notes" / "Unit 1")
        self.assertTrue(directory.is_dir())

    def test_flat_kind_directory(self):
        directory = self.resolver.resolve_upload_dir("Pharmacology", "practice-tests", "ignored")
        self.assertEqual(directory, self.root / "Pharmacology" / "practice-tests")
        self.assertTrue(directory.is_dir())

    def test_notes_without_unit(self):
        with self.assertRaises(MissingUnitError):
            self.resolver.resolve_upload_dir("Pharmacology", "notes", "  ")
        self.assertFalse((self.root / "Pharmacology").exists())

    def test_unknown_type(self):
        with self.assertRaises(InvalidContentTypeError) as ctx:
            self.resolver.resolve_upload_dir("Pharmacology", "videos", None)
        self.assertEqual(ctx.exception.detail, "Invalid type: videos")

    def test_canonical_path(self):
        path = self.resolver.canonical_path("Anatomy", ContentKind.PRACTICALS, None, "lab.pdf")
        self.assertEqual(path, self.root / "Anatomy" / "practicals" / "lab.pdf")
        self.assertFalse(path.exists())

    def test_ensure_directory_tree_creates_layout(self):
        """Creating Pharmacology with two units builds the whole tree."""
        subject_path = self.resolver.ensure_directory_tree("Pharmacology", ["Unit 1", "Unit 2"])

        self.assertEqual(subject_path, self.root / "Pharmacology")
        for relative in [
            "notes/Unit 1",
            "notes/Unit 2",
            "practice-tests",
            "practicals",
            "assignments",
        ]:
            self.assertTrue((subject_path / relative).is_dir(), relative)

    def test_ensure_directory_tree_is_idempotent(self):
        self.resolver.ensure_directory_tree("Pharmacology", ["Unit 1", "Unit 2"])
        self.resolver.ensure_directory_tree("Pharmacology", ["Unit 1", "Unit 2"])

        self.assertEqual([p.name for p in self.root.iterdir()], ["Pharmacology"])
        units = sorted(p.name for p in (self.root / "Pharmacology" / "notes").iterdir())
        self.assertEqual(units, ["Unit 1", "Unit 2"])

    def test_read_canonical_path(self):
        stored = self._store("Pharmacology", "notes", "Unit 1", "x.pdf")
        self.assertEqual(
            self.resolver.resolve_read_path("Pharmacology", "notes", "Unit 1", "x.pdf"), stored
        )

    def test_read_unit_with_underscore_finds_spaced_directory(self):
        """A request for Unit_1 finds a file stored under 'Unit 1'."""
        stored = self._store("Pharmacology", "notes", "Unit 1", "x.pdf")
        self.assertEqual(
            self.resolver.resolve_read_path("Pharmacology", "notes", "Unit_1", "x.pdf"), stored
        )

    def test_read_unit_with_spaces_finds_underscored_directory(self):
        stored = self._store("Pharmacology", "notes", "Unit_1", "x.pdf")
        self.assertEqual(
            self.resolver.resolve_read_path("Pharmacology", "notes", "Unit 1", "x.pdf"), stored
        )

    def test_read_subject_variant_for_flat_kind(self):
        stored = self._store("cell biology", "practicals", "lab.pdf")
        self.assertEqual(
            self.resolver.resolve_read_path("Cell Biology", "practicals", None, "lab.pdf"), stored
        )

    def test_read_missing_file(self):
        with self.assertRaises(FileNotFoundInStorageError):
            self.resolver.resolve_read_path("Pharmacology", "notes", "Unit 1", "missing.pdf")

    def test_alternate_paths_are_unique_and_exclude_canonical(self):
        canonical = self.resolver.canonical_path("Pharmacology", "notes", "Unit 1", "x.pdf")
        alternates = self.resolver.alternate_paths("Pharmacology", "notes", "Unit 1", "x.pdf")

        self.assertNotIn(canonical, alternates)
        self.assertEqual(len(alternates), len(set(alternates)))
        self.assertEqual(alternates[0], self.root / "Pharmacology" / "notes" / "Unit_1" / "x.pdf")

    def test_path_traversal_rejected(self):
        for subject, unit, filename in [
            ("..", "Unit 1", "x.pdf"),
            ("Pharmacology", "../..", "x.pdf"),
            ("Pharmacology", "Unit 1", "../secret.txt"),
            ("a/b", "Unit 1", "x.pdf"),
        ]:
            with self.assertRaises(InvalidPathSegmentError):
                self.resolver.canonical_path(subject, "notes", unit, filename)

    def test_reserved_subject_names(self):
        for name in ["temp", "TEMP", "profile-pictures"]:
            with self.assertRaises(InvalidPathSegmentError):
                self.resolver.ensure_directory_tree(name, [])
        self.assertEqual(self.resolver.check_writable_subject(" Anatomy "), "Anatomy")


if __name__ == "__main__":
    unittest.main()

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
Directory layout for stored files.

Maps a logical location ``(subject, kind, unit, filename)`` onto the
storage tree::

    <root>/<subject>/notes/<unit>/<file>
    <root>/<subject>/practice-tests/<file>
    <root>/<subject>/practicals/<file>
    <root>/<subject>/assignments/<file>
    <root>/temp/<file>

Subject and unit names are free user text and are not normalized on
write, so reads fall back to a few alternate spellings (underscores,
hyphens, lowercase, separators as spaces) when the canonical path is
missing.
"""

from pathlib import Path
import re
from typing import Callable, Iterable, List, Optional, Union

from sncop_storage.core.errors import (
    FileNotFoundInStorageError,
    InvalidPathSegmentError,
    MissingUnitError,
    StorageIOError,
)
from sncop_storage.core.models import ContentKind
from sncop_storage.utils.logging import get_logger
from sncop_storage.utils.security import get_input_validator

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_SEPARATORS = re.compile(r"[_-]+")

# Order matters: first existing candidate wins
SPELLING_VARIANTS: List[Callable[[str], str]] = [
    lambda name: _WHITESPACE.sub("_", name),
    lambda name: _WHITESPACE.sub("-", name),
    lambda name: name.lower(),
    lambda name: _SEPARATORS.sub(" ", name),
]

KindLike = Union[ContentKind, str, None]


class PathResolver:
    """Computes and validates paths under the storage root."""

    def __init__(
        self,
        storage_root: Path,
        temp_dir_name: str = "temp",
        reserved_names: Iterable[str] = ("temp", "profile-pictures"),
    ):
        self.storage_root = Path(storage_root)
        self.temp_dir = self.storage_root / temp_dir_name
        self.reserved_names = {name.lower() for name in reserved_names}
        self.validator = get_input_validator()
        self.logger = get_logger(f"{__name__}.PathResolver")

    def _check_segment(self, segment: str, label: str) -> str:
        is_safe, error = self.validator.validate_path_segment(segment)
        if not is_safe:
            raise InvalidPathSegmentError(f"Invalid {label}: {error}")
        return segment

    def check_writable_subject(self, subject: str) -> str:
        """
        Validate a subject name that is about to be created or removed.

        Raises:
            InvalidPathSegmentError: If the name is unsafe or reserved
        """
        subject = self._check_segment((subject or "").strip(), "subject name")
        if subject.lower() in self.reserved_names:
            raise InvalidPathSegmentError(
                f"Invalid subject name: '{subject}' is reserved"
            )
        return subject

    def _make_dir(self, directory: Path) -> Path:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Failed to create directory {directory}: {e}")
            raise StorageIOError(str(e), message="Failed to create directory") from e
        return directory

    def subject_path(self, subject: str) -> Path:
        return self.storage_root / self._check_segment(subject, "subject name")

    def directory_for(self, subject: str, kind: KindLike, unit: Optional[str]) -> Path:
        """
        Canonical directory for a (subject, kind, unit) scope.

        Raises:
            InvalidContentTypeError: If the kind is unknown
            MissingUnitError: If notes are addressed without a unit
            InvalidPathSegmentError: If a name cannot be a path component
        """
        kind = ContentKind.parse(kind) if not isinstance(kind, ContentKind) else kind
        base = self.subject_path(subject) / kind.path_segment
        if not kind.requires_unit:
            return base
        if not (unit or "").strip():
            raise MissingUnitError("Unit is required for notes")
        return base / self._check_segment(unit, "unit name")

    def canonical_path(
        self, subject: str, kind: KindLike, unit: Optional[str], filename: str
    ) -> Path:
        directory = self.directory_for(subject, kind, unit)
        return directory / self._check_segment(filename, "filename")

    def resolve_upload_dir(
        self, subject: Optional[str], kind: KindLike, unit: Optional[str]
    ) -> Path:
        """
        Directory an incoming upload should be written to.

        A blank subject or kind selects the scratch ``temp`` directory; the
        caller moves the file once the full form is known. The directory is
        created if missing.
        """
        subject = (subject or "").strip()
        kind_text = kind.value if isinstance(kind, ContentKind) else (kind or "").strip()
        if not subject or not kind_text:
            self.logger.debug("Destination unknown, using temp directory")
            return self._make_dir(self.temp_dir)

        self.check_writable_subject(subject)
        directory = self.directory_for(subject, kind_text, (unit or "").strip())
        return self._make_dir(directory)

    def alternate_paths(
        self, subject: str, kind: KindLike, unit: Optional[str], filename: str
    ) -> List[Path]:
        """
        Alternate spellings to try when the canonical path is missing.

        Notes try unit variants first, then subject variants; the other
        kinds only vary the subject.
        """
        kind = ContentKind.parse(kind) if not isinstance(kind, ContentKind) else kind
        canonical = self.canonical_path(subject, kind, unit, filename)

        candidates: List[Path] = []
        if kind.requires_unit:
            for variant in SPELLING_VARIANTS:
                candidates.append(
                    self.storage_root / subject / kind.path_segment / variant(unit) / filename
                )
            for variant in SPELLING_VARIANTS:
                candidates.append(
                    self.storage_root / variant(subject) / kind.path_segment / unit / filename
                )
                candidates.append(
                    self.storage_root
                    / variant(subject)
                    / kind.path_segment
                    / variant(unit)
                    / filename
                )
        else:
            for variant in SPELLING_VARIANTS:
                candidates.append(
                    self.storage_root / variant(subject) / kind.path_segment / filename
                )

        unique: List[Path] = []
        for candidate in candidates:
            if candidate != canonical and candidate not in unique:
                unique.append(candidate)
        return unique

    def resolve_read_path(
        self, subject: str, kind: KindLike, unit: Optional[str], filename: str
    ) -> Path:
        """
        Locate an existing file, trying alternate spellings on a miss.

        Raises:
            FileNotFoundInStorageError: If no candidate exists
        """
        canonical = self.canonical_path(subject, kind, unit, filename)
        if canonical.is_file():
            return canonical

        alternates = self.alternate_paths(subject, kind, unit, filename)
        for candidate in alternates:
            if candidate.is_file():
                self.logger.info(f"Resolved {canonical} via alternate path {candidate}")
                return candidate

        self.logger.warning(
            f"File not found at {canonical}; tried {len(alternates)} alternate paths"
        )
        raise FileNotFoundInStorageError("File not found")

    def ensure_directory_tree(self, subject: str, units: Iterable[str] = ()) -> Path:
        """
        Create a subject's directory tree; safe to call repeatedly.

        Returns:
            Path of the subject directory
        """
        subject = self.check_writable_subject(subject)
        subject_path = self._make_dir(self.storage_root / subject)

        notes_path = self._make_dir(subject_path / ContentKind.NOTES.path_segment)
        for unit in units:
            self._make_dir(notes_path / self._check_segment(unit.strip(), "unit name"))

        for kind in ContentKind:
            if not kind.requires_unit:
                self._make_dir(subject_path / kind.path_segment)

        return subject_path

    def ensure_unit_directory(self, subject: str, unit: str) -> Path:
        subject = self.check_writable_subject(subject)
        return self._make_dir(self.directory_for(subject, ContentKind.NOTES, unit.strip()))

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
Display helpers shared by the catalog and the HTTP layer.

Sizes, dates and titles are rendered the same way everywhere so that
records written by an upload and entries produced by a directory scan
look identical to clients.
"""

from datetime import datetime
from pathlib import Path
import re
from typing import Optional

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]
_EXTENSION = re.compile(r"\.[^/.]+$")
_TIMESTAMP_SUFFIX = re.compile(r"_\d{13}$")
_WORD_START = re.compile(r"\b\w")
_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count for humans, e.g. ``1.23 MB``.

    Two decimals at most, trailing zeros dropped.
    """
    if not size_bytes:
        return "0 Bytes"

    index = 0
    value = float(size_bytes)
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    rendered = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{rendered} {_SIZE_UNITS[index]}"


def format_local_date(moment: Optional[datetime] = None) -> str:
    """Render a date as ``M/D/YYYY``."""
    moment = moment or datetime.now()
    return f"{moment.month}/{moment.day}/{moment.year}"


def file_type_for(filename: str) -> str:
    """Classify a file as ``pdf`` or ``image`` by its extension."""
    return "pdf" if "pdf" in Path(filename).suffix.lower() else "image"


def derive_display_title(filename: str) -> str:
    """
    Build a fallback title from a stored filename.

    ``cell_biology_1712345678901.pdf`` becomes ``Cell Biology``.
    """
    title = _EXTENSION.sub("", filename)
    title = _TIMESTAMP_SUFFIX.sub("", title)
    title = title.replace("_", " ")
    return _WORD_START.sub(lambda match: match.group(0).upper(), title)


def generate_stored_filename(
    original_filename: str, timestamp_ms: Optional[int] = None
) -> str:
    """
    Generate the filesystem-safe name a file is stored under.

    Every character of the stem outside ``[A-Za-z0-9_-]`` becomes ``_``,
    then ``_<epoch millis>`` and the original extension are appended.
    """
    path = Path(original_filename)
    extension = path.suffix
    stem = original_filename[: -len(extension)] if extension else original_filename
    if timestamp_ms is None:
        timestamp_ms = int(datetime.now().timestamp() * 1000)
    clean_name = _UNSAFE_NAME_CHARS.sub("_", stem)
    return f"{clean_name}_{timestamp_ms}{extension}"


def media_type_for(filename: str) -> str:
    """Content type a stored file is served with."""
    extension = Path(filename).suffix.lower().lstrip(".")
    if extension == "pdf":
        return "application/pdf"
    if extension in {"jpg", "jpeg"}:
        return "image/jpeg"
    if extension in {"png", "gif", "webp"}:
        return f"image/{extension}"
    return "application/octet-stream"

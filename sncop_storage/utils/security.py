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
Security utilities for the SNCOP file storage service.

Subject, unit and file names arrive as free user text and end up as
path components under the storage root, so every one of them is checked
here before it is joined onto a path.
"""

import re
from pathlib import Path
from typing import Iterable, Optional


class InputValidator:
    """Validates user-supplied names before they touch the filesystem."""

    MAX_SEGMENT_LENGTH = 255

    @staticmethod
    def validate_path_segment(segment: str) -> tuple[bool, Optional[str]]:
        """
        Validate a single path component (subject, unit or filename).

        Args:
            segment: Name to validate

        Returns:
            Tuple of (is_safe, error_message)
        """
        if not isinstance(segment, str):
            return False, "Name must be a string"

        if not segment.strip():
            return False, "Name must not be empty"

        if "/" in segment or "\\" in segment or "\x00" in segment:
            return False, "Name contains invalid path characters"

        if segment.strip() in {".", ".."}:
            return False, "Name contains invalid path characters"

        if len(segment) > InputValidator.MAX_SEGMENT_LENGTH:
            return False, "Name too long"

        return True, None

    @staticmethod
    def validate_upload(
        filename: str,
        content_type: Optional[str],
        allowed_extensions: Iterable[str],
    ) -> tuple[bool, Optional[str]]:
        """
        Check that both the extension and the MIME type are allow-listed.

        Args:
            filename: Original client filename
            content_type: MIME type announced by the client
            allowed_extensions: Bare extensions, e.g. ``{"pdf", "png"}``

        Returns:
            Tuple of (is_allowed, error_message)
        """
        pattern = re.compile("|".join(sorted(allowed_extensions)))
        extension = Path(filename or "").suffix.lower()
        if not extension or not pattern.search(extension):
            return False, f"File extension not allowed ({extension or 'none'})"
        if not content_type or not pattern.search(content_type.lower()):
            return False, f"File type not allowed ({content_type or 'unknown'})"
        return True, None

    @staticmethod
    def sanitize_error_message(error_msg: str, user_facing: bool = True) -> str:
        """
        Sanitize error messages to prevent information disclosure.

        Args:
            error_msg: Original error message
            user_facing: Whether this message will be shown to users

        Returns:
            Sanitized error message
        """
        if not user_facing:
            return error_msg  # Keep full details for logs

        sensitive_patterns = [
            r"/[^/\s]+/[^/\s]+/[^/\s]+/",  # File paths
            r"[A-Za-z]:\\[^\\]+\\[^\\]+\\",  # Windows paths
            r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",  # Email addresses
        ]

        sanitized = error_msg
        for pattern in sensitive_patterns:
            sanitized = re.sub(pattern, "[REDACTED]/", sanitized, flags=re.IGNORECASE)

        if "permission" in sanitized.lower():
            return "Access denied. Please check file permissions."
        if "no space" in sanitized.lower():
            return "Storage is full."

        return sanitized


# Global instances
_input_validator = None


def get_input_validator() -> InputValidator:
    """Get the global input validator instance."""
    global _input_validator
    if _input_validator is None:
        _input_validator = InputValidator()
    return _input_validator

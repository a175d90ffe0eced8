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
Tests for logging configuration.

This module tests:
- Request IDs attached to every record
- Masking of credentials in messages
- Handler setup for development and production
"""

import json
import logging

import pytest

from sncop_storage.utils.config import Settings
from sncop_storage.utils.logging import (
    RequestContextFilter,
    SecurityFilter,
    get_request_id,
    reset_request_id,
    set_request_id,
    setup_logging,
)


def make_record(message: str) -> logging.LogRecord:
    return logging.LogRecord("sncop_storage.test", logging.INFO, __file__, 1, message, None, None)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestRequestContextFilter:
    """Test request ID propagation into records."""

    def test_outside_a_request(self):
        record = make_record("sweeping temp")
        RequestContextFilter().filter(record)
        assert record.request_id == "-"

    def test_inside_a_request(self):
        token = set_request_id("req-7")
        try:
            record = make_record("upload received")
            RequestContextFilter().filter(record)
            assert record.request_id == "req-7"
        finally:
            reset_request_id(token)
        assert get_request_id() == ""


class TestSecurityFilter:
    """Test masking of credentials."""

    @pytest.mark.parametrize(
        "message, secret",
        [
            ("apikey=sk-live-123 sent", "sk-live-123"),
            ("Authorization: Bearer eyJhbGciOi", "eyJhbGciOi"),
            ("headers {'token': 'abc123'}", "abc123"),
            ("retrying with Bearer xyz789", "xyz789"),
        ],
    )
    def test_secrets_are_masked(self, message, secret):
        record = make_record(message)
        SecurityFilter().filter(record)
        assert secret not in record.msg
        assert "***MASKED***" in record.msg

    def test_plain_words_untouched(self):
        record = make_record("token expired for user 42")
        SecurityFilter().filter(record)
        assert record.msg == "token expired for user 42"


class TestSetupLogging:
    """Test handler configuration."""

    def test_production_file_log_is_json_with_request_id(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "storage.log"
        setup_logging(Settings(_env_file=None, environment="production"), log_file=log_file)

        token = set_request_id("req-99")
        try:
            logging.getLogger("sncop_storage.test").info("password=hunter2 rejected")
        finally:
            reset_request_id(token)
        for handler in restore_root_logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert entry["request_id"] == "req-99"
        assert "hunter2" not in entry["message"]

    def test_development_console_is_debug(self, restore_root_logger):
        setup_logging(Settings(_env_file=None, environment="development"))

        assert logging.getLogger("sncop_storage").level == logging.DEBUG
        assert restore_root_logger.handlers[0].level == logging.DEBUG

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
Logging configuration for the SNCOP file storage service.

Every record carries the ID of the HTTP request it was emitted for
(``-`` outside a request, e.g. from the temp sweeper thread). Production
logs are JSON lines; development logs are plain text. Service keys and
bearer tokens are masked before any handler writes them.
"""

from contextvars import ContextVar, Token
import logging
from pathlib import Path
import re
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from sncop_storage.utils.config import Settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(request_id)s %(message)s"
_JSON_FILE_FORMAT = (
    "%(asctime)s %(name)s %(levelname)s %(request_id)s %(funcName)s %(lineno)d %(message)s"
)


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str) -> Token:
    """Bind a request ID to the current context; returns the token to reset it."""
    return request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_var.reset(token)


class RequestContextFilter(logging.Filter):
    """Attach the current request ID to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class SecurityFilter(logging.Filter):
    """Mask credentials that end up in log messages."""

    _KEY_VALUE = re.compile(
        r"(?i)\b(service_role_key|apikey|authorization|password|token|secret)"
        r"(['\"]?\s*[:=]\s*['\"]?)(bearer\s+)?[^\s,;'\"}]+"
    )
    _BEARER = re.compile(r"(?i)\bbearer\s+[^\s,;'\"}]+")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            masked = self._KEY_VALUE.sub(r"\1\2***MASKED***", record.msg)
            record.msg = self._BEARER.sub("Bearer ***MASKED***", masked)
        return True


def _configure_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    handler.addFilter(SecurityFilter())
    return handler


def setup_logging(settings: Settings, log_file: Optional[Path] = None) -> None:
    """
    Setup logging configuration.

    Args:
        settings: Application settings
        log_file: Optional log file path (defaults to ``settings.log_file``)
    """
    log_file = log_file or settings.log_file
    development = settings.environment == "development"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))
    root_logger.handlers.clear()

    if development:
        console_format = logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    else:
        console_format = jsonlogger.JsonFormatter(_JSON_FORMAT)
    console_handler = _configure_handler(logging.StreamHandler(sys.stdout), console_format)
    console_handler.setLevel(logging.DEBUG if development else getattr(logging, settings.log_level))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = _configure_handler(
            logging.FileHandler(log_file), jsonlogger.JsonFormatter(_JSON_FILE_FORMAT)
        )
        file_handler.setLevel(logging.INFO)
        root_logger.addHandler(file_handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)

    if development:
        logging.getLogger("sncop_storage").setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)

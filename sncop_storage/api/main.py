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

import asyncio
import time
from typing import Optional
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sncop_storage import __version__
from sncop_storage.api.endpoints import files, health, profile_pictures, subjects
from sncop_storage.core.errors import StorageError
from sncop_storage.core.storage_service import get_storage_service
from sncop_storage.core.temp_sweeper import TempSweeper
from sncop_storage.utils.config import ensure_directories, get_settings
from sncop_storage.utils.logging import (
    get_logger,
    reset_request_id,
    set_request_id,
    setup_logging,
)
from sncop_storage.utils.security import get_input_validator

logger = get_logger(__name__)

# Configuration
settings = get_settings()
setup_logging(settings)

app = FastAPI(
    title="SNCOP File Storage API",
    description="Storage of notes, practice tests, practicals and assignments by subject and unit",
    version=__version__,
)

# CORS middleware (env-driven)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "X-Requested-With",
        "X-Request-ID",
        "X-Subject",
        "X-Type",
        "X-Unit",
    ],
)


def _error_body(message: str, error: Optional[str] = None) -> dict:
    return {"success": False, "message": message, "error": error or message}


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    return response


# Request context: ID, body-size check, timeout, access log
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    current = get_settings()

    # Assign or propagate request ID; every log line of this request carries it
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = set_request_id(request_id)
    try:
        # Basic body size guard based on Content-Length
        max_bytes = current.max_upload_size_mb * 1024 * 1024
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_bytes:
            logger.info(f"Rejected {request.method} {request.url.path}: body of {content_length} bytes")
            return JSONResponse(
                status_code=413,
                content=_error_body(
                    "Request entity too large",
                    f"File too large. Maximum size is {current.max_upload_size_mb}MB",
                ),
                headers={"X-Request-ID": request_id},
            )

        timeout = current.request_timeout_seconds
        # Handlers running in the threadpool outlive wait_for; the upload pipeline checks this
        request.state.deadline = time.monotonic() + timeout if timeout > 0 else None
        try:
            if timeout > 0:
                response = await asyncio.wait_for(call_next(request), timeout=timeout)
            else:
                response = await call_next(request)
        except asyncio.TimeoutError:
            logger.warning(f"{request.method} {request.url.path} timed out after {timeout:g}s")
            return JSONResponse(
                status_code=408,
                content=_error_body("Request timeout", f"Request exceeded {timeout:g} seconds"),
                headers={"X-Request-ID": request_id},
            )

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s"
        )
        return response
    finally:
        reset_request_id(token)


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    if exc.status_code >= 500:
        logger.error(f"Storage failure on {request.url.path}: {exc.detail}")
        message = exc.message
    else:
        logger.info(f"Rejected {request.method} {request.url.path}: {exc.detail}")
        message = exc.detail
    error = get_input_validator().sanitize_error_message(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_body(message, error))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "API route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in errors
    )
    return JSONResponse(status_code=400, content=_error_body("Invalid request", detail))


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500, content=_error_body("Internal server error")
    )


# Include routers
app.include_router(health.router)
app.include_router(subjects.router)
app.include_router(files.router)
app.include_router(profile_pictures.router)

_temp_sweeper: Optional[TempSweeper] = None


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    global _temp_sweeper
    logger.info("SNCOP file storage starting...")

    current = get_settings()
    ensure_directories(current)

    # Reconciles the catalog before the first request
    service = get_storage_service()
    service.sweep_temp()

    _temp_sweeper = TempSweeper(service.sweep_temp, current.temp_sweep_interval_minutes)
    _temp_sweeper.start()

    logger.info(f"Storage directory: {current.storage_dir.resolve()}")
    logger.info(f"API available at: http://{current.host}:{current.port}")


@app.on_event("shutdown")
async def shutdown_event():
    if _temp_sweeper is not None:
        _temp_sweeper.stop()
    logger.info("SNCOP file storage stopped")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)

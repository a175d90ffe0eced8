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

from datetime import datetime

from fastapi import APIRouter

from sncop_storage.api.models import HealthResponse
from sncop_storage.utils.config import get_settings
from sncop_storage.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Simple health check endpoint."""
    logger.debug("Health check requested")

    return HealthResponse(
        message="Server is running",
        storage=str(get_settings().storage_dir.resolve()),
        timestamp=datetime.now(),
    )

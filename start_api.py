#!/usr/bin/env python3
"""
FastAPI Backend Startup Script
Starts the SNCOP file storage API with settings from the environment
"""

from pathlib import Path

from sncop_storage.utils.config import get_settings

project_dir = Path(__file__).parent

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    # Start the server using import string for proper reload support
    uvicorn.run(
        "sncop_storage.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        reload_dirs=[str(project_dir / "sncop_storage")],
        log_level=settings.log_level.lower(),
    )

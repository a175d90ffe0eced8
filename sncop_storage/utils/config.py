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
Configuration management for the SNCOP file storage service.

This module handles all configuration settings including:
- Environment variables
- Storage locations (storage root, catalog files, profile pictures)
- Upload and request limits
- External user directory credentials
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation."""

    # Environment
    environment: str = Field(default="production")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)

    # Storage layout
    storage_dir: Path = Field(default=Path("./storage"))
    metadata_file: Path = Field(default=Path("./file-metadata.json"))
    backup_file_name: str = Field(default="sncop-backup.json")
    temp_dir_name: str = Field(default="temp")
    profile_pictures_dir: Path = Field(default=Path("./profile-pictures"))

    # Limits
    max_upload_size_mb: int = Field(default=500)
    max_profile_picture_size_mb: int = Field(default=5)
    request_timeout_seconds: float = Field(
        default=600.0
    )  # 0 disables the timeout
    temp_file_max_age_minutes: int = Field(default=60)
    temp_sweep_interval_minutes: int = Field(default=30)

    # CORS
    cors_allowed_origins: List[str] = Field(default=["*"])

    # External user directory (profile avatar updates)
    supabase_service_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    @field_validator(
        "storage_dir", "metadata_file", "profile_pictures_dir", mode="before"
    )
    @classmethod
    def convert_to_path(cls, v):
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @property
    def backup_file(self) -> Path:
        """Full path of the backup document, nested under the storage root."""
        return self.storage_dir / self.backup_file_name

    @property
    def temp_dir(self) -> Path:
        """Scratch directory for uploads whose destination is not yet known."""
        return self.storage_dir / self.temp_dir_name

    @property
    def reserved_subject_names(self) -> frozenset:
        """Top-level names that are never treated as subjects."""
        return frozenset({self.temp_dir_name.lower(), "profile-pictures"})

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


def ensure_directories(settings: Settings) -> None:
    """Ensure all required directories exist."""
    directories = [
        settings.storage_dir,
        settings.temp_dir,
        settings.profile_pictures_dir,
        settings.metadata_file.parent,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


# Note: Settings are instantiated on-demand via get_settings()
# to avoid import-time configuration errors

"""
SNCOP File Storage - Core Module

This module contains the storage core:
- Path resolution with alternate-spelling fallback
- Catalog store (Metadata Map and Backup Document)
- Startup reconciliation
- Upload pipeline and temp cleanup
- Profile pictures
"""

from sncop_storage.core.catalog import CatalogStore
from sncop_storage.core.errors import (
    FileNotFoundInStorageError,
    InvalidContentTypeError,
    InvalidPathSegmentError,
    MissingUnitError,
    StorageError,
    StorageIOError,
    UploadTimeoutError,
    UploadValidationError,
)
from sncop_storage.core.models import BackupDocument, ContentKind, StoredFile, Subject
from sncop_storage.core.paths import PathResolver
from sncop_storage.core.reconciler import ReconciliationReport, Reconciler
from sncop_storage.core.storage_service import (
    StorageService,
    get_storage_service,
    reset_storage_service,
)
from sncop_storage.core.upload_pipeline import (
    UploadPipeline,
    UploadRequest,
    UploadResult,
    UploadState,
)

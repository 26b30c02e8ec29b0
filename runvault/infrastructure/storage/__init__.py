"""Storage abstraction layer for object operations.

Supports multiple backends: local filesystem, S3, R2, MinIO.
"""
from .base import (
    StorageInterface,
    StorageError,
    UploadError,
    DeleteError,
    StorageConfig,
)
from .local_storage import LocalStorage
from .factory import get_storage, get_storage_from_config, get_storage_config, set_storage, reset_storage

__all__ = [
    "StorageInterface",
    "StorageError",
    "UploadError",
    "DeleteError",
    "StorageConfig",
    "LocalStorage",
    "get_storage",
    "get_storage_from_config",
    "get_storage_config",
    "set_storage",
    "reset_storage",
]

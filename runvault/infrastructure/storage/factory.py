"""Storage backend selection.

The backend is chosen once per process from the environment and shared by
every service; tests swap it with set_storage.

Environment variables:
- STORAGE_BACKEND: 'local' (default), 's3', 'minio' or 'r2'
- STORAGE_BASE_PATH: directory for the local backend (default: <project>/storage)
- S3_BUCKET (required for S3-compatible backends), S3_ENDPOINT, S3_ACCESS_KEY,
  S3_SECRET_KEY, S3_REGION ('auto' by default for R2), S3_USE_SSL,
  S3_PUBLIC_URL (read URLs are unsigned when set)
"""
import os
from pathlib import Path
from typing import Optional

from ...config import STORAGE_DIR
from .base import StorageConfig, StorageInterface
from .local_storage import LocalStorage

S3_BACKENDS = ("s3", "minio", "r2")

_storage_instance: Optional[StorageInterface] = None


def get_storage_config() -> StorageConfig:
    """Build a StorageConfig from the environment."""
    backend = os.environ.get("STORAGE_BACKEND", "local").lower()

    if backend == "local":
        base_path = os.environ.get("STORAGE_BASE_PATH")
        return StorageConfig(backend=backend, base_path=Path(base_path or STORAGE_DIR))

    if backend not in S3_BACKENDS:
        raise ValueError(f"Unknown storage backend: {backend}")

    bucket = os.environ.get("S3_BUCKET")
    if not bucket:
        raise ValueError(f"S3_BUCKET is required for the {backend} backend")

    return StorageConfig(
        backend=backend,
        bucket_name=bucket,
        endpoint_url=os.environ.get("S3_ENDPOINT"),
        access_key=os.environ.get("S3_ACCESS_KEY"),
        secret_key=os.environ.get("S3_SECRET_KEY"),
        region=os.environ.get("S3_REGION", "auto" if backend == "r2" else "us-east-1"),
        use_ssl=os.environ.get("S3_USE_SSL", "true").lower() == "true",
        public_url=os.environ.get("S3_PUBLIC_URL") or None,
    )


def get_storage_from_config(config: StorageConfig) -> StorageInterface:
    """Instantiate the backend named by config.backend."""
    if config.backend == "local":
        return LocalStorage(config)

    if config.backend in S3_BACKENDS:
        # boto3 is only imported when an S3-compatible backend is configured
        from .s3_storage import S3Storage
        return S3Storage(config)

    raise ValueError(f"Unknown storage backend: {config.backend}")


def get_storage() -> StorageInterface:
    """Process-wide storage backend, created on first use."""
    global _storage_instance

    if _storage_instance is None:
        _storage_instance = get_storage_from_config(get_storage_config())
    return _storage_instance


def set_storage(storage: Optional[StorageInterface]):
    """Replace the process-wide backend (None resets it)."""
    global _storage_instance
    _storage_instance = storage


def reset_storage():
    set_storage(None)

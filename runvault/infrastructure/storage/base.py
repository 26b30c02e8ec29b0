"""Abstract storage interface."""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class UploadError(StorageError):
    """Failed to upload file."""
    pass


class DeleteError(StorageError):
    """Failed to delete file."""
    pass


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # 'local', 's3', 'minio', 'r2'

    # Local storage settings
    base_path: Optional[Path] = None

    # S3/MinIO/R2 settings
    endpoint_url: Optional[str] = None
    bucket_name: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    use_ssl: bool = True

    # Public base URL for direct (unsigned) reads, e.g. an R2 public bucket
    public_url: Optional[str] = None

    def __post_init__(self):
        if self.backend == "local" and self.base_path is None:
            from ...config import STORAGE_DIR
            self.base_path = Path(STORAGE_DIR)


class StorageInterface(ABC):
    """Abstract interface for object storage operations.

    Objects are addressed by their full storage path (e.g. ``events/pending/<uuid>.jpg``).
    Clients move the bytes themselves through put_url and get_url; the vault
    only deletes objects and checks their existence.

    Implementations:
    - LocalStorage: Filesystem storage
    - S3Storage: AWS S3 / Cloudflare R2 / MinIO
    """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete an object.

        Deleting a missing key is not an error.

        Returns:
            True if deleted, False if didn't exist

        Raises:
            DeleteError: If deletion fails for other reasons
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if an object exists."""
        pass

    @abstractmethod
    def get_url(self, key: str, expires: Optional[int] = None) -> str:
        """Get a read URL for the object.

        Args:
            key: Storage path
            expires: URL lifetime in seconds (signed URLs only)

        Returns:
            Direct public URL or time-limited signed URL
        """
        pass

    @abstractmethod
    def put_url(self, key: str, content_type: str, expires: Optional[int] = None) -> str:
        """Get a write URL the client can PUT the object's bytes to.

        Args:
            key: Storage path
            content_type: MIME type the client will send
            expires: URL lifetime in seconds

        Returns:
            Upload URL
        """
        pass

    async def delete_batch(
        self,
        keys: list[str],
        concurrency: int = 8
    ) -> list[tuple[str, StorageError]]:
        """Delete many objects with at most ``concurrency`` deletes in flight.

        Individual failures do not stop the batch.

        Args:
            keys: Storage paths
            concurrency: Maximum concurrent deletes

        Returns:
            (key, error) for every delete that failed
        """
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def _delete_one(key: str) -> tuple[str, StorageError] | None:
            async with semaphore:
                try:
                    await self.delete(key)
                except StorageError as e:
                    return key, e
            return None

        results = await asyncio.gather(*(_delete_one(key) for key in keys))
        return [result for result in results if result is not None]

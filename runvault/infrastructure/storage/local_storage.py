"""Local filesystem storage implementation."""
from pathlib import Path
from typing import BinaryIO, Optional, Union

import aiofiles

from ...config import ROOT_PATH
from .base import (
    StorageInterface,
    StorageConfig,
    StorageError,
    UploadError,
    DeleteError
)


class LocalStorage(StorageInterface):
    """Local filesystem storage backend.

    Stores each object at ``base_path/<storage path>``:
        base_path/
            events/
                pending/
                    <uuid>.jpg

    Upload and read URLs point at the ``/storage`` routes of this application.
    """

    def __init__(self, config: StorageConfig):
        """Initialize local storage.

        Args:
            config: Storage configuration with base_path
        """
        if config.backend != "local":
            raise ValueError(f"LocalStorage requires backend='local', got '{config.backend}'")

        self.config = config
        self.base_path = Path(config.base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Get full filesystem path for an object."""
        path = (self.base_path / key.lstrip("/")).resolve()
        # Prevent directory traversal out of base_path
        if not path.is_relative_to(self.base_path.resolve()):
            raise StorageError(f"Invalid storage path: {key}")
        return path

    async def upload(
        self,
        key: str,
        content: Union[bytes, BinaryIO],
        content_type: Optional[str] = None
    ) -> str:
        """Write an object; backs the PUT target returned by put_url."""
        file_path = self._get_path(key)

        # Create parent directory if needed
        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiofiles.open(file_path, 'wb') as f:
                if isinstance(content, bytes):
                    await f.write(content)
                else:
                    while True:
                        chunk = content.read(8192)  # 8KB chunks
                        if not chunk:
                            break
                        await f.write(chunk)
            return key

        except (IOError, OSError) as e:
            raise UploadError(f"Failed to upload {key}: {e}")

    async def delete(self, key: str) -> bool:
        """Delete file from local filesystem."""
        file_path = self._get_path(key)

        if not file_path.exists():
            return False

        try:
            file_path.unlink()
            return True
        except (IOError, OSError) as e:
            raise DeleteError(f"Failed to delete {key}: {e}")

    def exists(self, key: str) -> bool:
        """Check if file exists."""
        return self._get_path(key).is_file()

    def get_url(self, key: str, expires: Optional[int] = None) -> str:
        """Get URL for file.

        For local storage, returns the path of the object route.
        """
        return f"{ROOT_PATH}/storage/{key.lstrip('/')}"

    def put_url(self, key: str, content_type: str, expires: Optional[int] = None) -> str:
        """Get URL for uploading file bytes with PUT."""
        return f"{ROOT_PATH}/storage/{key.lstrip('/')}"

    def get_path(self, key: str) -> Path:
        """Get full filesystem path."""
        return self._get_path(key)

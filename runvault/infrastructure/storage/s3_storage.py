"""S3-compatible storage implementation (AWS S3, Cloudflare R2, MinIO)."""
import asyncio
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ...config import DOWNLOAD_URL_EXPIRES, UPLOAD_URL_EXPIRES
from .base import (
    StorageInterface,
    StorageConfig,
    StorageError,
    DeleteError
)


def _error_code(e: Exception) -> str:
    if isinstance(e, ClientError):
        return e.response.get('Error', {}).get('Code', 'Unknown')
    return 'Unknown'


class S3Storage(StorageInterface):
    """S3-compatible storage backend.

    Supports:
    - AWS S3
    - Cloudflare R2
    - MinIO
    - Any S3-compatible API
    """

    def __init__(self, config: StorageConfig):
        """Initialize S3 storage.

        Args:
            config: Storage configuration with S3 settings
        """
        if config.backend not in ("s3", "minio", "r2"):
            raise ValueError(
                f"S3Storage requires backend='s3', 'minio' or 'r2', got '{config.backend}'"
            )

        self.config = config
        self.bucket = config.bucket_name

        # Build boto3 client kwargs
        client_kwargs = {
            "service_name": "s3",
            "aws_access_key_id": config.access_key,
            "aws_secret_access_key": config.secret_key,
            "region_name": config.region,
        }

        # Custom endpoint for R2/MinIO
        if config.endpoint_url:
            client_kwargs["endpoint_url"] = config.endpoint_url
            client_kwargs["use_ssl"] = config.use_ssl

        self.client = boto3.client(**client_kwargs)

    def _get_key(self, key: str) -> str:
        """Get S3 object key."""
        return key.lstrip("/")

    async def delete(self, key: str) -> bool:
        """Delete file from S3.

        The blocking client call runs in a worker thread so batches overlap.
        """
        try:
            await asyncio.to_thread(
                self.client.delete_object, Bucket=self.bucket, Key=self._get_key(key)
            )
            return True
        except (ClientError, BotoCoreError) as e:
            if _error_code(e) == 'NoSuchKey':
                return False
            raise DeleteError(f"Failed to delete {key}: {e}")

    def exists(self, key: str) -> bool:
        """Check if file exists in S3."""
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._get_key(key))
            return True
        except ClientError as e:
            if _error_code(e) in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise StorageError(f"Failed to check existence of {key}: {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to check existence of {key}: {e}")

    def get_url(self, key: str, expires: Optional[int] = None) -> str:
        """Get public URL when configured, otherwise a presigned GET URL."""
        object_key = self._get_key(key)

        if self.config.public_url:
            return f"{self.config.public_url.rstrip('/')}/{object_key}"

        try:
            return self.client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': object_key},
                ExpiresIn=expires or DOWNLOAD_URL_EXPIRES
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to generate URL for {key}: {e}")

    def put_url(self, key: str, content_type: str, expires: Optional[int] = None) -> str:
        """Get presigned PUT URL bound to the content type."""
        try:
            return self.client.generate_presigned_url(
                'put_object',
                Params={
                    'Bucket': self.bucket,
                    'Key': self._get_key(key),
                    'ContentType': content_type,
                },
                ExpiresIn=expires or UPLOAD_URL_EXPIRES
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to generate upload URL for {key}: {e}")

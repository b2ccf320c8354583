"""
Blob Store Client
Writes images to an S3-compatible bucket (Cloudflare R2) and hands back public URLs
"""

import asyncio
import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from services.errors import BlobStoreError, ConfigurationError
from utils.settings import Settings

logger = logging.getLogger(__name__)


class BlobStoreClient:
    """Put-only client for the public image bucket"""

    def __init__(self, s3_client: Any, bucket_name: str, public_url: str):
        self.s3_client = s3_client
        self.bucket_name = bucket_name
        self.public_url = public_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "BlobStoreClient":
        if not settings.bucket_name or not settings.public_url:
            raise ConfigurationError("CLOUDFLARE_BUCKET_NAME and CLOUDFLARE_PUBLIC_URL must be set")

        s3_client = boto3.client(
            "s3",
            region_name=settings.storage_region,
            endpoint_url=settings.storage_endpoint,
            aws_access_key_id=settings.access_key_id,
            aws_secret_access_key=settings.secret_access_key,
            config=Config(
                connect_timeout=settings.http_timeout,
                read_timeout=settings.http_timeout,
            ),
        )
        logger.info(f"✓ Initialized object store client for bucket: {settings.bucket_name}")
        return cls(s3_client, settings.bucket_name, settings.public_url)

    def url_for(self, key: str) -> str:
        """Public URL of a stored object; no existence check"""
        return f"{self.public_url}/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under key and return the public URL

        Args:
            key: Storage key, unique within the bucket (caller's responsibility)
            data: Raw object content
            content_type: MIME type stored alongside the object

        Returns:
            Public URL of the stored object

        Raises:
            BlobStoreError: If the store rejects the write or cannot be reached
        """
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to save {key} to object store: {e}")
            raise BlobStoreError(f"Failed to save {key}") from e

        url = self.url_for(key)
        logger.info(f"📤 Stored {len(data)} bytes at {url}")
        return url

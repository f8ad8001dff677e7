"""
Object Storage - S3-compatible artifact storage.

Finished renders (assembled videos, muxed clips) are uploaded here and only
their public URL is handed back. Works with MinIO, AWS S3, Cloudflare R2 and
any other S3-compatible endpoint; switching providers is an env change.

Environment Variables:
    STORAGE_ENDPOINT: S3/MinIO endpoint (e.g., http://minio:9000)
    STORAGE_ACCESS_KEY: Access key ID
    STORAGE_SECRET_KEY: Secret access key
    STORAGE_REGION: Region (default: us-east-1)
    STORAGE_USE_SSL: Use SSL/TLS (default: auto-detect from endpoint)
    STORAGE_PUBLIC_URL: Public URL prefix for stored objects
    STORAGE_BUCKET: Bucket for user assets (default: user-assets)

Usage:
    from scriptoplay.shared.object_storage import get_storage_client

    url = await get_storage_client().upload_artifact(
        key="projects/p1/final_render_1700000000.mp4",
        data=video_bytes,
        content_type="video/mp4",
    )
"""

import asyncio
import io
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class StorageConfig:
    """Configuration for object storage."""
    endpoint: str
    access_key: str
    secret_key: str
    region: str
    use_ssl: bool
    public_url: str
    assets_bucket: str = "user-assets"


def load_storage_config() -> StorageConfig:
    """Load storage configuration from environment variables."""
    endpoint = os.getenv("STORAGE_ENDPOINT", "http://minio:9000")

    # Auto-detect SSL based on endpoint
    use_ssl_default = "true" if endpoint.startswith("https://") else "false"
    use_ssl = os.getenv("STORAGE_USE_SSL", use_ssl_default).lower() == "true"

    public_url = os.getenv("STORAGE_PUBLIC_URL", "").strip()
    if not public_url:
        public_url = endpoint
        logger.warning(f"[STORAGE] STORAGE_PUBLIC_URL not set, using endpoint: {public_url}")

    config = StorageConfig(
        endpoint=endpoint,
        access_key=os.getenv("STORAGE_ACCESS_KEY", ""),
        secret_key=os.getenv("STORAGE_SECRET_KEY", ""),
        region=os.getenv("STORAGE_REGION", "us-east-1"),
        use_ssl=use_ssl,
        public_url=public_url.rstrip("/"),
        assets_bucket=os.getenv("STORAGE_BUCKET", "user-assets"),
    )

    logger.info(f"[STORAGE] Endpoint: {config.endpoint}, bucket: {config.assets_bucket}")
    return config


# =============================================================================
# STORAGE CLIENT
# =============================================================================

class ObjectStorageClient:
    """S3-compatible object storage client."""

    def __init__(self, config: Optional[StorageConfig] = None):
        self.config = config or load_storage_config()
        self._client = None

    def _get_client(self):
        """Get or create the S3 client (lazy initialization)."""
        if self._client is None:
            s3_config = Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},  # Required for MinIO
                retries={"max_attempts": 3, "mode": "standard"},
            )

            self._client = boto3.client(
                "s3",
                endpoint_url=self.config.endpoint,
                aws_access_key_id=self.config.access_key,
                aws_secret_access_key=self.config.secret_key,
                region_name=self.config.region,
                use_ssl=self.config.use_ssl,
                config=s3_config,
            )

        return self._client

    def get_public_url(self, bucket: str, key: str) -> str:
        """Public URL for an object."""
        key = key.lstrip("/")
        return f"{self.config.public_url}/{bucket}/{key}"

    # =========================================================================
    # UPLOAD OPERATIONS
    # =========================================================================

    async def upload_bytes(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload bytes to object storage.

        Returns:
            Public URL of the uploaded object
        """
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            self._upload_bytes_sync,
            bucket,
            key,
            data,
            content_type,
        )

        url = self.get_public_url(bucket, key)
        logger.info(f"[STORAGE] Uploaded {len(data)} bytes -> {url}")
        return url

    def _upload_bytes_sync(self, bucket: str, key: str, data: bytes, content_type: str):
        self._get_client().upload_fileobj(
            io.BytesIO(data),
            bucket,
            key,
            ExtraArgs={"ContentType": content_type},
        )

    async def upload_artifact(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Upload a finished artifact to the assets bucket."""
        return await self.upload_bytes(
            bucket=self.config.assets_bucket,
            key=key,
            data=data,
            content_type=content_type or guess_content_type(key),
        )


def guess_content_type(path: str) -> str:
    """Content type from file extension."""
    content_types = {
        ".mp4": "video/mp4",
        ".mov": "video/quicktime",
        ".webm": "video/webm",
        ".mp3": "audio/mpeg",
        ".wav": "audio/wav",
        ".m4a": "audio/mp4",
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
    }
    return content_types.get(Path(path).suffix.lower(), "application/octet-stream")


@lru_cache()
def get_storage_client() -> ObjectStorageClient:
    """Get the process-wide storage client."""
    return ObjectStorageClient()

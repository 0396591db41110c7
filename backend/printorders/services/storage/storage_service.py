"""Object storage for uploaded designs and their preview thumbnails.

``S3FileStore`` is the ``FileStore`` used outside tests. It talks to any
S3-compatible endpoint: MinIO locally, R2 or AWS S3 in production.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import aioboto3
import structlog
from botocore.config import Config
from botocore.exceptions import ClientError

from printorders.config import Settings, settings

logger = structlog.get_logger(__name__)


class S3FileStore:
    """S3-compatible object storage (MinIO/R2/AWS S3) implementing FileStore."""

    def __init__(self, config: Settings | None = None) -> None:
        """Initialize S3 storage using settings."""
        config = config or settings
        self.endpoint_url = config.s3_endpoint
        self.access_key_id = config.s3_access_key_id
        self.secret_access_key = config.s3_secret_access_key
        self.bucket = config.s3_bucket
        self.region = config.s3_region
        self.force_path_style = config.s3_force_path_style
        self.public_base_url = config.s3_public_url
        self._session = aioboto3.Session()

    @asynccontextmanager
    async def _get_client(self) -> AsyncIterator[Any]:
        config = Config(s3={"addressing_style": "path"}) if self.force_path_style else None
        async with self._session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            region_name=self.region,
            config=config,
        ) as client:
            yield client

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        """Upload bytes under the given key."""
        async with self._get_client() as client:
            await client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        logger.info("Uploaded file to S3", key=path, size=len(data), content_type=content_type)

    async def get(self, path: str) -> bytes:
        """Download the object stored under the given key."""
        async with self._get_client() as client:
            response = await client.get_object(Bucket=self.bucket, Key=path)
            data: bytes = await response["Body"].read()

        logger.debug("Downloaded file from S3", key=path, size=len(data))
        return data

    async def delete(self, path: str) -> None:
        """Delete object from S3 (S3 treats a missing key as success)."""
        async with self._get_client() as client:
            await client.delete_object(Bucket=self.bucket, Key=path)
        logger.info("Deleted file from S3", key=path)

    async def exists(self, path: str) -> bool:
        async with self._get_client() as client:
            try:
                await client.head_object(Bucket=self.bucket, Key=path)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                    return False
                raise
        return True

    def public_url(self, path: str) -> str:
        """URL stored in ``file_url`` and sent to customers; built from S3_PUBLIC_URL."""
        return f"{self.public_base_url.rstrip('/')}/{path}"

    async def ensure_bucket_exists(self) -> None:
        """Ensure the S3 bucket exists, creating it if necessary."""
        async with self._get_client() as client:
            try:
                await client.head_bucket(Bucket=self.bucket)
                logger.info("S3 bucket exists", bucket=self.bucket)
                return
            except ClientError:
                pass

            try:
                await client.create_bucket(Bucket=self.bucket)
                logger.info("Created S3 bucket", bucket=self.bucket)

                # Uploaded designs are linked from order emails and the admin UI
                policy = {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Principal": "*",
                            "Action": ["s3:GetObject"],
                            "Resource": [f"arn:aws:s3:::{self.bucket}/*"],
                        }
                    ],
                }
                await client.put_bucket_policy(Bucket=self.bucket, Policy=json.dumps(policy))
                logger.info("Set bucket policy for public read", bucket=self.bucket)
            except ClientError as e:
                logger.error("Failed to create S3 bucket", bucket=self.bucket, error=str(e))
                raise

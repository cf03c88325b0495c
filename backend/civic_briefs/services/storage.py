# backend/civic_briefs/services/storage.py
from __future__ import annotations

import logging
from typing import Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import get_settings
from ..pipeline.errors import PipelineError

logger = logging.getLogger(__name__)


class AudioStorage:
    """Uploads finished brief audio to S3-compatible object storage."""

    def __init__(self, s3_client=None, bucket: str | None = None, public_url: str | None = None) -> None:
        settings = get_settings()
        self.bucket = bucket or settings.STORAGE_BUCKET
        self.public_url = (public_url if public_url is not None else settings.STORAGE_PUBLIC_URL).rstrip("/")
        self._s3 = s3_client or boto3.client(
            "s3",
            endpoint_url=settings.STORAGE_ENDPOINT_URL,
            aws_access_key_id=settings.STORAGE_ACCESS_KEY,
            aws_secret_access_key=settings.STORAGE_SECRET_KEY,
            region_name=settings.STORAGE_REGION,
        )

    def upload_audio(self, key: str, data: bytes, metadata: Dict[str, str] | None = None) -> str:
        """Store an MP3 under `key` and return its public URL."""
        try:
            self._s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType="audio/mpeg",
                CacheControl="public, max-age=31536000",
                Metadata=metadata or {},
            )
        except (BotoCoreError, ClientError) as e:
            raise PipelineError(f"Failed to upload {key} to object storage: {e}") from e
        return f"{self.public_url}/{key}"

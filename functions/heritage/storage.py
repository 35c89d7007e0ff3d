"""
Object storage for uploaded media: S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from heritage.errors import BackendError


class StorageClient(Protocol):
    """Defines the operations the admin workflow needs from object storage."""

    def upload(
        self, path: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        ...

    def get_public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage/v1/object/public"
    bucket: str = "media"
    stored_objects: dict = field(default_factory=dict)
    fail_uploads: bool = False

    def upload(
        self, path: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        if self.fail_uploads:
            raise BackendError(f'Bucket "{self.bucket}" rejected the upload')
        if path in self.stored_objects:
            raise BackendError("The resource already exists")
        self.stored_objects[path] = (bytes(data), content_type)

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/{self.bucket}/{path}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client writing into a single public bucket.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def upload(
        self, path: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise BackendError(str(exc)) from exc

    def get_public_url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        return f"{self.endpoint.rstrip('/')}/{self.bucket}/{path}"

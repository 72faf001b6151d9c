"""
Blob storage abstraction for Firebase Storage, S3-compatible buckets and
in-memory testing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from firebase_admin import storage as firebase_storage

from backend.firebase import get_firebase_app

logger = logging.getLogger(__name__)

SIGNED_URL_EXPIRATION = datetime(2099, 12, 31, tzinfo=timezone.utc)


def firebase_public_url(bucket_name: str, path: str) -> str:
    return (
        f"https://firebasestorage.googleapis.com/v0/b/{bucket_name}/o/"
        f"{quote(path, safe='')}?alt=media"
    )


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    bucket_name: str

    def exists(self, path: str) -> bool:
        ...

    def download_bytes(self, path: str) -> bytes:
        ...

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def list_paths(self, prefix: str) -> list[str]:
        ...

    def signed_url(self, path: str) -> str:
        ...

    def public_url(self, path: str) -> str:
        ...


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    cache_control: Optional[str] = None


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    bucket_name: str = "bebek-test.appspot.com"
    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)
    signing_enabled: bool = True

    def exists(self, path: str) -> bool:
        return path in self.stored_objects

    def download_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored.data

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        self.stored_objects[path] = StoredObject(
            data=data, content_type=content_type, cache_control=cache_control
        )

    def delete(self, path: str) -> None:
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        del self.stored_objects[path]

    def list_paths(self, prefix: str) -> list[str]:
        return sorted(p for p in self.stored_objects if p.startswith(prefix))

    def signed_url(self, path: str) -> str:
        if not self.signing_enabled:
            raise RuntimeError("Signing is not available for this bucket")
        return f"{self.base_url}/{path}?signed=1"

    def public_url(self, path: str) -> str:
        return firebase_public_url(self.bucket_name, path)


class FirebaseStorageClient:
    """
    Firebase (Google Cloud Storage) bucket accessed through firebase-admin.
    """

    def __init__(self, bucket_name: Optional[str] = None):
        app = get_firebase_app()
        self._bucket = firebase_storage.bucket(bucket_name, app=app)
        self.bucket_name = self._bucket.name

    def exists(self, path: str) -> bool:
        return self._bucket.blob(path).exists()

    def download_bytes(self, path: str) -> bytes:
        return self._bucket.blob(path).download_as_bytes()

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        blob = self._bucket.blob(path)
        if cache_control:
            blob.cache_control = cache_control
        blob.upload_from_string(data, content_type=content_type)

    def delete(self, path: str) -> None:
        self._bucket.blob(path).delete()

    def list_paths(self, prefix: str) -> list[str]:
        return [blob.name for blob in self._bucket.list_blobs(prefix=prefix)]

    def signed_url(self, path: str) -> str:
        return self._bucket.blob(path).generate_signed_url(
            expiration=SIGNED_URL_EXPIRATION, method="GET"
        )

    def public_url(self, path: str) -> str:
        return firebase_public_url(self.bucket_name, path)


@dataclass
class CosStorageClient:
    """
    S3-compatible storage client (Tencent COS, MinIO, AWS S3).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    presign_expires_in: int = 7 * 24 * 3600

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )
        self.bucket_name = self.bucket

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                return False
            raise
        return True

    def download_bytes(self, path: str) -> bytes:
        response = self._client.get_object(Bucket=self.bucket, Key=path)
        return response["Body"].read()

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        extra = {"ContentType": content_type}
        if cache_control:
            extra["CacheControl"] = cache_control
        self._client.put_object(Bucket=self.bucket, Key=path, Body=data, **extra)

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)

    def list_paths(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        paths: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            paths.extend(item["Key"] for item in page.get("Contents", []))
        return paths

    def signed_url(self, path: str) -> str:
        # SigV4 presigned URLs are capped at seven days.
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=self.presign_expires_in,
        )

    def public_url(self, path: str) -> str:
        endpoint = (self.endpoint or "").rstrip("/")
        return f"{endpoint}/{self.bucket}/{quote(path)}"

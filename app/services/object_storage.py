"""
Клиент объектного хранилища (S3 / S3-совместимое) и in-memory двойник для тестов.

Методы синхронные (boto3); асинхронный код вызывает их через run_in_threadpool.
"""
from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from app.core.config import Settings

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
_PRECONDITION_CODES = {"PreconditionFailed", "ConditionalRequestConflict", "412"}


class ObjectNotFound(Exception):
    """Объекта с таким ключом нет в бакете."""


class PreconditionFailed(Exception):
    """Условная запись отклонена: объект изменился после чтения."""


@dataclass
class StoredObject:
    body: bytes
    etag: Optional[str] = None


class StorageClient(Protocol):
    """Операции, которые API нужны от объектного хранилища."""

    def get_object(self, key: str) -> StoredObject:
        ...

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str,
        *,
        cache_control: Optional[str] = None,
        public_read: bool = False,
        if_match: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> Optional[str]:
        ...

    def public_url(self, key: str) -> str:
        ...


def resolve_public_url(key: str, bucket: str, region: str, base_url: Optional[str] = None) -> str:
    if base_url:
        return f"{base_url.rstrip('/')}/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


class S3StorageClient:
    """
    Обёртка над boto3 S3 client. Клиент boto3 потокобезопасен,
    поэтому создаётся один раз на процесс.
    """

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url
        self._client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(signature_version="s3v4"),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3StorageClient":
        return cls(
            bucket=settings.S3_BUCKET,
            region=settings.S3_REGION,
            access_key_id=settings.S3_ACCESS_KEY,
            secret_access_key=settings.S3_SECRET_KEY,
            endpoint_url=settings.S3_ENDPOINT_URL,
            public_base_url=settings.S3_PUBLIC_BASE_URL,
        )

    def get_object(self, key: str) -> StoredObject:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES or _http_status(exc) == 404:
                raise ObjectNotFound(key) from exc
            raise
        return StoredObject(body=response["Body"].read(), etag=response.get("ETag"))

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str,
        *,
        cache_control: Optional[str] = None,
        public_read: bool = False,
        if_match: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> Optional[str]:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
        }
        if cache_control:
            params["CacheControl"] = cache_control
        if public_read:
            params["ACL"] = "public-read"
        if if_match:
            params["IfMatch"] = if_match
        if if_none_match:
            params["IfNoneMatch"] = if_none_match
        try:
            response = self._client.put_object(**params)
        except ClientError as exc:
            if _error_code(exc) in _PRECONDITION_CODES or _http_status(exc) == 412:
                raise PreconditionFailed(key) from exc
            raise
        return response.get("ETag")

    def public_url(self, key: str) -> str:
        return resolve_public_url(key, self.bucket, self.region, self.public_base_url)


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _http_status(exc: ClientError) -> Optional[int]:
    return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


@dataclass
class InMemoryStorageClient:
    """Тестовый двойник S3 с ETag и условной записью."""

    bucket: str = "test-bucket"
    region: str = "us-east-1"
    public_base_url: Optional[str] = None
    objects: dict = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()

    def get_object(self, key: str) -> StoredObject:
        with self._lock:
            if key not in self.objects:
                raise ObjectNotFound(key)
            body, _content_type, etag = self.objects[key]
            return StoredObject(body=body, etag=etag)

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str,
        *,
        cache_control: Optional[str] = None,
        public_read: bool = False,
        if_match: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> Optional[str]:
        with self._lock:
            current = self.objects.get(key)
            if if_none_match == "*" and current is not None:
                raise PreconditionFailed(key)
            if if_match is not None and (current is None or current[2] != if_match):
                raise PreconditionFailed(key)
            etag = '"%s"' % hashlib.md5(body).hexdigest()
            self.objects[key] = (body, content_type, etag)
            return etag

    def public_url(self, key: str) -> str:
        return resolve_public_url(key, self.bucket, self.region, self.public_base_url)

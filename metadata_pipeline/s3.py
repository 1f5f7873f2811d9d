"""
Object store gateway — the only module that touches durable storage.

Contract:
  fetch(bucket, key)                    -> (bytes, size); StoreError NOT_FOUND | TRANSIENT | PERMANENT
  exists(bucket, key)                   -> bool; "not found" is False, never an error
  put(bucket, key, content, type)       -> None; full-content replace, so idempotent

No retries happen here beyond what botocore's transport already performs.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from metadata_pipeline.config import Settings
from metadata_pipeline.exceptions import StoreError, StoreErrorKind

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# Checked before the 404 fallback: a missing bucket is not a missing key
_PERMANENT_CODES = {"NoSuchBucket", "AccessDenied", "InvalidBucketName"}

# Throttling and timeouts clear up on redelivery
_TRANSIENT_CODES = {
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "TooManyRequests",
    "RequestLimitExceeded",
}


class ObjectStore(Protocol):
    def fetch(self, bucket: str, key: str) -> tuple[bytes, int]: ...

    def exists(self, bucket: str, key: str) -> bool: ...

    def put(self, bucket: str, key: str, content: bytes, content_type: str) -> None: ...


def classify_client_error(exc: ClientError) -> StoreErrorKind:
    """Map a botocore ClientError onto the store error taxonomy."""
    error_code = str(exc.response.get("Error", {}).get("Code", ""))
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

    if error_code in _PERMANENT_CODES:
        return StoreErrorKind.PERMANENT
    if error_code in _NOT_FOUND_CODES or status == 404:
        return StoreErrorKind.NOT_FOUND
    if error_code in _TRANSIENT_CODES or status in (408, 429):
        return StoreErrorKind.TRANSIENT
    if status is not None and 400 <= status < 500:
        return StoreErrorKind.PERMANENT
    return StoreErrorKind.TRANSIENT


def build_s3_client(settings: Settings) -> Any:
    """Create a boto3 S3 client. No network I/O happens until the first call."""
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url or None,
        config=Config(retries={"max_attempts": settings.aws_max_attempts, "mode": "standard"}),
    )


class S3ObjectStore:
    """ObjectStore backed by a boto3 S3 client. Stateless per call."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> S3ObjectStore:
        return cls(build_s3_client(settings))

    def fetch(self, bucket: str, key: str) -> tuple[bytes, int]:
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            data = response["Body"].read()
        except ClientError as exc:
            raise self._store_error(exc, "fetch", bucket, key) from exc
        except BotoCoreError as exc:
            raise StoreError(
                StoreErrorKind.TRANSIENT,
                operation="fetch",
                bucket=bucket,
                key=key,
                detail=str(exc),
            ) from exc

        size = response.get("ContentLength")
        if size is None:
            size = len(data)
        return data, int(size)

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            error = self._store_error(exc, "exists", bucket, key)
            if error.not_found:
                return False
            raise error from exc
        except BotoCoreError as exc:
            raise StoreError(
                StoreErrorKind.TRANSIENT,
                operation="exists",
                bucket=bucket,
                key=key,
                detail=str(exc),
            ) from exc
        return True

    def put(self, bucket: str, key: str, content: bytes, content_type: str) -> None:
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except ClientError as exc:
            raise self._store_error(exc, "put", bucket, key) from exc
        except BotoCoreError as exc:
            raise StoreError(
                StoreErrorKind.TRANSIENT,
                operation="put",
                bucket=bucket,
                key=key,
                detail=str(exc),
            ) from exc

    @staticmethod
    def _store_error(exc: ClientError, operation: str, bucket: str, key: str) -> StoreError:
        kind = classify_client_error(exc)
        error_code = exc.response.get("Error", {}).get("Code", "")
        logger.debug("S3 %s failed for s3://%s/%s: %s (%s)", operation, bucket, key, error_code, kind.value)
        return StoreError(kind, operation=operation, bucket=bucket, key=key, detail=str(exc))

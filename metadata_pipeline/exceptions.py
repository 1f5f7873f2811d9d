"""
Pipeline — error taxonomy.

Callers branch on the structured ``kind`` of a StoreError, never on botocore
error codes or HTTP statuses. Only the S3 gateway maps transport errors onto
these types.
"""
from __future__ import annotations

import enum


class PipelineError(Exception):
    """Base class for all pipeline errors."""


# ── Object store ─────────────────────────────────────────────────────────────

class StoreErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"


class StoreError(PipelineError):
    def __init__(
        self,
        kind: StoreErrorKind,
        *,
        operation: str,
        bucket: str,
        key: str,
        detail: str = "",
    ) -> None:
        self.kind = kind
        self.operation = operation
        self.bucket = bucket
        self.key = key
        self.detail = detail
        message = f"{operation} s3://{bucket}/{key} failed ({kind.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def not_found(self) -> bool:
        return self.kind is StoreErrorKind.NOT_FOUND


# ── Content ──────────────────────────────────────────────────────────────────

class DecodeError(PipelineError):
    """The bytes are not a decodable image of a supported format. Permanent."""


class MalformedMessageError(PipelineError):
    """The queue message body cannot be parsed into an IngestMessage. Permanent."""


# ── Queue ────────────────────────────────────────────────────────────────────

class QueueSendError(PipelineError):
    def __init__(self, queue_url: str, key: str, detail: str = "") -> None:
        self.queue_url = queue_url
        self.key = key
        super().__init__(f"Could not enqueue {key} to {queue_url}: {detail}")


class BatchProcessingError(PipelineError):
    """Raised in whole-batch mode so the queue redelivers the entire batch."""

    def __init__(self, failed_ids: list[str]) -> None:
        self.failed_ids = failed_ids
        super().__init__(
            f"{len(failed_ids)} message(s) failed and must be retried: "
            + ", ".join(failed_ids)
        )

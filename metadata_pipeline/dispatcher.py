"""
Ingestion dispatcher — S3 ObjectCreated notifications → one queue message per image.

A send failure propagates out of dispatch() so the notification source
redelivers the whole batch. Resending messages that already went out is
harmless: the processing stage is idempotent.
"""
from __future__ import annotations

import json
import logging
import urllib.parse
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from metadata_pipeline.eligibility import is_eligible
from metadata_pipeline.schemas import IngestMessage
from metadata_pipeline.sqs import MessageQueue

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    enqueued: int = 0
    skipped: int = 0


def decode_key(raw_key: str) -> str:
    """Undo S3 notification key encoding ('+' is a space, then percent-decoding)."""
    return urllib.parse.unquote_plus(raw_key)


def _s3_records(records: Iterable[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for record in records:
        # SQS wrapper: the S3 event is the message body
        if record.get("eventSource") == "aws:sqs":
            try:
                body = json.loads(record.get("body") or "{}")
            except ValueError:
                logger.warning("Ignoring SQS record with non-JSON body: %s", record.get("messageId"))
                continue
            if isinstance(body, dict):
                yield from body.get("Records") or []
        else:
            yield record


def message_from_record(record: dict[str, Any]) -> IngestMessage | None:
    """Build an IngestMessage from an S3 notification record, or None if incomplete."""
    s3_info = record.get("s3") or {}
    s3_object = s3_info.get("object") or {}
    bucket = (s3_info.get("bucket") or {}).get("name") or ""
    raw_key = s3_object.get("key") or ""
    if not bucket or not raw_key:
        return None
    return IngestMessage(
        bucket=bucket,
        key=decode_key(raw_key),
        etag=s3_object.get("eTag"),
    )


class IngestionDispatcher:
    def __init__(self, queue: MessageQueue) -> None:
        self._queue = queue

    def dispatch(self, records: Iterable[dict[str, Any]]) -> DispatchResult:
        result = DispatchResult()
        for record in _s3_records(records):
            message = message_from_record(record)
            if message is None:
                logger.warning("Missing bucket or key in S3 event record: %s", record)
                result.skipped += 1
                continue

            if not is_eligible(message.key):
                logger.info("Skipping non-image file: %s", message.key)
                result.skipped += 1
                continue

            # QueueSendError propagates: the whole notification batch is retried
            self._queue.send(message)
            logger.info("Sent message to queue for s3://%s/%s", message.bucket, message.key)
            result.enqueued += 1
        return result

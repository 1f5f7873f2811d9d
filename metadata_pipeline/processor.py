"""
Batch processor — consumes one SQS delivery and writes metadata artifacts.

Per message, independently:
  1. Parse the body            — malformed        → SKIPPED_MALFORMED (logged, not retried)
  2. Prefix + extension check  — out of scope     → SKIPPED_INELIGIBLE (no I/O)
  3. Idempotency gate          — probe error      → FAILED; exists → SKIPPED_ALREADY_DONE
  4. Fetch source bytes        — store error      → FAILED
  5. Extract dimensions        — decode error     → SKIPPED_UNDECODABLE (permanent)
  6. Put metadata artifact     — store error      → FAILED
  7.                                              → COMPLETED

One message's outcome never stops its siblings. Only FAILED messages are
reported back to the queue for redelivery; there is no internal retry or
backoff, redrive is left to the queue.
"""
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from metadata_pipeline.constants import (
    INCOMING_PREFIX,
    METADATA_CONTENT_TYPE,
    METADATA_PREFIX,
    ProcessingOutcome,
)
from metadata_pipeline.eligibility import is_eligible, is_incoming
from metadata_pipeline.exceptions import DecodeError, MalformedMessageError, StoreError
from metadata_pipeline.extractor import extract
from metadata_pipeline.idempotency import IdempotencyGate
from metadata_pipeline.s3 import ObjectStore
from metadata_pipeline.schemas import IngestMessage, Metadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageResult:
    message_id: str
    outcome: ProcessingOutcome
    bucket: str | None = None
    key: str | None = None
    detail: str = ""


@dataclass
class BatchResult:
    results: list[MessageResult] = field(default_factory=list)

    @property
    def counts(self) -> Counter[ProcessingOutcome]:
        return Counter(result.outcome for result in self.results)

    @property
    def failed_ids(self) -> list[str]:
        return [r.message_id for r in self.results if r.outcome.retryable]

    @property
    def undecodable(self) -> int:
        return self.counts[ProcessingOutcome.SKIPPED_UNDECODABLE]

    def summary(self) -> dict[str, int]:
        return {outcome.value: count for outcome, count in sorted(self.counts.items())}

    def to_batch_response(self) -> dict[str, Any]:
        """SQS partial batch response: only the failed subset is redelivered."""
        return {
            "batchItemFailures": [
                {"itemIdentifier": message_id} for message_id in self.failed_ids
            ]
        }


def parse_message(body: str | None) -> IngestMessage:
    if not body:
        raise MalformedMessageError("empty message body")
    try:
        return IngestMessage.model_validate_json(body)
    except ValidationError as exc:
        raise MalformedMessageError(str(exc)) from exc


class BatchProcessor:
    """Processes messages sequentially; safe to run in many workers at once."""

    def __init__(
        self,
        store: ObjectStore,
        *,
        incoming_prefix: str = INCOMING_PREFIX,
        metadata_prefix: str = METADATA_PREFIX,
        metadata_bucket: str | None = None,
    ) -> None:
        self._store = store
        self._incoming_prefix = incoming_prefix
        self._gate = IdempotencyGate(
            store,
            metadata_bucket=metadata_bucket,
            metadata_prefix=metadata_prefix,
        )

    def process_batch(self, records: Iterable[dict[str, Any]]) -> BatchResult:
        batch = BatchResult()
        for index, record in enumerate(records):
            message_id = record.get("messageId") or f"record-{index}"
            batch.results.append(self.process_record(message_id, record.get("body")))
        logger.info("Batch processed: %s", batch.summary())
        if batch.undecodable:
            logger.warning("Skipped %d undecodable image(s) in batch", batch.undecodable)
        return batch

    def process_record(self, message_id: str, body: str | None) -> MessageResult:
        """Never raises: every exception becomes an outcome for this message only."""
        try:
            message = parse_message(body)
        except MalformedMessageError as exc:
            logger.warning("Skipping malformed message %s: %s", message_id, exc)
            return MessageResult(message_id, ProcessingOutcome.SKIPPED_MALFORMED, detail=str(exc))

        try:
            outcome = self.process_message(message)
        except StoreError as exc:
            logger.error(
                "Retryable failure for s3://%s/%s (message %s): %s",
                message.bucket, message.key, message_id, exc,
            )
            return MessageResult(
                message_id, ProcessingOutcome.FAILED, message.bucket, message.key, str(exc),
            )
        except Exception as exc:
            logger.exception(
                "Unexpected error for s3://%s/%s (message %s)",
                message.bucket, message.key, message_id,
            )
            return MessageResult(
                message_id, ProcessingOutcome.FAILED, message.bucket, message.key, str(exc),
            )
        return MessageResult(message_id, outcome, message.bucket, message.key)

    def process_message(self, message: IngestMessage) -> ProcessingOutcome:
        """Run the state machine for one message. StoreError propagates (retryable)."""
        bucket, key = message.bucket, message.key

        if not is_incoming(key, self._incoming_prefix):
            logger.info("Ignoring key outside %s: %s", self._incoming_prefix, key)
            return ProcessingOutcome.SKIPPED_INELIGIBLE
        if not is_eligible(key):
            logger.info("Ignoring non-image key: %s", key)
            return ProcessingOutcome.SKIPPED_INELIGIBLE

        if self._gate.already_processed(bucket, key):
            logger.info("Metadata for s3://%s/%s already exists, skipping", bucket, key)
            return ProcessingOutcome.SKIPPED_ALREADY_DONE

        data, size = self._store.fetch(bucket, key)

        try:
            dimensions = extract(data)
        except DecodeError as exc:
            logger.warning("Cannot decode image s3://%s/%s: %s", bucket, key, exc)
            return ProcessingOutcome.SKIPPED_UNDECODABLE

        metadata = Metadata(
            source_bucket=bucket,
            source_key=key,
            width=dimensions.width,
            height=dimensions.height,
            file_size_bytes=size,
            format=dimensions.format,
        )
        out_bucket, out_key = self._gate.artifact_location(bucket, key)
        self._store.put(out_bucket, out_key, metadata.to_json_bytes(), METADATA_CONTENT_TYPE)

        logger.info(
            "Wrote metadata to s3://%s/%s (%dx%d %s, etag=%s)",
            out_bucket, out_key, metadata.width, metadata.height,
            metadata.format.value, message.etag,
        )
        return ProcessingOutcome.COMPLETED

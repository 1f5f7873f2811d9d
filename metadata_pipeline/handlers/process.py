"""
AWS Lambda handler — Metadata Processing

Triggered by SQS messages produced by the ingestion handler. For every image
under incoming/ it writes metadata/<name>.json exactly once, however many
times the message is delivered.

Responses:
  REPORT_BATCH_ITEM_FAILURES=true   — {"batchItemFailures": [...]} with only the
                                      retryable failures (partial batch response)
  REPORT_BATCH_ITEM_FAILURES=false  — BatchProcessingError is raised after the whole
                                      batch ran if anything failed, so the queue
                                      redelivers every message; finished ones
                                      short-circuit at the idempotency gate

Environment variables:
  METADATA_BUCKET   — bucket for artifacts (default: the source bucket)
  INCOMING_PREFIX   — eligible source prefix (default: incoming/)
  METADATA_PREFIX   — artifact prefix (default: metadata/)
  AWS_REGION        — AWS region (set by Lambda runtime)
  LOG_LEVEL         — root log level (default: INFO)
"""
from __future__ import annotations

import logging

from metadata_pipeline.config import Settings
from metadata_pipeline.exceptions import BatchProcessingError
from metadata_pipeline.processor import BatchProcessor
from metadata_pipeline.s3 import ObjectStore, S3ObjectStore

logger = logging.getLogger()
logger.setLevel(logging.INFO)

_settings: Settings | None = None
_processor: BatchProcessor | None = None


def configure(
    settings: Settings | None = None,
    store: ObjectStore | None = None,
) -> BatchProcessor:
    """Build the process-wide processor. Called once per execution environment."""
    global _settings, _processor
    settings = settings or Settings()
    logger.setLevel(settings.log_level.upper())
    _settings = settings
    _processor = BatchProcessor(
        store or S3ObjectStore.from_settings(settings),
        incoming_prefix=settings.incoming_prefix,
        metadata_prefix=settings.metadata_prefix,
        metadata_bucket=settings.metadata_bucket or None,
    )
    return _processor


def reset() -> None:
    global _settings, _processor
    _settings = None
    _processor = None


def handler(event: dict, context: object) -> dict:
    """Lambda entry point — processes one SQS batch."""
    processor = _processor or configure()
    result = processor.process_batch(event.get("Records", []))

    if _settings is None or _settings.report_batch_item_failures:
        return result.to_batch_response()
    if result.failed_ids:
        raise BatchProcessingError(result.failed_ids)
    return {"batchItemFailures": []}

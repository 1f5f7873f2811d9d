"""
AWS Lambda handler — Ingestion

Triggered by S3 ObjectCreated notifications on the source bucket (directly or
wrapped in SQS). Sends one message per image object to the processing queue.

Flow:
  1. Decodes each notification key.
  2. Skips objects without an image extension.
  3. Sends {bucket, key, etag} to QUEUE_URL.

Any send failure is raised so the whole notification batch is delivered again.

Environment variables:
  QUEUE_URL     — SQS queue for the processing stage
  AWS_REGION    — AWS region (set by Lambda runtime)
  LOG_LEVEL     — root log level (default: INFO)
"""
from __future__ import annotations

import logging

from metadata_pipeline.config import Settings
from metadata_pipeline.dispatcher import IngestionDispatcher
from metadata_pipeline.sqs import MessageQueue, SQSQueue

logger = logging.getLogger()
logger.setLevel(logging.INFO)

_dispatcher: IngestionDispatcher | None = None


def configure(
    settings: Settings | None = None,
    queue: MessageQueue | None = None,
) -> IngestionDispatcher:
    """Build the process-wide dispatcher. Called once per execution environment."""
    global _dispatcher
    settings = settings or Settings()
    logger.setLevel(settings.log_level.upper())
    _dispatcher = IngestionDispatcher(queue or SQSQueue.from_settings(settings))
    return _dispatcher


def reset() -> None:
    global _dispatcher
    _dispatcher = None


def handler(event: dict, context: object) -> dict:
    """Lambda entry point — forwards image uploads to the processing queue."""
    dispatcher = _dispatcher or configure()
    records = event.get("Records", [])
    logger.info("Received %d notification record(s)", len(records))

    result = dispatcher.dispatch(records)

    logger.info("Ingestion complete: %d enqueued, %d skipped", result.enqueued, result.skipped)
    return {
        "statusCode": 200,
        "body": "Ingestion complete",
        "enqueued": result.enqueued,
        "skipped": result.skipped,
    }

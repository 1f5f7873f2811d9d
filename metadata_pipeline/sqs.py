"""
SQS queue gateway — sends IngestMessages for the processing stage.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from metadata_pipeline.config import Settings
from metadata_pipeline.exceptions import QueueSendError
from metadata_pipeline.schemas import IngestMessage

logger = logging.getLogger(__name__)


class MessageQueue(Protocol):
    def send(self, message: IngestMessage) -> str: ...


class SQSQueue:
    def __init__(self, queue_url: str, client: Any) -> None:
        if not queue_url:
            raise ValueError("queue_url is required")
        self.queue_url = queue_url
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> SQSQueue:
        client = boto3.client(
            "sqs",
            region_name=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url or None,
            config=Config(retries={"max_attempts": settings.aws_max_attempts, "mode": "standard"}),
        )
        return cls(settings.queue_url, client)

    def send(self, message: IngestMessage) -> str:
        """Send one message and return its SQS message id. Raises QueueSendError."""
        try:
            response = self._client.send_message(
                QueueUrl=self.queue_url,
                MessageBody=message.to_body(),
            )
        except (BotoCoreError, ClientError) as exc:
            raise QueueSendError(self.queue_url, message.key, str(exc)) from exc
        message_id: str = response.get("MessageId", "")
        logger.debug("Sent %s as message %s", message.key, message_id)
        return message_id

"""
SQS boundary between the CSV import and the catalog batch processor.
"""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from exceptions import QueueError, is_throttling_error
from models import ProductInput, QueueMessage
from retry import RetryConfig, retry_with_backoff

logger = logging.getLogger(__name__)


class QueuePublisher:
    """Sends one message per product to the catalog items queue."""

    def __init__(
        self,
        sqs_client,
        queue_url: str,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.sqs = sqs_client
        self.queue_url = queue_url
        self._send = retry_with_backoff(config=retry_config or RetryConfig())(
            self._send_once
        )

    def _send_once(self, body: str) -> str:
        try:
            response = self.sqs.send_message(QueueUrl=self.queue_url, MessageBody=body)
        except (ClientError, BotoCoreError) as e:
            raise QueueError(
                message=f"Failed to send message: {e}",
                queue_url=self.queue_url,
                throttled=is_throttling_error(e),
                original_exception=e,
            )
        return response.get("MessageId", "")

    def publish(self, product: ProductInput) -> str:
        """
        Enqueue a sanitized product.

        Returns:
            The SQS message id

        Raises:
            QueueError: If the send still fails after retries
        """
        message_id = self._send(product.to_message_body())
        logger.debug(
            f"Enqueued product '{product.title}'",
            extra={"message_id": message_id},
        )
        return message_id


def parse_sqs_records(event: dict) -> list[QueueMessage]:
    """Extract queue messages from an SQS Lambda event, in delivery order."""
    messages = []
    for record in event.get("Records") or []:
        attributes = record.get("attributes") or {}
        messages.append(QueueMessage(
            message_id=record.get("messageId", ""),
            body=record.get("body") or "",
            receive_count=int(attributes.get("ApproximateReceiveCount", 1)),
        ))
    return messages

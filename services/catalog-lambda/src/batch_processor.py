"""
Catalog batch processor for SQS deliveries.

Each message is parsed, sanitized, validated and written on its own; a bad
or failing message is recorded and the batch moves on. One notification is
sent per batch when at least one product was created.
"""

import json
import logging

from exceptions import CatalogError, MalformedInputError
from logging_config import log_execution_time
from models import BatchResult, MessageOutcome, QueueMessage
from notifications import NotificationPublisher
from product_service import ProductService
from validation import sanitize_product_input, validate_product

logger = logging.getLogger(__name__)


class CatalogBatchProcessor:
    """Turns a batch of queue messages into products."""

    def __init__(
        self,
        product_service: ProductService,
        notifier: NotificationPublisher,
    ):
        self.product_service = product_service
        self.notifier = notifier

    @log_execution_time(logger)
    def process(self, messages: list[QueueMessage]) -> BatchResult:
        """
        Process one batch.

        Args:
            messages: Queue messages in delivery order

        Returns:
            BatchResult with one outcome per message, in the same order
        """
        result = BatchResult()

        logger.info(
            f"Processing batch of {len(messages)} messages",
            extra={"metrics": {"input_count": len(messages)}},
        )

        for message in messages:
            result.outcomes.append(self._process_message(message))

        logger.info(
            "Batch processing complete",
            extra={"metrics": result.to_dict()},
        )

        if result.created_count == 0:
            logger.info("No products created in this batch; skipping notification")
            return result

        result.notified = self.notifier.notify(result.created)
        return result

    def _process_message(self, message: QueueMessage) -> MessageOutcome:
        extra = {"message_id": message.message_id}

        if message.receive_count > 1:
            logger.warning(
                f"Message {message.message_id} delivered {message.receive_count} times; "
                "an earlier delivery may already have created this product",
                extra={**extra, "metrics": {"receive_count": message.receive_count}},
            )

        try:
            # over-long integer literals raise a plain ValueError, not JSONDecodeError
            payload = json.loads(message.body)
            product_input = sanitize_product_input(payload)
        except (ValueError, MalformedInputError) as e:
            logger.warning(f"Skipping malformed message {message.message_id}: {e}", extra=extra)
            return MessageOutcome(
                message_id=message.message_id,
                status="skipped",
                reason=f"malformed: {e}",
            )

        errors = validate_product(product_input)
        if errors:
            logger.warning(
                f"Skipping message {message.message_id}: "
                + ", ".join(e.message for e in errors),
                extra={**extra, "field_errors": [e.model_dump() for e in errors]},
            )
            return MessageOutcome(
                message_id=message.message_id,
                status="skipped",
                reason="invalid: " + ", ".join(e.field for e in errors),
            )

        try:
            product = self.product_service.create_product(product_input)
        except CatalogError as e:
            logger.error(
                f"Failed to process message {message.message_id}: {e.message}",
                extra={**extra, "error": e.to_dict()},
            )
            return MessageOutcome(
                message_id=message.message_id,
                status="failed",
                reason=type(e).__name__,
            )
        except Exception as e:
            logger.error(
                f"Unexpected error processing message {message.message_id}: {e}",
                extra=extra,
                exc_info=True,
            )
            return MessageOutcome(
                message_id=message.message_id,
                status="failed",
                reason=type(e).__name__,
            )

        logger.info(
            f"Created product {product.id} from message {message.message_id}",
            extra={**extra, "product_id": product.id},
        )
        return MessageOutcome(message_id=message.message_id, status="created", product=product)

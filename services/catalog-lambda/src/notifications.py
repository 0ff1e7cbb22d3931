"""
Best-effort SNS notification after a catalog batch.

Products are already committed when notify runs; a failed publish is logged
and reported as False, never raised.
"""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from exceptions import CatalogError, TopicError, is_throttling_error
from models import NotificationPayload, Product
from retry import RetryConfig, retry_with_backoff

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Publishes batch-completion events to the create-product topic."""

    def __init__(
        self,
        sns_client,
        topic_arn: Optional[str],
        retry_config: Optional[RetryConfig] = None,
    ):
        self.sns = sns_client
        self.topic_arn = topic_arn
        self._publish = retry_with_backoff(config=retry_config or RetryConfig())(
            self._publish_once
        )

    def _publish_once(self, subject: str, message: str) -> dict:
        try:
            return self.sns.publish(
                TopicArn=self.topic_arn,
                Subject=subject,
                Message=message,
            )
        except (ClientError, BotoCoreError) as e:
            raise TopicError(
                message=f"Failed to publish notification: {e}",
                topic_arn=self.topic_arn,
                throttled=is_throttling_error(e),
                original_exception=e,
            )

    def notify(self, products: list[Product]) -> bool:
        """Publish a notification for created products. Returns True if sent."""
        if not self.topic_arn:
            logger.warning(
                "CREATE_PRODUCT_TOPIC_ARN is not set; unable to publish notification"
            )
            return False

        payload = NotificationPayload.for_products(products)
        try:
            self._publish(
                f"Catalog batch processed ({payload.total})",
                payload.to_message(),
            )
        except CatalogError as e:
            logger.error(
                f"Failed to publish notification: {e.message}",
                extra={"metrics": {"products": payload.total}},
            )
            return False
        except Exception as e:
            logger.error(f"Unexpected error publishing notification: {e}", exc_info=True)
            return False

        logger.info(
            f"Published notification for {payload.total} created products",
            extra={"metrics": {"products": payload.total}},
        )
        return True

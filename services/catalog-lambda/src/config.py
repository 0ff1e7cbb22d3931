"""
Runtime settings read from the Lambda environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

from exceptions import ConfigurationError


@dataclass(frozen=True)
class Settings:
    aws_region: str = "us-east-1"
    localstack_endpoint: Optional[str] = None
    log_level: str = "INFO"

    # DynamoDB tables
    products_table: str = ""
    stock_table: str = ""

    # Fan-out
    catalog_items_queue_url: str = ""
    create_product_topic_arn: str = ""

    # Import bucket
    import_bucket_name: str = ""
    incoming_prefix: str = "uploaded/"
    archive_prefix: str = "parsed/"
    publish_concurrency: int = 8
    signed_url_ttl_seconds: int = 3600

    cors_allow_origin: str = "*"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        return cls(
            aws_region=env.get("AWS_REGION", "us-east-1"),
            localstack_endpoint=env.get("LOCALSTACK_ENDPOINT") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            products_table=env.get("PRODUCTS_TABLE", ""),
            stock_table=env.get("STOCK_TABLE", ""),
            catalog_items_queue_url=env.get("CATALOG_ITEMS_QUEUE_URL", ""),
            create_product_topic_arn=env.get("CREATE_PRODUCT_TOPIC_ARN", ""),
            import_bucket_name=env.get("IMPORT_BUCKET_NAME", ""),
            incoming_prefix=_prefix(env.get("INCOMING_PREFIX", "uploaded/")),
            archive_prefix=_prefix(env.get("ARCHIVE_PREFIX", "parsed/")),
            publish_concurrency=int(env.get("PUBLISH_CONCURRENCY", "8")),
            signed_url_ttl_seconds=int(env.get("SIGNED_URL_TTL_SECONDS", "3600")),
            cors_allow_origin=env.get("CORS_ALLOW_ORIGIN", "*"),
        )

    def require(self, *names: str) -> None:
        """Raise ConfigurationError for the first setting that is empty."""
        for name in names:
            if not getattr(self, name):
                raise ConfigurationError(
                    message=f"Missing required setting: {name.upper()}",
                    config_key=name.upper(),
                )


def _prefix(value: str) -> str:
    value = value.strip("/")
    return f"{value}/" if value else ""

"""
AWS client construction.

Clients are created once per Lambda container and handed to the service
objects that use them; nothing else in the service reads module-level clients.
"""

import boto3
from botocore.config import Config

from config import Settings

boto_config = Config(
    retries={"max_attempts": 3, "mode": "adaptive"},
    connect_timeout=10,
    read_timeout=60,
)


class AWSClientFactory:
    """Factory for creating AWS clients with proper configuration."""

    _clients: dict = {}

    @classmethod
    def get_client(cls, service_name: str, settings: Settings):
        """Get or create a client for `service_name` ("s3", "sqs", ...)."""
        cache_key = (service_name, settings.aws_region, settings.localstack_endpoint)
        if cache_key not in cls._clients:
            kwargs = {"config": boto_config, "region_name": settings.aws_region}
            if settings.localstack_endpoint:
                kwargs["endpoint_url"] = settings.localstack_endpoint
            cls._clients[cache_key] = boto3.client(service_name, **kwargs)
        return cls._clients[cache_key]

    @classmethod
    def s3(cls, settings: Settings):
        return cls.get_client("s3", settings)

    @classmethod
    def sqs(cls, settings: Settings):
        return cls.get_client("sqs", settings)

    @classmethod
    def sns(cls, settings: Settings):
        return cls.get_client("sns", settings)

    @classmethod
    def dynamodb(cls, settings: Settings):
        return cls.get_client("dynamodb", settings)

    @classmethod
    def reset(cls):
        """Reset clients (useful for testing)."""
        cls._clients = {}

"""
API Gateway request authorizer for HTTP Basic credentials.

Passwords are looked up in the Lambda environment under CREDENTIAL_<username>;
no other environment variable is ever treated as a credential.
"""

import base64
import binascii
import hmac
import os
from typing import Any, Callable, Optional

from logging_config import bind_lambda_context, configure_logging

logger = configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    service_name="authorization-service",
)

CREDENTIAL_ENV_PREFIX = "CREDENTIAL_"


def password_from_env(username: str) -> Optional[str]:
    return os.environ.get(f"{CREDENTIAL_ENV_PREFIX}{username}") or None


def generate_policy(principal_id: str, effect: str, resource: str) -> dict:
    return {
        "principalId": principal_id,
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "execute-api:Invoke",
                    "Effect": effect,
                    "Resource": resource,
                }
            ],
        },
    }


def decode_basic_credentials(header: Optional[str]) -> Optional[tuple[str, str]]:
    """Return (username, password) from a Basic Authorization header, or None."""
    if not header or not header.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(header[len("Basic "):], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep or not username or not password:
        return None
    return username, password


def basic_authorizer_handler(
    event: dict,
    context: Any,
    lookup_password: Callable[[str], Optional[str]] = password_from_env,
) -> dict:
    """
    Verify the Basic credential pair on the request.

    Raises Exception("Unauthorized") (API Gateway 401) when the header is
    missing or malformed; returns a Deny policy (403) for wrong credentials.
    """
    bind_lambda_context(context)
    headers = event.get("headers") or {}
    method_arn = event.get("methodArn", "")

    credentials = decode_basic_credentials(
        headers.get("Authorization") or headers.get("authorization")
    )
    if credentials is None:
        logger.info("Missing or malformed authorization header")
        raise Exception("Unauthorized")

    username, password = credentials
    stored = lookup_password(username)
    if not stored or not hmac.compare_digest(stored.encode("utf-8"), password.encode("utf-8")):
        logger.info(f"Invalid credentials for user: {username}")
        return generate_policy(username, "Deny", method_arn)

    logger.info(f"Valid credentials for user: {username}")
    return generate_policy(username, "Allow", method_arn)

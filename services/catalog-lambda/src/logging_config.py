"""
Structured logging for the catalog Lambdas.

Every record carries the invocation's correlation id, the SQS batch id (when
one is being processed) and the Lambda request id. Under Lambda the records
are rendered as single-line JSON for CloudWatch Logs Insights; locally they
use a plain text format.
"""

import functools
import json
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
batch_id_var: ContextVar[str] = ContextVar("batch_id", default="")
request_id_var: ContextVar[str] = ContextVar("aws_request_id", default="")

# Keys accepted through `extra=` and copied into the JSON record as-is.
LIFTED_FIELDS = (
    "product_id",
    "message_id",
    "s3_bucket",
    "s3_key",
    "field_errors",
    "error",
    "duration_ms",
    "metrics",
)

QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Start a new correlation scope and return its id."""
    cid = correlation_id or str(uuid.uuid4())
    correlation_id_var.set(cid)
    batch_id_var.set("")
    return cid


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_batch_id(batch_id: str) -> None:
    batch_id_var.set(batch_id)


def get_batch_id() -> str:
    return batch_id_var.get()


def bind_lambda_context(context: Any) -> str:
    """Remember the Lambda request id for the rest of the invocation."""
    request_id = getattr(context, "aws_request_id", None) or ""
    request_id_var.set(request_id)
    return request_id


def current_log_context() -> dict:
    return {
        "correlation_id": correlation_id_var.get(),
        "batch_id": batch_id_var.get(),
        "aws_request_id": request_id_var.get(),
    }


class StructuredJsonFormatter(logging.Formatter):
    """Renders a LogRecord as one JSON object per line."""

    def __init__(self, service_name: str = "catalog-service"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update({k: v for k, v in current_log_context().items() if v})

        for name in LIFTED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        if record.exc_info and record.exc_info[0]:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(log_data, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """Adapter for handler modules; adds the invocation ids to `extra`."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**current_log_context(), **kwargs.get("extra", {})}
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    service_name: str = "catalog-service",
) -> ContextualLogger:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        service_name: Value of the `service` field and name of the returned logger

    Returns:
        ContextualLogger wrapping logging.getLogger(service_name)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
        handler.setFormatter(StructuredJsonFormatter(service_name))
    else:
        handler.setFormatter(
            logging.Formatter("[%(levelname)s] %(asctime)s - %(name)s - %(message)s")
        )
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return ContextualLogger(logging.getLogger(service_name), {})


def log_execution_time(logger: logging.Logger):
    """
    Log how long the wrapped call took, on success and on failure.

    Example:
        @log_execution_time(logger)
        def ingest(self, bucket, key):
            ...
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
                logger.error(
                    f"{func.__qualname__} failed after {duration_ms}ms: {e}",
                    extra={"duration_ms": duration_ms},
                )
                raise
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.info(f"{func.__qualname__} completed", extra={"duration_ms": duration_ms})
            return result
        return wrapper
    return decorator

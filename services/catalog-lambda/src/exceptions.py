"""
Custom exceptions for the catalog service.
Provides structured error handling with rich context for debugging and monitoring.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from enum import Enum


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for routing and handling."""
    VALIDATION = "validation"
    CONFLICT = "conflict"
    PARSING = "parsing"
    AWS_SERVICE = "aws_service"
    CONFIGURATION = "configuration"


@dataclass
class ErrorContext:
    """Rich context for error tracking and debugging."""
    correlation_id: Optional[str] = None
    product_id: Optional[str] = None
    message_id: Optional[str] = None
    field_name: Optional[str] = None
    actual_value: Optional[Any] = None
    s3_bucket: Optional[str] = None
    s3_key: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    additional_data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert context to dictionary for logging."""
        return {
            "correlation_id": self.correlation_id,
            "product_id": self.product_id,
            "message_id": self.message_id,
            "field_name": self.field_name,
            "actual_value": str(self.actual_value) if self.actual_value is not None else None,
            "s3_bucket": self.s3_bucket,
            "s3_key": self.s3_key,
            "timestamp": self.timestamp,
            **self.additional_data,
        }


class CatalogError(Exception):
    """Base exception for all catalog service errors."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.VALIDATION,
        retryable: bool = False,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable
        self.original_exception = original_exception

    def to_dict(self) -> dict:
        """Serialize exception for logging and monitoring."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "original_exception": str(self.original_exception) if self.original_exception else None,
        }


class MalformedInputError(CatalogError):
    """Raised when a payload cannot be read as a product at all."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            context=context,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            retryable=False,
            original_exception=original_exception,
        )


class ValidationFailedError(CatalogError):
    """Raised when a product input fails one or more business rules."""

    def __init__(
        self,
        errors: list,
        context: Optional[ErrorContext] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["field_errors"] = [
            {"field": e.field, "message": e.message} for e in errors
        ]

        super().__init__(
            message="Validation failed: " + ", ".join(e.message for e in errors),
            context=ctx,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )
        self.errors = errors


class ConflictError(CatalogError):
    """Raised when a conditional write finds an existing record."""

    def __init__(
        self,
        message: str,
        product_id: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.product_id = product_id

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.CONFLICT,
            retryable=False,
            original_exception=original_exception,
        )


class DuplicateIdError(ConflictError):
    """Raised when the generated product id already exists in either table."""


class BackendUnavailableError(CatalogError):
    """Raised when AWS service calls fail."""

    def __init__(
        self,
        message: str,
        service_name: str,
        operation: str,
        throttled: bool = False,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["aws_service"] = service_name
        ctx.additional_data["operation"] = operation
        ctx.additional_data["throttled"] = throttled

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.AWS_SERVICE,
            retryable=True,
            original_exception=original_exception,
        )
        self.service_name = service_name
        self.operation = operation
        self.throttled = throttled


class StoreUnavailableError(BackendUnavailableError):
    """Raised when DynamoDB operations fail."""

    def __init__(
        self,
        message: str,
        operation: str = "TransactWriteItems",
        throttled: bool = False,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            service_name="DynamoDB",
            operation=operation,
            throttled=throttled,
            context=context,
            original_exception=original_exception,
        )


class S3Error(BackendUnavailableError):
    """Raised when S3 operations fail."""

    def __init__(
        self,
        message: str,
        bucket: str,
        key: str,
        operation: str = "GetObject",
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.s3_bucket = bucket
        ctx.s3_key = key

        super().__init__(
            message=message,
            service_name="S3",
            operation=operation,
            context=ctx,
            original_exception=original_exception,
        )


class QueueError(BackendUnavailableError):
    """Raised when SQS operations fail."""

    def __init__(
        self,
        message: str,
        queue_url: str,
        throttled: bool = False,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["queue_url"] = queue_url

        super().__init__(
            message=message,
            service_name="SQS",
            operation="SendMessage",
            throttled=throttled,
            context=ctx,
            original_exception=original_exception,
        )


class TopicError(BackendUnavailableError):
    """Raised when SNS operations fail."""

    def __init__(
        self,
        message: str,
        topic_arn: str,
        throttled: bool = False,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["topic_arn"] = topic_arn

        super().__init__(
            message=message,
            service_name="SNS",
            operation="Publish",
            throttled=throttled,
            context=ctx,
            original_exception=original_exception,
        )


class CsvParseError(CatalogError):
    """Raised when an uploaded CSV cannot be read as a whole."""

    def __init__(
        self,
        message: str,
        bucket: str,
        key: str,
        rows_read: int = 0,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.s3_bucket = bucket
        ctx.s3_key = key
        ctx.additional_data["rows_read"] = rows_read

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.PARSING,
            retryable=False,
            original_exception=original_exception,
        )
        self.rows_read = rows_read


class ConfigurationError(CatalogError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: str,
        context: Optional[ErrorContext] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["config_key"] = config_key

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )
        self.config_key = config_key


THROTTLING_ERROR_CODES = frozenset({
    "ThrottlingException",
    "Throttling",
    "ThrottledException",
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "SlowDown",
})


def client_error_code(exc: Exception) -> Optional[str]:
    """Return the AWS error code carried by a botocore ClientError, if any."""
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    return response.get("Error", {}).get("Code")


def is_throttling_error(exc: Exception) -> bool:
    return client_error_code(exc) in THROTTLING_ERROR_CODES

"""Tests for custom exceptions."""

from botocore.exceptions import ClientError

from conftest import make_client_error
from exceptions import (
    CatalogError,
    ConfigurationError,
    CsvParseError,
    DuplicateIdError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    QueueError,
    S3Error,
    StoreUnavailableError,
    TopicError,
    ValidationFailedError,
    client_error_code,
    is_throttling_error,
)
from models import FieldError


class TestErrorContext:
    """Tests for ErrorContext."""

    def test_error_context_defaults(self):
        ctx = ErrorContext()
        assert ctx.correlation_id is None
        assert ctx.product_id is None
        assert ctx.timestamp is not None

    def test_error_context_to_dict_flattens_additional_data(self):
        ctx = ErrorContext(product_id="prod-456", field_name="price", actual_value=-1)
        ctx.additional_data["queue_url"] = "q"

        result = ctx.to_dict()

        assert result["product_id"] == "prod-456"
        assert result["field_name"] == "price"
        assert result["actual_value"] == "-1"
        assert result["queue_url"] == "q"


class TestCatalogError:
    """Tests for the CatalogError base class."""

    def test_creation(self):
        error = CatalogError(
            message="Test error",
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.PARSING,
            retryable=True,
        )

        assert str(error) == "Test error"
        assert error.severity == ErrorSeverity.HIGH
        assert error.retryable is True

    def test_to_dict(self):
        error = DuplicateIdError(message="exists", product_id="p-1")
        result = error.to_dict()

        assert result["error_type"] == "DuplicateIdError"
        assert result["severity"] == "medium"
        assert result["category"] == "conflict"
        assert result["context"]["product_id"] == "p-1"


class TestValidationErrors:
    """Tests for validation errors."""

    def test_validation_failed_collects_messages(self):
        errors = [
            FieldError(field="title", message="Title missing"),
            FieldError(field="price", message="Price missing"),
        ]
        error = ValidationFailedError(errors)

        assert error.message == "Validation failed: Title missing, Price missing"
        assert error.errors == errors
        assert error.context.additional_data["field_errors"][1]["field"] == "price"


class TestBackendErrors:
    """Tests for AWS-related errors."""

    def test_store_unavailable(self):
        error = StoreUnavailableError(message="slow down", throttled=True)

        assert error.service_name == "DynamoDB"
        assert error.operation == "TransactWriteItems"
        assert error.throttled is True
        assert error.retryable is True

    def test_s3_error(self):
        error = S3Error(message="Failed to download", bucket="test-bucket", key="uploaded/p.csv")

        assert error.context.s3_bucket == "test-bucket"
        assert error.context.s3_key == "uploaded/p.csv"
        assert error.retryable is True

    def test_queue_and_topic_errors(self):
        queue = QueueError(message="send failed", queue_url="q-url")
        topic = TopicError(message="publish failed", topic_arn="arn:topic")

        assert queue.context.additional_data["queue_url"] == "q-url"
        assert topic.context.additional_data["topic_arn"] == "arn:topic"

    def test_csv_parse_error(self):
        error = CsvParseError(message="bad bytes", bucket="b", key="k", rows_read=7)

        assert error.rows_read == 7
        assert error.category == ErrorCategory.PARSING
        assert error.retryable is False

    def test_configuration_error(self):
        error = ConfigurationError(message="missing", config_key="STOCK_TABLE")

        assert error.config_key == "STOCK_TABLE"
        assert error.severity == ErrorSeverity.CRITICAL


class TestClientErrorHelpers:
    """Tests for botocore error inspection."""

    def test_client_error_code(self):
        assert client_error_code(make_client_error("NoSuchKey")) == "NoSuchKey"
        assert client_error_code(ValueError("x")) is None

    def test_is_throttling_error(self):
        assert is_throttling_error(make_client_error("ProvisionedThroughputExceededException"))
        assert is_throttling_error(make_client_error("SlowDown"))
        assert not is_throttling_error(make_client_error("AccessDenied"))
        assert not is_throttling_error(ClientError({}, "Publish"))

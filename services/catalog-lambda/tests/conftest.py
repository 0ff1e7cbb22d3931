"""Pytest fixtures and configuration."""

import io
import json
import os
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["PRODUCTS_TABLE"] = "test-products-table"
os.environ["STOCK_TABLE"] = "test-stock-table"
os.environ["CATALOG_ITEMS_QUEUE_URL"] = "https://sqs.us-east-1.amazonaws.com/123456789012/catalog-items"
os.environ["CREATE_PRODUCT_TOPIC_ARN"] = "arn:aws:sns:us-east-1:123456789012:create-product"
os.environ["IMPORT_BUCKET_NAME"] = "test-import-bucket"

from retry import RetryConfig  # noqa: E402


def make_client_error(code: str, operation: str = "Operation", cancellation_codes=None) -> ClientError:
    """Build a botocore ClientError the way the SDK raises it."""
    response = {"Error": {"Code": code, "Message": f"{code} raised"}}
    if cancellation_codes is not None:
        response["CancellationReasons"] = [
            {"Code": c} if c else {"Code": "None"} for c in cancellation_codes
        ]
    return ClientError(response, operation)


@pytest.fixture
def no_delay_retry():
    """Retry policy that does not sleep between attempts."""
    return RetryConfig(max_attempts=3, base_delay=0.0, jitter=False)


@pytest.fixture
def dynamodb_client():
    client = Mock()
    client.transact_write_items.return_value = {}
    return client


@pytest.fixture
def sns_client():
    client = Mock()
    client.publish.return_value = {"MessageId": "sns-1"}
    return client


@pytest.fixture
def sqs_client():
    client = Mock()
    sent = iter(range(1, 10_000))
    client.send_message.side_effect = lambda **kwargs: {"MessageId": f"sqs-{next(sent)}"}
    return client


@pytest.fixture
def sample_product_body():
    return {"title": "  Mug  ", "price": 29.99, "count": 10}


@pytest.fixture
def make_sqs_event():
    """Build an SQS Lambda event from a list of bodies (dicts are JSON-encoded)."""

    def _make(bodies):
        return {
            "Records": [
                {
                    "messageId": f"msg-{index}",
                    "receiptHandle": f"handle-{index}",
                    "body": body if isinstance(body, str) else json.dumps(body),
                    "attributes": {"ApproximateReceiveCount": "1"},
                    "messageAttributes": {},
                    "eventSource": "aws:sqs",
                    "eventSourceARN": "arn:aws:sqs:us-east-1:123456789012:catalog-items",
                    "awsRegion": "us-east-1",
                }
                for index, body in enumerate(bodies)
            ]
        }

    return _make


@pytest.fixture
def sample_s3_event():
    """Return a sample S3 event for an uploaded CSV."""
    return {
        "Records": [
            {
                "s3": {
                    "bucket": {"name": "test-import-bucket"},
                    "object": {"key": "uploaded/products+list.csv"},
                }
            }
        ]
    }


@pytest.fixture
def sample_csv():
    return (
        "title,description,price,count,image\n"
        "Mug,Ceramic mug,29.99,10,https://example.com/mug.jpg\n"
        ",No title,5,1,\n"
        "Teapot,,45,3,\n"
        "Kettle,Broken price,abc,2,\n"
        "Spoon,,1.5,,\n"
    )


@pytest.fixture
def make_s3_client():
    """S3 client mock whose get_object streams the given CSV text."""

    def _make(csv_text: str):
        client = Mock()
        client.get_object.return_value = {
            "Body": io.BytesIO(csv_text.encode("utf-8")),
            "ContentLength": len(csv_text),
        }
        client.copy_object.return_value = {}
        client.delete_object.return_value = {}
        return client

    return _make

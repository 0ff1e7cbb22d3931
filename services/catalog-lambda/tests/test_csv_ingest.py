"""Tests for CsvIngestReader."""

import io
import json
from unittest.mock import Mock

import pytest

from conftest import make_client_error
from csv_ingest import CsvIngestReader, parse_s3_records
from exceptions import CsvParseError, QueueError, S3Error
from message_queue import QueuePublisher

BUCKET = "test-import-bucket"
KEY = "uploaded/products.csv"


@pytest.fixture
def publisher(sqs_client, no_delay_retry):
    return QueuePublisher(sqs_client, "queue-url", retry_config=no_delay_retry)


def make_reader(s3_client, publisher, no_delay_retry):
    return CsvIngestReader(
        s3_client,
        publisher,
        incoming_prefix="uploaded/",
        archive_prefix="parsed/",
        publish_concurrency=4,
        retry_config=no_delay_retry,
    )


class TestIngest:
    """Tests for the CSV ingest flow."""

    def test_enqueues_valid_rows_and_counts_errors(
        self, make_s3_client, sample_csv, publisher, sqs_client, no_delay_retry
    ):
        s3 = make_s3_client(sample_csv)
        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert summary.total_rows == 5
        assert summary.enqueued == 3
        assert summary.errors == 2
        assert summary.archived is True
        assert summary.skipped is False

        bodies = sorted(
            (json.loads(c.kwargs["MessageBody"]) for c in sqs_client.send_message.call_args_list),
            key=lambda b: b["title"],
        )
        assert [b["title"] for b in bodies] == ["Mug", "Spoon", "Teapot"]
        assert bodies[0]["image"] == "https://example.com/mug.jpg"
        assert bodies[1]["count"] == 0

    def test_archives_by_copy_then_delete(self, make_s3_client, sample_csv, publisher, no_delay_retry):
        s3 = make_s3_client(sample_csv)
        make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        s3.copy_object.assert_called_once_with(
            Bucket=BUCKET,
            CopySource={"Bucket": BUCKET, "Key": KEY},
            Key="parsed/products.csv",
        )
        s3.delete_object.assert_called_once_with(Bucket=BUCKET, Key=KEY)

    def test_delete_failure_is_logged_not_raised(self, make_s3_client, sample_csv, publisher, no_delay_retry):
        """Test a failed delete after a successful copy keeps the enqueue counts."""
        s3 = make_s3_client(sample_csv)
        s3.delete_object.side_effect = make_client_error("AccessDenied", "DeleteObject")

        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert summary.enqueued == 3
        assert summary.archived is False
        s3.copy_object.assert_called_once()

    def test_copy_failure_skips_delete(self, make_s3_client, sample_csv, publisher, no_delay_retry):
        s3 = make_s3_client(sample_csv)
        s3.copy_object.side_effect = make_client_error("AccessDenied", "CopyObject")

        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert summary.archived is False
        s3.delete_object.assert_not_called()

    @pytest.mark.parametrize("key", ["other/products.csv", "uploaded/products.txt", "parsed/products.csv"])
    def test_filtered_keys_are_skipped(self, make_s3_client, sample_csv, publisher, no_delay_retry, key):
        s3 = make_s3_client(sample_csv)

        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, key)

        assert summary.skipped is True
        s3.get_object.assert_not_called()
        s3.copy_object.assert_not_called()

    def test_extension_check_is_case_insensitive(self, make_s3_client, sample_csv, publisher, no_delay_retry):
        s3 = make_s3_client(sample_csv)
        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, "uploaded/PRODUCTS.CSV")
        assert summary.enqueued == 3

    def test_header_is_normalized_and_bom_tolerated(self, make_s3_client, publisher, no_delay_retry):
        s3 = make_s3_client("\ufeff Title ,PRICE,Count\nMug,3,1\n")
        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)
        assert summary.enqueued == 1

    def test_missing_column_counts_every_row_as_error(self, make_s3_client, publisher, sqs_client, no_delay_retry):
        s3 = make_s3_client("title,price\nMug,3\nCup,4\n")

        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert summary.errors == 2
        assert summary.enqueued == 0
        sqs_client.send_message.assert_not_called()
        assert summary.archived is True

    def test_failed_publish_counts_as_error(self, make_s3_client, sample_csv, no_delay_retry):
        def publish(product):
            if product.title == "Teapot":
                raise QueueError(message="send failed", queue_url="queue-url")
            return "ok"

        publisher = Mock()
        publisher.publish.side_effect = publish
        s3 = make_s3_client(sample_csv)

        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert summary.enqueued == 2
        assert summary.errors == 3
        assert publisher.publish.call_count == 3

    def test_undecodable_file_raises_after_archival(self, publisher, no_delay_retry):
        s3 = Mock()
        s3.get_object.return_value = {"Body": io.BytesIO(b"title,price,count\nMug,1,1\n\xff\xfe\xfa\n")}

        with pytest.raises(CsvParseError):
            make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        s3.copy_object.assert_called_once()
        s3.delete_object.assert_called_once()

    def test_stream_failure_raises_after_archival(self, publisher, no_delay_retry):
        body = Mock()
        body.read.side_effect = OSError("connection reset")
        s3 = Mock()
        s3.get_object.return_value = {"Body": body}

        with pytest.raises(CsvParseError) as exc_info:
            make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert exc_info.value.context.s3_key == KEY
        s3.copy_object.assert_called_once()

    def test_missing_object_is_not_retried(self, publisher, no_delay_retry):
        s3 = Mock()
        s3.get_object.side_effect = make_client_error("NoSuchKey", "GetObject")

        with pytest.raises(S3Error):
            make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert s3.get_object.call_count == 1
        s3.copy_object.assert_not_called()

    def test_throttled_get_is_retried(self, make_s3_client, sample_csv, publisher, no_delay_retry):
        s3 = make_s3_client(sample_csv)
        ok = s3.get_object.return_value
        s3.get_object.side_effect = [make_client_error("SlowDown", "GetObject"), ok]

        summary = make_reader(s3, publisher, no_delay_retry).ingest(BUCKET, KEY)

        assert summary.enqueued == 3
        assert s3.get_object.call_count == 2


class TestParseS3Records:
    """Tests for parse_s3_records."""

    def test_decodes_keys(self, sample_s3_event):
        assert parse_s3_records(sample_s3_event) == [("test-import-bucket", "uploaded/products list.csv")]

    def test_ignores_incomplete_records(self):
        assert parse_s3_records({"Records": [{"s3": {"bucket": {"name": "b"}}}]}) == []

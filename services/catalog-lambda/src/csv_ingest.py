"""
CSV import of catalog rows uploaded to S3.

The object is streamed row by row; every valid row becomes one message on the
catalog items queue. Once the stream ends, successfully or not, the file is
moved from the incoming prefix to the archive prefix.
"""

import codecs
import csv
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Iterator, Optional
from urllib.parse import unquote_plus

from botocore.exceptions import BotoCoreError, ClientError

from exceptions import (
    CatalogError,
    CsvParseError,
    ErrorContext,
    MalformedInputError,
    S3Error,
    is_throttling_error,
)
from logging_config import log_execution_time
from message_queue import QueuePublisher
from models import IngestSummary, ProductInput
from retry import RetryConfig, retry_with_backoff
from validation import sanitize_product_input, validate_product

logger = logging.getLogger(__name__)

STREAM_ERRORS = (csv.Error, UnicodeDecodeError, BotoCoreError, OSError)


def parse_s3_records(event: dict) -> list[tuple[str, str]]:
    """Return (bucket, key) pairs from an S3 event, with keys URL-decoded."""
    objects = []
    for record in event.get("Records") or []:
        s3 = record.get("s3", {})
        bucket = s3.get("bucket", {}).get("name")
        key = s3.get("object", {}).get("key")
        if bucket and key:
            objects.append((bucket, unquote_plus(key)))
    return objects


class CsvIngestReader:
    """Streams uploaded CSV files into the catalog items queue."""

    def __init__(
        self,
        s3_client,
        publisher: QueuePublisher,
        incoming_prefix: str = "uploaded/",
        archive_prefix: str = "parsed/",
        publish_concurrency: int = 8,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.s3 = s3_client
        self.publisher = publisher
        self.incoming_prefix = incoming_prefix
        self.archive_prefix = archive_prefix
        self.publish_concurrency = max(1, publish_concurrency)
        self._get_object = retry_with_backoff(config=retry_config or RetryConfig())(
            self._get_object_once
        )

    def should_process(self, key: str) -> bool:
        if not key.startswith(self.incoming_prefix):
            logger.info(f"Skipping {key} - not under {self.incoming_prefix}", extra={"s3_key": key})
            return False
        if not key.lower().endswith(".csv"):
            logger.info(f"Skipping {key} - not a CSV file", extra={"s3_key": key})
            return False
        return True

    def _get_object_once(self, bucket: str, key: str) -> dict:
        try:
            return self.s3.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            error = S3Error(
                message=f"Failed to read s3://{bucket}/{key}: {e}",
                bucket=bucket,
                key=key,
                original_exception=e,
            )
            error.retryable = is_throttling_error(e) or isinstance(e, BotoCoreError)
            raise error

    @log_execution_time(logger)
    def ingest(self, bucket: str, key: str) -> IngestSummary:
        """
        Enqueue every valid row of an uploaded CSV file.

        Args:
            bucket: S3 bucket name
            key: Object key (already URL-decoded)

        Returns:
            IngestSummary with row, enqueue and error counts

        Raises:
            S3Error: If the object cannot be fetched
            CsvParseError: If the stream itself is unreadable (after archival)
        """
        summary = IngestSummary(bucket=bucket, key=key)
        if not self.should_process(key):
            summary.skipped = True
            return summary

        response = self._get_object(bucket, key)
        logger.info(
            f"Retrieved object {key}. Content-Length: {response.get('ContentLength')}",
            extra={"s3_bucket": bucket, "s3_key": key},
        )

        futures: list[Future] = []
        with ThreadPoolExecutor(max_workers=self.publish_concurrency) as executor:
            try:
                for row_number, row in enumerate(self._read_rows(response["Body"]), start=1):
                    summary.total_rows += 1
                    product = self._prepare_row(row, row_number, key)
                    if product is None:
                        summary.errors += 1
                        continue
                    futures.append(executor.submit(self.publisher.publish, product))
            except STREAM_ERRORS as e:
                logger.error(
                    f"Error parsing CSV {key} after {summary.total_rows} rows: {e}",
                    extra={"s3_bucket": bucket, "s3_key": key},
                )
                raise CsvParseError(
                    message=f"Failed to parse s3://{bucket}/{key}: {e}",
                    bucket=bucket,
                    key=key,
                    rows_read=summary.total_rows,
                    original_exception=e,
                ) from e
            finally:
                self._collect(futures, summary)
                summary.archived = self.archive(bucket, key)
                logger.info(
                    f"Finished processing {key}. Total records: {summary.total_rows}, "
                    f"Enqueued: {summary.enqueued}, Errors: {summary.errors}",
                    extra={"s3_bucket": bucket, "s3_key": key, "metrics": summary.model_dump()},
                )

        return summary

    def _read_rows(self, body) -> Iterator[dict]:
        reader = csv.DictReader(codecs.getreader("utf-8-sig")(body))
        for row in reader:
            yield {
                k.strip().lower(): v
                for k, v in row.items()
                if isinstance(k, str)
            }

    def _prepare_row(self, row: dict, row_number: int, key: str) -> Optional[ProductInput]:
        try:
            product = sanitize_product_input(row)
        except MalformedInputError as e:
            logger.warning(f"Record {row_number} of {key}: {e.message}", extra={"s3_key": key})
            return None

        errors = validate_product(product)
        if errors:
            logger.warning(
                f"Record {row_number} of {key} rejected: "
                + ", ".join(e.message for e in errors),
                extra={"s3_key": key, "field_errors": [e.model_dump() for e in errors]},
            )
            return None
        return product

    def _collect(self, futures: list[Future], summary: IngestSummary) -> None:
        """Wait for every outstanding publish and fold its result into summary."""
        wait(futures)
        for future in futures:
            try:
                future.result()
                summary.enqueued += 1
            except CatalogError as e:
                summary.errors += 1
                logger.error(f"Failed to enqueue row: {e.message}", extra={"error": e.to_dict()})
            except Exception as e:
                summary.errors += 1
                logger.error(f"Unexpected error enqueueing row: {e}", exc_info=True)

    def archive(self, bucket: str, key: str) -> bool:
        """
        Move a processed file to the archive prefix (copy, then delete).
        Failures are logged and reported as False, never raised.
        """
        destination = self.archive_prefix + key[len(self.incoming_prefix):]
        context = ErrorContext(s3_bucket=bucket, s3_key=key)
        logger.info(f"Moving file from {key} to {destination}", extra={"s3_key": key})

        try:
            self.s3.copy_object(
                Bucket=bucket,
                CopySource={"Bucket": bucket, "Key": key},
                Key=destination,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                f"Failed to copy {key} to {destination}: {e}",
                extra={"error": context.to_dict()},
            )
            return False

        try:
            self.s3.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                f"Copied {key} to {destination} but failed to delete original: {e}",
                extra={"error": context.to_dict()},
            )
            return False

        logger.info(f"Moved {key} to {destination}", extra={"s3_key": key})
        return True

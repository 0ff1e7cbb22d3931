"""
AWS Lambda handlers for the asynchronous catalog pipeline.

import_file_parser_handler: S3 upload -> one SQS message per valid CSV row.
catalog_batch_process_handler: SQS batch -> products + one SNS notification.
"""

import os
import time
import uuid
from typing import Any

from batch_processor import CatalogBatchProcessor
from clients import AWSClientFactory
from config import Settings
from csv_ingest import CsvIngestReader, parse_s3_records
from exceptions import CatalogError, ConfigurationError
from logging_config import (
    bind_lambda_context,
    configure_logging,
    set_batch_id,
    set_correlation_id,
)
from message_queue import QueuePublisher, parse_sqs_records
from notifications import NotificationPublisher
from product_service import ProductService

logger = configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    service_name="catalog-service",
)


def build_ingest_reader(settings: Settings) -> CsvIngestReader:
    settings.require("catalog_items_queue_url")
    publisher = QueuePublisher(
        AWSClientFactory.sqs(settings),
        settings.catalog_items_queue_url,
    )
    return CsvIngestReader(
        AWSClientFactory.s3(settings),
        publisher,
        incoming_prefix=settings.incoming_prefix,
        archive_prefix=settings.archive_prefix,
        publish_concurrency=settings.publish_concurrency,
    )


def build_batch_processor(settings: Settings) -> CatalogBatchProcessor:
    settings.require("products_table", "stock_table")
    product_service = ProductService(
        AWSClientFactory.dynamodb(settings),
        settings.products_table,
        settings.stock_table,
    )
    notifier = NotificationPublisher(
        AWSClientFactory.sns(settings),
        settings.create_product_topic_arn or None,
    )
    return CatalogBatchProcessor(product_service, notifier)


def import_file_parser_handler(event: dict, context: Any) -> dict:
    """
    S3 trigger for uploaded CSV files.

    Each record is ingested independently; a failure on one file is logged
    and does not stop the others.
    """
    start_time = time.perf_counter()
    correlation_id = set_correlation_id()
    bind_lambda_context(context)
    logger.info(f"Lambda invocation started with {len(event.get('Records') or [])} records")

    try:
        reader = build_ingest_reader(Settings.from_env())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}", extra={"error": e.to_dict()})
        return _result({"error": e.to_dict(), "correlationId": correlation_id}, start_time)

    summaries = []
    failures = []
    for bucket, key in parse_s3_records(event):
        logger.info(
            f"Processing file: {key} from bucket: {bucket}",
            extra={"s3_bucket": bucket, "s3_key": key},
        )
        try:
            summaries.append(reader.ingest(bucket, key).model_dump())
        except CatalogError as e:
            logger.error(f"Error processing {key}: {e.message}", extra={"error": e.to_dict()})
            failures.append({"key": key, "error": e.to_dict()})
        except Exception as e:
            logger.error(f"Unexpected error processing {key}: {e}", exc_info=True)
            failures.append({"key": key, "error": {"type": type(e).__name__, "message": str(e)}})

    return _result(
        {"correlationId": correlation_id, "files": summaries, "failures": failures},
        start_time,
    )


def catalog_batch_process_handler(event: dict, context: Any) -> dict:
    """SQS trigger that creates products from queued catalog rows."""
    start_time = time.perf_counter()
    correlation_id = set_correlation_id()
    bind_lambda_context(context)
    batch_id = str(uuid.uuid4())
    set_batch_id(batch_id)

    try:
        processor = build_batch_processor(Settings.from_env())
    except ConfigurationError as e:
        logger.error(
            "Missing PRODUCTS_TABLE or STOCK_TABLE environment variables",
            extra={"error": e.to_dict()},
        )
        return _result(
            {"error": e.to_dict(), "correlationId": correlation_id, "batchId": batch_id},
            start_time,
        )

    result = processor.process(parse_sqs_records(event))

    return _result(
        {"correlationId": correlation_id, "batchId": batch_id, **result.to_dict()},
        start_time,
    )


def _result(body: dict, start_time: float) -> dict:
    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    body["durationMs"] = duration_ms
    logger.info("Lambda invocation complete", extra={"duration_ms": duration_ms})
    return body

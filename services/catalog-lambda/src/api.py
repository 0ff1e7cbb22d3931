"""
API Gateway (REST, proxy integration) handlers for the product service.
"""

import json
import os
import time
from typing import Any, Optional

from clients import AWSClientFactory
from config import Settings
from exceptions import (
    BackendUnavailableError,
    CatalogError,
    ConflictError,
    MalformedInputError,
    ValidationFailedError,
)
from logging_config import bind_lambda_context, configure_logging, set_correlation_id
from product_service import ProductService
from validation import sanitize_product_input

logger = configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    service_name="product-api",
)


def build_response(
    status_code: int,
    body: Any,
    settings: Optional[Settings] = None,
    methods: str = "GET,POST,OPTIONS",
) -> dict:
    settings = settings or Settings.from_env()
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": settings.cors_allow_origin,
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Headers": "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token",
            "Access-Control-Allow-Methods": methods,
        },
        "body": json.dumps(body, default=str),
    }


def error_status(error: CatalogError) -> int:
    """HTTP status for a catalog error."""
    if isinstance(error, (ValidationFailedError, MalformedInputError)):
        return 400
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, BackendUnavailableError) and error.throttled:
        return 503
    return 500


def build_product_service(settings: Settings) -> ProductService:
    settings.require("products_table", "stock_table")
    return ProductService(
        AWSClientFactory.dynamodb(settings),
        settings.products_table,
        settings.stock_table,
    )


def _log_request(event: dict, route: str) -> None:
    logger.info(
        f"{route} - Incoming request",
        extra={
            "metrics": {
                "httpMethod": event.get("httpMethod"),
                "path": event.get("path"),
                "requestId": (event.get("requestContext") or {}).get("requestId"),
            }
        },
    )


def create_product_handler(event: dict, context: Any) -> dict:
    """POST /products"""
    set_correlation_id()
    bind_lambda_context(context)
    start_time = time.perf_counter()
    settings = Settings.from_env()
    _log_request(event, "POST /products")

    try:
        try:
            body = json.loads(event.get("body") or "{}")
        except ValueError as e:
            raise MalformedInputError(message=f"Request body is not valid JSON: {e}")

        product = build_product_service(settings).create_product(
            sanitize_product_input(body)
        )
    except ValidationFailedError as e:
        logger.info(f"Validation failed: {e.message}")
        return build_response(
            400,
            {"message": "Invalid product data", "errors": [err.message for err in e.errors]},
            settings,
        )
    except CatalogError as e:
        status = error_status(e)
        logger.error(f"Error creating product: {e.message}", extra={"error": e.to_dict()})
        return build_response(status, {"message": _public_message(status, e)}, settings)
    except Exception as e:
        logger.error(f"Unexpected error creating product: {e}", exc_info=True)
        return build_response(500, {"message": "Internal Server Error"}, settings)

    logger.info(
        "Product and stock created successfully",
        extra={
            "product_id": product.id,
            "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
        },
    )
    return build_response(201, product.to_response(), settings)


def get_products_list_handler(event: dict, context: Any) -> dict:
    """GET /products"""
    set_correlation_id()
    bind_lambda_context(context)
    settings = Settings.from_env()
    _log_request(event, "GET /products")

    try:
        products = build_product_service(settings).list_products()
    except CatalogError as e:
        status = error_status(e)
        logger.error(f"Error listing products: {e.message}", extra={"error": e.to_dict()})
        return build_response(status, {"message": _public_message(status, e)}, settings)

    return build_response(200, [p.to_response() for p in products], settings)


def get_product_by_id_handler(event: dict, context: Any) -> dict:
    """GET /products/{productId}"""
    set_correlation_id()
    bind_lambda_context(context)
    settings = Settings.from_env()
    _log_request(event, "GET /products/{productId}")

    product_id = (event.get("pathParameters") or {}).get("productId")
    if not product_id:
        return build_response(400, {"message": "Missing productId"}, settings)

    try:
        product = build_product_service(settings).get_product(product_id)
    except CatalogError as e:
        status = error_status(e)
        logger.error(f"Error reading product: {e.message}", extra={"error": e.to_dict()})
        return build_response(status, {"message": _public_message(status, e)}, settings)

    if product is None:
        return build_response(404, {"message": "Product not found"}, settings)
    return build_response(200, product.to_response(), settings)


def import_products_file_handler(event: dict, context: Any) -> dict:
    """GET /import?name=<file>.csv - issue a presigned upload URL."""
    set_correlation_id()
    bind_lambda_context(context)
    settings = Settings.from_env()
    _log_request(event, "GET /import")

    if event.get("httpMethod") == "OPTIONS":
        return build_response(200, {}, settings, methods="GET,OPTIONS")

    file_name = (event.get("queryStringParameters") or {}).get("name")
    if not file_name or "/" in file_name or "\\" in file_name:
        return build_response(
            400,
            {"error": "Missing or invalid required query parameter: name"},
            settings,
            methods="GET,OPTIONS",
        )

    if not settings.import_bucket_name:
        logger.error("IMPORT_BUCKET_NAME environment variable not set")
        return build_response(500, {"error": "Server configuration error"}, settings, methods="GET,OPTIONS")

    key = f"{settings.incoming_prefix}{file_name}"
    try:
        signed_url = AWSClientFactory.s3(settings).generate_presigned_url(
            "put_object",
            Params={
                "Bucket": settings.import_bucket_name,
                "Key": key,
                "ContentType": "text/csv",
            },
            ExpiresIn=settings.signed_url_ttl_seconds,
        )
    except Exception as e:
        logger.error(f"Error generating signed URL: {e}", exc_info=True)
        return build_response(500, {"error": "Internal server error"}, settings, methods="GET,OPTIONS")

    logger.info(f"Generated signed URL for key: {key}", extra={"s3_key": key})
    return build_response(
        200,
        {"signedUrl": signed_url, "key": key, "bucketName": settings.import_bucket_name},
        settings,
        methods="GET,OPTIONS",
    )


def _public_message(status: int, error: CatalogError) -> str:
    if status == 400:
        return error.message
    if status == 409:
        return "Product with this ID already exists or transaction conflict occurred"
    if status == 503:
        return "Service temporarily unavailable. Please try again later."
    return "Internal Server Error"

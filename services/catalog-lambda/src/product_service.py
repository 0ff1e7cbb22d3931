"""
Product persistence over the products and stock DynamoDB tables.

A product is one logical entity split across two tables. Creation writes
both records in a single TransactWriteItems call, each guarded by
attribute_not_exists, so either both exist or neither does.
"""

import logging
import uuid
from typing import Callable, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from exceptions import (
    ConfigurationError,
    DuplicateIdError,
    ErrorContext,
    StoreUnavailableError,
    client_error_code,
    is_throttling_error,
)
from models import CatalogRecord, Product, ProductInput, StockRecord
from validation import ensure_valid

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()

THROTTLED_CANCELLATION_CODES = frozenset({"ThrottlingError", "TransactionConflict"})


def _serialize(item: dict) -> dict:
    return {k: _serializer.serialize(v) for k, v in item.items()}


def _deserialize(item: dict) -> dict:
    return {k: _deserializer.deserialize(v) for k, v in item.items()}


def _cancellation_codes(error: ClientError) -> list[str]:
    reasons = error.response.get("CancellationReasons") or []
    return [r.get("Code") for r in reasons if r.get("Code")]


class ProductService:
    """Creates and reads products stored across the products and stock tables."""

    def __init__(
        self,
        dynamodb_client,
        products_table: str,
        stock_table: str,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.dynamodb = dynamodb_client
        self.products_table = products_table
        self.stock_table = stock_table
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def create_product(
        self,
        product_input: ProductInput,
        product_id: Optional[str] = None,
    ) -> Product:
        """
        Create a catalog record and its stock record atomically.

        Args:
            product_input: Sanitized product input
            product_id: Fixed id to use instead of a generated one (seeding)

        Returns:
            The created Product, keyed by product_id or a freshly generated id

        Raises:
            ValidationFailedError: If the input breaks a business rule
            DuplicateIdError: If either record already exists at the new id
            StoreUnavailableError: If DynamoDB rejects or cannot serve the call
            ConfigurationError: If a table does not exist
        """
        ensure_valid(product_input)

        product = Product(
            id=product_id or self.id_factory(),
            title=product_input.title,
            description=product_input.description,
            price=product_input.price,
            count=int(product_input.count),
            image=product_input.image,
        )

        logger.info(
            f"Creating product {product.id} in transaction",
            extra={"product_id": product.id},
        )

        try:
            self.dynamodb.transact_write_items(
                TransactItems=self._create_transaction(
                    product.catalog_record(), product.stock_record()
                )
            )
        except ClientError as e:
            raise self._map_write_error(e, product.id)
        except BotoCoreError as e:
            raise StoreUnavailableError(
                message=f"DynamoDB transaction failed: {e}",
                context=ErrorContext(product_id=product.id),
                original_exception=e,
            )

        logger.info(
            f"Product {product.id} and stock created",
            extra={"product_id": product.id},
        )
        return product

    def _create_transaction(self, record: CatalogRecord, stock: StockRecord) -> list[dict]:
        return [
            {
                "Put": {
                    "TableName": self.products_table,
                    "Item": _serialize(record.to_item()),
                    "ConditionExpression": "attribute_not_exists(id)",
                },
            },
            {
                "Put": {
                    "TableName": self.stock_table,
                    "Item": _serialize(stock.to_item()),
                    "ConditionExpression": "attribute_not_exists(product_id)",
                },
            },
        ]

    def _map_write_error(self, error: ClientError, product_id: str) -> Exception:
        code = client_error_code(error)
        context = ErrorContext(product_id=product_id)

        if code == "TransactionCanceledException":
            reasons = _cancellation_codes(error)
            logger.error(
                f"Transaction cancelled for product {product_id}: {reasons}",
                extra={"product_id": product_id},
            )
            if "ConditionalCheckFailed" in reasons:
                return DuplicateIdError(
                    message="Product with this ID already exists",
                    product_id=product_id,
                    original_exception=error,
                )
            return StoreUnavailableError(
                message=f"Transaction cancelled: {', '.join(reasons) or 'unknown reason'}",
                throttled=bool(THROTTLED_CANCELLATION_CODES.intersection(reasons)),
                context=context,
                original_exception=error,
            )

        if code == "ResourceNotFoundException":
            return ConfigurationError(
                message=f"DynamoDB table not found: {error}",
                config_key="PRODUCTS_TABLE/STOCK_TABLE",
                context=context,
            )

        return StoreUnavailableError(
            message=f"DynamoDB transaction failed: {error}",
            throttled=is_throttling_error(error),
            context=context,
            original_exception=error,
        )

    def get_product(self, product_id: str) -> Optional[Product]:
        """Read both records of a product in one consistent snapshot."""
        try:
            response = self.dynamodb.transact_get_items(
                TransactItems=[
                    {"Get": {"TableName": self.products_table, "Key": _serialize({"id": product_id})}},
                    {"Get": {"TableName": self.stock_table, "Key": _serialize({"product_id": product_id})}},
                ]
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailableError(
                message=f"Failed to read product {product_id}: {e}",
                operation="TransactGetItems",
                throttled=is_throttling_error(e),
                context=ErrorContext(product_id=product_id),
                original_exception=e,
            )

        responses = response.get("Responses", [])
        product_item = responses[0].get("Item") if responses else None
        if not product_item:
            return None
        stock_item = responses[1].get("Item") if len(responses) > 1 else None
        stock = _deserialize(stock_item) if stock_item else {}
        return self._to_product(_deserialize(product_item), stock.get("count"))

    def list_products(self) -> list[Product]:
        """Scan both tables and join stock counts onto catalog records."""
        products = self._scan(self.products_table)
        counts = {s["product_id"]: s.get("count") for s in self._scan(self.stock_table)}

        logger.info(
            f"Found {len(products)} products and {len(counts)} stock items"
        )
        return [self._to_product(p, counts.get(p["id"])) for p in products]

    def _scan(self, table_name: str) -> list[dict]:
        items = []
        try:
            paginator = self.dynamodb.get_paginator("scan")
            for page in paginator.paginate(TableName=table_name):
                items.extend(_deserialize(i) for i in page.get("Items", []))
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailableError(
                message=f"Failed to scan {table_name}: {e}",
                operation="Scan",
                throttled=is_throttling_error(e),
                original_exception=e,
            )
        return items

    @staticmethod
    def _to_product(item: dict, count) -> Product:
        return Product(
            id=item["id"],
            title=item.get("title", ""),
            description=item.get("description", ""),
            price=float(item.get("price", 0)),
            image=item.get("image"),
            count=int(count or 0),
        )

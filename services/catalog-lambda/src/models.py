"""
Data models for the catalog service.
These models represent the records persisted to DynamoDB and the payloads
exchanged over SQS and SNS.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ProductInput(BaseModel):
    """
    Sanitized, well-typed product input.

    A ProductInput is not necessarily valid: price may be NaN and title may be
    empty. Business rules live in validation.validate_product.
    """
    title: str = ""
    description: str = ""
    price: float
    count: float = 0
    image: Optional[str] = None

    def to_message_body(self) -> str:
        """Serialize for the catalog items queue."""
        return json.dumps(self.model_dump(exclude_none=True))


class FieldError(BaseModel):
    """A business-rule violation on one input field."""
    field: str
    message: str


class CatalogRecord(BaseModel):
    """Descriptive attributes of a product, stored in the products table."""
    id: str
    title: str
    description: str = ""
    price: float
    image: Optional[str] = None

    def to_item(self) -> dict:
        """Convert to a DynamoDB item (numbers as Decimal)."""
        item = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": Decimal(str(self.price)),
        }
        if self.image:
            item["image"] = self.image
        return item


class StockRecord(BaseModel):
    """Quantity on hand for a product, stored in the stock table."""
    product_id: str
    count: int = 0

    def to_item(self) -> dict:
        return {
            "product_id": self.product_id,
            "count": Decimal(self.count),
        }


class Product(CatalogRecord):
    """
    Catalog record joined with its stock count.
    This is the shape returned by the API and carried in notifications.
    """
    count: int = 0

    def catalog_record(self) -> CatalogRecord:
        return CatalogRecord(**self.model_dump(exclude={"count"}))

    def stock_record(self) -> StockRecord:
        return StockRecord(product_id=self.id, count=self.count)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class QueueMessage(BaseModel):
    """A single message of an SQS batch. The body is untrusted."""
    message_id: str
    body: str
    receive_count: int = 1


class MessageOutcome(BaseModel):
    """Outcome of processing one queue message."""
    message_id: str
    status: Literal["created", "skipped", "failed"]
    product: Optional[Product] = None
    reason: Optional[str] = None


class BatchResult(BaseModel):
    """Ordered outcomes of one queue batch."""
    outcomes: list[MessageOutcome] = Field(default_factory=list)
    notified: bool = False

    @property
    def created(self) -> list[Product]:
        return [o.product for o in self.outcomes if o.status == "created"]

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "failed")

    def to_dict(self) -> dict:
        return {
            "created_count": self.created_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "total_count": len(self.outcomes),
            "created_product_ids": [p.id for p in self.created],
            "notified": self.notified,
        }


class IngestSummary(BaseModel):
    """Per-file outcome of a CSV import."""
    bucket: str
    key: str
    total_rows: int = 0
    enqueued: int = 0
    errors: int = 0
    archived: bool = False
    skipped: bool = False


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class NotificationPayload(BaseModel):
    """Body of the batch-completion SNS message."""
    products: list[Product]
    total: int
    timestamp: str = Field(default_factory=utc_timestamp)

    @classmethod
    def for_products(cls, products: list[Product]) -> "NotificationPayload":
        return cls(products=products, total=len(products))

    def to_message(self) -> str:
        return json.dumps(self.model_dump(mode="json", exclude_none=True))

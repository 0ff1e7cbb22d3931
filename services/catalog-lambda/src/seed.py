"""
Load a starter catalog into the products and stock tables.

Run with `catalog-seed` (or `python -m seed`) against the tables named by
PRODUCTS_TABLE and STOCK_TABLE. Products keep fixed ids, so running it again
skips what is already there.
"""

import os
import sys

from clients import AWSClientFactory
from config import Settings
from exceptions import CatalogError, DuplicateIdError
from logging_config import configure_logging
from models import ProductInput
from product_service import ProductService

logger = configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    service_name="catalog-seed",
)

SAMPLE_PRODUCTS = [
    {
        "id": "7567ec4b-b10c-48c5-9345-fc73c48a80aa",
        "title": "Premium Wireless Bluetooth Headphones",
        "description": "Noise-canceling over-ear headphones with 30-hour battery life.",
        "price": 299.99,
        "count": 15,
        "image": "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=400",
    },
    {
        "id": "7567ec4b-b10c-48c5-9345-fc73c48a80a0",
        "title": "Organic Cotton T-Shirt",
        "description": "Everyday t-shirt made from certified organic cotton.",
        "price": 24.99,
        "count": 50,
        "image": "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?w=400",
    },
    {
        "id": "7567ec4b-b10c-48c5-9345-fc73c48a80a2",
        "title": "Smart Fitness Watch",
        "description": "Heart rate, GPS and sleep tracking with 7-day battery life.",
        "price": 199.99,
        "count": 25,
        "image": "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=400",
    },
    {
        "id": "7567ec4b-b10c-48c5-9345-fc73c48a80a1",
        "title": "Professional Coffee Grinder",
        "description": "Burr grinder with adjustable grind settings.",
        "price": 89.99,
        "count": 18,
        "image": "https://images.unsplash.com/photo-1551006917-3b4c078c47c9?w=400",
    },
    {
        "id": "7567ec4b-b10c-48c5-9345-fc73c48a80a3",
        "title": "Ergonomic Office Chair",
        "description": "Adjustable chair with lumbar support.",
        "price": 449.99,
        "count": 8,
        "image": "https://images.unsplash.com/photo-1586023492125-27b2c045efd7?w=400",
    },
]


def seed_products(service: ProductService, products: list[dict] = SAMPLE_PRODUCTS) -> dict:
    """
    Create each product unless its id is already taken.

    Returns:
        Counts of created, existing and failed products
    """
    counts = {"created": 0, "existing": 0, "failed": 0}
    for raw in products:
        data = dict(raw)
        product_id = data.pop("id")
        try:
            service.create_product(ProductInput(**data), product_id=product_id)
        except DuplicateIdError:
            logger.info(f"Product {data['title']} already exists, skipping", extra={"product_id": product_id})
            counts["existing"] += 1
            continue
        except CatalogError as e:
            logger.error(f"Failed to seed {data['title']}: {e.message}", extra={"error": e.to_dict()})
            counts["failed"] += 1
            continue
        logger.info(f"Seeded product {data['title']}", extra={"product_id": product_id})
        counts["created"] += 1
    return counts


def main() -> int:
    settings = Settings.from_env()
    try:
        settings.require("products_table", "stock_table")
    except CatalogError as e:
        logger.error(e.message)
        return 2

    service = ProductService(
        AWSClientFactory.dynamodb(settings),
        settings.products_table,
        settings.stock_table,
    )
    counts = seed_products(service)
    logger.info("Seeding complete", extra={"metrics": counts})
    return 1 if counts["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())

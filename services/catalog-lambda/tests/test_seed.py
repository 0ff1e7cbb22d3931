"""Tests for the starter catalog loader."""

from unittest.mock import patch

from conftest import make_client_error
from product_service import ProductService
from seed import SAMPLE_PRODUCTS, main, seed_products


def make_service(client):
    return ProductService(client, "test-products-table", "test-stock-table")


class TestSeedProducts:
    """Tests for seed_products."""

    def test_creates_every_sample_with_its_fixed_id(self, dynamodb_client):
        counts = seed_products(make_service(dynamodb_client))

        assert counts == {"created": len(SAMPLE_PRODUCTS), "existing": 0, "failed": 0}
        written_ids = [
            c.kwargs["TransactItems"][0]["Put"]["Item"]["id"]["S"]
            for c in dynamodb_client.transact_write_items.call_args_list
        ]
        assert written_ids == [p["id"] for p in SAMPLE_PRODUCTS]

    def test_existing_products_are_skipped(self, dynamodb_client):
        dynamodb_client.transact_write_items.side_effect = [
            make_client_error("TransactionCanceledException", "TransactWriteItems", ["ConditionalCheckFailed", None]),
            {},
        ]

        counts = seed_products(make_service(dynamodb_client), SAMPLE_PRODUCTS[:2])

        assert counts == {"created": 1, "existing": 1, "failed": 0}

    def test_store_failure_is_counted(self, dynamodb_client):
        dynamodb_client.transact_write_items.side_effect = make_client_error(
            "InternalServerError", "TransactWriteItems"
        )

        counts = seed_products(make_service(dynamodb_client), SAMPLE_PRODUCTS[:1])

        assert counts["failed"] == 1


class TestMain:
    """Tests for the seed entry point."""

    def test_seeds_configured_tables(self, dynamodb_client):
        with patch("seed.AWSClientFactory") as factory:
            factory.dynamodb.return_value = dynamodb_client
            assert main() == 0

        assert dynamodb_client.transact_write_items.call_count == len(SAMPLE_PRODUCTS)

    def test_missing_table_setting(self, dynamodb_client, monkeypatch):
        monkeypatch.delenv("PRODUCTS_TABLE")

        with patch("seed.AWSClientFactory") as factory:
            factory.dynamodb.return_value = dynamodb_client
            assert main() == 2

        dynamodb_client.transact_write_items.assert_not_called()

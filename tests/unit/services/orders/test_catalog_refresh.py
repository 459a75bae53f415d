"""Unit tests for catalog pricing refresh."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from order_editor.clients.backend_client import BackendAPIClient
from order_editor.services.orders.catalog_refresh import (
    CatalogRefresher,
    apply_catalog_product,
    derive_tax_fields,
    find_catalog_product,
)
from order_editor.utils.error_handler import BackendAPIException


class TestDeriveTaxFields:
    """Missing tax figures are filled in from what the catalog has."""

    def test_inclusive_and_percentage(self):
        exc, inc, tax = derive_tax_fields(Decimal("0"), Decimal("18"), Decimal("118"), Decimal("0"), Decimal("0"))
        assert (exc, inc, tax) == (Decimal("100.00"), Decimal("118.00"), Decimal("18.00"))

    def test_exclusive_and_percentage(self):
        exc, inc, tax = derive_tax_fields(Decimal("0"), Decimal("17"), Decimal("0"), Decimal("200"), Decimal("0"))
        assert (exc, inc, tax) == (Decimal("200.00"), Decimal("234.00"), Decimal("34.00"))

    def test_base_price_taken_as_inclusive(self):
        exc, inc, tax = derive_tax_fields(Decimal("118"), Decimal("18"), Decimal("0"), Decimal("0"), Decimal("0"))
        assert (exc, inc, tax) == (Decimal("100.00"), Decimal("118.00"), Decimal("18.00"))

    def test_base_price_without_tax(self):
        exc, inc, tax = derive_tax_fields(Decimal("50"), Decimal("0"), Decimal("0"), Decimal("0"), Decimal("0"))
        assert (exc, inc, tax) == (Decimal("50.00"), Decimal("50.00"), Decimal("0.00"))


class TestCatalogMatching:
    def test_wrapped_and_bare_results(self):
        results = [{"product": {"sku": "OTHER"}}, {"sku": "SKU-A", "id": "p1"}]
        assert find_catalog_product(results, "SKU-A") == {"sku": "SKU-A", "id": "p1"}
        assert find_catalog_product(results, "NOPE") is None

    def test_catalog_values_overlay_item(self, make_item):
        """Catalog values win; the item keeps its own where the catalog has none."""
        item = make_item(quantity=Decimal("2"), serial_number="7")
        updated = apply_catalog_product(item, {"id": "p1", "price": 118, "taxPercentage": 18, "name": "New name"})

        assert updated.product_name == "New name"
        assert updated.serial_number == "7"
        assert updated.price_excluding_tax == Decimal("100.00")
        assert updated.total_price == Decimal("236.00")

    def test_weight_item_uses_price_per_gram(self, make_item):
        item = make_item(is_weight_based=True, weight_quantity=Decimal("100"))
        updated = apply_catalog_product(item, {"pricePerUnit": 1500, "baseWeightUnit": "kg"})

        assert updated.price == Decimal("1.5")
        assert updated.total_price == Decimal("150.00")


class TestCatalogRefresher:
    """Concurrent refresh of a batch of items."""

    @pytest.mark.asyncio
    async def test_refresh_degrades_per_item(self, make_item):
        """A failed lookup leaves its item untouched and the batch completes."""

        async def find_products_by_sku(sku):
            if sku == "SKU-B":
                raise BackendAPIException("GET /products failed: boom", api_response_code=500, endpoint="/products")
            return [{"product": {"id": "p1", "sku": "SKU-A", "price": 118, "taxPercentage": 18}}]

        client = AsyncMock()
        client.find_products_by_sku.side_effect = find_products_by_sku

        items = [
            make_item(id="a", sku="SKU-A", quantity=Decimal("2")),
            make_item(id="b", sku="SKU-B"),
            make_item(id="c", sku=""),
        ]
        result = await CatalogRefresher(client).refresh(items)

        assert [item.id for item in result.items] == ["a", "b", "c"]
        assert result.items[0].total_price == Decimal("236.00")
        assert result.items[1] is items[1]
        assert result.items[2] is items[2]
        assert result.updated_count == 1
        assert result.skipped_count == 2
        assert result.items_with_pricing == 1
        assert result.errors["error_count"] == 1
        assert client.find_products_by_sku.await_count == 2

    @pytest.mark.asyncio
    async def test_no_catalog_match(self, make_item):
        client = AsyncMock()
        client.find_products_by_sku.return_value = []

        result = await CatalogRefresher(client).refresh([make_item()])

        assert result.updated_count == 0
        assert result.errors == {}
        assert result.to_dict()["totalItems"] == 1

    @pytest.mark.asyncio
    async def test_upstream_error_page_degrades_only_its_item(self, make_item):
        """An HTML gateway page for one SKU does not sink the rest of the batch."""
        bodies = {
            "GOOD": (200, '[{"sku": "GOOD", "price": 118, "taxPercentage": 18}]'),
            "BAD": (502, "<html><body>502 Bad Gateway</body></html>"),
        }

        def request(method, url, params=None, json=None):
            status, text = bodies[params["sku"]]
            response = MagicMock(status=status, headers={})
            response.text = AsyncMock(return_value=text)
            context = MagicMock()
            context.__aenter__.return_value = response
            return context

        client = BackendAPIClient()
        client.session = MagicMock()
        client.session.request.side_effect = request

        items = [make_item(id="a", sku="GOOD", quantity=Decimal("2")), make_item(id="b", sku="BAD")]
        result = await CatalogRefresher(client).refresh(items)

        assert result.items[0].total_price == Decimal("236.00")
        assert result.items[1] is items[1]
        assert result.updated_count == 1
        assert result.errors["error_count"] == 1

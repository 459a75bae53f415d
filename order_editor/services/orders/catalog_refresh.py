"""
Refresh line item pricing from the product catalog.

Each item with a SKU is looked up concurrently. A failed or empty lookup
leaves that item untouched; the batch itself never fails.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from order_editor.clients.backend_client import BackendAPIClient
from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.value_objects.money import ZERO, round2, to_decimal
from order_editor.services.pricing.tax_resolver import compute_line_total
from order_editor.services.pricing.weight import price_per_gram
from order_editor.utils.error_handler import AppException, ErrorAggregator

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    items: List[OrderLineItem]
    updated_count: int = 0
    skipped_count: int = 0
    items_with_pricing: int = 0
    errors: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updatedCount": self.updated_count,
            "skippedCount": self.skipped_count,
            "itemsWithPricing": self.items_with_pricing,
            "totalItems": len(self.items),
            "errors": self.errors,
        }


def find_catalog_product(results: List[Dict[str, Any]], sku: str) -> Optional[Dict[str, Any]]:
    """Pick the product matching ``sku`` from a SKU search (entries may be wrapped as ``{"product": ...}``)."""
    for entry in results:
        product = entry.get("product") if isinstance(entry.get("product"), dict) else entry
        if product.get("sku") == sku:
            return product
    return None


def derive_tax_fields(base_price: Decimal, pct: Decimal, inc: Decimal, exc: Decimal, tax: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Fill in missing tax figures.

    Returns:
        Tuple: (price excluding tax, price including tax, tax amount), rounded to the cent
    """
    if inc > 0 and pct > 0 and exc <= 0:
        exc = inc / (1 + pct / 100)
        tax = inc - exc
    elif exc > 0 and pct > 0:
        tax = exc * pct / 100
        inc = exc + tax
    elif base_price > 0 and inc <= 0 and exc <= 0:
        if pct > 0:
            # Catalog price is taken as tax inclusive
            inc = base_price
            exc = base_price / (1 + pct / 100)
            tax = inc - exc
        else:
            exc = inc = base_price
            tax = ZERO
    return round2(exc), round2(inc), round2(tax)


def _first_positive(*values: Any) -> Decimal:
    for value in values:
        number = to_decimal(value)
        if number:
            return number
    return ZERO


def apply_catalog_product(item: OrderLineItem, product: Dict[str, Any]) -> OrderLineItem:
    """Overlay fresh catalog data onto an item, keeping the item's values where the catalog has none."""
    base_price = _first_positive(product.get("price"), item.price)
    if item.is_weight_based and to_decimal(product.get("pricePerUnit")) > 0:
        base_price = price_per_gram(product.get("pricePerUnit"), product.get("baseWeightUnit") or "grams")

    pct = _first_positive(product.get("taxPercentage"), item.tax_percentage)
    exc, inc, tax = derive_tax_fields(
        base_price,
        pct,
        _first_positive(product.get("priceIncludingTax"), item.price_including_tax),
        _first_positive(product.get("priceExcludingTax"), item.price_excluding_tax),
        _first_positive(product.get("taxAmount"), item.tax_amount),
    )

    updated = item.evolve(
        product_id=str(product.get("id") or item.product_id),
        product_name=product.get("name") or item.product_name,
        product_description=product.get("description") or item.product_description,
        price=base_price,
        hs_code=product.get("hsCode") or item.hs_code,
        uom=product.get("uom") or item.uom,
        serial_number=product.get("serialNumber") or item.serial_number,
        list_number=product.get("listNumber") or item.list_number,
        bc_number=product.get("bcNumber") or item.bc_number,
        lot_number=product.get("lotNumber") or item.lot_number,
        expiry_date=product.get("expiryDate") or item.expiry_date,
        tax_percentage=pct,
        price_excluding_tax=exc,
        price_including_tax=inc,
        tax_amount=tax,
        extra_tax=_first_positive(product.get("extraTax"), item.extra_tax),
        further_tax=_first_positive(product.get("furtherTax"), item.further_tax),
        fed_payable_tax=_first_positive(product.get("fedPayableTax"), item.fed_payable_tax),
        discount=_first_positive(product.get("discount"), item.discount),
        fixed_notified_value_or_retail_price=_first_positive(
            product.get("fixedNotifiedValueOrRetailPrice"), item.fixed_notified_value_or_retail_price
        ),
        sale_type=product.get("saleType") or item.sale_type,
    )
    return updated.evolve(total_price=compute_line_total(updated))


def has_complete_pricing(item: OrderLineItem) -> bool:
    return item.price_including_tax > 0 or item.price_excluding_tax > 0 or item.tax_amount > 0


class CatalogRefresher:
    """Refreshes the pricing of a batch of items from the catalog."""

    def __init__(self, client: BackendAPIClient):
        self.client = client

    async def _refresh_one(self, index: int, item: OrderLineItem, aggregator: ErrorAggregator) -> Tuple[OrderLineItem, bool]:
        if not item.sku:
            logger.warning(f"Item {index + 1} has no SKU, skipping")
            return item, False

        try:
            results = await self.client.find_products_by_sku(item.sku)
        except AppException as e:
            aggregator.add_error(e, {"sku": item.sku, "item_id": item.id})
            logger.warning(f"Failed to fetch product for SKU {item.sku}: {e.message}")
            return item, False
        finally:
            aggregator.increment_processed()

        product = find_catalog_product(results, item.sku)
        if product is None:
            logger.warning(f"No product found for SKU: {item.sku}")
            return item, False

        return apply_catalog_product(item, product), True

    async def refresh(self, items: List[OrderLineItem]) -> RefreshResult:
        """
        Refresh every item concurrently.

        Returns:
            RefreshResult: Items in their original order plus batch counters
        """
        aggregator = ErrorAggregator()
        outcomes = await asyncio.gather(
            *(self._refresh_one(index, item, aggregator) for index, item in enumerate(items))
        )

        refreshed = [item for item, _ in outcomes]
        updated = sum(1 for _, changed in outcomes if changed)
        result = RefreshResult(
            items=refreshed,
            updated_count=updated,
            skipped_count=len(items) - updated,
            items_with_pricing=sum(1 for item in refreshed if has_complete_pricing(item)),
        )
        if aggregator.has_errors() or aggregator.has_warnings():
            result.errors = aggregator.get_summary()

        logger.info(
            f"✅ Refreshed {updated}/{len(items)} items from catalog, "
            f"{result.items_with_pricing} with complete pricing"
        )
        return result

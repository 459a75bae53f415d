"""
Line-item tax resolver.

Given one edited field of a line item, recompute the dependent tax fields
and the line total. The four tax quantities (price excluding tax, price
including tax, tax percentage, tax amount) are tied by two relations:

    tax_amount        = price_excluding_tax * tax_percentage / 100
    price_including   = price_excluding_tax + tax_amount

Rules, first match wins, inference only while auto calculation is on:

1. quantity (unit item)          -> total only; ignored on weight items
2. weightQuantity (weight item)  -> grams, quantity = 1, total
3. taxPercentage, exc > 0        -> tax, inc from exc
4. priceExcludingTax, pct > 0    -> tax, inc from exc
5. priceIncludingTax, pct > 0    -> exc, tax from inc
6. priceIncludingTax, pct == 0, exc > 0 -> tax, pct from the difference
7. priceExcludingTax, pct == 0, inc > 0 -> tax, pct from the difference
8. extraTax / furtherTax / fedPayableTax / discount -> total only

The total is recomputed last. Every stored money value is rounded to the
cent. The resolver never raises on a known field.
"""

import logging
from enum import Enum
from typing import Any

from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.value_objects.money import ZERO, is_incomplete_number, round2, to_bool, to_decimal
from order_editor.services.pricing.weight import parse_weight_input

logger = logging.getLogger(__name__)

HUNDRED = 100


class FieldName(str, Enum):
    """Editable line item fields, by wire name."""

    QUANTITY = "quantity"
    WEIGHT_QUANTITY = "weightQuantity"
    WEIGHT_UNIT = "weightUnit"
    PRICE = "price"
    PRICE_EXCLUDING_TAX = "priceExcludingTax"
    PRICE_INCLUDING_TAX = "priceIncludingTax"
    TAX_PERCENTAGE = "taxPercentage"
    TAX_AMOUNT = "taxAmount"
    EXTRA_TAX = "extraTax"
    FURTHER_TAX = "furtherTax"
    FED_PAYABLE_TAX = "fedPayableTax"
    DISCOUNT = "discount"
    FIXED_NOTIFIED_VALUE = "fixedNotifiedValueOrRetailPrice"
    DISABLE_AUTO_TAX = "disableAutoTaxCalculations"
    PRODUCT_NAME = "productName"
    PRODUCT_DESCRIPTION = "productDescription"
    HS_CODE = "hsCode"
    SERIAL_NUMBER = "serialNumber"
    LIST_NUMBER = "listNumber"
    BC_NUMBER = "bcNumber"
    LOT_NUMBER = "lotNumber"
    EXPIRY_DATE = "expiryDate"
    ITEM_SERIAL_NUMBER = "itemSerialNumber"
    SRO_SCHEDULE_NUMBER = "sroScheduleNumber"
    SALE_TYPE = "saleType"
    UOM = "uom"

    @property
    def attribute(self) -> str:
        return _ATTRIBUTES[self]


_ATTRIBUTES = {
    FieldName.QUANTITY: "quantity",
    FieldName.WEIGHT_QUANTITY: "weight_quantity",
    FieldName.WEIGHT_UNIT: "weight_unit",
    FieldName.PRICE: "price",
    FieldName.PRICE_EXCLUDING_TAX: "price_excluding_tax",
    FieldName.PRICE_INCLUDING_TAX: "price_including_tax",
    FieldName.TAX_PERCENTAGE: "tax_percentage",
    FieldName.TAX_AMOUNT: "tax_amount",
    FieldName.EXTRA_TAX: "extra_tax",
    FieldName.FURTHER_TAX: "further_tax",
    FieldName.FED_PAYABLE_TAX: "fed_payable_tax",
    FieldName.DISCOUNT: "discount",
    FieldName.FIXED_NOTIFIED_VALUE: "fixed_notified_value_or_retail_price",
    FieldName.DISABLE_AUTO_TAX: "disable_auto_tax_calculations",
    FieldName.PRODUCT_NAME: "product_name",
    FieldName.PRODUCT_DESCRIPTION: "product_description",
    FieldName.HS_CODE: "hs_code",
    FieldName.SERIAL_NUMBER: "serial_number",
    FieldName.LIST_NUMBER: "list_number",
    FieldName.BC_NUMBER: "bc_number",
    FieldName.LOT_NUMBER: "lot_number",
    FieldName.EXPIRY_DATE: "expiry_date",
    FieldName.ITEM_SERIAL_NUMBER: "item_serial_number",
    FieldName.SRO_SCHEDULE_NUMBER: "sro_schedule_number",
    FieldName.SALE_TYPE: "sale_type",
    FieldName.UOM: "uom",
}

# Fields whose edit changes what the line costs
PRICING_FIELDS = frozenset(
    {
        FieldName.QUANTITY,
        FieldName.PRICE,
        FieldName.PRICE_EXCLUDING_TAX,
        FieldName.PRICE_INCLUDING_TAX,
        FieldName.TAX_PERCENTAGE,
        FieldName.TAX_AMOUNT,
        FieldName.EXTRA_TAX,
        FieldName.FURTHER_TAX,
        FieldName.FED_PAYABLE_TAX,
        FieldName.DISCOUNT,
    }
)

# Stored as entered (not rounded to the cent)
_UNROUNDED_FIELDS = frozenset({FieldName.QUANTITY, FieldName.TAX_PERCENTAGE})

_NUMERIC_PASSTHROUGH = frozenset({FieldName.FIXED_NOTIFIED_VALUE})


def compute_line_total(item: OrderLineItem):
    """
    Line total from the item's per-unit values.

    Unit items: ``(effective price + extra + further + FED - discount) * quantity``.
    Weight items: ``grams * price per gram`` plus the per-unit charges for
    the single weighed unit.
    """
    if item.is_weight_based:
        return round2(item.weight_quantity * item.effective_unit_price + item.unit_adjustments * item.quantity)
    return round2((item.effective_unit_price + item.unit_adjustments) * item.quantity)


def _apply_tax_inference(item: OrderLineItem, field: FieldName) -> OrderLineItem:
    exc = item.price_excluding_tax
    inc = item.price_including_tax
    pct = item.tax_percentage

    if (field is FieldName.TAX_PERCENTAGE and exc > 0) or (field is FieldName.PRICE_EXCLUDING_TAX and pct > 0):
        tax = round2(exc * pct / HUNDRED)
        return item.evolve(tax_amount=tax, price_including_tax=round2(exc + tax))

    if field is FieldName.PRICE_INCLUDING_TAX and pct > 0:
        new_exc = round2(inc / (1 + pct / HUNDRED))
        return item.evolve(price_excluding_tax=new_exc, tax_amount=round2(inc - new_exc))

    if field is FieldName.PRICE_INCLUDING_TAX and exc > 0:
        tax = round2(inc - exc)
        return item.evolve(tax_amount=tax, tax_percentage=round2(tax / exc * HUNDRED))

    if field is FieldName.PRICE_EXCLUDING_TAX and inc > 0:
        tax = round2(inc - exc)
        new_pct = round2(tax / exc * HUNDRED) if exc > 0 else ZERO
        return item.evolve(tax_amount=tax, tax_percentage=new_pct)

    return item


def _resolve_weight(item: OrderLineItem, value: Any) -> OrderLineItem:
    grams = parse_weight_input(value, item.weight_unit)
    if not item.is_weight_based:
        return item.evolve(weight_quantity=grams)

    updated = item.evolve(weight_quantity=grams, quantity=to_decimal(1))
    if is_incomplete_number(value):
        return updated
    return updated.evolve(total_price=compute_line_total(updated))


def resolve(item: OrderLineItem, changed_field: FieldName | str, new_value: Any) -> OrderLineItem:
    """
    Apply one field edit to a line item.

    Args:
        item: Current line item
        changed_field: Edited field (FieldName or its wire name)
        new_value: Raw input; non-numeric values count as 0 for numeric fields

    Returns:
        OrderLineItem: Updated item (the same instance when the edit is ignored)

    Raises:
        ValueError: If ``changed_field`` is not an editable field
    """
    field = FieldName(changed_field)
    attribute = field.attribute

    if field is FieldName.DISABLE_AUTO_TAX:
        return item.evolve(disable_auto_tax_calculations=to_bool(new_value))

    if field is FieldName.WEIGHT_UNIT:
        unit = "kg" if str(new_value).lower().startswith("k") else "grams"
        return item.evolve(weight_unit=unit)

    if field is FieldName.WEIGHT_QUANTITY:
        return _resolve_weight(item, new_value)

    if field is FieldName.QUANTITY and item.is_weight_based:
        logger.debug(f"Ignoring quantity edit on weight-based item {item.id}")
        return item

    if field not in PRICING_FIELDS and field not in _NUMERIC_PASSTHROUGH:
        return item.evolve(**{attribute: "" if new_value is None else str(new_value)})

    number = to_decimal(new_value)
    if field not in _UNROUNDED_FIELDS:
        number = round2(number)
    updated = item.evolve(**{attribute: number})

    if field in _NUMERIC_PASSTHROUGH or is_incomplete_number(new_value):
        return updated

    if not updated.disable_auto_tax_calculations:
        updated = _apply_tax_inference(updated, field)

    return updated.evolve(total_price=compute_line_total(updated))


def recalculate(item: OrderLineItem) -> OrderLineItem:
    """Recompute only the line total, e.g. after bulk changes to an item."""
    return item.evolve(total_price=compute_line_total(item))

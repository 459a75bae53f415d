"""
Line item creation from a catalog product.

Two entry points share one builder: quick-add (product picked from search,
catalog defaults used as is) and detailed entry (the selection form with
overrides for price, tax figures and compliance fields).
"""

import logging
import random
import string
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from order_editor.domain.models.order_item import DEFAULT_SALE_TYPE, OrderLineItem
from order_editor.domain.value_objects.money import ZERO, is_incomplete_number, to_decimal
from order_editor.services.pricing.tax_resolver import compute_line_total
from order_editor.services.pricing.weight import normalize_unit, parse_weight_input, price_per_gram
from order_editor.utils.error_handler import ErrorCode, ValidationException

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_item_id() -> str:
    """Client-style item id: ``item_<epoch ms>_<9 base36 chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"item_{int(time.time() * 1000)}_{suffix}"


def is_weight_based_product(product: Dict[str, Any]) -> bool:
    return (product.get("stockManagementType") or "quantity") == "weight"


@dataclass(frozen=True)
class ProductSelection:
    """
    Values of the add-product form.

    ``custom_price`` overrides the catalog price when set. ``weight_input``
    is only read for weight-based products and may carry a unit suffix.
    """

    product_id: str
    variant_id: str = ""
    quantity: Decimal = Decimal("1")
    custom_price: str = ""
    weight_input: str = ""
    weight_unit: str = "grams"
    product_name: str = ""
    product_description: str = ""
    hs_code: str = ""
    uom: str = ""
    item_serial_number: str = ""
    sro_schedule_number: str = ""
    tax_amount: Decimal = ZERO
    tax_percentage: Decimal = ZERO
    price_including_tax: Decimal = ZERO
    price_excluding_tax: Decimal = ZERO
    extra_tax: Decimal = ZERO
    further_tax: Decimal = ZERO
    fed_payable_tax: Decimal = ZERO
    discount: Decimal = ZERO
    fixed_notified_value_or_retail_price: Decimal = ZERO
    sale_type: str = DEFAULT_SALE_TYPE
    serial_number: str = ""
    list_number: str = ""
    bc_number: str = ""
    lot_number: str = ""
    expiry_date: str = ""
    disable_auto_tax_calculations: bool = False

    @classmethod
    def from_product(cls, product: Dict[str, Any], variant: Optional[Dict[str, Any]] = None) -> "ProductSelection":
        """Pre-fill the form from a catalog product (quick-add)."""
        return cls(
            product_id=str(product.get("id") or ""),
            variant_id=str((variant or {}).get("id") or ""),
            product_name=product.get("name") or "",
            product_description=product.get("description") or product.get("name") or "",
            hs_code=product.get("hsCode") or "",
            uom=product.get("uom") or "",
            tax_amount=to_decimal(product.get("taxAmount")),
            tax_percentage=to_decimal(product.get("taxPercentage")),
            price_including_tax=to_decimal(product.get("priceIncludingTax")),
            price_excluding_tax=to_decimal(product.get("priceExcludingTax")),
            extra_tax=to_decimal(product.get("extraTax")),
            further_tax=to_decimal(product.get("furtherTax")),
            fed_payable_tax=to_decimal(product.get("fedPayableTax")),
            discount=to_decimal(product.get("discount")),
            serial_number=product.get("serialNumber") or "",
            list_number=product.get("listNumber") or "",
            bc_number=product.get("bcNumber") or "",
            lot_number=product.get("lotNumber") or "",
            expiry_date=product.get("expiryDate") or "",
        )


def _find_variant(product: Dict[str, Any], variant_id: str) -> Optional[Dict[str, Any]]:
    if not variant_id:
        return None
    variants: List[Dict[str, Any]] = product.get("variants") or []
    return next((v for v in variants if str(v.get("id")) == variant_id), None)


def build_line_item(selection: ProductSelection, product: Optional[Dict[str, Any]]) -> OrderLineItem:
    """
    Create a new line item from a product selection.

    Args:
        selection: Add-product form values
        product: Catalog product the selection refers to

    Returns:
        OrderLineItem: New item with a fresh id and its line total

    Raises:
        ValidationException: If no product is selected, or the quantity or
            weight is not positive
    """
    if not selection.product_id or product is None:
        raise ValidationException(
            "Please select a product",
            field="productId",
            error_code=ErrorCode.MISSING_REQUIRED_FIELD,
        )

    weight_based = is_weight_based_product(product)
    grams = ZERO
    if weight_based:
        grams = parse_weight_input(selection.weight_input, selection.weight_unit)
        if grams <= 0:
            raise ValidationException(
                "Please enter a valid weight",
                field="weightQuantity",
                invalid_value=selection.weight_input,
            )
        quantity = Decimal("1")
    else:
        quantity = to_decimal(selection.quantity)
        if quantity <= 0:
            raise ValidationException(
                "Please enter a valid quantity",
                field="quantity",
                invalid_value=selection.quantity,
            )

    price = to_decimal(product.get("price"))
    sku = product.get("sku") or ""
    variant_title = ""
    variant = _find_variant(product, selection.variant_id)
    if variant is not None:
        price = to_decimal(variant.get("price"))
        variant_title = variant.get("title") or ""
        sku = variant.get("sku") or sku

    if weight_based:
        price = price_per_gram(product.get("pricePerUnit"), product.get("baseWeightUnit") or "grams")

    if selection.custom_price and not is_incomplete_number(selection.custom_price):
        price = to_decimal(selection.custom_price)

    item = OrderLineItem(
        id=generate_item_id(),
        product_id=selection.product_id,
        variant_id=selection.variant_id or None,
        product_name=selection.product_name or product.get("name") or "",
        product_description=selection.product_description,
        variant_title=variant_title,
        sku=sku,
        hs_code=selection.hs_code or product.get("hsCode") or "",
        quantity=quantity,
        is_weight_based=weight_based,
        weight_quantity=grams,
        weight_unit=normalize_unit(selection.weight_unit),
        price=price,
        price_excluding_tax=selection.price_excluding_tax,
        price_including_tax=selection.price_including_tax,
        tax_percentage=selection.tax_percentage,
        tax_amount=selection.tax_amount,
        extra_tax=selection.extra_tax,
        further_tax=selection.further_tax,
        fed_payable_tax=selection.fed_payable_tax,
        discount=selection.discount,
        serial_number=selection.serial_number,
        list_number=selection.list_number,
        bc_number=selection.bc_number,
        lot_number=selection.lot_number,
        expiry_date=selection.expiry_date,
        item_serial_number=selection.item_serial_number,
        sro_schedule_number=selection.sro_schedule_number,
        sale_type=selection.sale_type or DEFAULT_SALE_TYPE,
        uom="" if weight_based else selection.uom,
        fixed_notified_value_or_retail_price=selection.fixed_notified_value_or_retail_price,
        disable_auto_tax_calculations=selection.disable_auto_tax_calculations,
    )
    item = item.evolve(total_price=compute_line_total(item))

    logger.debug(f"Created line item {item.id} for product {item.product_id} (total {item.total_price})")
    return item

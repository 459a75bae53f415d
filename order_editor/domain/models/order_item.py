"""
Order line item domain model.

A line item is an immutable value: every edit produces a new instance
through ``dataclasses.replace`` (see ``OrderLineItem.evolve``). Wire data
uses the backend's camelCase keys; attributes are snake_case.
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from order_editor.domain.value_objects.money import ZERO, round2, to_bool, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_SALE_TYPE = "Goods at standard rate"
WEIGHT_UNITS = ("grams", "kg")

# attribute name -> wire (camelCase) key
_WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "product_id": "productId",
    "variant_id": "variantId",
    "product_name": "productName",
    "product_description": "productDescription",
    "variant_title": "variantTitle",
    "sku": "sku",
    "hs_code": "hsCode",
    "quantity": "quantity",
    "is_weight_based": "isWeightBased",
    "weight_quantity": "weightQuantity",
    "weight_unit": "weightUnit",
    "price": "price",
    "price_excluding_tax": "priceExcludingTax",
    "price_including_tax": "priceIncludingTax",
    "tax_percentage": "taxPercentage",
    "tax_amount": "taxAmount",
    "extra_tax": "extraTax",
    "further_tax": "furtherTax",
    "fed_payable_tax": "fedPayableTax",
    "discount": "discount",
    "total_price": "totalPrice",
    "serial_number": "serialNumber",
    "list_number": "listNumber",
    "bc_number": "bcNumber",
    "lot_number": "lotNumber",
    "expiry_date": "expiryDate",
    "item_serial_number": "itemSerialNumber",
    "sro_schedule_number": "sroScheduleNumber",
    "sale_type": "saleType",
    "uom": "uom",
    "fixed_notified_value_or_retail_price": "fixedNotifiedValueOrRetailPrice",
    "disable_auto_tax_calculations": "disableAutoTaxCalculations",
}

NUMERIC_ATTRIBUTES = frozenset(
    {
        "quantity",
        "weight_quantity",
        "price",
        "price_excluding_tax",
        "price_including_tax",
        "tax_percentage",
        "tax_amount",
        "extra_tax",
        "further_tax",
        "fed_payable_tax",
        "discount",
        "total_price",
        "fixed_notified_value_or_retail_price",
    }
)


def wire_key(attribute: str) -> str:
    return _WIRE_KEYS[attribute]


def attribute_for(key: str) -> Optional[str]:
    """Map a camelCase wire key (or an attribute name) to the attribute name."""
    if key in _WIRE_KEYS:
        return key
    for attribute, wire in _WIRE_KEYS.items():
        if wire == key:
            return attribute
    return None


def json_number(value: Decimal) -> int | float:
    """Render a Decimal for JSON: integral values as int, the rest as float."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class SelectedAddon:
    """
    Add-on chosen for a line item.

    ``price`` and ``quantity`` are per unit of the parent item.
    """

    addon_id: str
    addon_title: str = ""
    price: Decimal = ZERO
    quantity: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        object.__setattr__(self, "price", to_decimal(self.price))
        object.__setattr__(self, "quantity", to_decimal(self.quantity))

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "addonId": self.addon_id,
            "addonTitle": self.addon_title,
            "price": float(round2(self.price)),
            "quantity": json_number(self.quantity),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SelectedAddon":
        return cls(
            addon_id=str(data.get("addonId") or data.get("id") or ""),
            addon_title=data.get("addonTitle") or data.get("title") or "",
            price=to_decimal(data.get("price")),
            quantity=to_decimal(data.get("quantity", 1)),
        )


def parse_addons(raw: Any) -> Tuple[SelectedAddon, ...]:
    """
    Decode the addons payload of an item.

    The backend stores addons as a JSON column and sometimes returns it as a
    string. Undecodable payloads yield no addons.
    """
    if not raw:
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding undecodable addons payload: {raw[:80]!r}")
            return ()
    if not isinstance(raw, list):
        return ()
    return tuple(SelectedAddon.from_dict(addon) for addon in raw if isinstance(addon, dict))


@dataclass(frozen=True)
class OrderLineItem:
    """
    A product line on an order being edited.

    Unit-based items carry ``quantity``. Weight-based items carry
    ``weight_quantity`` in grams and keep ``quantity`` pinned to 1; their
    ``price`` is the price per gram.

    All pricing values are per unit. ``total_price`` is
    ``(effective price + extra + further + FED - discount) * quantity``.
    """

    id: str
    product_id: str = ""
    product_name: str = ""
    variant_id: Optional[str] = None
    product_description: str = ""
    variant_title: str = ""
    sku: str = ""
    hs_code: str = ""

    quantity: Decimal = Decimal("1")
    is_weight_based: bool = False
    weight_quantity: Decimal = ZERO
    weight_unit: str = "grams"

    price: Decimal = ZERO
    price_excluding_tax: Decimal = ZERO
    price_including_tax: Decimal = ZERO
    tax_percentage: Decimal = ZERO
    tax_amount: Decimal = ZERO
    extra_tax: Decimal = ZERO
    further_tax: Decimal = ZERO
    fed_payable_tax: Decimal = ZERO
    discount: Decimal = ZERO
    total_price: Decimal = ZERO

    serial_number: str = ""
    list_number: str = ""
    bc_number: str = ""
    lot_number: str = ""
    expiry_date: str = ""
    item_serial_number: str = ""
    sro_schedule_number: str = ""
    sale_type: str = DEFAULT_SALE_TYPE
    uom: str = ""
    fixed_notified_value_or_retail_price: Decimal = ZERO

    disable_auto_tax_calculations: bool = False
    addons: Tuple[SelectedAddon, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        for name in NUMERIC_ATTRIBUTES:
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, to_decimal(value))

        if self.weight_unit not in WEIGHT_UNITS:
            raise ValueError(f"Invalid weight unit: {self.weight_unit}")

        if not isinstance(self.addons, tuple):
            object.__setattr__(self, "addons", tuple(self.addons))

    @property
    def effective_unit_price(self) -> Decimal:
        """Tax-inclusive price when known, otherwise the raw price."""
        return self.price_including_tax if self.price_including_tax > 0 else self.price

    @property
    def unit_adjustments(self) -> Decimal:
        return self.extra_tax + self.further_tax + self.fed_payable_tax - self.discount

    @property
    def addons_unit_total(self) -> Decimal:
        return sum((addon.total for addon in self.addons), ZERO)

    @property
    def line_subtotal(self) -> Decimal:
        """Line total including add-ons, as it contributes to the order subtotal."""
        return self.total_price + self.addons_unit_total * self.quantity

    def evolve(self, **changes: Any) -> "OrderLineItem":
        """Return a copy with the given attributes replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the backend's camelCase representation."""
        data: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "addons":
                continue
            value = getattr(self, f.name)
            if f.name in NUMERIC_ATTRIBUTES:
                if f.name in ("quantity", "weight_quantity", "tax_percentage"):
                    value = json_number(value)
                else:
                    value = float(round2(value))
            data[wire_key(f.name)] = value
        data["addons"] = [addon.to_dict() for addon in self.addons]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderLineItem":
        """
        Build an item from backend data.

        Numeric fields are coerced (missing or invalid values become 0),
        addons are decoded when they arrive as a JSON string and an item
        with a positive weight is treated as weight-based.
        """
        kwargs: Dict[str, Any] = {}
        for attribute, key in _WIRE_KEYS.items():
            if key not in data:
                continue
            value = data[key]
            if attribute in NUMERIC_ATTRIBUTES:
                kwargs[attribute] = to_decimal(value)
            elif attribute in ("is_weight_based", "disable_auto_tax_calculations"):
                kwargs[attribute] = to_bool(value)
            elif attribute == "variant_id":
                kwargs[attribute] = str(value) if value not in (None, "") else None
            else:
                kwargs[attribute] = "" if value is None else str(value)

        if not kwargs.get("sale_type"):
            kwargs["sale_type"] = DEFAULT_SALE_TYPE
        if kwargs.get("weight_unit") not in WEIGHT_UNITS:
            kwargs["weight_unit"] = "grams"

        kwargs["is_weight_based"] = bool(kwargs.get("is_weight_based")) or kwargs.get("weight_quantity", ZERO) > 0
        kwargs["addons"] = parse_addons(data.get("addons"))
        kwargs.setdefault("id", "")
        return cls(**kwargs)

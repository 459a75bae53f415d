"""
Weight parsing and weight-based pricing.

Grams are the canonical unit. Inputs may be plain numbers in the item's
display unit or carry their own suffix ("1.5kg", "250 g").
"""

import re
from decimal import Decimal
from typing import Any

from order_editor.domain.value_objects.money import ZERO, to_decimal

GRAMS_PER_KG = Decimal("1000")

_WEIGHT_PATTERN = re.compile(r"^\s*(-?\d*\.?\d*)\s*(kg|kgs|kilograms?|g|gr|grams?)?\s*$", re.IGNORECASE)


def normalize_unit(unit: str) -> str:
    """Map unit spellings to ``kg`` or ``grams``."""
    return "kg" if unit and unit.lower().startswith("k") else "grams"


def convert_to_grams(weight: Any, unit: str) -> Decimal:
    """Convert a weight in ``unit`` to grams."""
    value = to_decimal(weight)
    if normalize_unit(unit) == "kg":
        return value * GRAMS_PER_KG
    return value


def parse_weight_input(value: Any, unit: str = "grams") -> Decimal:
    """
    Parse a weight typed by the user into grams.

    Args:
        value: Number or string, optionally suffixed with a unit
        unit: Unit to assume when the input carries none

    Returns:
        Decimal: Weight in grams (0 for unparseable input)
    """
    if not isinstance(value, str):
        return convert_to_grams(value, unit)

    match = _WEIGHT_PATTERN.match(value)
    if not match:
        return ZERO
    number, suffix = match.groups()
    return convert_to_grams(number, suffix or unit)


def price_per_gram(price_per_unit: Any, base_weight_unit: str = "grams") -> Decimal:
    """
    Per-gram price of a product.

    ``price_per_unit`` is expressed per ``base_weight_unit``; a per-kg price
    is divided by 1000.
    """
    price = to_decimal(price_per_unit)
    if normalize_unit(base_weight_unit) == "kg":
        return price / GRAMS_PER_KG
    return price

"""
Order total aggregation.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable

from order_editor.domain.models.order import DiscountType, OrderDraft
from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.value_objects.money import ZERO, Money, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLevelInputs:
    """Order-level values that feed the totals."""

    discount_amount: Decimal = ZERO
    discount_type: DiscountType = DiscountType.AMOUNT
    shipping_amount: Decimal = ZERO
    tax_rate: Decimal = ZERO
    points_discount_amount: Decimal = ZERO

    @classmethod
    def from_draft(cls, draft: OrderDraft) -> "OrderLevelInputs":
        return cls(
            discount_amount=draft.discount_amount,
            discount_type=draft.discount_type,
            shipping_amount=draft.shipping_amount,
            tax_rate=draft.tax_rate,
            points_discount_amount=draft.points_discount_amount,
        )


@dataclass(frozen=True)
class Totals:
    subtotal: Money
    tax_amount: Money
    discount_amount: Money
    points_discount_amount: Money
    shipping_amount: Money
    total: Money

    @property
    def currency(self) -> str:
        return self.total.currency

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": float(self.subtotal.amount),
            "taxAmount": float(self.tax_amount.amount),
            "discountAmount": float(self.discount_amount.amount),
            "pointsDiscountAmount": float(self.points_discount_amount.amount),
            "shippingAmount": float(self.shipping_amount.amount),
            "total": float(self.total.amount),
            "currency": self.currency,
        }


def calculate_subtotal(items: Iterable[OrderLineItem]) -> Decimal:
    """Sum of line totals plus add-ons (add-on price x quantity, per item unit)."""
    return sum((item.line_subtotal for item in items), ZERO)


def aggregate(items: Iterable[OrderLineItem], order_level: OrderLevelInputs, currency: str = "PKR") -> Totals:
    """
    Compute the order totals.

    The order-level tax rate is applied on top of line totals that already
    include line tax, after the order discount and the points discount.
    The grand total is never negative.

    Args:
        items: Line items
        order_level: Discount, shipping, tax rate and points discount
        currency: Currency of the returned amounts

    Returns:
        Totals: Subtotal, tax, discount, points discount, shipping and total
    """
    subtotal = calculate_subtotal(items)

    discount_input = to_decimal(order_level.discount_amount)
    if order_level.discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * discount_input / 100
    else:
        discount = discount_input

    points_discount = to_decimal(order_level.points_discount_amount)
    shipping = to_decimal(order_level.shipping_amount)
    tax = (subtotal - discount - points_discount) * to_decimal(order_level.tax_rate) / 100

    total = Money(subtotal + tax + shipping - discount - points_discount, currency)
    if total.amount < 0:
        logger.debug(f"Clamping negative order total {total} to 0")

    return Totals(
        subtotal=Money(subtotal, currency),
        tax_amount=Money(tax, currency),
        discount_amount=Money(discount, currency),
        points_discount_amount=Money(points_discount, currency),
        shipping_amount=Money(shipping, currency),
        total=total.clamp_non_negative(),
    )


def aggregate_draft(draft: OrderDraft) -> Totals:
    return aggregate(draft.items, OrderLevelInputs.from_draft(draft), draft.currency)

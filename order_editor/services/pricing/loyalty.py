"""
Loyalty points redemption.

The discount granted for points is capped at a percentage of the
discounted subtotal, and the redeemed points are re-derived from the
capped discount so the two never disagree.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from order_editor.domain.models.loyalty import LoyaltySettings
from order_editor.domain.value_objects.money import CENT, ZERO, quantize, round2, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointsRedemption:
    points_to_redeem: int
    points_discount_amount: Decimal
    max_allowed_discount: Decimal

    @property
    def is_capped(self) -> bool:
        return self.points_discount_amount >= self.max_allowed_discount > 0

    @classmethod
    def none(cls) -> "PointsRedemption":
        return cls(points_to_redeem=0, points_discount_amount=ZERO, max_allowed_discount=ZERO)


def max_allowed_discount(settings: LoyaltySettings, subtotal: Any, current_discount: Any) -> Decimal:
    """Largest points discount allowed for this order (never negative)."""
    base = to_decimal(subtotal) - to_decimal(current_discount)
    return max(ZERO, base * settings.max_redemption_percent / 100)


def redeem(
    requested_points: Any,
    available_points: int,
    settings: LoyaltySettings,
    subtotal: Any,
    current_discount: Any = ZERO,
) -> PointsRedemption:
    """
    Turn a points request into a points discount.

    Args:
        requested_points: Points the user asked for (coerced, clamped to [0, available])
        available_points: Customer balance
        settings: Loyalty configuration
        subtotal: Current order subtotal
        current_discount: Order discount already applied

    Returns:
        PointsRedemption: Points actually redeemed and their discount value
    """
    requested = int(to_decimal(requested_points).to_integral_value(rounding=ROUND_FLOOR))
    points = min(max(requested, 0), max(available_points, 0))

    cap = max_allowed_discount(settings, subtotal, current_discount)
    if points == 0 or settings.redemption_value <= 0:
        return PointsRedemption(points_to_redeem=0, points_discount_amount=ZERO, max_allowed_discount=cap)

    raw_discount = points * settings.redemption_value
    final_discount = quantize(min(raw_discount, cap), CENT, ROUND_FLOOR)
    final_points = int((final_discount / settings.redemption_value).to_integral_value(rounding=ROUND_FLOOR))

    if final_points < points:
        logger.debug(f"Points request capped: {points} -> {final_points} (max discount {round2(cap)})")

    return PointsRedemption(
        points_to_redeem=final_points,
        points_discount_amount=final_discount,
        max_allowed_discount=cap,
    )


def use_all_points(
    available_points: int,
    settings: LoyaltySettings,
    subtotal: Any,
    current_discount: Any = ZERO,
) -> PointsRedemption:
    """Redeem the whole balance, subject to the same cap."""
    return redeem(available_points, available_points, settings, subtotal, current_discount)

"""
Loyalty program models.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from order_editor.domain.value_objects.money import to_bool, to_decimal


def _setting(settings: Dict[str, Any], key: str) -> Any:
    entry = settings.get(key)
    if isinstance(entry, dict):
        return entry.get("value")
    return entry


@dataclass(frozen=True)
class LoyaltySettings:
    """
    Tenant loyalty configuration.

    Attributes:
        redemption_value: Currency value of one point
        max_redemption_percent: Cap on the points discount, as a percentage
            of (subtotal - order discount)
        redemption_minimum: Smallest balance customers are told they can redeem
    """

    enabled: bool = False
    redemption_value: Decimal = Decimal("0.01")
    max_redemption_percent: Decimal = Decimal("50")
    redemption_minimum: int = 100
    earning_rate: Decimal = Decimal("1")
    earning_basis: str = "subtotal"
    minimum_order: Decimal = Decimal("0")

    @classmethod
    def from_api(cls, payload: Dict[str, Any], defaults: Optional["LoyaltySettings"] = None) -> "LoyaltySettings":
        """
        Build settings from the ``/settings/loyalty`` response.

        Each setting is wrapped as ``{"value": ...}``; missing or falsy
        values fall back to ``defaults``.
        """
        defaults = defaults or cls()
        settings = payload.get("settings") or {}

        def pick(key: str, fallback: Any) -> Any:
            value = _setting(settings, key)
            return value if value else fallback

        return cls(
            enabled=to_bool(pick("loyalty_enabled", False)),
            redemption_value=to_decimal(pick("points_redemption_value", defaults.redemption_value)),
            max_redemption_percent=to_decimal(pick("points_max_redemption_percent", defaults.max_redemption_percent)),
            redemption_minimum=int(to_decimal(pick("points_redemption_minimum", defaults.redemption_minimum))),
            earning_rate=to_decimal(pick("points_earning_rate", defaults.earning_rate)),
            earning_basis=str(pick("points_earning_basis", defaults.earning_basis)),
            minimum_order=to_decimal(pick("points_minimum_order", defaults.minimum_order)),
        )


@dataclass(frozen=True)
class CustomerPoints:
    available_points: int = 0
    total_points_earned: int = 0
    total_points_redeemed: int = 0

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "CustomerPoints":
        points = payload.get("points") or {}
        return cls(
            available_points=int(to_decimal(points.get("availablePoints"))),
            total_points_earned=int(to_decimal(points.get("totalPointsEarned"))),
            total_points_redeemed=int(to_decimal(points.get("totalPointsRedeemed"))),
        )

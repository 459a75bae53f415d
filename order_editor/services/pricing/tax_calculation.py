"""
Debounced tax amount calculation.

Computes ``price_excluding_tax * tax_percentage / 100`` after an optional
cooperative delay. Every request takes a monotonically increasing token;
when a newer request starts before an older one finishes, the older
result is discarded instead of overwriting the newer value.
"""

import asyncio
import itertools
import logging
from decimal import Decimal
from typing import Any, Optional

from order_editor.domain.value_objects.money import ZERO, round2, to_decimal

logger = logging.getLogger(__name__)


def calculate_tax_amount(price_excluding_tax: Any, tax_percentage: Any) -> Decimal:
    """Tax for one unit; 0 unless both inputs are positive."""
    price = to_decimal(price_excluding_tax)
    pct = to_decimal(tax_percentage)
    if price <= 0 or pct <= 0:
        return ZERO
    return round2(price * pct / 100)


class TaxCalculationTracker:
    """
    Tracks the latest tax calculation for one input (typically one line item).

    Example:
        tracker = TaxCalculationTracker(delay_seconds=0.3)
        amount = await tracker.calculate(Decimal("100"), Decimal("18"))
        if amount is not None:
            ...  # still the latest request
    """

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds
        self._tokens = itertools.count(1)
        self._latest_token = 0
        self._in_flight = 0
        self.last_result: Optional[Decimal] = None

    @property
    def is_calculating(self) -> bool:
        """True while at least one calculation has not finished."""
        return self._in_flight > 0

    @property
    def latest_token(self) -> int:
        return self._latest_token

    async def calculate(self, price_excluding_tax: Any, tax_percentage: Any) -> Optional[Decimal]:
        """
        Calculate the tax amount.

        Returns:
            Decimal: The tax amount, or None when a newer request superseded this one
        """
        token = next(self._tokens)
        self._latest_token = token
        self._in_flight += 1
        try:
            if self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)
            result = calculate_tax_amount(price_excluding_tax, tax_percentage)
        finally:
            self._in_flight -= 1

        if token != self._latest_token:
            logger.debug(f"Discarding stale tax calculation #{token} (latest #{self._latest_token})")
            return None

        self.last_result = result
        return result

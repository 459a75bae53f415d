"""
Money value object and cent-precision helpers.

Every monetary amount stored on a line item or a total is rounded to the
cent with ROUND_HALF_UP (half away from zero). User input coming from the
editor is coerced with ``to_decimal`` so that empty or non-numeric values
become zero instead of failing, and toggles with ``to_bool``.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Inputs are clamped to this magnitude so sums and products stay finite
MAX_MAGNITUDE = Decimal("1e15")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce an arbitrary input value to Decimal.

    None, empty strings, booleans and anything non-numeric become 0.
    Floats go through ``str`` to avoid binary noise. Magnitudes beyond
    ``MAX_MAGNITUDE`` are clamped to it, keeping the sign.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return _bounded(value)
    if isinstance(value, int):
        return _bounded(Decimal(value))
    if isinstance(value, float):
        value = str(value)
    if not isinstance(value, str):
        return ZERO

    text = value.strip()
    if not text:
        return ZERO
    try:
        number = Decimal(text)
    except InvalidOperation:
        return ZERO
    return _bounded(number)


def _bounded(number: Decimal) -> Decimal:
    if not number.is_finite():
        return ZERO
    if abs(number) > MAX_MAGNITUDE:
        return MAX_MAGNITUDE.copy_sign(number)
    return number


def quantize(value: Decimal, exponent: Decimal, rounding: str = ROUND_HALF_UP) -> Decimal:
    """
    ``value.quantize(exponent)`` with enough context precision for any
    finite magnitude.
    """
    with localcontext() as context:
        context.prec = max(context.prec, value.adjusted() - exponent.as_tuple().exponent + 2)
        return value.quantize(exponent, rounding=rounding)


def round2(value: Any) -> Decimal:
    """Round to the cent, half away from zero."""
    return quantize(to_decimal(value), CENT)


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})


def to_bool(value: Any) -> bool:
    """Coerce a toggle input. Strings count as true only when they spell it out ("true", "1", "yes", "on")."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def is_incomplete_number(value: Any) -> bool:
    """
    True while the user is still typing a decimal number ("12.").

    Recalculation is skipped for such keystrokes so the decimal point is
    not swallowed by a re-rendered value.
    """
    return isinstance(value, str) and value.strip().endswith(".") and value.strip() != "."


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary amount with currency, rounded to the cent.

    Signed amounts are allowed: line subtotals can go negative when a
    per-unit discount exceeds the price. Only order totals are clamped.

    Example:
        >>> subtotal = Money(amount=Decimal("1180.00"), currency="PKR")
        >>> shipping = Money(amount=Decimal("150"), currency="PKR")
        >>> print(subtotal + shipping)
        PKR 1,330.00
    """

    amount: Decimal
    currency: str = "PKR"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", to_decimal(self.amount))

        object.__setattr__(self, "amount", quantize(self.amount, CENT))

        if not self.currency or len(self.currency) != 3:
            raise ValueError(f"Invalid currency code: {self.currency}")

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            raise TypeError(f"Cannot add Money with {type(other)}")

        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")

        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            raise TypeError(f"Cannot subtract Money with {type(other)}")

        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")

        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __mul__(self, multiplier: int | float | Decimal) -> "Money":
        if not isinstance(multiplier, (int, float, Decimal)):
            raise TypeError(f"Cannot multiply Money by {type(multiplier)}")

        return Money(amount=self.amount * to_decimal(multiplier), currency=self.currency)

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:,.2f}"

    def __repr__(self) -> str:
        return f"Money(amount=Decimal('{self.amount}'), currency='{self.currency}')"

    @property
    def is_zero(self) -> bool:
        return self.amount == ZERO

    @property
    def is_positive(self) -> bool:
        return self.amount > ZERO

    def clamp_non_negative(self) -> "Money":
        """Return this amount, or zero when negative."""
        return self if self.is_positive else Money.zero(self.currency)

    @classmethod
    def zero(cls, currency: str = "PKR") -> "Money":
        return cls(amount=ZERO, currency=currency)

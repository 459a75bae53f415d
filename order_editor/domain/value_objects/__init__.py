"""
Value objects for the domain layer.
"""

from .money import Money, is_incomplete_number, round2, to_bool, to_decimal

__all__ = ["Money", "round2", "to_bool", "to_decimal", "is_incomplete_number"]

"""
Pure pricing engine: line-item tax resolution, order totals, loyalty
points redemption and weight-based pricing.
"""

from .loyalty import PointsRedemption, redeem, use_all_points
from .tax_resolver import FieldName, compute_line_total, resolve
from .totals import OrderLevelInputs, Totals, aggregate

__all__ = [
    "FieldName",
    "OrderLevelInputs",
    "PointsRedemption",
    "Totals",
    "aggregate",
    "compute_line_total",
    "redeem",
    "resolve",
    "use_all_points",
]

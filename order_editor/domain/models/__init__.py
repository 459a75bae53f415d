"""
Domain models for business entities.
"""

from .loyalty import CustomerPoints, LoyaltySettings
from .order import Address, BuyerInfo, DiscountType, OrderDraft, SubmissionFlags
from .order_item import OrderLineItem, SelectedAddon
from .parties import Customer, SellerInfo

__all__ = [
    "Address",
    "BuyerInfo",
    "Customer",
    "CustomerPoints",
    "DiscountType",
    "LoyaltySettings",
    "OrderDraft",
    "OrderLineItem",
    "SelectedAddon",
    "SellerInfo",
    "SubmissionFlags",
]

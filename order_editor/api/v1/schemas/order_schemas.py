"""
Request and response schemas for the pricing, FBR and order endpoints.

Line items and orders travel in the backend's camelCase shape and are
decoded by the domain models; these schemas only validate the envelope
around them.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from order_editor.domain.models.order import DiscountType
from order_editor.services.pricing.tax_resolver import FieldName


class CamelModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)


# === PRICING ===


class ResolveItemRequest(CamelModel):
    """One field edit applied to a line item."""

    item: Dict[str, Any] = Field(..., description="Line item in camelCase shape")
    changed_field: str = Field(..., alias="changedField", description="Wire name of the edited field")
    new_value: Any = Field(default=None, alias="newValue", description="Raw input value")

    @field_validator("changed_field")
    @classmethod
    def validate_changed_field(cls, v):
        """Only editable item fields are accepted."""
        try:
            FieldName(v)
        except ValueError as e:
            raise ValueError(f"Field '{v}' cannot be edited") from e
        return v


class TotalsRequest(CamelModel):
    items: List[Dict[str, Any]] = Field(default_factory=list, description="Line items")
    discount_amount: Decimal = Field(default=Decimal("0"), alias="discountAmount")
    discount_type: DiscountType = Field(default=DiscountType.AMOUNT, alias="discountType")
    shipping_amount: Decimal = Field(default=Decimal("0"), alias="shippingAmount")
    tax_rate: Decimal = Field(default=Decimal("0"), alias="taxRate", description="Order-level tax rate in percent")
    points_discount_amount: Decimal = Field(default=Decimal("0"), alias="pointsDiscountAmount")
    currency: str = Field(default="PKR", min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        return v.upper()


class LoyaltySettingsSchema(CamelModel):
    """Loyalty configuration override for a points calculation."""

    redemption_value: Decimal = Field(..., alias="redemptionValue", gt=0, description="Currency value of one point")
    max_redemption_percent: Decimal = Field(
        ..., alias="maxRedemptionPercent", ge=0, le=100, description="Cap as a percentage of the discounted subtotal"
    )


class PointsRequest(CamelModel):
    """
    Points redemption request.

    ``requestedPoints`` is ignored when ``useAllPoints`` is set.
    """

    requested_points: Any = Field(default=0, alias="requestedPoints")
    use_all_points: bool = Field(default=False, alias="useAllPoints")
    available_points: int = Field(..., alias="availablePoints", ge=0)
    subtotal: Decimal = Field(..., description="Current order subtotal")
    current_discount: Decimal = Field(default=Decimal("0"), alias="currentDiscount")
    settings: Optional[LoyaltySettingsSchema] = Field(default=None, description="Overrides the configured defaults")


# === FBR ===


class SellerSchema(CamelModel):
    ntn_cnic: str = Field(default="", alias="sellerNTNCNIC")
    business_name: str = Field(default="", alias="sellerBusinessName")
    province: str = Field(default="", alias="sellerProvince")
    address: str = Field(default="", alias="sellerAddress")


class FbrOrderRequest(CamelModel):
    """An order in the backend's shape, plus an optional seller record."""

    order: Dict[str, Any] = Field(..., description="Order with its items")
    seller: Optional[SellerSchema] = Field(default=None)


class ItemsRequest(CamelModel):
    items: List[Dict[str, Any]] = Field(..., description="Line items in camelCase shape")


# === ORDERS ===


class OrderPayloadRequest(CamelModel):
    """
    Edited order sent back by the editor.

    When ``order`` is omitted the stored order is used.
    """

    order: Optional[Dict[str, Any]] = Field(default=None, description="Edited order in the backend's shape")
    production_token: str = Field(default="", alias="productionToken")


class SaveOrderRequest(CamelModel):
    order: Dict[str, Any] = Field(..., description="Edited order in the backend's shape")
    production_token: str = Field(default="", alias="productionToken", description="FBR production token")

    @field_validator("order")
    @classmethod
    def validate_items(cls, v):
        if not isinstance(v.get("items"), list):
            raise ValueError("Order must carry an items list")
        return v

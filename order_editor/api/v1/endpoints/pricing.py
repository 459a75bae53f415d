"""
Pricing endpoints: line item tax resolution, order totals and loyalty
points redemption. Stateless; nothing here touches the backend.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter

from order_editor.api.v1.schemas.order_schemas import PointsRequest, ResolveItemRequest, TotalsRequest
from order_editor.core.config import get_settings
from order_editor.domain.models.loyalty import LoyaltySettings
from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.value_objects.money import round2
from order_editor.services.orders.order_service import loyalty_defaults
from order_editor.services.pricing import OrderLevelInputs, aggregate, redeem, resolve, use_all_points
from order_editor.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

router = APIRouter()


def decode_item(data: Dict[str, Any]) -> OrderLineItem:
    """
    Decode a camelCase line item.

    Raises:
        ValidationException: If the item cannot be decoded
    """
    try:
        return OrderLineItem.from_dict(data)
    except ValueError as e:
        raise ValidationException(f"Invalid line item: {e}", field="item") from e


@router.post("/resolve", summary="Resolve a line item edit")
async def resolve_item(request: ResolveItemRequest) -> Dict[str, Any]:
    """
    Apply one field edit to a line item and recompute its dependent tax
    fields and line total.
    """
    item = decode_item(request.item)
    updated = resolve(item, request.changed_field, request.new_value)

    logger.debug(f"Resolved {request.changed_field} on item {item.id}: total {updated.total_price}")
    return {"status": "success", "data": {"item": updated.to_dict(), "changed": updated != item}}


@router.post("/totals", summary="Compute order totals")
async def compute_totals(request: TotalsRequest) -> Dict[str, Any]:
    items = [decode_item(item) for item in request.items]
    totals = aggregate(
        items,
        OrderLevelInputs(
            discount_amount=request.discount_amount,
            discount_type=request.discount_type,
            shipping_amount=request.shipping_amount,
            tax_rate=request.tax_rate,
            points_discount_amount=request.points_discount_amount,
        ),
        request.currency,
    )
    return {"status": "success", "data": totals.to_dict()}


@router.post("/points", summary="Redeem loyalty points")
async def redeem_points(request: PointsRequest) -> Dict[str, Any]:
    """
    Turn a points request into a capped points discount.

    The redeemed points are re-derived from the capped discount, so the
    response may carry fewer points than requested.
    """
    settings = loyalty_defaults(get_settings())
    if request.settings is not None:
        settings = LoyaltySettings(
            enabled=True,
            redemption_value=request.settings.redemption_value,
            max_redemption_percent=request.settings.max_redemption_percent,
        )

    if request.use_all_points:
        redemption = use_all_points(request.available_points, settings, request.subtotal, request.current_discount)
    else:
        redemption = redeem(
            request.requested_points,
            request.available_points,
            settings,
            request.subtotal,
            request.current_discount,
        )

    return {
        "status": "success",
        "data": {
            "pointsToRedeem": redemption.points_to_redeem,
            "pointsDiscountAmount": float(redemption.points_discount_amount),
            "maxAllowedDiscount": float(round2(redemption.max_allowed_discount)),
            "isCapped": redemption.is_capped,
            "useAllPoints": request.use_all_points,
        },
    }

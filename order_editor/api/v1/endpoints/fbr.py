"""
FBR endpoints: local invoice preview, HS code normalization, pre-submission
validation and serial number ordering.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter

from order_editor.api.v1.endpoints.pricing import decode_item
from order_editor.api.v1.schemas.order_schemas import FbrOrderRequest, ItemsRequest, SellerSchema
from order_editor.core.config import get_settings
from order_editor.domain.models.order import OrderDraft
from order_editor.domain.models.parties import SellerInfo
from order_editor.services.fbr import (
    FbrDefaults,
    build_preview,
    normalize_hs_codes,
    sort_items_by_serial_number,
    validate_order_for_fbr,
)
from order_editor.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

router = APIRouter()


def decode_order(data: Dict[str, Any]) -> OrderDraft:
    """
    Decode an order, defaulting the scenario and ordering its items.

    Raises:
        ValidationException: If the order cannot be decoded
    """
    settings = get_settings()
    try:
        draft = OrderDraft.from_dict(data, default_currency=settings.DEFAULT_CURRENCY)
    except ValueError as e:
        raise ValidationException(f"Invalid order: {e}", field="order") from e

    if not draft.scenario_id:
        draft = draft.evolve(scenario_id=settings.FBR_DEFAULT_SCENARIO_ID)
    return draft.with_items(sort_items_by_serial_number(draft.items))


def decode_seller(seller: Optional[SellerSchema]) -> Optional[SellerInfo]:
    if seller is None:
        return None
    return SellerInfo(
        ntn_cnic=seller.ntn_cnic,
        business_name=seller.business_name,
        province=seller.province,
        address=seller.address,
    )


@router.post("/preview", summary="Build an FBR invoice preview")
async def preview_invoice(request: FbrOrderRequest) -> Dict[str, Any]:
    """
    Project an order onto the FBR invoice shape.

    Seller fields fall back to the configured seller when the request
    carries none.
    """
    draft = decode_order(request.order)
    preview = build_preview(draft, decode_seller(request.seller), FbrDefaults.from_settings(get_settings()))

    logger.info(f"🔍 Built FBR preview for order {draft.order_number or draft.order_id}: {len(draft.items)} line(s)")
    return {"status": "success", "data": preview}


@router.post("/hs-codes/normalize", summary="Normalize HS codes")
async def normalize_item_hs_codes(request: ItemsRequest) -> Dict[str, Any]:
    items, updated = normalize_hs_codes(decode_item(item) for item in request.items)
    return {
        "status": "success",
        "data": {"items": [item.to_dict() for item in items], "updatedCount": updated},
        "message": f"Updated {updated} HS code(s) to FBR format" if updated else "All HS codes already in FBR format",
    }


@router.post("/validate", summary="Validate an order for FBR submission")
async def validate_order(request: FbrOrderRequest) -> Dict[str, Any]:
    draft = decode_order(request.order)
    return {"status": "success", "data": validate_order_for_fbr(draft).to_dict()}


@router.post("/sort-items", summary="Order items by serial number")
async def sort_items(request: ItemsRequest) -> Dict[str, Any]:
    items = sort_items_by_serial_number(decode_item(item) for item in request.items)
    return {"status": "success", "data": {"items": [item.to_dict() for item in items]}}

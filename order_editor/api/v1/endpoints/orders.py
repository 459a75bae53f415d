"""
Order endpoints backed by the admin backend API.

The service keeps no session state between requests: every call rebuilds
the edit session from the stored order, or from the edited order the
editor sends back.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Request

from order_editor.api.v1.schemas.order_schemas import OrderPayloadRequest, SaveOrderRequest
from order_editor.clients.backend_client import BackendAPIClient
from order_editor.services.orders import OrderEditService
from order_editor.utils.error_handler import BackendAPIException

logger = logging.getLogger(__name__)

router = APIRouter()


def get_backend_client(request: Request) -> BackendAPIClient:
    """
    Shared backend client opened at startup.

    Raises:
        BackendAPIException: If the client was never initialized
    """
    client = getattr(request.app.state, "backend_client", None)
    if client is None:
        raise BackendAPIException("Backend API client is not initialized", endpoint="startup")
    return client


def get_order_service(client: BackendAPIClient = Depends(get_backend_client)) -> OrderEditService:
    return OrderEditService(client)


@router.get("/{order_id}/draft", summary="Load an order for editing")
async def get_order_draft(
    order_id: str = Path(..., description="Order id"),
    service: OrderEditService = Depends(get_order_service),
) -> Dict[str, Any]:
    """
    Load an order with its seller, loyalty settings and customer points.

    Items come back in serial number order together with the computed
    totals and the derived presentation flags.
    """
    session = await service.load_session(order_id)
    return {"status": "success", "data": session.to_dict()}


@router.post("/{order_id}/refresh-pricing", summary="Refresh item pricing from the catalog")
async def refresh_order_pricing(
    order_id: str = Path(..., description="Order id"),
    request: Optional[OrderPayloadRequest] = None,
    service: OrderEditService = Depends(get_order_service),
) -> Dict[str, Any]:
    """
    Look up every item's SKU in the catalog and update its pricing.

    Items whose lookup fails keep their pricing; the failures are listed in
    ``errors``.
    """
    payload = request.order if request is not None else None
    session = await service.load_session(order_id, payload)
    result = await service.refresh_pricing(session)

    logger.info(
        f"🔧 Order {order_id}: pricing refreshed for {result.updated_count} item(s), "
        f"{result.skipped_count} skipped"
    )
    return {
        "status": "success",
        "data": {**result.to_dict(), "order": session.to_dict()},
        "message": f"Updated pricing for {result.updated_count} item(s)",
    }


@router.post("/{order_id}/preview", summary="Generate the FBR invoice preview")
async def preview_order(
    order_id: str = Path(..., description="Order id"),
    request: Optional[OrderPayloadRequest] = None,
    service: OrderEditService = Depends(get_order_service),
) -> Dict[str, Any]:
    """
    Ask the backend for the FBR invoice preview of the (edited) order.

    A failed remote preview is reported in ``message`` with the locally
    built preview in its place; it is never raised.
    """
    payload = request.order if request is not None else None
    session = await service.load_session(order_id, payload)
    outcome = await service.generate_preview(session)

    if not outcome.ok:
        return {
            "status": "error",
            "data": {"preview": None, "localPreview": service.local_preview(session)},
            "message": outcome.error,
        }
    return {"status": "success", "data": {"preview": outcome.preview}}


@router.put("/{order_id}", summary="Save the edited order")
async def save_order(
    request: SaveOrderRequest,
    order_id: str = Path(..., description="Order id"),
    service: OrderEditService = Depends(get_order_service),
) -> Dict[str, Any]:
    """
    Validate and persist the edited order, submitting it to FBR unless the
    order skips submission.
    """
    session = await service.load_session(order_id, request.order)
    result = await service.save(session, request.production_token)

    if result.get("fbrInvoiceNumber"):
        message = f"Order updated successfully. FBR Invoice: {result['fbrInvoiceNumber']}"
    else:
        message = "Order updated successfully"
    return {"status": "success", "data": result, "message": message}


@router.post("/{order_id}/duplicate", summary="Duplicate an order")
async def duplicate_order(
    order_id: str = Path(..., description="Order id"),
    service: OrderEditService = Depends(get_order_service),
) -> Dict[str, Any]:
    result = await service.duplicate(order_id)
    return {
        "status": "success",
        "data": result,
        "message": f"Order duplicated as {result.get('newOrderNumber') or result.get('newOrderId')}",
    }

"""
Order edit orchestration.

Loads an order with everything the edit page needs (seller, FBR settings,
loyalty configuration and the customer's points), refreshes catalog
pricing, produces the FBR preview and saves or duplicates the order.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from order_editor.clients.backend_client import BackendAPIClient
from order_editor.core.config import Settings, get_settings
from order_editor.core.logging_config import LogContext
from order_editor.domain.models.loyalty import CustomerPoints, LoyaltySettings
from order_editor.domain.models.order import OrderDraft
from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.value_objects.money import to_bool
from order_editor.services.fbr.preview_builder import (
    FbrDefaults,
    FbrPreview,
    build_order_for_preview,
    build_preview,
    enhance_preview,
)
from order_editor.services.orders.catalog_refresh import CatalogRefresher, RefreshResult
from order_editor.services.orders.editor import OrderEditSession
from order_editor.services.orders.item_factory import ProductSelection
from order_editor.utils.error_handler import AppException, FbrSubmissionException, ValidationException, log_error

logger = logging.getLogger(__name__)


@dataclass
class PreviewOutcome:
    """Result of a preview request; ``error`` is set instead of raising."""

    preview: Optional[FbrPreview] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def loyalty_defaults(settings: Settings) -> LoyaltySettings:
    return LoyaltySettings(
        redemption_value=settings.LOYALTY_REDEMPTION_VALUE,
        max_redemption_percent=settings.LOYALTY_MAX_REDEMPTION_PERCENT,
        redemption_minimum=settings.LOYALTY_REDEMPTION_MINIMUM,
        earning_rate=settings.LOYALTY_EARNING_RATE,
    )


class OrderEditService:
    """
    Async operations behind the order edit page.

    Example:
        async with BackendAPIClient() as client:
            service = OrderEditService(client)
            session = await service.load_session("ord_1")
            session.update_item(item_id, "taxPercentage", 18)
            await service.save(session)
    """

    def __init__(self, client: BackendAPIClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()
        self.fbr_defaults = FbrDefaults.from_settings(self.settings)

    async def load_session(self, order_id: str, payload: Optional[Dict[str, Any]] = None) -> OrderEditSession:
        """
        Build an edit session for an order.

        Args:
            order_id: Order to edit
            payload: Edited order in the backend's shape; fetched when omitted

        Returns:
            OrderEditSession: Session with seller, loyalty settings and points loaded
        """
        if payload is None:
            order_data, seller, loyalty = await asyncio.gather(
                self.client.get_order(order_id),
                self.client.load_seller(),
                self.client.get_loyalty_settings(loyalty_defaults(self.settings)),
            )
        else:
            order_data = {**payload, "id": order_id}
            seller, loyalty = await asyncio.gather(
                self.client.load_seller(),
                self.client.get_loyalty_settings(loyalty_defaults(self.settings)),
            )

        draft = OrderDraft.from_dict(order_data, default_currency=self.settings.DEFAULT_CURRENCY)
        if not draft.scenario_id:
            draft = draft.evolve(scenario_id=self.settings.FBR_DEFAULT_SCENARIO_ID)

        points = CustomerPoints()
        if loyalty.enabled and draft.customer_id:
            points = await self.client.get_customer_points(draft.customer_id)

        session = OrderEditSession(draft, loyalty=loyalty, points=points, seller=seller)
        if payload is not None:
            # Not persisted by the backend, so only an edited payload carries them
            session.update_order_fields(
                {key: payload[key] for key in ("taxRate", "discountType") if payload.get(key) is not None}
            )
            session.draft = session.draft.evolve(use_all_points=to_bool(payload.get("useAllPoints")))

        logger.info(f"🔍 Loaded order {draft.order_number or order_id} with {len(draft.items)} item(s)")
        return session

    async def refresh_pricing(self, session: OrderEditSession) -> RefreshResult:
        """
        Refresh item pricing from the catalog by SKU.

        Raises:
            ValidationException: If the order has no items
        """
        if not session.draft.items:
            raise ValidationException("No order items to update", field="items")

        result = await CatalogRefresher(self.client).refresh(list(session.draft.items))
        session.draft = session.draft.with_items(result.items)
        return result

    async def add_product(self, session: OrderEditSession, selection: ProductSelection) -> OrderLineItem:
        """
        Add a catalog product to the order.

        Args:
            session: Session to add the item to
            selection: Add-product form values

        Returns:
            OrderLineItem: The new item

        Raises:
            ValidationException: If the product is not in the catalog or the
                quantity or weight is invalid
        """
        product = await self.client.load_product(selection.product_id) if selection.product_id else None
        if selection.product_id and product is None:
            logger.warning(f"⚠️ Product {selection.product_id} not found in catalog")
        return session.add_product(selection, product)

    def local_preview(self, session: OrderEditSession) -> FbrPreview:
        return build_preview(session.draft, session.seller, self.fbr_defaults)

    async def generate_preview(self, session: OrderEditSession) -> PreviewOutcome:
        """
        Ask the backend to map the order to an FBR invoice and add display totals.

        Failures are reported in the outcome; the session is never modified.
        """
        payload = build_order_for_preview(session.draft, session.seller, session.totals())
        try:
            raw = await self.client.submit_fbr_preview(payload)
        except AppException as e:
            log_error(e, {"order_id": session.draft.order_id, "operation": "fbr_preview"})
            message = e.display_message if isinstance(e, FbrSubmissionException) else e.message
            return PreviewOutcome(error=f"Failed to generate FBR preview: {message}")

        return PreviewOutcome(preview=enhance_preview(raw, session.draft))

    async def save(self, session: OrderEditSession, production_token: str = "") -> Dict[str, Any]:
        """
        Validate and persist the order.

        Returns:
            Dict: ``orderId``, ``orderNumber`` and ``fbrInvoiceNumber`` (when an invoice was issued)

        Raises:
            ValidationException: If the order cannot be submitted
            FbrSubmissionException: If FBR rejected the invoice
            BackendAPIException: On any other backend failure
        """
        session.validate_for_submit(production_token)
        payload = session.build_save_payload(production_token)

        with LogContext(order_id=session.draft.order_id, operation="save"):
            result = await self.client.update_order(session.draft.order_id, payload)
            if result.get("fbrInvoiceNumber"):
                logger.info(
                    f"✅ Order {result.get('orderNumber')} updated with FBR invoice {result['fbrInvoiceNumber']}"
                )
            else:
                logger.info(f"✅ Order {result.get('orderNumber') or result['orderId']} updated (no FBR submission)")
        return result

    async def duplicate(self, order_id: str) -> Dict[str, Any]:
        result = await self.client.duplicate_order(order_id)
        logger.info(f"✅ Order {order_id} duplicated as {result.get('newOrderNumber') or result.get('newOrderId')}")
        return result

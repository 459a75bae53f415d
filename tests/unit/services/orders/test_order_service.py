"""Unit tests for the order edit service (backend client mocked)."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from order_editor.clients.backend_client import BackendAPIClient
from order_editor.core.config import get_settings
from order_editor.domain.models.loyalty import CustomerPoints, LoyaltySettings
from order_editor.services.orders.editor import OrderEditSession
from order_editor.services.orders.item_factory import ProductSelection
from order_editor.services.orders.order_service import OrderEditService
from order_editor.utils.error_handler import BackendAPIException, FbrSubmissionException, ValidationException


@pytest.fixture
def client(order_payload, seller, loyalty_settings):
    client = AsyncMock()
    client.get_order.return_value = order_payload
    client.load_seller.return_value = seller
    client.get_loyalty_settings.return_value = loyalty_settings
    client.get_customer_points.return_value = CustomerPoints(available_points=500)
    return client


@pytest.fixture
def service(client):
    return OrderEditService(client, get_settings())


class TestLoadSession:
    """Building an edit session from the backend."""

    @pytest.mark.asyncio
    async def test_load_stored_order(self, service, client):
        session = await service.load_session("ord_1")

        client.get_order.assert_awaited_once_with("ord_1")
        client.get_customer_points.assert_awaited_once_with("user_1")
        assert [item.id for item in session.draft.items] == ["item_a", "item_b"]
        assert session.points.available_points == 500
        assert session.seller.ntn_cnic == "1234567"

    @pytest.mark.asyncio
    async def test_load_edited_payload(self, service, client, order_payload):
        """An edited payload is used as is and carries the unpersisted fields."""
        payload = {**order_payload, "taxRate": 5, "discountType": "percentage", "useAllPoints": True}
        session = await service.load_session("ord_1", payload)

        client.get_order.assert_not_awaited()
        assert session.draft.tax_rate == Decimal("5")
        assert session.draft.discount_type.value == "percentage"
        assert session.draft.use_all_points is True

    @pytest.mark.asyncio
    async def test_default_scenario(self, service, order_payload):
        payload = {key: value for key, value in order_payload.items() if key != "scenarioId"}
        session = await service.load_session("ord_1", payload)
        assert session.draft.scenario_id == get_settings().FBR_DEFAULT_SCENARIO_ID

    @pytest.mark.asyncio
    async def test_points_not_fetched_when_loyalty_disabled(self, service, client):
        client.get_loyalty_settings.return_value = LoyaltySettings(enabled=False)
        session = await service.load_session("ord_1")

        client.get_customer_points.assert_not_awaited()
        assert session.points.available_points == 0

    @pytest.mark.asyncio
    async def test_backend_failure_propagates(self, service, client):
        client.get_order.side_effect = BackendAPIException("GET /orders/x failed: Not found", api_response_code=404)
        with pytest.raises(BackendAPIException):
            await service.load_session("x")


class TestPreview:
    """Remote FBR preview."""

    @pytest.mark.asyncio
    async def test_preview_enhanced(self, service, client):
        client.submit_fbr_preview.return_value = {
            "buyerFullName": "",
            "items": [{"hsCode": "8471.3000"}, {"hsCode": "9999.0000"}],
        }
        session = await service.load_session("ord_1")
        outcome = await service.generate_preview(session)

        assert outcome.ok is True
        assert outcome.preview["buyerFullName"] == "Ali Khan"
        assert outcome.preview["items"][0]["totalValues"] == 236.0
        assert outcome.preview["items"][1]["totalValues"] == 50.0

    @pytest.mark.asyncio
    async def test_preview_failure_reported_not_raised(self, service, client):
        """FBR failures become an error string and the session is untouched."""
        client.submit_fbr_preview.side_effect = FbrSubmissionException(
            "FBR validation failed", step="fbr_validation", item_errors=["Item 1: Invalid HS code"]
        )
        session = await service.load_session("ord_1")
        before = session.draft

        outcome = await service.generate_preview(session)

        assert outcome.ok is False
        assert outcome.error == "Failed to generate FBR preview: FBR validation failed\nItem 1: Invalid HS code"
        assert session.draft is before

    @pytest.mark.asyncio
    async def test_preview_payload_carries_totals(self, service, client):
        client.submit_fbr_preview.return_value = {}
        session = await service.load_session("ord_1")
        await service.generate_preview(session)

        payload = client.submit_fbr_preview.await_args.args[0]
        assert payload["subtotal"] == 286.0
        assert payload["scenarioId"] == "SN001"

    @pytest.mark.asyncio
    async def test_plain_text_gateway_error_reported(self, make_draft, seller, loyalty_settings):
        """A non-JSON upstream failure still comes back as an error string."""
        response = MagicMock(status=502, headers={})
        response.text = AsyncMock(return_value="upstream connect error")
        backend = BackendAPIClient()
        backend.session = MagicMock()
        backend.session.request.return_value.__aenter__.return_value = response

        session = OrderEditSession(make_draft(), loyalty=loyalty_settings, points=CustomerPoints(), seller=seller)
        outcome = await OrderEditService(backend, get_settings()).generate_preview(session)

        assert outcome.ok is False
        assert outcome.error == "Failed to generate FBR preview: POST /fbr/submit failed: upstream connect error"


class TestAddProduct:
    """Adding a catalog product through the service."""

    @pytest.mark.asyncio
    async def test_variant_price_used(self, service, client):
        client.load_product.return_value = {
            "id": 2,
            "name": "Shirt",
            "productType": "variable",
            "price": "0",
            "variants": [{"id": 7, "title": "Large", "price": "1200", "sku": "SH-L"}],
        }
        session = await service.load_session("ord_1")

        selection = ProductSelection(product_id="2", variant_id="7", quantity=Decimal("2"))
        item = await service.add_product(session, selection)

        client.load_product.assert_awaited_once_with("2")
        assert item.variant_title == "Large"
        assert item.sku == "SH-L"
        assert item.total_price == Decimal("2400")
        assert session.draft.item_by_id(item.id) is not None

    @pytest.mark.asyncio
    async def test_unknown_product_rejected(self, service, client):
        client.load_product.return_value = None
        session = await service.load_session("ord_1")

        with pytest.raises(ValidationException):
            await service.add_product(session, ProductSelection(product_id="99"))
        assert len(session.draft.items) == 2

    @pytest.mark.asyncio
    async def test_no_selection_skips_catalog(self, service, client):
        session = await service.load_session("ord_1")

        with pytest.raises(ValidationException):
            await service.add_product(session, ProductSelection(product_id=""))
        client.load_product.assert_not_awaited()


class TestSaveAndDuplicate:
    @pytest.mark.asyncio
    async def test_save(self, service, client):
        client.update_order.return_value = {"orderId": "ord_1", "orderNumber": "ORD-0001", "fbrInvoiceNumber": "FBR-1"}
        session = await service.load_session("ord_1")

        result = await service.save(session)

        assert result["fbrInvoiceNumber"] == "FBR-1"
        order_id, payload = client.update_order.await_args.args
        assert order_id == "ord_1"
        assert len(payload["items"]) == 2

    @pytest.mark.asyncio
    async def test_save_empty_order_rejected(self, service, client, order_payload):
        session = await service.load_session("ord_1", {**order_payload, "items": []})
        with pytest.raises(ValidationException):
            await service.save(session)
        client.update_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_pricing_requires_items(self, service, order_payload):
        session = await service.load_session("ord_1", {**order_payload, "items": []})
        with pytest.raises(ValidationException):
            await service.refresh_pricing(session)

    @pytest.mark.asyncio
    async def test_duplicate(self, service, client):
        client.duplicate_order.return_value = {"newOrderId": "ord_2", "newOrderNumber": "ORD-0002"}
        result = await service.duplicate("ord_1")
        assert result["newOrderNumber"] == "ORD-0002"

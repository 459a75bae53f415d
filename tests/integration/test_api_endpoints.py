"""Integration tests for the HTTP API (backend client mocked)."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from order_editor.api.v1.endpoints.orders import get_order_service
from order_editor.core.config import get_settings
from order_editor.domain.models.loyalty import CustomerPoints
from order_editor.main import app
from order_editor.services.orders import OrderEditService
from order_editor.utils.error_handler import BackendAPIException, FbrSubmissionException


@pytest.fixture
def http():
    return TestClient(app)


@pytest.fixture
def backend(order_payload, seller, loyalty_settings):
    client = AsyncMock()
    client.get_order.return_value = order_payload
    client.load_seller.return_value = seller
    client.get_loyalty_settings.return_value = loyalty_settings
    client.get_customer_points.return_value = CustomerPoints(available_points=500)
    return client


@pytest.fixture
def orders_http(backend):
    app.dependency_overrides[get_order_service] = lambda: OrderEditService(backend, get_settings())
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestBaseEndpoints:
    def test_ping(self, http):
        response = http.get("/ping")
        assert response.status_code == 200
        assert response.json()["message"] == "pong"

    def test_health_degraded_without_backend(self, http):
        """Without a started backend client the service reports degraded."""
        response = http.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_version(self, http):
        assert "version" in http.get("/version").json()

    def test_request_id_echoed(self, http):
        response = http.get("/ping", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert "X-Process-Time" in response.headers


class TestPricingEndpoints:
    """Stateless pricing engine over HTTP."""

    def test_resolve(self, http):
        response = http.post(
            "/api/v1/pricing/resolve",
            json={
                "item": {"id": "i1", "price": 100, "priceExcludingTax": 100, "quantity": 1},
                "changedField": "taxPercentage",
                "newValue": 18,
            },
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["item"]["taxAmount"] == 18.0
        assert data["item"]["priceIncludingTax"] == 118.0
        assert data["item"]["totalPrice"] == 118.0
        assert data["changed"] is True

    def test_resolve_unknown_field(self, http):
        response = http.post(
            "/api/v1/pricing/resolve",
            json={"item": {"id": "i1"}, "changedField": "colour", "newValue": "red"},
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "request_validation_error"

    def test_totals(self, http):
        response = http.post(
            "/api/v1/pricing/totals",
            json={
                "items": [{"id": "a", "totalPrice": 100}, {"id": "b", "totalPrice": 50}],
                "discountAmount": 10,
                "discountType": "percentage",
                "shippingAmount": 25,
            },
        )
        data = response.json()["data"]
        assert data["discountAmount"] == 15.0
        assert data["total"] == 160.0

    def test_points(self, http):
        response = http.post(
            "/api/v1/pricing/points",
            json={"requestedPoints": 2000, "availablePoints": 1000, "subtotal": 100},
        )
        data = response.json()["data"]
        assert data["pointsToRedeem"] == 1000
        assert data["pointsDiscountAmount"] == 10.0
        assert data["maxAllowedDiscount"] == 50.0

    def test_points_with_settings_override(self, http):
        response = http.post(
            "/api/v1/pricing/points",
            json={
                "useAllPoints": True,
                "availablePoints": 1000,
                "subtotal": 100,
                "settings": {"redemptionValue": "0.1", "maxRedemptionPercent": "20"},
            },
        )
        data = response.json()["data"]
        assert data["pointsDiscountAmount"] == 20.0
        assert data["pointsToRedeem"] == 200
        assert data["isCapped"] is True


class TestFbrEndpoints:
    def test_preview(self, http, order_payload):
        response = http.post("/api/v1/fbr/preview", json={"order": order_payload})
        assert response.status_code == 200
        preview = response.json()["data"]
        assert [line["productDescription"] for line in preview["items"]] == ["First", "Second"]
        assert preview["totalValues"] == 286.0

    def test_normalize_hs_codes(self, http):
        response = http.post("/api/v1/fbr/hs-codes/normalize", json={"items": [{"id": "a", "hsCode": "8471"}]})
        data = response.json()["data"]
        assert data["updatedCount"] == 1
        assert data["items"][0]["hsCode"] == "8471.0000"

    def test_validate(self, http, order_payload):
        response = http.post("/api/v1/fbr/validate", json={"order": {**order_payload, "email": ""}})
        data = response.json()["data"]
        assert data["isValid"] is False
        assert "Order must have buyer email" in data["errors"]

    def test_sort_items(self, http):
        items = [{"id": "x", "serialNumber": "10"}, {"id": "y", "serialNumber": "9"}]
        response = http.post("/api/v1/fbr/sort-items", json={"items": items})
        assert [item["id"] for item in response.json()["data"]["items"]] == ["y", "x"]


class TestOrderEndpoints:
    """Order endpoints over a mocked backend."""

    def test_draft(self, orders_http):
        response = orders_http.get("/api/v1/orders/ord_1/draft")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["orderId"] == "ord_1"
        assert [item["id"] for item in data["items"]] == ["item_a", "item_b"]
        assert data["totals"]["subtotal"] == 286.0
        assert data["availablePoints"] == 500

    def test_draft_not_found(self, orders_http, backend):
        backend.get_order.side_effect = BackendAPIException(
            "GET /orders/x failed: Order not found", api_response_code=404, endpoint="GET /orders/x"
        )
        response = orders_http.get("/api/v1/orders/x/draft")

        assert response.status_code == 404
        body = response.json()
        assert body["error_type"] == "backend_api_error"
        assert body["error_code"] == "RESOURCE_NOT_FOUND"

    def test_refresh_pricing(self, orders_http, backend):
        backend.find_products_by_sku.return_value = [{"sku": "SKU-A", "price": 118, "taxPercentage": 18}]
        response = orders_http.post("/api/v1/orders/ord_1/refresh-pricing", json={})

        data = response.json()["data"]
        assert data["updatedCount"] == 1
        assert data["skippedCount"] == 1

    def test_preview_failure_returns_local_preview(self, orders_http, backend):
        backend.submit_fbr_preview.side_effect = FbrSubmissionException("FBR unreachable", step="fbr_connection")
        response = orders_http.post("/api/v1/orders/ord_1/preview")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "Failed to generate FBR preview: FBR unreachable"
        assert body["data"]["localPreview"]["totalValues"] == 286.0

    def test_preview(self, orders_http, backend):
        backend.submit_fbr_preview.return_value = {"items": [{"hsCode": "8471.3000"}]}
        response = orders_http.post("/api/v1/orders/ord_1/preview", json={})
        assert response.json()["data"]["preview"]["items"][0]["totalValues"] == 236.0

    def test_save(self, orders_http, backend, order_payload):
        backend.update_order.return_value = {"orderId": "ord_1", "orderNumber": "ORD-0001", "fbrInvoiceNumber": "FBR-9"}
        response = orders_http.put("/api/v1/orders/ord_1", json={"order": order_payload})

        assert response.status_code == 200
        assert response.json()["message"] == "Order updated successfully. FBR Invoice: FBR-9"
        backend.get_order.assert_not_awaited()

    def test_save_production_without_token(self, orders_http, backend, order_payload):
        response = orders_http.put(
            "/api/v1/orders/ord_1",
            json={"order": {**order_payload, "isProductionSubmission": True}},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "PRODUCTION_TOKEN_REQUIRED"
        backend.update_order.assert_not_awaited()

    def test_save_fbr_rejection(self, orders_http, backend, order_payload):
        backend.update_order.side_effect = FbrSubmissionException(
            "FBR validation failed", step="fbr_validation", item_errors=["Item 1: Invalid HS code"]
        )
        response = orders_http.put("/api/v1/orders/ord_1", json={"order": order_payload})

        assert response.status_code == 422
        assert response.json()["item_errors"] == ["Item 1: Invalid HS code"]

    def test_duplicate(self, orders_http, backend):
        backend.duplicate_order.return_value = {"newOrderId": "ord_2", "newOrderNumber": "ORD-0002"}
        response = orders_http.post("/api/v1/orders/ord_1/duplicate")
        assert response.json()["message"] == "Order duplicated as ORD-0002"

    def test_backend_not_initialized(self, http):
        response = http.get("/api/v1/orders/ord_1/draft")
        assert response.status_code == 503

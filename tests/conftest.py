"""Shared fixtures for the order editor tests."""

from datetime import date
from decimal import Decimal

import pytest

from order_editor.domain.models.loyalty import CustomerPoints, LoyaltySettings
from order_editor.domain.models.order import OrderDraft
from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.models.parties import SellerInfo


@pytest.fixture
def make_item():
    """Factory for line items with sensible defaults."""

    def _make(**overrides) -> OrderLineItem:
        values = {
            "id": "item_1",
            "product_id": "prod_1",
            "product_name": "Widget",
            "sku": "WID-001",
            "hs_code": "8471.3000",
            "quantity": Decimal("1"),
            "price": Decimal("100"),
        }
        values.update(overrides)
        return OrderLineItem(**values)

    return _make


@pytest.fixture
def make_draft(make_item):
    """Factory for order drafts with one item."""

    def _make(**overrides) -> OrderDraft:
        values = {
            "order_id": "ord_1",
            "order_number": "ORD-0001",
            "email": "buyer@example.com",
            "scenario_id": "SN001",
            "invoice_date": date(2024, 3, 1),
            "items": (make_item(),),
        }
        values.update(overrides)
        return OrderDraft(**values)

    return _make


@pytest.fixture
def loyalty_settings():
    return LoyaltySettings(
        enabled=True,
        redemption_value=Decimal("0.01"),
        max_redemption_percent=Decimal("50"),
    )


@pytest.fixture
def customer_points():
    return CustomerPoints(available_points=1000)


@pytest.fixture
def seller():
    return SellerInfo(
        ntn_cnic="1234567",
        business_name="Seller Ltd",
        province="Sindh",
        address="Karachi",
        fbr_sandbox_token="sandbox-token",
        fbr_base_url="https://fbr.example",
    )


@pytest.fixture
def order_payload():
    """Order as returned by ``GET /orders/{id}``."""
    return {
        "id": "ord_1",
        "orderNumber": "ORD-0001",
        "userId": "user_1",
        "email": "buyer@example.com",
        "status": "pending",
        "currency": "PKR",
        "scenarioId": "SN001",
        "invoiceType": "Sale Invoice",
        "invoiceDate": "2024-03-01T00:00:00.000Z",
        "discountAmount": 0,
        "shippingAmount": 0,
        "billingFirstName": "Ali",
        "billingLastName": "Khan",
        "billingCity": "Lahore",
        "items": [
            {
                "id": "item_b",
                "productName": "Second",
                "sku": "SKU-B",
                "serialNumber": "10",
                "quantity": 1,
                "price": 50,
                "totalPrice": 50,
            },
            {
                "id": "item_a",
                "productName": "First",
                "sku": "SKU-A",
                "serialNumber": "2",
                "quantity": 2,
                "price": 100,
                "priceExcludingTax": 100,
                "taxPercentage": 18,
                "taxAmount": 18,
                "priceIncludingTax": 118,
                "totalPrice": 236,
            },
        ],
    }

"""Unit tests for the order, line item, loyalty and party models."""

from datetime import date
from decimal import Decimal

import pytest

from order_editor.domain.models.loyalty import CustomerPoints, LoyaltySettings
from order_editor.domain.models.order import OrderDraft
from order_editor.domain.models.order_item import OrderLineItem, parse_addons
from order_editor.domain.models.parties import Customer, SellerInfo


class TestOrderLineItem:
    """Decoding and encoding of line items."""

    def test_from_dict_coerces_numbers(self):
        """Invalid numeric values become 0 instead of failing."""
        item = OrderLineItem.from_dict({"id": "i1", "price": "abc", "quantity": "3", "taxPercentage": None})
        assert item.price == Decimal("0")
        assert item.quantity == Decimal("3")
        assert item.tax_percentage == Decimal("0")

    def test_positive_weight_marks_item_weight_based(self):
        """An item with grams is weight-based even without the flag."""
        item = OrderLineItem.from_dict({"id": "i1", "weightQuantity": 250})
        assert item.is_weight_based is True

    def test_unknown_weight_unit_falls_back_to_grams(self):
        item = OrderLineItem.from_dict({"id": "i1", "weightUnit": "lbs"})
        assert item.weight_unit == "grams"

    def test_invalid_weight_unit_rejected_on_construction(self):
        """Direct construction validates the unit."""
        with pytest.raises(ValueError):
            OrderLineItem(id="i1", weight_unit="lbs")

    def test_to_dict_uses_wire_keys(self, make_item):
        """Serialized items use the backend's camelCase keys."""
        data = make_item(price_excluding_tax=Decimal("100"), tax_percentage=Decimal("18")).to_dict()
        assert data["priceExcludingTax"] == 100.0
        assert data["taxPercentage"] == 18
        assert data["productName"] == "Widget"
        assert data["addons"] == []

    def test_addons_decoded_from_json_string(self):
        """Addons stored as a JSON string are decoded."""
        addons = parse_addons('[{"addonId": "a1", "addonTitle": "Gift wrap", "price": 20, "quantity": 2}]')
        assert len(addons) == 1
        assert addons[0].total == Decimal("40")

    def test_undecodable_addons_ignored(self):
        assert parse_addons("not json") == ()

    def test_line_subtotal_includes_addons(self):
        """Add-on price x quantity is charged per unit of the item."""
        item = OrderLineItem.from_dict(
            {
                "id": "i1",
                "quantity": 2,
                "totalPrice": 200,
                "addons": [{"addonId": "a1", "price": 10, "quantity": 1}],
            }
        )
        assert item.line_subtotal == Decimal("220")


class TestOrderDraft:
    """Decoding of backend orders."""

    def test_from_dict(self, order_payload):
        """Header, buyer names and items are decoded."""
        draft = OrderDraft.from_dict(order_payload)
        assert draft.order_id == "ord_1"
        assert draft.invoice_date == date(2024, 3, 1)
        assert len(draft.items) == 2
        assert draft.computed_buyer_name == "Ali Khan"

    def test_tax_rate_and_discount_type_not_loaded(self, order_payload):
        """Order-level tax rate and discount type always start at their defaults."""
        draft = OrderDraft.from_dict({**order_payload, "taxRate": 5, "discountType": "percentage"})
        assert draft.tax_rate == Decimal("0")
        assert draft.discount_type.value == "amount"

    def test_buyer_falls_back_to_customer_record(self):
        """Missing buyer fields are filled from the linked customer."""
        draft = OrderDraft.from_dict({"id": "o1", "user": {"name": "Sara", "buyerNTNCNIC": "42101"}})
        assert draft.buyer.full_name == "Sara"
        assert draft.buyer.ntn_cnic == "42101"

    def test_guest_order(self):
        assert OrderDraft.from_dict({"id": "o1"}).is_guest is True

    def test_string_flags_coerced(self):
        draft = OrderDraft.from_dict({"id": "o1", "isProductionSubmission": "false", "skipFbrSubmission": "true"})
        assert draft.flags.is_production_submission is False
        assert draft.flags.skip_fbr_submission is True


class TestLoyaltyModels:
    def test_settings_from_api(self):
        """Wrapped values are unwrapped, missing ones use defaults."""
        settings = LoyaltySettings.from_api(
            {"settings": {"loyalty_enabled": {"value": True}, "points_redemption_value": {"value": "0.5"}}}
        )
        assert settings.enabled is True
        assert settings.redemption_value == Decimal("0.5")
        assert settings.max_redemption_percent == Decimal("50")

    def test_customer_points_from_api(self):
        points = CustomerPoints.from_api({"points": {"availablePoints": 250, "totalPointsEarned": 300}})
        assert points.available_points == 250
        assert points.total_points_redeemed == 0


class TestParties:
    def test_fbr_settings_override_seller(self):
        """Tenant FBR settings override the seller record field by field."""
        seller = SellerInfo.from_api({"sellerNTNCNIC": "111", "sellerProvince": "Punjab"})
        merged = seller.merge_fbr_settings({"settings": {"fbrSellerNTNCNIC": "222", "fbrProductionToken": "prod"}})
        assert merged.ntn_cnic == "222"
        assert merged.province == "Punjab"
        assert merged.fbr_production_token == "prod"

    def test_empty_fbr_settings_keep_seller(self):
        seller = SellerInfo(ntn_cnic="111")
        assert seller.merge_fbr_settings({}) is seller

    def test_customer_from_api(self):
        customer = Customer.from_api({"id": 7, "name": "Sara Ahmed", "userType": "customer"})
        assert customer.id == "7"
        assert customer.user_type == "customer"

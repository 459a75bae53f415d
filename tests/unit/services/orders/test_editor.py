"""Unit tests for the order edit session."""

from decimal import Decimal

import pytest

from order_editor.domain.models.order import SubmissionFlags
from order_editor.domain.models.parties import Customer
from order_editor.services.orders.editor import OrderEditSession
from order_editor.services.orders.item_factory import ProductSelection
from order_editor.utils.error_handler import ErrorCode, ValidationException


@pytest.fixture
def session(make_draft, make_item, loyalty_settings, customer_points, seller):
    draft = make_draft(
        items=(
            make_item(id="b", serial_number="10", total_price=Decimal("100")),
            make_item(id="a", serial_number="2", total_price=Decimal("100")),
        )
    )
    return OrderEditSession(draft, loyalty=loyalty_settings, points=customer_points, seller=seller)


class TestItemEdits:
    """Item operations through the session."""

    def test_items_sorted_on_load(self, session):
        assert [item.id for item in session.draft.items] == ["a", "b"]

    def test_update_item_runs_resolver(self, session):
        updated = session.update_item("a", "priceExcludingTax", 100)
        updated = session.update_item("a", "taxPercentage", 18)

        assert updated.price_including_tax == Decimal("118.00")
        assert session.draft.item_by_id("a").total_price == Decimal("118.00")

    def test_serial_edit_resorts(self, session):
        session.update_item("b", "serialNumber", "1")
        assert [item.id for item in session.draft.items] == ["b", "a"]

    def test_unknown_item_rejected(self, session):
        with pytest.raises(ValidationException) as exc_info:
            session.update_item("missing", "quantity", 2)
        assert exc_info.value.error_code == ErrorCode.RESOURCE_NOT_FOUND

    def test_unknown_field_rejected(self, session):
        with pytest.raises(ValidationException):
            session.update_item("a", "colour", "red")

    def test_zero_quantity_rejected_and_draft_unchanged(self, session):
        """A rejected edit leaves the session as it was."""
        before = session.draft
        with pytest.raises(ValidationException):
            session.update_item("a", "quantity", 0)
        assert session.draft is before

    def test_negative_weight_rejected(self, session):
        with pytest.raises(ValidationException):
            session.update_item("a", "weightQuantity", "-5")

    def test_add_product(self, session):
        product = {"id": "prod_9", "name": "Cable", "price": 20}
        item = session.add_product(ProductSelection(product_id="prod_9", quantity=Decimal("3")), product)

        assert session.draft.items[-1] is item
        assert item.total_price == Decimal("60.00")

    def test_remove_item(self, session):
        session.remove_item("a")
        assert [item.id for item in session.draft.items] == ["b"]

    def test_normalize_hs_codes(self, session):
        session.update_item("a", "hsCode", "8471")
        assert session.normalize_hs_codes() == 1
        assert session.draft.item_by_id("a").hs_code == "8471.0000"


class TestOrderLevel:
    """Order-level fields, totals and points."""

    def test_update_order_fields(self, session):
        session.update_order_fields({"discountType": "percentage", "discountAmount": "10", "taxRate": 5})

        totals = session.totals()
        assert totals.discount_amount.amount == Decimal("20.00")
        assert totals.tax_amount.amount == Decimal("9.00")
        assert totals.total.amount == Decimal("189.00")

    def test_invalid_discount_type(self, session):
        with pytest.raises(ValidationException) as exc_info:
            session.update_order_fields({"discountType": "bogus"})
        assert exc_info.value.expected_format == "amount | percentage"

    def test_unknown_order_field(self, session):
        with pytest.raises(ValidationException):
            session.update_order_fields({"orderNumber": "X"})

    def test_apply_points(self, session):
        """Points are capped at half of the discounted subtotal."""
        redemption = session.apply_points(1000)

        assert redemption.points_to_redeem == 1000
        assert session.draft.points_discount_amount == Decimal("10.00")
        assert session.totals().total.amount == Decimal("190.00")

    def test_toggle_use_all_points(self, session):
        on = session.toggle_use_all_points()
        assert on.points_to_redeem == 1000
        assert session.draft.use_all_points is True

        session.toggle_use_all_points()
        assert session.draft.use_all_points is False
        assert session.draft.points_to_redeem == 0
        assert session.draft.points_discount_amount == Decimal("0")

    def test_select_customer(self, session):
        customer = Customer(id="u9", name="Sara Ahmed", email="sara@example.com", buyer_province="Sindh")
        session.select_customer(customer)

        assert session.draft.customer_id == "u9"
        assert session.draft.billing.first_name == "Sara"
        assert session.draft.billing.last_name == "Ahmed"
        assert session.draft.buyer.province == "Sindh"
        assert session.points.available_points == 0


class TestSubmission:
    """Save validation and payload."""

    def test_empty_order_rejected(self, session):
        session.remove_item("a")
        session.remove_item("b")
        with pytest.raises(ValidationException) as exc_info:
            session.validate_for_submit()
        assert exc_info.value.error_code == ErrorCode.INVALID_ORDER_DATA

    def test_production_requires_token(self, session):
        session.set_flags(SubmissionFlags(is_production_submission=True))
        with pytest.raises(ValidationException) as exc_info:
            session.validate_for_submit()
        assert exc_info.value.error_code == ErrorCode.PRODUCTION_TOKEN_REQUIRED

    def test_production_token_not_needed_when_skipping_fbr(self, session):
        session.set_flags(SubmissionFlags(is_production_submission=True, skip_fbr_submission=True))
        session.validate_for_submit()

    def test_save_payload(self, session):
        session.set_flags(SubmissionFlags(is_production_submission=True))
        payload = session.build_save_payload("prod-token")

        assert payload["subtotal"] == 200.0
        assert payload["totalAmount"] == 200.0
        assert payload["productionToken"] == "prod-token"
        assert payload["sellerNTNCNIC"] == "1234567"
        assert [item["id"] for item in payload["items"]] == ["a", "b"]
        assert payload["isCustomScenario"] is False

    def test_to_dict(self, session):
        data = session.to_dict()
        assert data["orderId"] == "ord_1"
        assert data["totals"]["subtotal"] == 200.0
        assert data["availablePoints"] == 1000
        assert data["presentation"]["itemCustomSroScheduleNumber"] == [False, False]
        assert "fbrSandboxToken" not in data

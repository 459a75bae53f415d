"""Unit tests for HS code normalization, serial ordering, scenarios and validation."""

from decimal import Decimal

import pytest

from order_editor.domain.models.order import BuyerInfo
from order_editor.domain.models.parties import SellerInfo
from order_editor.services.fbr import scenarios
from order_editor.services.fbr.hs_code import is_valid_hs_code, normalize_hs_code, normalize_hs_codes
from order_editor.services.fbr.ordering import sort_items_by_serial_number
from order_editor.services.fbr.validator import validate_order_for_fbr


class TestHsCodeNormalization:
    """HS codes get a four digit decimal suffix."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("8471", "8471.0000"),
            ("8471.5", "8471.5000"),
            ("8471.56", "8471.5600"),
            ("8471.3010", "8471.3010"),
            ("8471.30101", "8471.30101"),
            (" 8471 ", "8471.0000"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_hs_code(raw) == expected

    def test_normalize_items_counts_changes(self, make_item):
        """Only items whose code changed are counted."""
        items = [make_item(id="a", hs_code="8471"), make_item(id="b", hs_code="8471.3000"), make_item(id="c", hs_code="")]
        normalized, updated = normalize_hs_codes(items)

        assert updated == 1
        assert [item.hs_code for item in normalized] == ["8471.0000", "8471.3000", ""]
        assert normalized[1] is items[1]

    @pytest.mark.parametrize("code,valid", [("8471.3000", True), ("84713000", True), ("8471.30", False), ("abc", False)])
    def test_is_valid(self, code, valid):
        assert is_valid_hs_code(code) is valid


class TestSerialOrdering:
    """Natural, case-insensitive serial number ordering."""

    def test_natural_order(self, make_item):
        items = [make_item(id=serial or "blank", serial_number=serial) for serial in ["10", "", "b", "2", "A"]]
        ordered = sort_items_by_serial_number(items)
        assert [item.serial_number for item in ordered] == ["2", "10", "A", "b", ""]

    def test_stable_for_equal_serials(self, make_item):
        """Case-only differences keep the original order."""
        items = [make_item(id="first", serial_number="a1"), make_item(id="second", serial_number="A1")]
        assert [item.id for item in sort_items_by_serial_number(items)] == ["first", "second"]

    def test_mixed_text_and_numbers(self, make_item):
        items = [make_item(id=s, serial_number=s) for s in ["item10", "item9", "item1"]]
        assert [item.id for item in sort_items_by_serial_number(items)] == ["item1", "item9", "item10"]


class TestScenarios:
    def test_zero_rate_label(self):
        assert scenarios.zero_rate_label("SN006") == "Exempt"
        assert scenarios.zero_rate_label("SN001") == "0%"

    def test_presentation_flags_derived_from_data(self, make_draft, make_item):
        """Custom toggles are derived from values outside the known choices."""
        draft = make_draft(
            scenario_id="CUSTOM01",
            buyer=BuyerInfo(province="Punjab"),
            items=(
                make_item(id="a", sro_schedule_number="ICTO TABLE I", item_serial_number="7"),
                make_item(id="b"),
            ),
        )
        flags = scenarios.presentation_flags(draft, SellerInfo(province="Somewhere"))

        assert flags.is_custom_scenario is True
        assert flags.is_custom_province is False
        assert flags.is_custom_seller_province is True
        assert flags.custom_sro_schedule == [False, False]
        assert flags.custom_item_serial == [True, False]
        assert flags.to_dict()["isCustomScenario"] is True


class TestFbrValidation:
    """Pre-submission checks."""

    def test_valid_order(self, make_draft):
        result = validate_order_for_fbr(make_draft())
        assert result.is_valid is True
        assert result.to_dict() == {"isValid": True, "errors": [], "warnings": []}

    def test_missing_header_fields(self, make_draft):
        result = validate_order_for_fbr(make_draft(scenario_id="", email="", items=()))

        assert "Order must have a scenarioId" in result.errors
        assert "Order must have at least one item" in result.errors
        assert "Order must have buyer email" in result.errors

    def test_item_errors_are_numbered(self, make_draft, make_item):
        draft = make_draft(items=(make_item(), make_item(id="b", product_name="", price=Decimal("0"), hs_code="84")))
        result = validate_order_for_fbr(draft)

        assert "Item 2: Product name is required" in result.errors
        assert "Item 2: Price must be greater than 0" in result.errors
        assert "Item 2: HS code must be 8-10 digits or DDDD.DDDD format" in result.errors
        assert not any(error.startswith("Item 1") for error in result.errors)

    def test_debit_note_requires_reference(self, make_draft):
        result = validate_order_for_fbr(make_draft(invoice_type="Debit Note"))
        assert "Debit Note must have an invoice reference number" in result.errors

    def test_registered_buyer_requires_ntn(self, make_draft):
        result = validate_order_for_fbr(make_draft(buyer=BuyerInfo(registration_type="Registered")))
        assert "Registered buyer must have NTN/CNIC" in result.errors

    def test_third_schedule_requires_retail_price(self, make_draft, make_item):
        draft = make_draft(scenario_id="SN008", items=(make_item(price=Decimal("0")),))
        result = validate_order_for_fbr(draft)
        assert any("3rd Schedule" in error for error in result.errors)

    def test_withholding_warning(self, make_draft):
        """Withholding scenarios without extra tax only warn."""
        result = validate_order_for_fbr(make_draft(scenario_id="SN002"))
        assert result.is_valid is True
        assert result.warnings == ["Scenario SN002 typically requires withholding tax at item level"]

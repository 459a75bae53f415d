"""
Pre-submission checks for FBR digital invoicing.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from order_editor.domain.models.order import OrderDraft
from order_editor.services.fbr import scenarios
from order_editor.services.fbr.hs_code import is_valid_hs_code

logger = logging.getLogger(__name__)


@dataclass
class FbrValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": self.errors, "warnings": self.warnings}


def validate_order_for_fbr(draft: OrderDraft) -> FbrValidationResult:
    """
    Check that an order carries everything an FBR invoice needs.

    Args:
        draft: Order to check

    Returns:
        FbrValidationResult: Errors block submission, warnings do not
    """
    result = FbrValidationResult()

    if not draft.scenario_id:
        result.errors.append("Order must have a scenarioId")
    if not draft.items:
        result.errors.append("Order must have at least one item")
    if not draft.email:
        result.errors.append("Order must have buyer email")
    if not draft.invoice_date:
        result.errors.append("Invoice date is required for FBR integration")

    for index, item in enumerate(draft.items, start=1):
        if not item.product_name:
            result.errors.append(f"Item {index}: Product name is required")
        if item.quantity <= 0:
            result.errors.append(f"Item {index}: Quantity must be greater than 0")
        if item.price <= 0:
            result.errors.append(f"Item {index}: Price must be greater than 0")
        if item.hs_code and not is_valid_hs_code(item.hs_code):
            result.errors.append(f"Item {index}: HS code must be 8-10 digits or DDDD.DDDD format")
        if (
            scenarios.supports_third_schedule(draft.scenario_id)
            and item.fixed_notified_value_or_retail_price <= 0
            and item.price <= 0
        ):
            result.errors.append(
                f"Item {index}: Fixed/Notified Value or Retail Price is mandatory for 3rd Schedule Goods"
            )

    if draft.invoice_type == "Debit Note" and not draft.invoice_ref_no:
        result.errors.append("Debit Note must have an invoice reference number")

    if draft.buyer.registration_type == "Registered" and not draft.buyer.ntn_cnic:
        result.errors.append("Registered buyer must have NTN/CNIC")

    if scenarios.requires_withholding_tax(draft.scenario_id) and not any(item.extra_tax > 0 for item in draft.items):
        result.warnings.append(f"Scenario {draft.scenario_id} typically requires withholding tax at item level")

    if result.errors:
        logger.warning(f"❌ FBR validation failed for order {draft.order_id}: {len(result.errors)} error(s)")
    return result

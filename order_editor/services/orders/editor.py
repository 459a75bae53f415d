"""
Order edit session.

Wraps the immutable ``OrderDraft`` with the operations staff perform on
the edit page. Every operation validates first and only then swaps in a
new draft, so a rejected edit leaves the session exactly as it was.
"""

import logging
from typing import Any, Dict, Optional

from order_editor.domain.models.loyalty import CustomerPoints, LoyaltySettings
from order_editor.domain.models.order import Address, BuyerInfo, DiscountType, OrderDraft, SubmissionFlags
from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.models.parties import Customer, SellerInfo
from order_editor.domain.value_objects.money import is_incomplete_number, to_decimal
from order_editor.services.fbr.hs_code import normalize_hs_codes
from order_editor.services.fbr.ordering import sort_items_by_serial_number
from order_editor.services.fbr.scenarios import PresentationFlags, presentation_flags
from order_editor.services.orders.item_factory import ProductSelection, build_line_item
from order_editor.services.pricing.loyalty import PointsRedemption, redeem, use_all_points
from order_editor.services.pricing.tax_resolver import FieldName, resolve
from order_editor.services.pricing.totals import Totals, aggregate_draft
from order_editor.services.pricing.weight import parse_weight_input
from order_editor.utils.error_handler import ErrorCode, ValidationException

logger = logging.getLogger(__name__)

# Order-level fields that can be edited directly
ORDER_LEVEL_FIELDS = {
    "discountAmount": "discount_amount",
    "discountType": "discount_type",
    "shippingAmount": "shipping_amount",
    "taxRate": "tax_rate",
    "email": "email",
    "phone": "phone",
    "status": "status",
    "paymentStatus": "payment_status",
    "notes": "notes",
    "invoiceType": "invoice_type",
    "invoiceRefNo": "invoice_ref_no",
    "scenarioId": "scenario_id",
    "shippingMethod": "shipping_method",
}

_NUMERIC_ORDER_FIELDS = {"discount_amount", "shipping_amount", "tax_rate"}


class OrderEditSession:
    """
    Editable state of one order.

    Attributes:
        draft: Current order draft
        loyalty: Tenant loyalty settings
        points: Points balance of the order's customer
        seller: Seller record (with FBR settings applied)
    """

    def __init__(
        self,
        draft: OrderDraft,
        loyalty: Optional[LoyaltySettings] = None,
        points: Optional[CustomerPoints] = None,
        seller: Optional[SellerInfo] = None,
    ):
        self.draft = draft.with_items(sort_items_by_serial_number(draft.items))
        self.loyalty = loyalty or LoyaltySettings()
        self.points = points or CustomerPoints()
        self.seller = seller or SellerInfo()

    # === ITEMS ===

    def add_item(self, item: OrderLineItem) -> OrderLineItem:
        """Append an item and restore serial number order."""
        self.draft = self.draft.with_items(sort_items_by_serial_number([*self.draft.items, item]))
        logger.info(f"Added item {item.id} ({item.product_name}) to order {self.draft.order_id}")
        return item

    def add_product(self, selection: ProductSelection, product: Optional[Dict[str, Any]]) -> OrderLineItem:
        return self.add_item(build_line_item(selection, product))

    def _require_item(self, item_id: str) -> OrderLineItem:
        item = self.draft.item_by_id(item_id)
        if item is None:
            raise ValidationException(
                f"Item {item_id} not found in order",
                field="itemId",
                invalid_value=item_id,
                error_code=ErrorCode.RESOURCE_NOT_FOUND,
            )
        return item

    def update_item(self, item_id: str, field: FieldName | str, value: Any) -> OrderLineItem:
        """
        Apply one field edit to an item through the tax resolver.

        Raises:
            ValidationException: For an unknown item or field, a non-positive
                quantity or a negative weight
        """
        item = self._require_item(item_id)
        try:
            field = FieldName(field)
        except ValueError as e:
            raise ValidationException(f"Field '{field}' cannot be edited", field=str(field)) from e

        if field is FieldName.QUANTITY and not item.is_weight_based and not is_incomplete_number(value):
            if to_decimal(value) <= 0:
                raise ValidationException("Quantity must be greater than 0", field="quantity", invalid_value=value)

        if field is FieldName.WEIGHT_QUANTITY and parse_weight_input(value, item.weight_unit) < 0:
            raise ValidationException("Weight cannot be negative", field="weightQuantity", invalid_value=value)

        updated = resolve(item, field, value)
        items = [updated if existing.id == item_id else existing for existing in self.draft.items]
        if field is FieldName.SERIAL_NUMBER:
            items = sort_items_by_serial_number(items)
        self.draft = self.draft.with_items(items)
        return updated

    def remove_item(self, item_id: str) -> OrderLineItem:
        item = self._require_item(item_id)
        self.draft = self.draft.with_items(existing for existing in self.draft.items if existing.id != item_id)
        logger.info(f"Removed item {item_id} from order {self.draft.order_id}")
        return item

    def normalize_hs_codes(self) -> int:
        """Bring every HS code to FBR format; returns how many changed."""
        items, updated = normalize_hs_codes(self.draft.items)
        self.draft = self.draft.with_items(items)
        return updated

    # === ORDER LEVEL ===

    def update_order_fields(self, changes: Dict[str, Any]) -> OrderDraft:
        """
        Update order-level fields given by wire name.

        Raises:
            ValidationException: For unknown fields or an invalid discount type
        """
        updates: Dict[str, Any] = {}
        for key, value in changes.items():
            attribute = ORDER_LEVEL_FIELDS.get(key)
            if attribute is None:
                raise ValidationException(f"Order field '{key}' cannot be edited", field=key)
            if attribute == "discount_type":
                try:
                    value = DiscountType(value)
                except ValueError as e:
                    raise ValidationException(
                        "Discount type must be 'amount' or 'percentage'",
                        field=key,
                        invalid_value=value,
                        expected_format="amount | percentage",
                    ) from e
            elif attribute in _NUMERIC_ORDER_FIELDS:
                value = to_decimal(value)
            else:
                value = "" if value is None else str(value)
            updates[attribute] = value

        self.draft = self.draft.evolve(**updates)
        return self.draft

    def totals(self) -> Totals:
        return aggregate_draft(self.draft)

    def _apply_redemption(self, redemption: PointsRedemption, use_all: bool) -> PointsRedemption:
        self.draft = self.draft.evolve(
            points_to_redeem=redemption.points_to_redeem,
            points_discount_amount=redemption.points_discount_amount,
            use_all_points=use_all,
        )
        return redemption

    def apply_points(self, requested_points: Any) -> PointsRedemption:
        """Redeem a number of points against the current subtotal."""
        totals = self.totals()
        redemption = redeem(
            requested_points,
            self.points.available_points,
            self.loyalty,
            totals.subtotal.amount,
            totals.discount_amount.amount,
        )
        return self._apply_redemption(redemption, use_all=False)

    def toggle_use_all_points(self) -> PointsRedemption:
        """Switch "use all points" on (redeem the whole balance, capped) or off (clear)."""
        if self.draft.use_all_points:
            return self._apply_redemption(PointsRedemption.none(), use_all=False)

        totals = self.totals()
        redemption = use_all_points(
            self.points.available_points,
            self.loyalty,
            totals.subtotal.amount,
            totals.discount_amount.amount,
        )
        return self._apply_redemption(redemption, use_all=True)

    def select_customer(self, customer: Customer, points: Optional[CustomerPoints] = None) -> OrderDraft:
        """Attach a customer: contact, FBR buyer fields and billing name."""
        first_name, _, last_name = (customer.name or "").partition(" ")
        self.draft = self.draft.evolve(
            customer_id=customer.id,
            email=customer.email,
            phone=customer.phone,
            buyer=BuyerInfo(
                full_name=customer.name,
                ntn_cnic=customer.buyer_ntn_cnic,
                business_name=customer.buyer_business_name,
                province=customer.buyer_province,
                address=customer.buyer_address,
                registration_type=customer.buyer_registration_type,
            ),
            billing=Address(
                first_name=first_name,
                last_name=last_name,
                address1=self.draft.billing.address1,
                address2=self.draft.billing.address2,
                city=self.draft.billing.city,
                state=self.draft.billing.state,
                postal_code=self.draft.billing.postal_code,
                country=self.draft.billing.country,
            ),
        )
        self.points = points or CustomerPoints()
        return self.draft

    def set_flags(self, flags: SubmissionFlags) -> None:
        self.draft = self.draft.evolve(flags=flags)

    def presentation_flags(self) -> PresentationFlags:
        return presentation_flags(self.draft, self.seller)

    # === SUBMISSION ===

    def validate_for_submit(self, production_token: str = "") -> None:
        """
        Check the draft can be saved.

        Raises:
            ValidationException: If there are no items, or production mode is
                on without a production token
        """
        if not self.draft.items:
            raise ValidationException(
                "Please add at least one item to the order",
                field="items",
                error_code=ErrorCode.INVALID_ORDER_DATA,
            )
        flags = self.draft.flags
        token = production_token or self.seller.fbr_production_token
        if flags.is_production_submission and not flags.skip_fbr_submission and not token.strip():
            raise ValidationException(
                "Please provide production environment token",
                field="productionToken",
                error_code=ErrorCode.PRODUCTION_TOKEN_REQUIRED,
            )

    def build_save_payload(self, production_token: str = "") -> Dict[str, Any]:
        """Full order payload for ``PUT /orders/{id}``."""
        draft = self.draft
        totals = self.totals()
        flags = draft.flags
        custom = self.presentation_flags()
        token = production_token or self.seller.fbr_production_token

        payload: Dict[str, Any] = {
            **draft.header_dict(),
            "items": [item.to_dict() for item in draft.items],
            "subtotal": float(totals.subtotal.amount),
            "taxAmount": float(totals.tax_amount.amount),
            "totalAmount": float(totals.total.amount),
            **draft.billing.to_dict("billing"),
            **draft.shipping.to_dict("shipping"),
            "buyerNTNCNIC": draft.buyer.ntn_cnic or None,
            "buyerBusinessName": draft.buyer.business_name or None,
            "buyerProvince": draft.buyer.province or None,
            "buyerAddress": draft.buyer.address or None,
            "buyerRegistrationType": draft.buyer.registration_type or None,
            "buyerFirstName": draft.buyer_first_name or None,
            "buyerLastName": draft.buyer_last_name or None,
            **self.seller.to_payload(),
            "skipCustomerEmail": flags.skip_customer_email,
            "skipSellerEmail": flags.skip_seller_email,
            "skipFbrSubmission": flags.skip_fbr_submission,
            "isProductionSubmission": flags.is_production_submission,
            "isCustomScenario": custom.is_custom_scenario,
            "isCustomProvince": custom.is_custom_province,
            "isCustomSellerProvince": custom.is_custom_seller_province,
        }
        if flags.is_production_submission:
            payload["productionToken"] = token
        return payload

    def to_dict(self) -> Dict[str, Any]:
        """Editor view of the session: order, totals, derived flags and points."""
        draft = self.draft
        return {
            "orderId": draft.order_id,
            "orderNumber": draft.order_number,
            **draft.header_dict(),
            "items": [item.to_dict() for item in draft.items],
            **draft.billing.to_dict("billing"),
            **draft.shipping.to_dict("shipping"),
            "buyerNTNCNIC": draft.buyer.ntn_cnic,
            "buyerBusinessName": draft.buyer.business_name,
            "buyerProvince": draft.buyer.province,
            "buyerAddress": draft.buyer.address,
            "buyerRegistrationType": draft.buyer.registration_type,
            "sellerNTNCNIC": self.seller.ntn_cnic,
            "sellerBusinessName": self.seller.business_name,
            "sellerProvince": self.seller.province,
            "sellerAddress": self.seller.address,
            "skipCustomerEmail": draft.flags.skip_customer_email,
            "skipSellerEmail": draft.flags.skip_seller_email,
            "skipFbrSubmission": draft.flags.skip_fbr_submission,
            "isProductionSubmission": draft.flags.is_production_submission,
            "totals": self.totals().to_dict(),
            "presentation": self.presentation_flags().to_dict(),
            "loyaltyEnabled": self.loyalty.enabled,
            "availablePoints": self.points.available_points,
        }


"""
Order draft domain model (aggregate root of an edit session).

Holds the line items together with the order-level pricing inputs, the
invoice header, buyer details, addresses and submission flags. Like the
line items it is immutable; the edit session replaces it on every change.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.value_objects.money import ZERO, round2, to_bool, to_decimal


class DiscountType(str, Enum):
    AMOUNT = "amount"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class Address:
    """Billing or shipping address block."""

    first_name: str = ""
    last_name: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = "US"

    def to_dict(self, prefix: str) -> Dict[str, Any]:
        return {
            f"{prefix}FirstName": self.first_name,
            f"{prefix}LastName": self.last_name,
            f"{prefix}Address1": self.address1,
            f"{prefix}Address2": self.address2,
            f"{prefix}City": self.city,
            f"{prefix}State": self.state,
            f"{prefix}PostalCode": self.postal_code,
            f"{prefix}Country": self.country,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], prefix: str) -> "Address":
        return cls(
            first_name=data.get(f"{prefix}FirstName") or "",
            last_name=data.get(f"{prefix}LastName") or "",
            address1=data.get(f"{prefix}Address1") or "",
            address2=data.get(f"{prefix}Address2") or "",
            city=data.get(f"{prefix}City") or "",
            state=data.get(f"{prefix}State") or "",
            postal_code=data.get(f"{prefix}PostalCode") or "",
            country=data.get(f"{prefix}Country") or "US",
        )


@dataclass(frozen=True)
class BuyerInfo:
    """Buyer fields reported on the FBR invoice."""

    full_name: str = ""
    ntn_cnic: str = ""
    business_name: str = ""
    province: str = ""
    address: str = ""
    registration_type: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuyerInfo":
        # Order values win, the linked customer record fills the gaps
        user = data.get("user") or {}
        return cls(
            full_name=data.get("buyerFullName") or user.get("name") or "",
            ntn_cnic=data.get("buyerNTNCNIC") or user.get("buyerNTNCNIC") or "",
            business_name=data.get("buyerBusinessName") or user.get("buyerBusinessName") or "",
            province=data.get("buyerProvince") or user.get("buyerProvince") or "",
            address=data.get("buyerAddress") or user.get("buyerAddress") or "",
            registration_type=data.get("buyerRegistrationType") or user.get("buyerRegistrationType") or "",
        )


@dataclass(frozen=True)
class SubmissionFlags:
    skip_customer_email: bool = False
    skip_seller_email: bool = False
    skip_fbr_submission: bool = False
    is_production_submission: bool = False


@dataclass(frozen=True)
class OrderDraft:
    """
    Editable state of an existing order.

    Attributes:
        order_id: Backend order id
        items: Line items, kept ordered by serial number
        discount_amount: Order discount (amount or percentage, see discount_type)
        shipping_amount: Shipping charge
        tax_rate: Additional order-level tax rate in percent
        points_to_redeem: Loyalty points applied to this order
        points_discount_amount: Monetary value of the redeemed points
        use_all_points: Whether the whole balance is being redeemed
    """

    order_id: str
    order_number: str = ""
    customer_id: str = ""
    email: str = ""
    phone: str = ""
    status: str = "pending"
    payment_status: str = "pending"
    notes: str = ""
    currency: str = "PKR"

    items: Tuple[OrderLineItem, ...] = field(default_factory=tuple)

    discount_amount: Decimal = ZERO
    discount_type: DiscountType = DiscountType.AMOUNT
    shipping_amount: Decimal = ZERO
    tax_rate: Decimal = ZERO
    points_to_redeem: int = 0
    points_discount_amount: Decimal = ZERO
    use_all_points: bool = False

    invoice_type: str = "Sale Invoice"
    invoice_ref_no: str = ""
    scenario_id: str = ""
    invoice_number: str = ""
    invoice_date: Optional[date] = None

    buyer: BuyerInfo = field(default_factory=BuyerInfo)
    billing: Address = field(default_factory=Address)
    shipping: Address = field(default_factory=Address)
    shipping_method: str = ""
    flags: SubmissionFlags = field(default_factory=SubmissionFlags)

    def __post_init__(self) -> None:
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))
        for name in ("discount_amount", "shipping_amount", "tax_rate", "points_discount_amount"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, to_decimal(value))

    @property
    def is_guest(self) -> bool:
        return not self.customer_id

    @property
    def buyer_first_name(self) -> str:
        return self.billing.first_name or self.shipping.first_name

    @property
    def buyer_last_name(self) -> str:
        return self.billing.last_name or self.shipping.last_name

    @property
    def computed_buyer_name(self) -> str:
        """Buyer name from the buyer record, else from the address names."""
        if self.buyer.full_name:
            return self.buyer.full_name
        return f"{self.buyer_first_name.strip()} {self.buyer_last_name.strip()}".strip()

    def with_items(self, items) -> "OrderDraft":
        return replace(self, items=tuple(items))

    def evolve(self, **changes: Any) -> "OrderDraft":
        return replace(self, **changes)

    def item_by_id(self, item_id: str) -> Optional[OrderLineItem]:
        return next((item for item in self.items if item.id == item_id), None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_currency: str = "PKR") -> "OrderDraft":
        """
        Build a draft from the backend order payload.

        The order-level tax rate and the discount type are not persisted by
        the backend; they start at 0 and ``amount`` on every load.
        """
        raw_date = data.get("invoiceDate")
        invoice_date = date.fromisoformat(str(raw_date)[:10]) if raw_date else date.today()

        return cls(
            order_id=str(data.get("id") or ""),
            order_number=str(data.get("orderNumber") or ""),
            customer_id=str(data.get("userId") or ""),
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            status=data.get("status") or "pending",
            payment_status=data.get("paymentStatus") or "pending",
            notes=data.get("notes") or "",
            currency=data.get("currency") or default_currency,
            items=tuple(OrderLineItem.from_dict(item) for item in data.get("items") or []),
            discount_amount=to_decimal(data.get("discountAmount")),
            shipping_amount=to_decimal(data.get("shippingAmount")),
            points_to_redeem=int(to_decimal(data.get("pointsToRedeem"))),
            points_discount_amount=to_decimal(data.get("pointsDiscountAmount")),
            invoice_type=data.get("invoiceType") or "Sale Invoice",
            invoice_ref_no=data.get("invoiceRefNo") or "",
            scenario_id=data.get("scenarioId") or "",
            invoice_number=data.get("invoiceNumber") or "",
            invoice_date=invoice_date,
            buyer=BuyerInfo.from_dict(data),
            billing=Address.from_dict(data, "billing"),
            shipping=Address.from_dict(data, "shipping"),
            shipping_method=data.get("shippingMethod") or "",
            flags=SubmissionFlags(
                skip_customer_email=to_bool(data.get("skipCustomerEmail")),
                skip_seller_email=to_bool(data.get("skipSellerEmail")),
                skip_fbr_submission=to_bool(data.get("skipFbrSubmission")),
                is_production_submission=to_bool(data.get("isProductionSubmission")),
            ),
        )

    def header_dict(self) -> Dict[str, Any]:
        """Order-level fields in the backend's camelCase shape (no items, no totals)."""
        return {
            "customerId": self.customer_id,
            "email": self.email,
            "phone": self.phone,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "notes": self.notes,
            "currency": self.currency,
            "shippingAmount": float(round2(self.shipping_amount)),
            "taxRate": float(self.tax_rate),
            "discountAmount": float(round2(self.discount_amount)),
            "discountType": self.discount_type.value,
            "pointsToRedeem": self.points_to_redeem,
            "pointsDiscountAmount": float(round2(self.points_discount_amount)),
            "useAllPoints": self.use_all_points,
            "invoiceType": self.invoice_type,
            "invoiceRefNo": self.invoice_ref_no,
            "scenarioId": self.scenario_id,
            "invoiceNumber": self.invoice_number,
            "invoiceDate": self.invoice_date.isoformat() if self.invoice_date else None,
            "buyerFullName": self.computed_buyer_name,
            "shippingMethod": self.shipping_method,
        }

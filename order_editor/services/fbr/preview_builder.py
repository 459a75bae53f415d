"""
FBR invoice preview builder.

Projects an order draft onto the invoice shape the FBR submission service
computes, so staff can audit the figures before submitting. The preview
is read-only and never fed back into the order.

Per line, unit figures are derived with fallbacks:

- excluding tax: stored value, else back-computed from the inclusive
  price and percentage, else the raw price
- tax: stored value, else from the percentage, else inclusive - excluding
- including tax: stored value, else excluding + tax

and multiplied by the line quantity (grams for weight-based items, whose
prices are per gram).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from order_editor.core.config import Settings
from order_editor.domain.models.order import OrderDraft
from order_editor.domain.models.order_item import OrderLineItem
from order_editor.domain.models.parties import SellerInfo
from order_editor.domain.value_objects.money import ZERO, quantize, round2, to_decimal
from order_editor.services.fbr import scenarios
from order_editor.services.pricing.totals import Totals

logger = logging.getLogger(__name__)

FbrPreview = Dict[str, Any]

QUANTITY_PRECISION = Decimal("0.0001")
WITHHOLDING_RATE = Decimal("0.02")


@dataclass(frozen=True)
class FbrDefaults:
    """Fallback values used when the order or seller record has no value."""

    hs_code: str = "2710.1991"
    services_hs_code: str = "9805.9200"
    sale_type: str = "Goods at standard rate"
    buyer_ntn_cnic: str = "1234567890123"
    buyer_province: str = "Punjab"
    seller: SellerInfo = SellerInfo()

    @classmethod
    def from_settings(cls, settings: Settings) -> "FbrDefaults":
        return cls(
            hs_code=settings.FBR_DEFAULT_HS_CODE,
            services_hs_code=settings.FBR_SERVICES_HS_CODE,
            sale_type=settings.FBR_DEFAULT_SALE_TYPE,
            buyer_ntn_cnic=settings.FBR_DEFAULT_BUYER_NTN_CNIC,
            buyer_province=settings.FBR_DEFAULT_PROVINCE,
            seller=SellerInfo(
                ntn_cnic=settings.FBR_SELLER_NTN_CNIC,
                business_name=settings.FBR_SELLER_BUSINESS_NAME,
                province=settings.FBR_SELLER_PROVINCE,
                address=settings.FBR_SELLER_ADDRESS,
            ),
        )


@dataclass(frozen=True)
class UnitFigures:
    quantity: Decimal
    excluding_tax: Decimal
    tax: Decimal
    including_tax: Decimal

    def line(self, unit_value: Decimal) -> Decimal:
        return round2(unit_value * self.quantity)


def _number(item: Optional[OrderLineItem], remote: Mapping[str, Any], attribute: str, key: str) -> Decimal:
    # Local item values win; the remote preview fills in for items it alone knows
    if item is not None:
        return getattr(item, attribute)
    return to_decimal(remote.get(key))


def billable_quantity(item: OrderLineItem) -> Decimal:
    if item.is_weight_based:
        return item.weight_quantity
    return item.quantity


def derive_unit_figures(item: Optional[OrderLineItem], remote: Optional[Mapping[str, Any]] = None) -> UnitFigures:
    """
    Derive per-unit excluding/tax/including figures with fallbacks.

    Args:
        item: Local line item, if any
        remote: Item returned by the remote preview, if any

    Returns:
        UnitFigures: Quantity and unit figures, each rounded to the cent
    """
    remote = remote or {}
    if item is not None:
        quantity = billable_quantity(item)
    else:
        quantity = to_decimal(remote.get("quantity"))
    if quantity <= 0:
        quantity = Decimal("1")

    pct = _number(item, remote, "tax_percentage", "taxPercentage")
    exc = _number(item, remote, "price_excluding_tax", "priceExcludingTax")
    inc = _number(item, remote, "price_including_tax", "priceIncludingTax")
    stored_tax = _number(item, remote, "tax_amount", "taxAmount")
    if item is not None:
        price = item.price
    else:
        # Remote-only items may carry the unit price as "rate"
        price = to_decimal(remote.get("price") if remote.get("price") is not None else remote.get("rate"))

    if exc > 0:
        unit_ex = exc
    elif inc > 0 and pct > 0:
        unit_ex = inc / (1 + pct / 100)
    else:
        unit_ex = price

    if stored_tax > 0:
        unit_tax = stored_tax
    elif pct > 0 and unit_ex > 0:
        unit_tax = unit_ex * pct / 100
    elif inc > 0 and unit_ex > 0:
        unit_tax = inc - unit_ex
    else:
        unit_tax = ZERO

    unit_inc = inc if inc > 0 else unit_ex + unit_tax

    return UnitFigures(
        quantity=quantity,
        excluding_tax=round2(unit_ex),
        tax=round2(unit_tax),
        including_tax=round2(unit_inc),
    )


def line_totals(figures: UnitFigures) -> Dict[str, float]:
    """Invoice-line totals (unit figures x quantity)."""
    excluding = figures.line(figures.excluding_tax)
    including = figures.line(figures.including_tax)
    return {
        "quantity": float(quantize(figures.quantity, QUANTITY_PRECISION)),
        "valueSalesExcludingST": float(excluding),
        "salesTaxApplicable": float(figures.line(figures.tax)),
        "totalValues": float(including),
        "priceExcludingTaxTotal": float(excluding),
        "priceIncludingTaxTotal": float(including),
    }


def rate_label(item: OrderLineItem, scenario_id: str) -> str:
    if item.tax_percentage > 0:
        return f"{quantize(item.tax_percentage, Decimal('1'))}%"
    return scenarios.zero_rate_label(scenario_id)


def build_preview_item(item: OrderLineItem, scenario_id: str, defaults: FbrDefaults) -> Dict[str, Any]:
    """Map one line item to an FBR invoice line."""
    figures = derive_unit_figures(item)
    totals = line_totals(figures)
    services = scenarios.is_services_scenario(scenario_id)

    extra = figures.line(item.extra_tax)
    withheld = extra
    if withheld <= 0 and scenarios.requires_withholding_tax(scenario_id):
        withheld = round2(figures.excluding_tax * figures.quantity * WITHHOLDING_RATE)

    retail_price = item.fixed_notified_value_or_retail_price
    if scenarios.supports_third_schedule(scenario_id) and retail_price <= 0:
        retail_price = item.price

    return {
        "hsCode": item.hs_code or (defaults.services_hs_code if services else defaults.hs_code),
        "productDescription": item.product_description or item.product_name,
        "rate": rate_label(item, scenario_id),
        "uoM": item.uom or (scenarios.SERVICES_UOM if services else scenarios.DEFAULT_UOM),
        "saleType": item.sale_type or defaults.sale_type,
        "sroScheduleNo": item.sro_schedule_number,
        "sroItemSerialNo": item.item_serial_number,
        "fixedNotifiedValueOrRetailPrice": float(round2(retail_price)),
        "salesTaxWithheldAtSource": float(withheld),
        "extraTax": float(extra),
        "furtherTax": float(figures.line(item.further_tax)),
        "fedPayable": float(figures.line(item.fed_payable_tax)),
        "discount": float(figures.line(item.discount)),
        "taxPercentage": float(item.tax_percentage),
        **totals,
    }


def resolve_seller(seller: Optional[SellerInfo], defaults: FbrDefaults) -> SellerInfo:
    if seller is not None and (seller.ntn_cnic or seller.business_name):
        return seller
    return defaults.seller


def build_invoice_header(draft: OrderDraft, seller: Optional[SellerInfo], defaults: FbrDefaults) -> Dict[str, Any]:
    """Invoice header: seller, buyer (with fallbacks) and invoice references."""
    seller = resolve_seller(seller, defaults)
    street = draft.shipping.address1 or draft.billing.address1
    city = draft.shipping.city or draft.billing.city
    buyer = draft.buyer

    return {
        "invoiceType": draft.invoice_type or "Sale Invoice",
        "invoiceDate": draft.invoice_date.isoformat() if draft.invoice_date else None,
        "invoiceRefNo": draft.invoice_ref_no,
        "scenarioId": draft.scenario_id,
        "sellerNTNCNIC": seller.ntn_cnic,
        "sellerBusinessName": seller.business_name,
        "sellerProvince": seller.province,
        "sellerAddress": seller.address,
        "buyerRegistrationType": buyer.registration_type or "Unregistered",
        "buyerNTNCNIC": buyer.ntn_cnic or defaults.buyer_ntn_cnic,
        "buyerBusinessName": buyer.business_name or draft.email or "Customer",
        "buyerProvince": buyer.province or draft.shipping.state or draft.billing.state or defaults.buyer_province,
        "buyerAddress": buyer.address or f"{street} {city}".strip() or "Customer Address",
        "buyerFullName": draft.computed_buyer_name,
        "buyerFirstName": draft.buyer_first_name,
        "buyerLastName": draft.buyer_last_name,
    }


def build_preview(
    draft: OrderDraft,
    seller: Optional[SellerInfo] = None,
    defaults: Optional[FbrDefaults] = None,
) -> FbrPreview:
    """
    Build the full invoice preview locally.

    Args:
        draft: Order being edited (items in display order)
        seller: Seller record; configured defaults are used when it is empty
        defaults: Fallback values

    Returns:
        FbrPreview: Header fields plus ``items`` and invoice-level sums
    """
    defaults = defaults or FbrDefaults()
    header = build_invoice_header(draft, seller, defaults)
    items = [build_preview_item(item, draft.scenario_id, defaults) for item in draft.items]

    preview: FbrPreview = {**header, "items": items}
    preview["totalValueSalesExcludingST"] = float(round2(sum(Decimal(str(i["valueSalesExcludingST"])) for i in items)))
    preview["totalSalesTax"] = float(round2(sum(Decimal(str(i["salesTaxApplicable"])) for i in items)))
    preview["totalValues"] = float(round2(sum(Decimal(str(i["totalValues"])) for i in items)))
    return preview


def enhance_preview(raw: Mapping[str, Any], draft: OrderDraft) -> FbrPreview:
    """
    Add quantity-adjusted display totals to a remote preview.

    Remote item ``i`` is matched with local item ``i``; buyer names are
    filled in when the remote preview lacks them.
    """
    enhanced: FbrPreview = dict(raw)
    if not enhanced.get("buyerFullName"):
        enhanced["buyerFullName"] = draft.computed_buyer_name
    if not enhanced.get("buyerFirstName"):
        enhanced["buyerFirstName"] = draft.buyer_first_name
    if not enhanced.get("buyerLastName"):
        enhanced["buyerLastName"] = draft.buyer_last_name

    remote_items = raw.get("items")
    if isinstance(remote_items, list):
        local_items: List[OrderLineItem] = list(draft.items)
        enhanced_items = []
        for index, remote_item in enumerate(remote_items):
            remote_item = remote_item if isinstance(remote_item, dict) else {}
            local = local_items[index] if index < len(local_items) else None
            figures = derive_unit_figures(local, remote_item)
            enhanced_items.append({**remote_item, **line_totals(figures)})
        enhanced["items"] = enhanced_items

    return enhanced


def build_order_for_preview(
    draft: OrderDraft,
    seller: SellerInfo,
    totals: Totals,
) -> Dict[str, Any]:
    """
    Payload for ``POST /fbr/submit?preview=true``.

    In production mode the production token is sent in place of the sandbox token.
    """
    token = seller.fbr_production_token if draft.flags.is_production_submission else seller.fbr_sandbox_token
    return {
        "email": draft.email,
        "scenarioId": draft.scenario_id,
        "invoiceType": draft.invoice_type or "Sale Invoice",
        "invoiceDate": draft.invoice_date.isoformat() if draft.invoice_date else None,
        "invoiceRefNo": draft.invoice_ref_no,
        "subtotal": float(totals.subtotal.amount),
        "totalAmount": float(totals.total.amount),
        "taxAmount": float(totals.tax_amount.amount),
        "currency": draft.currency,
        "items": [item.to_dict() for item in draft.items],
        "buyerFirstName": draft.buyer_first_name,
        "buyerLastName": draft.buyer_last_name,
        "buyerFullName": draft.computed_buyer_name,
        "buyerNTNCNIC": draft.buyer.ntn_cnic,
        "buyerBusinessName": draft.buyer.business_name,
        "buyerProvince": draft.buyer.province,
        "buyerAddress": draft.buyer.address,
        "buyerRegistrationType": draft.buyer.registration_type,
        "sellerNTNCNIC": seller.ntn_cnic,
        "sellerBusinessName": seller.business_name,
        "sellerProvince": seller.province,
        "sellerAddress": seller.address,
        "fbrSandboxToken": token,
        "fbrBaseUrl": seller.fbr_base_url,
        "isProductionSubmission": draft.flags.is_production_submission,
    }

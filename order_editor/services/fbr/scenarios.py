"""
FBR scenario catalogue and derived presentation flags.

Whether a value is "custom" (not one of the known choices) is derived from
the data each time it is needed, never stored next to the value.
"""

from dataclasses import dataclass
from typing import Dict, List

from order_editor.domain.models.order import OrderDraft
from order_editor.domain.models.parties import SellerInfo

STANDARD_SCENARIOS = tuple(f"SN{number:03d}" for number in range(1, 29))

PREDEFINED_PROVINCES = (
    "Punjab",
    "Sindh",
    "Khyber Pakhtunkhwa (KPK)",
    "Balochistan",
    "Capital Territory",
    "Azad Jammu & Kashmir (AJK)",
    "Gilgit-Baltistan (GB)",
    "N/A",
)

PREDEFINED_SELLER_PROVINCES = (
    "Punjab",
    "Sindh",
    "Khyber Pakhtunkhwa",
    "Balochistan",
    "Capital Territory",
    "Azad Jammu and Kashmir",
    "Gilgit-Baltistan",
    "N/A",
)

DEFAULT_SRO_SCHEDULE_NUMBER = "ICTO TABLE I"
DEFAULT_ITEM_SERIAL_NUMBER = "19"

WITHHOLDING_TAX_SCENARIOS = frozenset({"SN002"})
EXEMPT_SCENARIOS = frozenset({"SN006"})
THIRD_SCHEDULE_SCENARIOS = frozenset({"SN008"})
SERVICES_SCENARIOS = frozenset({"SN018"})

SERVICES_UOM = "Numbers, pieces, units"
DEFAULT_UOM = "PCS"


def is_custom_scenario(scenario_id: str) -> bool:
    return bool(scenario_id) and scenario_id not in STANDARD_SCENARIOS


def is_custom_province(province: str) -> bool:
    return bool(province) and province not in PREDEFINED_PROVINCES


def is_custom_seller_province(province: str) -> bool:
    return bool(province) and province not in PREDEFINED_SELLER_PROVINCES


def is_custom_sro_schedule(value: str) -> bool:
    return bool(value) and value != DEFAULT_SRO_SCHEDULE_NUMBER


def is_custom_item_serial(value: str) -> bool:
    return bool(value) and value != DEFAULT_ITEM_SERIAL_NUMBER


def requires_withholding_tax(scenario_id: str) -> bool:
    return scenario_id in WITHHOLDING_TAX_SCENARIOS


def supports_third_schedule(scenario_id: str) -> bool:
    return scenario_id in THIRD_SCHEDULE_SCENARIOS


def is_services_scenario(scenario_id: str) -> bool:
    return scenario_id in SERVICES_SCENARIOS


def zero_rate_label(scenario_id: str) -> str:
    return "Exempt" if scenario_id in EXEMPT_SCENARIOS else "0%"


@dataclass(frozen=True)
class PresentationFlags:
    is_custom_scenario: bool
    is_custom_province: bool
    is_custom_seller_province: bool
    custom_sro_schedule: List[bool]
    custom_item_serial: List[bool]

    def to_dict(self) -> Dict[str, object]:
        return {
            "isCustomScenario": self.is_custom_scenario,
            "isCustomProvince": self.is_custom_province,
            "isCustomSellerProvince": self.is_custom_seller_province,
            "itemCustomSroScheduleNumber": self.custom_sro_schedule,
            "itemCustomItemSerialNumber": self.custom_item_serial,
        }


def presentation_flags(draft: OrderDraft, seller: SellerInfo) -> PresentationFlags:
    """Derive the "custom value" toggles for a draft."""
    return PresentationFlags(
        is_custom_scenario=is_custom_scenario(draft.scenario_id),
        is_custom_province=is_custom_province(draft.buyer.province),
        is_custom_seller_province=is_custom_seller_province(seller.province),
        custom_sro_schedule=[is_custom_sro_schedule(item.sro_schedule_number) for item in draft.items],
        custom_item_serial=[is_custom_item_serial(item.item_serial_number) for item in draft.items],
    )

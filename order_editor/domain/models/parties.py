"""
Seller and customer records used when preparing an FBR invoice.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict


@dataclass(frozen=True)
class SellerInfo:
    """
    Seller identity reported on FBR invoices.

    Loaded from ``/seller-info`` and then overridden field by field by the
    tenant FBR settings, which also carry the production token.
    """

    ntn_cnic: str = ""
    business_name: str = ""
    province: str = ""
    address: str = ""
    fbr_sandbox_token: str = ""
    fbr_base_url: str = ""
    fbr_production_token: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "SellerInfo":
        return cls(
            ntn_cnic=data.get("sellerNTNCNIC") or "",
            business_name=data.get("sellerBusinessName") or "",
            province=data.get("sellerProvince") or "",
            address=data.get("sellerAddress") or "",
            fbr_sandbox_token=data.get("fbrSandboxToken") or "",
            fbr_base_url=data.get("fbrBaseUrl") or "",
        )

    def merge_fbr_settings(self, payload: Dict[str, Any]) -> "SellerInfo":
        """Overlay the values present in a ``/settings/fbr`` response."""
        settings = payload.get("settings") or {}
        if not settings:
            return self
        return replace(
            self,
            fbr_sandbox_token=settings.get("fbrSandboxToken") or self.fbr_sandbox_token,
            fbr_base_url=settings.get("fbrBaseUrl") or self.fbr_base_url,
            ntn_cnic=settings.get("fbrSellerNTNCNIC") or self.ntn_cnic,
            business_name=settings.get("fbrSellerBusinessName") or self.business_name,
            province=settings.get("fbrSellerProvince") or self.province,
            address=settings.get("fbrSellerAddress") or self.address,
            fbr_production_token=settings.get("fbrProductionToken") or "",
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sellerNTNCNIC": self.ntn_cnic or None,
            "sellerBusinessName": self.business_name or None,
            "sellerProvince": self.province or None,
            "sellerAddress": self.address or None,
            "fbrSandboxToken": self.fbr_sandbox_token or None,
            "fbrBaseUrl": self.fbr_base_url or None,
        }


@dataclass(frozen=True)
class Customer:
    id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    user_type: str = ""
    buyer_ntn_cnic: str = ""
    buyer_business_name: str = ""
    buyer_province: str = ""
    buyer_address: str = ""
    buyer_registration_type: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Customer":
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            user_type=data.get("userType") or "",
            buyer_ntn_cnic=data.get("buyerNTNCNIC") or "",
            buyer_business_name=data.get("buyerBusinessName") or "",
            buyer_province=data.get("buyerProvince") or "",
            buyer_address=data.get("buyerAddress") or "",
            buyer_registration_type=data.get("buyerRegistrationType") or "",
        )

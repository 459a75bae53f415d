"""
FBR digital invoicing helpers: HS code normalization, item ordering,
scenario rules, pre-submission validation and invoice preview.
"""

from .hs_code import normalize_hs_code, normalize_hs_codes
from .ordering import sort_items_by_serial_number
from .preview_builder import FbrDefaults, build_preview, enhance_preview
from .validator import FbrValidationResult, validate_order_for_fbr

__all__ = [
    "FbrDefaults",
    "FbrValidationResult",
    "build_preview",
    "enhance_preview",
    "normalize_hs_code",
    "normalize_hs_codes",
    "sort_items_by_serial_number",
    "validate_order_for_fbr",
]

"""
HS code normalization.

FBR expects harmonized codes with a four digit suffix (``DDDD.DDDD``).
"""

import logging
import re
from typing import Iterable, List, Tuple

from order_editor.domain.models.order_item import OrderLineItem

logger = logging.getLogger(__name__)

HS_CODE_PATTERN = re.compile(r"^\d{4}\.\d{4}$|^\d{8,10}$")


def normalize_hs_code(hs_code: str) -> str:
    """
    Ensure an HS code carries at least four decimal digits.

    "8471" -> "8471.0000", "8471.5" -> "8471.5000"; codes that already
    have four or more decimals, and blank codes, are returned unchanged.
    """
    if not hs_code or not hs_code.strip():
        return hs_code

    code = hs_code.strip()
    if "." not in code:
        return f"{code}.0000"

    head, _, decimals = code.partition(".")
    if len(decimals) < 4:
        return f"{head}.{decimals.ljust(4, '0')}"
    return code


def is_valid_hs_code(hs_code: str) -> bool:
    return bool(HS_CODE_PATTERN.match(hs_code or ""))


def normalize_hs_codes(items: Iterable[OrderLineItem]) -> Tuple[List[OrderLineItem], int]:
    """
    Normalize the HS code of every item.

    Returns:
        Tuple: (items, number of items whose code changed)
    """
    normalized: List[OrderLineItem] = []
    updated = 0
    for item in items:
        code = normalize_hs_code(item.hs_code)
        if code != item.hs_code:
            updated += 1
            normalized.append(item.evolve(hs_code=code))
        else:
            normalized.append(item)

    if updated:
        logger.info(f"🔍 Normalized {updated} HS code(s) to FBR format")
    return normalized, updated

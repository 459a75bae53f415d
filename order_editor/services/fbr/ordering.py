"""
Serial number ordering of line items.

Items are ordered by ``serial_number`` with a natural, case-insensitive
comparison ("2" < "10", "a" == "A"). Items without a serial go last and
ties keep their relative order.
"""

import re
import unicodedata
from typing import Iterable, List, Tuple

from order_editor.domain.models.order_item import OrderLineItem

_CHUNKS = re.compile(r"(\d+)")


def _fold(text: str) -> str:
    # Base-letter comparison: drop accents, ignore case
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def natural_key(value: str) -> Tuple:
    """Sort key splitting digit runs from text; digits sort before letters."""
    parts = []
    for chunk in _CHUNKS.split(_fold(value)):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), ""))
        else:
            parts.append((1, 0, chunk))
    return tuple(parts)


def serial_sort_key(item: OrderLineItem) -> Tuple:
    serial = (item.serial_number or "").strip()
    if not serial:
        return (1, ())
    return (0, natural_key(serial))


def sort_items_by_serial_number(items: Iterable[OrderLineItem]) -> List[OrderLineItem]:
    """Return the items in serial number order (stable)."""
    return sorted(items, key=serial_sort_key)

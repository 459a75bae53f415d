"""
Order editing: edit session, item creation, catalog refresh and orchestration.
"""

from order_editor.services.orders.catalog_refresh import CatalogRefresher, RefreshResult
from order_editor.services.orders.editor import OrderEditSession
from order_editor.services.orders.item_factory import ProductSelection, build_line_item
from order_editor.services.orders.order_service import OrderEditService, PreviewOutcome

__all__ = [
    "CatalogRefresher",
    "OrderEditService",
    "OrderEditSession",
    "PreviewOutcome",
    "ProductSelection",
    "RefreshResult",
    "build_line_item",
]

"""
Order Entry Module.

Handles the sales-order entry screen's draft: line items with tiered
prices, stock and below-cost gates, the reversible last-order price
overlay, totals and balance reconciliation, order numbers, and
submission to the order persistence collaborator.
"""

from sales_modules.order_entry.cart import Cart
from sales_modules.order_entry.config import OrderEntryConfig
from sales_modules.order_entry.models import (
    CartLine,
    CartResult,
    LastOrderPrices,
    OrderSubmission,
    OrderTotals,
    OverlayApplyResult,
    OverlayLineStatus,
    OverlayRestoreResult,
    OverlayStatus,
    SubmissionLine,
    SubmissionResult,
)
from sales_modules.order_entry.overlay import HistoricalPriceOverlay, LastPurchasePriceCache
from sales_modules.order_entry.ports import (
    CatalogLookup,
    OrderHistorySource,
    OrderSubmitter,
    PurchasePriceSource,
)
from sales_modules.order_entry.service import OrderEntrySession

__all__ = [
    "Cart",
    "OrderEntryConfig",
    "CartLine",
    "CartResult",
    "LastOrderPrices",
    "OrderSubmission",
    "OrderTotals",
    "OverlayApplyResult",
    "OverlayLineStatus",
    "OverlayRestoreResult",
    "OverlayStatus",
    "SubmissionLine",
    "SubmissionResult",
    "HistoricalPriceOverlay",
    "LastPurchasePriceCache",
    "CatalogLookup",
    "OrderHistorySource",
    "OrderSubmitter",
    "PurchasePriceSource",
    "OrderEntrySession",
]

"""
sales_engines.stock -- Stock guard for requested quantities.

Responsibility:
    Validate a requested quantity against the stock recorded on a catalog
    item snapshot, and classify the stock level for display.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``OUT_OF_STOCK`` takes precedence over ``EXCEEDS_STOCK``.
    - The check is advisory: it reports, the caller decides whether to block
      or to proceed after a warning.

Failure modes:
    None -- every input produces a ``StockCheck``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sales_engines.tracer import traced_engine
from sales_kernel.domain.catalog import CatalogItem
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.stock")


class StockIssue(str, Enum):
    """Why a requested quantity cannot be covered."""

    OUT_OF_STOCK = "OUT_OF_STOCK"
    EXCEEDS_STOCK = "EXCEEDS_STOCK"


class StockLevel(str, Enum):
    """Display classification of an item's stock."""

    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"


@dataclass(frozen=True)
class StockCheck:
    """Outcome of a quantity check."""

    ok: bool
    requested: int
    available: int
    reason: StockIssue | None = None

    @property
    def shortfall(self) -> int:
        return max(self.requested - self.available, 0)


@traced_engine("stock_guard", "1.0", fingerprint_fields=("requested_qty",))
def check_quantity(item: CatalogItem, requested_qty: int) -> StockCheck:
    """
    Check ``requested_qty`` against ``item.inventory.current_stock``.

    Postconditions:
        - ``reason == OUT_OF_STOCK`` when current stock is 0.
        - ``reason == EXCEEDS_STOCK`` when requested > current stock.
        - ``ok`` otherwise.
    """
    available = item.inventory.current_stock
    if available == 0:
        reason: StockIssue | None = StockIssue.OUT_OF_STOCK
    elif requested_qty > available:
        reason = StockIssue.EXCEEDS_STOCK
    else:
        reason = None

    if reason is not None:
        logger.info("stock_check_failed", extra={
            "item_id": str(item.id),
            "requested": requested_qty,
            "available": available,
            "reason": reason.value,
        })
    return StockCheck(
        ok=reason is None,
        requested=requested_qty,
        available=available,
        reason=reason,
    )


def classify_stock_level(item: CatalogItem) -> StockLevel:
    """Out of stock at 0, low at or below the reorder point, else in stock."""
    inventory = item.inventory
    if inventory.current_stock == 0:
        return StockLevel.OUT_OF_STOCK
    if inventory.current_stock <= inventory.reorder_point:
        return StockLevel.LOW_STOCK
    return StockLevel.IN_STOCK

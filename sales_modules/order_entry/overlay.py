"""
Historical Price Overlay and Last-Purchase-Price Cache.

Responsibility
--------------
Session-scoped state owned alongside a draft:

* ``HistoricalPriceOverlay`` -- reversible substitution of line prices with
  the prices of the customer's previous order.  Two states, *Original* and
  *Overlaid*.
* ``LastPurchasePriceCache`` -- last known purchase cost per catalog item,
  filled lazily when an item is first added.

Architecture position
---------------------
**Modules layer** -- in-memory state, zero I/O.  The overlay never reprices
lines itself; the cart passes a ``reprice`` callable so amounts are derived
in one place.

Invariants enforced
-------------------
* Applying captures every current line's price, replacing any previous
  capture; restoring puts back each captured price and empties the state.
* Forgetting an item (line removed) drops only that item's entries;
  forgetting the last captured item returns to *Original*.
* The cart keeps one line per item, so captures are keyed by item id.
* Cache entries are keyed by ``CatalogItemId``; a cached ``None`` means
  "looked up, nothing known" and is never fetched again.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from datetime import datetime
from decimal import Decimal

from sales_kernel.domain.values import CatalogItemId
from sales_kernel.exceptions import NothingToRestoreError
from sales_kernel.logging_config import get_logger
from sales_modules.order_entry.models import (
    CartLine,
    LastOrderPrices,
    OverlayApplyResult,
    OverlayLineStatus,
    OverlayRestoreResult,
    OverlayStatus,
)

logger = get_logger("modules.order_entry.overlay")

Repricer = Callable[[CartLine, Decimal], CartLine]


class HistoricalPriceOverlay:
    """Reversible last-order price overlay for one draft."""

    def __init__(self) -> None:
        self._original_prices: dict[CatalogItemId, Decimal] = {}
        self._line_status: dict[CatalogItemId, OverlayLineStatus] = {}
        self._is_applied = False
        self._source_order_number: str | None = None
        self._source_order_date: datetime | None = None

    @property
    def is_applied(self) -> bool:
        return self._is_applied

    def line_status(self, item_id: CatalogItemId) -> OverlayLineStatus | None:
        return self._line_status.get(item_id)

    def apply(
        self,
        lines: Sequence[CartLine],
        history: LastOrderPrices,
        reprice: Repricer,
    ) -> tuple[list[CartLine], OverlayApplyResult]:
        """
        Overlay ``history`` onto ``lines``.

        Preconditions: ``lines`` non-empty and ``history`` non-empty (the
        cart checks both and reports the typed errors).
        """
        self._original_prices = {line.catalog_item_id: line.unit_price for line in lines}
        self._line_status = {}

        new_lines: list[CartLine] = []
        updated = unchanged = not_found = 0
        for line in lines:
            item_id = line.catalog_item_id
            last_price = history.prices.get(item_id)
            if last_price is None:
                self._line_status[item_id] = OverlayLineStatus.NOT_FOUND
                not_found += 1
                new_lines.append(line)
            elif last_price != line.unit_price:
                self._line_status[item_id] = OverlayLineStatus.UPDATED
                updated += 1
                new_lines.append(reprice(line, last_price))
            else:
                self._line_status[item_id] = OverlayLineStatus.UNCHANGED
                unchanged += 1
                new_lines.append(line)

        self._is_applied = True
        self._source_order_number = history.order_number
        self._source_order_date = history.order_date
        logger.info("overlay_applied", extra={
            "source_order_number": history.order_number,
            "updated": updated,
            "unchanged": unchanged,
            "not_found": not_found,
        })
        return new_lines, OverlayApplyResult(
            success=True,
            updated=updated,
            unchanged=unchanged,
            not_found=not_found,
            order_number=history.order_number,
            order_date=history.order_date,
        )

    def restore(
        self,
        lines: Sequence[CartLine],
        reprice: Repricer,
    ) -> tuple[list[CartLine], OverlayRestoreResult]:
        """Put captured prices back and return to the Original state."""
        if not self._original_prices:
            return list(lines), OverlayRestoreResult(
                success=False, error=NothingToRestoreError()
            )

        new_lines: list[CartLine] = []
        restored = 0
        for line in lines:
            original = self._original_prices.get(line.catalog_item_id)
            if original is None:
                new_lines.append(line)
                continue
            restored += 1
            if original == line.unit_price:
                new_lines.append(line)
            else:
                new_lines.append(reprice(line, original))

        self.clear()
        logger.info("overlay_restored", extra={"restored": restored})
        return new_lines, OverlayRestoreResult(success=True, restored=restored)

    def forget(self, item_id: CatalogItemId) -> None:
        """Drop one item's entries; with none left the overlay is over."""
        self._original_prices.pop(item_id, None)
        self._line_status.pop(item_id, None)
        if self._is_applied and not self._original_prices:
            self.clear()
            logger.info("overlay_cleared", extra={"last_item_id": str(item_id)})

    def clear(self) -> None:
        self._original_prices = {}
        self._line_status = {}
        self._is_applied = False
        self._source_order_number = None
        self._source_order_date = None

    def status(self) -> OverlayStatus:
        return OverlayStatus(
            is_applied=self._is_applied,
            line_status=dict(self._line_status),
            original_prices=dict(self._original_prices),
            source_order_number=self._source_order_number,
            source_order_date=self._source_order_date,
        )


class LastPurchasePriceCache:
    """Last purchase cost per catalog item for one draft."""

    def __init__(self) -> None:
        self._prices: dict[CatalogItemId, Decimal | None] = {}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._prices

    def __len__(self) -> int:
        return len(self._prices)

    def __iter__(self) -> Iterator[CatalogItemId]:
        return iter(self._prices)

    def get(self, item_id: CatalogItemId, default: Decimal | None = None) -> Decimal | None:
        return self._prices.get(item_id, default)

    def __getitem__(self, item_id: CatalogItemId) -> Decimal | None:
        return self._prices[item_id]

    def remember(self, item_id: CatalogItemId, price: Decimal | None) -> bool:
        """Store ``price`` unless the item is already known; True if stored."""
        if item_id in self._prices:
            return False
        self._prices[item_id] = price
        logger.debug("last_purchase_price_cached", extra={
            "item_id": str(item_id),
            "last_purchase_price": price,
        })
        return True

    def forget(self, item_id: CatalogItemId) -> None:
        self._prices.pop(item_id, None)

    def clear(self) -> None:
        self._prices.clear()

    def as_mapping(self) -> dict[CatalogItemId, Decimal | None]:
        return dict(self._prices)

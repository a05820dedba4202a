"""
Order Entry Domain Models (``sales_modules.order_entry.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of sales-order entry: cart
lines, operation results, overlay status and results, last-order prices,
and the submission document handed to the order persistence collaborator.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built and
returned by ``Cart`` and ``OrderEntrySession``.

Invariants enforced
-------------------
* All models are ``frozen=True``; the cart replaces lines, never edits them.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``CartLine.total == subtotal - discount_amount + tax_amount``.
* ``CartLine.quantity`` is an ``int`` > 0 and ``unit_price`` is finite
  and >= 0.

Failure modes
-------------
* Construction with an invalid quantity or price raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from sales_engines.margin import MarginEvaluation
from sales_engines.totals import OrderTotals, compute_line_amounts
from sales_kernel.domain.catalog import CatalogItem
from sales_kernel.domain.values import ZERO, CatalogItemId, to_decimal
from sales_kernel.exceptions import PricingError, SalesKernelError
from sales_kernel.logging_config import get_logger

logger = get_logger("modules.order_entry.models")

__all__ = [
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
]


@dataclass(frozen=True)
class CartLine:
    """
    One line of the draft.

    ``catalog_item_snapshot`` is the item as it was when added; later
    catalog refreshes never touch it.  ``tier_price`` is the price the
    current tier suggests for the item and ``manually_edited`` records
    whether the user typed a price, so tier switches leave such lines alone.
    """

    catalog_item_id: CatalogItemId
    catalog_item_snapshot: CatalogItem
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    discount_amount: Decimal = ZERO
    tier_price: Decimal = ZERO
    manually_edited: bool = False
    stock_override: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"quantity must be an integer, got {self.quantity!r}")
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        if not self.unit_price.is_finite() or self.unit_price < ZERO:
            raise ValueError(f"unit_price must be finite and >= 0, got {self.unit_price}")

    @classmethod
    def create(
        cls,
        item: CatalogItem,
        quantity: int,
        unit_price: Decimal,
        *,
        tax_rate: Decimal,
        is_tax_exempt: bool,
        tier_price: Decimal,
        manually_edited: bool = False,
        stock_override: bool = False,
        places: int = 2,
    ) -> CartLine:
        amounts = compute_line_amounts(
            quantity=quantity,
            unit_price=unit_price,
            tax_rate=tax_rate,
            is_tax_exempt=is_tax_exempt,
            places=places,
        )
        return cls(
            catalog_item_id=item.id,
            catalog_item_snapshot=item,
            quantity=quantity,
            unit_price=unit_price,
            tax_rate=amounts.tax_rate,
            subtotal=amounts.subtotal,
            tax_amount=amounts.tax_amount,
            total=amounts.total,
            discount_amount=amounts.discount_amount,
            tier_price=tier_price,
            manually_edited=manually_edited,
            stock_override=stock_override,
        )

    @property
    def display_name(self) -> str:
        return self.catalog_item_snapshot.label

    def recalculated(
        self,
        *,
        is_tax_exempt: bool,
        places: int = 2,
        quantity: int | None = None,
        unit_price: Decimal | None = None,
        **flags: Any,
    ) -> CartLine:
        """Copy with new quantity/price and re-derived amounts."""
        new_quantity = self.quantity if quantity is None else quantity
        new_price = self.unit_price if unit_price is None else unit_price
        amounts = compute_line_amounts(
            quantity=new_quantity,
            unit_price=new_price,
            tax_rate=self.tax_rate,
            is_tax_exempt=is_tax_exempt,
            discount_amount=self.discount_amount,
            places=places,
        )
        return replace(
            self,
            quantity=new_quantity,
            unit_price=new_price,
            subtotal=amounts.subtotal,
            tax_amount=amounts.tax_amount,
            total=amounts.total,
            **flags,
        )


@dataclass(frozen=True)
class CartResult:
    """
    Outcome of a cart mutation.

    ``error`` holds the typed exception instance on failure.  A PRICING
    error means the operation was held for confirmation: repeat it with
    ``confirm_below_cost=True`` to proceed.
    """

    success: bool
    line: CartLine | None = None
    line_index: int | None = None
    error: SalesKernelError | None = None
    margin: MarginEvaluation | None = None
    removed: bool = False

    @property
    def requires_confirmation(self) -> bool:
        return isinstance(self.error, PricingError)

    @classmethod
    def ok(
        cls,
        line: CartLine | None = None,
        line_index: int | None = None,
        margin: MarginEvaluation | None = None,
        removed: bool = False,
    ) -> CartResult:
        return cls(success=True, line=line, line_index=line_index, margin=margin, removed=removed)

    @classmethod
    def failed(
        cls,
        error: SalesKernelError,
        margin: MarginEvaluation | None = None,
        line_index: int | None = None,
    ) -> CartResult:
        return cls(success=False, error=error, margin=margin, line_index=line_index)


class OverlayLineStatus(str, Enum):
    """How the overlay treated one line."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class LastOrderPrices:
    """Per-item unit prices of a customer's most recent order."""

    prices: Mapping[CatalogItemId, Decimal] = field(default_factory=dict)
    order_number: str | None = None
    order_date: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return not self.prices

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> LastOrderPrices:
        """
        Parse the order-history collaborator's response.

        Shape: ``{"prices": {id: {"unitPrice": n}}, "orderNumber", "orderDate"}``.
        Entries without a numeric ``unitPrice`` are skipped.
        """
        data = data or {}
        prices: dict[CatalogItemId, Decimal] = {}
        for raw_id, entry in (data.get("prices") or {}).items():
            raw_price = entry.get("unitPrice") if isinstance(entry, Mapping) else entry
            try:
                price = to_decimal(raw_price)
            except ValueError:
                logger.warning("last_order_price_unparseable", extra={
                    "item_id": str(raw_id),
                    "raw_price": str(raw_price),
                })
                continue
            if price is not None and price.is_finite():
                prices[CatalogItemId.of(raw_id)] = price

        order_date = data.get("orderDate")
        if isinstance(order_date, str):
            order_date = datetime.fromisoformat(order_date.replace("Z", "+00:00"))
        return cls(
            prices=prices,
            order_number=data.get("orderNumber"),
            order_date=order_date,
        )


@dataclass(frozen=True)
class OverlayStatus:
    """Read-only projection of the historical price overlay."""

    is_applied: bool
    line_status: Mapping[CatalogItemId, OverlayLineStatus] = field(default_factory=dict)
    original_prices: Mapping[CatalogItemId, Decimal] = field(default_factory=dict)
    source_order_number: str | None = None
    source_order_date: datetime | None = None

    def status_of(self, item_id: CatalogItemId | str) -> OverlayLineStatus | None:
        return self.line_status.get(CatalogItemId.of(item_id))


@dataclass(frozen=True)
class OverlayApplyResult:
    success: bool
    error: SalesKernelError | None = None
    updated: int = 0
    unchanged: int = 0
    not_found: int = 0
    order_number: str | None = None
    order_date: datetime | None = None

    def summary(self) -> str:
        """User-facing sentence describing what the overlay did."""
        if not self.success:
            return str(self.error)
        source = self.order_number or "previous order"
        date_str = self.order_date.date().isoformat() if self.order_date else "previous order"
        if self.updated:
            message = (
                f"Applied prices from {source} ({date_str}). "
                f"Updated {self.updated} product(s)."
            )
            if self.unchanged:
                message += f" {self.unchanged} product(s) had same price."
            if self.not_found:
                message += f" {self.not_found} product(s) not found in previous order."
            return message
        if self.unchanged:
            return f"All products already have the same prices as in {source} ({date_str})."
        return "No matching products found in previous order"


@dataclass(frozen=True)
class OverlayRestoreResult:
    success: bool
    error: SalesKernelError | None = None
    restored: int = 0


@dataclass(frozen=True)
class SubmissionLine:
    """One item of the order document."""

    catalog_item_id: CatalogItemId
    name: str
    quantity: int
    unit_price: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_price: Decimal
    invoiced_quantity: int = 0
    remaining_quantity: int = 0


@dataclass(frozen=True)
class OrderSubmission:
    """The order document sent to the persistence collaborator."""

    order_number: str
    order_type: str
    customer_id: str | None
    items: tuple[SubmissionLine, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    discount: Decimal = ZERO
    is_tax_exempt: bool = False
    notes: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Wire form (camelCase, decimals as strings)."""
        return {
            "orderNumber": self.order_number,
            "orderType": self.order_type,
            "customer": self.customer_id,
            "items": [
                {
                    "product": str(item.catalog_item_id),
                    "quantity": item.quantity,
                    "unitPrice": str(item.unit_price),
                    "discountAmount": str(item.discount_amount),
                    "taxRate": str(item.tax_rate),
                    "taxAmount": str(item.tax_amount),
                    "totalPrice": str(item.total_price),
                    "invoicedQuantity": item.invoiced_quantity,
                    "remainingQuantity": item.remaining_quantity,
                }
                for item in self.items
            ],
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "tax": str(self.tax),
            "total": str(self.total),
            "isTaxExempt": self.is_tax_exempt,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    order_id: str | None = None
    order_number: str | None = None
    error: SalesKernelError | None = None

"""
sales_engines.margin -- Below-cost detection and estimated order profit.

Responsibility:
    Classify a proposed sale price against the item's last purchase cost,
    and estimate the profit of a whole draft from its lines and the
    session's last-purchase-price cache.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by the order-entry cart, which turns a ``BELOW_COST``
    classification into a confirmation gate.  The analyzer itself never
    blocks.

Invariants enforced:
    - ``loss_per_unit = cost - sale`` and
      ``loss_percent = loss_per_unit / cost * 100`` (2 places, half-up),
      both present only for ``BELOW_COST``.
    - Profit cost priority per line: cached last purchase price, then the
      snapshot's ``cost``, ``purchase_price``, ``wholesale_cost`` (first
      finite value), then 0.
    - A line whose contribution is not finite contributes 0.

Usage:
    from sales_engines.margin import evaluate_line, MarginStatus

    result = evaluate_line(sale_price=Decimal("80"), cost_price=Decimal("100"))
    assert result.status is MarginStatus.BELOW_COST
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Protocol

from sales_engines.tracer import traced_engine
from sales_kernel.domain.catalog import CatalogItem
from sales_kernel.domain.values import HUNDRED, ZERO, CatalogItemId, is_finite_number, round_money
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.margin")


class MarginStatus(str, Enum):
    """Sale price relative to cost."""

    NO_COST_DATA = "NO_COST_DATA"
    AT_OR_ABOVE_COST = "AT_OR_ABOVE_COST"
    BELOW_COST = "BELOW_COST"


@dataclass(frozen=True)
class MarginEvaluation:
    """
    Classification of one sale price.

    ``loss_per_unit`` and ``loss_percent`` are set only for BELOW_COST.
    """

    status: MarginStatus
    sale_price: Decimal
    cost_price: Decimal | None = None
    loss_per_unit: Decimal | None = None
    loss_percent: Decimal | None = None

    @property
    def is_below_cost(self) -> bool:
        return self.status is MarginStatus.BELOW_COST

    def total_loss(self, quantity: int) -> Decimal:
        """Loss across ``quantity`` units (0 unless below cost)."""
        if self.loss_per_unit is None:
            return ZERO
        return self.loss_per_unit * quantity


class ProfitLine(Protocol):
    """What profit estimation needs from a cart line."""

    catalog_item_id: CatalogItemId
    catalog_item_snapshot: CatalogItem
    quantity: int
    unit_price: Decimal


@traced_engine("margin", "1.0", fingerprint_fields=("sale_price", "cost_price"))
def evaluate_line(sale_price: Decimal, cost_price: Decimal | None) -> MarginEvaluation:
    """
    Classify ``sale_price`` against ``cost_price``.

    Postconditions:
        - NO_COST_DATA when cost is unknown (None or not finite).
        - AT_OR_ABOVE_COST when sale >= cost.
        - BELOW_COST otherwise, with loss fields populated.
    """
    if not is_finite_number(cost_price):
        return MarginEvaluation(status=MarginStatus.NO_COST_DATA, sale_price=sale_price)

    if sale_price >= cost_price:
        return MarginEvaluation(
            status=MarginStatus.AT_OR_ABOVE_COST,
            sale_price=sale_price,
            cost_price=cost_price,
        )

    loss = cost_price - sale_price
    loss_percent = round_money(loss / cost_price * HUNDRED) if cost_price else ZERO
    logger.info("sale_below_cost", extra={
        "sale_price": sale_price,
        "cost_price": cost_price,
        "loss_per_unit": loss,
        "loss_percent": loss_percent,
    })
    return MarginEvaluation(
        status=MarginStatus.BELOW_COST,
        sale_price=sale_price,
        cost_price=cost_price,
        loss_per_unit=loss,
        loss_percent=loss_percent,
    )


def resolve_line_cost(
    line: ProfitLine,
    cost_cache: Mapping[CatalogItemId, Decimal | None],
) -> Decimal:
    """Cost used for profit estimation of ``line`` (see module invariants)."""
    candidates = (
        cost_cache.get(line.catalog_item_id),
        *line.catalog_item_snapshot.pricing.cost_candidates,
    )
    for candidate in candidates:
        if is_finite_number(candidate):
            return candidate
    return ZERO


@traced_engine("margin_profit", "1.0")
def compute_order_profit(
    lines: Iterable[ProfitLine],
    cost_cache: Mapping[CatalogItemId, Decimal | None],
) -> Decimal:
    """
    Estimated profit of a draft: sum of ``(unit_price - cost) * quantity``.

    Postconditions:
        Returns a finite Decimal; non-finite line contributions count as 0.
    """
    total = ZERO
    for line in lines:
        cost = resolve_line_cost(line, cost_cache)
        contribution = (line.unit_price - cost) * line.quantity
        if contribution.is_finite():
            total += contribution
        else:
            logger.warning("profit_contribution_not_finite", extra={
                "item_id": str(line.catalog_item_id),
                "unit_price": line.unit_price,
                "cost": cost,
            })
    return total

"""
Tests for the margin analyzer.

Covers:
- Line classification (below cost, at/above cost, no cost data)
- Loss figures and total loss
- Order profit with the cost priority chain
"""

from dataclasses import dataclass
from decimal import Decimal

from sales_engines.margin import (
    MarginStatus,
    compute_order_profit,
    evaluate_line,
    resolve_line_cost,
)
from sales_kernel.domain.catalog import CatalogItem, Pricing
from sales_kernel.domain.values import CatalogItemId


@dataclass
class _Line:
    catalog_item_id: CatalogItemId
    catalog_item_snapshot: CatalogItem
    quantity: int
    unit_price: Decimal


def _line(item_id: str, qty: int, price: str, **pricing) -> _Line:
    item = CatalogItem(id=item_id, name=item_id, pricing=Pricing(**pricing))
    return _Line(item.id, item, qty, Decimal(price))


class TestEvaluateLine:

    def test_below_cost(self):
        result = evaluate_line(sale_price=Decimal("80"), cost_price=Decimal("100"))
        assert result.status is MarginStatus.BELOW_COST
        assert result.loss_per_unit == Decimal("20")
        assert result.loss_percent == 20.0
        assert result.is_below_cost

    def test_above_cost(self):
        result = evaluate_line(sale_price=Decimal("120"), cost_price=Decimal("100"))
        assert result.status is MarginStatus.AT_OR_ABOVE_COST
        assert result.loss_per_unit is None
        assert result.loss_percent is None

    def test_at_cost(self):
        result = evaluate_line(sale_price=Decimal("100"), cost_price=Decimal("100"))
        assert result.status is MarginStatus.AT_OR_ABOVE_COST

    def test_no_cost_data(self):
        result = evaluate_line(sale_price=Decimal("90"), cost_price=None)
        assert result.status is MarginStatus.NO_COST_DATA

    def test_non_finite_cost_is_no_data(self):
        result = evaluate_line(sale_price=Decimal("90"), cost_price=Decimal("NaN"))
        assert result.status is MarginStatus.NO_COST_DATA

    def test_loss_percent_rounded(self):
        result = evaluate_line(sale_price=Decimal("2"), cost_price=Decimal("3"))
        assert result.loss_percent == Decimal("33.33")

    def test_total_loss(self):
        result = evaluate_line(sale_price=Decimal("80"), cost_price=Decimal("100"))
        assert result.total_loss(3) == Decimal("60")

    def test_total_loss_zero_when_not_below(self):
        result = evaluate_line(sale_price=Decimal("120"), cost_price=Decimal("100"))
        assert result.total_loss(3) == Decimal("0")


class TestResolveLineCost:

    def test_cache_wins(self):
        line = _line("a", 1, "10", cost="4")
        assert resolve_line_cost(line, {line.catalog_item_id: Decimal("6")}) == Decimal("6")

    def test_cached_none_falls_back_to_snapshot(self):
        line = _line("a", 1, "10", cost="4")
        assert resolve_line_cost(line, {line.catalog_item_id: None}) == Decimal("4")

    def test_snapshot_priority(self):
        line = _line("a", 1, "10", purchase_price="5", wholesale_cost="7")
        assert resolve_line_cost(line, {}) == Decimal("5")
        line = _line("b", 1, "10", wholesale_cost="7")
        assert resolve_line_cost(line, {}) == Decimal("7")

    def test_no_cost_anywhere(self):
        assert resolve_line_cost(_line("a", 1, "10"), {}) == Decimal("0")


class TestComputeOrderProfit:

    def test_empty(self):
        assert compute_order_profit(lines=[], cost_cache={}) == Decimal("0")

    def test_sums_lines(self):
        a = _line("a", 2, "50", cost="30")
        b = _line("b", 1, "25")
        cache = {b.catalog_item_id: Decimal("30")}
        # (50-30)*2 + (25-30)*1
        assert compute_order_profit(lines=[a, b], cost_cache=cache) == Decimal("35")

    def test_non_finite_contribution_ignored(self):
        a = _line("a", 2, "50", cost="30")
        b = _line("b", 1, "25")
        b.unit_price = Decimal("Infinity")
        assert compute_order_profit(lines=[a, b], cost_cache={}) == Decimal("40")

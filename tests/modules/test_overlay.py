"""
Tests for the historical price overlay and last purchase price cache.

Covers:
- Applying last-order prices (counts, per-line status, summary text)
- Restoring original prices
- Precondition failures
- Line removal and customer change while overlaid
- Parsing the order-history response
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from sales_engines.pricing import PriceTier
from sales_kernel.domain.values import CatalogItemId
from sales_kernel.exceptions import (
    EmptyCartError,
    NoCustomerError,
    NoPriorOrderError,
    NothingToRestoreError,
)
from sales_modules.order_entry.models import (
    LastOrderPrices,
    OverlayApplyResult,
    OverlayLineStatus,
)
from sales_modules.order_entry.overlay import LastPurchasePriceCache
from tests.builders import make_customer, make_item

ORDER_DATE = datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)


def history(**prices) -> LastOrderPrices:
    return LastOrderPrices(
        prices={CatalogItemId(k): Decimal(v) for k, v in prices.items()},
        order_number="SO-ATC-20240105-1111",
        order_date=ORDER_DATE,
    )


class TestApplyLastPrices:

    def setup_method(self):
        self.a = make_item("a", "Anchor", retail=60, wholesale=50)
        self.b = make_item("b", "Bracket", wholesale=25)
        self.c = make_item("c", "Clamp", wholesale=10)

    def _fill(self, cart):
        cart.set_customer(make_customer())
        cart.add_line(self.a, 2)
        cart.add_line(self.b, 1)
        cart.add_line(self.c, 3)

    def test_counts_and_prices(self, cart):
        self._fill(cart)
        result = cart.apply_last_prices(history(a="45", b="25"))

        assert result.success
        assert (result.updated, result.unchanged, result.not_found) == (1, 1, 1)
        prices = [line.unit_price for line in cart.get_lines()]
        assert prices == [Decimal("45"), Decimal("25"), Decimal("10")]
        line = cart.get_lines()[0]
        assert line.subtotal == Decimal("90")
        assert line.total == line.subtotal + line.tax_amount

    def test_status_projection(self, cart):
        self._fill(cart)
        cart.apply_last_prices(history(a="45", b="25"))

        status = cart.get_overlay_status()
        assert status.is_applied
        assert status.status_of("a") is OverlayLineStatus.UPDATED
        assert status.status_of("b") is OverlayLineStatus.UNCHANGED
        assert status.status_of("c") is OverlayLineStatus.NOT_FOUND
        assert status.original_prices[CatalogItemId("a")] == Decimal("50")
        assert status.source_order_number == "SO-ATC-20240105-1111"

    def test_summary_text(self, cart):
        self._fill(cart)
        result = cart.apply_last_prices(history(a="45", b="25"))
        assert result.summary() == (
            "Applied prices from SO-ATC-20240105-1111 (2024-01-05). "
            "Updated 1 product(s). 1 product(s) had same price. "
            "1 product(s) not found in previous order."
        )

    def test_summary_all_same(self):
        result = OverlayApplyResult(
            success=True, unchanged=2, order_number="SO-1", order_date=ORDER_DATE,
        )
        assert result.summary() == "All products already have the same prices as in SO-1 (2024-01-05)."

    def test_summary_nothing_matched(self):
        assert OverlayApplyResult(success=True, not_found=2).summary() == (
            "No matching products found in previous order"
        )

    def test_overlaid_line_keeps_price_on_tier_switch(self, cart):
        self._fill(cart)
        cart.apply_last_prices(history(a="45"))
        cart.set_price_tier(PriceTier.RETAIL)
        assert cart.get_lines()[0].unit_price == Decimal("45")

    def test_reapply_recaptures(self, cart):
        self._fill(cart)
        cart.apply_last_prices(history(a="45"))
        cart.apply_last_prices(history(a="40"))
        assert cart.get_overlay_status().original_prices[CatalogItemId("a")] == Decimal("45")


class TestPreconditions:

    def test_no_customer(self, cart):
        cart.add_line(make_item(wholesale=5), 1)
        result = cart.apply_last_prices(history(**{"item-1": "4"}))
        assert isinstance(result.error, NoCustomerError)
        assert not cart.get_overlay_status().is_applied

    def test_empty_cart(self, cart):
        cart.set_customer(make_customer())
        result = cart.apply_last_prices(history(a="1"))
        assert isinstance(result.error, EmptyCartError)

    def test_no_prior_order(self, cart):
        cart.set_customer(make_customer())
        cart.add_line(make_item(wholesale=5), 1)
        result = cart.apply_last_prices(LastOrderPrices())
        assert isinstance(result.error, NoPriorOrderError)
        assert result.summary() == "No previous order found for customer cust-1"


class TestRestore:

    def setup_method(self):
        self.a = make_item("a", wholesale=50)
        self.b = make_item("b", wholesale=25)

    def _apply(self, cart):
        cart.set_customer(make_customer())
        cart.add_line(self.a, 1)
        cart.add_line(self.b, 1)
        cart.apply_last_prices(history(a="45", b="20"))

    def test_round_trip(self, cart):
        self._apply(cart)
        result = cart.restore_original_prices()

        assert result.success
        assert result.restored == 2
        assert [line.unit_price for line in cart.get_lines()] == [Decimal("50"), Decimal("25")]
        assert cart.get_totals().total == Decimal("81.00")
        status = cart.get_overlay_status()
        assert not status.is_applied
        assert not status.original_prices

    def test_nothing_to_restore(self, cart):
        result = cart.restore_original_prices()
        assert not result.success
        assert isinstance(result.error, NothingToRestoreError)

    def test_restore_twice(self, cart):
        self._apply(cart)
        cart.restore_original_prices()
        assert isinstance(cart.restore_original_prices().error, NothingToRestoreError)

    def test_removed_line_is_forgotten(self, cart):
        self._apply(cart)
        cart.remove_line(0)

        status = cart.get_overlay_status()
        assert status.is_applied
        assert status.status_of("a") is None
        assert CatalogItemId("a") not in status.original_prices

        result = cart.restore_original_prices()
        assert result.restored == 1
        assert cart.get_lines()[0].unit_price == Decimal("25")

    def test_removing_last_captured_line_ends_overlay(self, cart):
        cart.set_customer(make_customer())
        cart.add_line(self.a, 1)
        cart.apply_last_prices(history(a="45"))

        cart.remove_line(0)

        status = cart.get_overlay_status()
        assert not status.is_applied
        assert status.source_order_number is None
        assert isinstance(cart.restore_original_prices().error, NothingToRestoreError)

    def test_repeated_item_round_trip(self, cart):
        cart.set_customer(make_customer())
        cart.add_line(self.a, 1, Decimal("10"))
        cart.add_line(self.a, 1, Decimal("12"))
        cart.add_line(self.b, 1)
        before = [line.unit_price for line in cart.get_lines()]
        assert before == [Decimal("12"), Decimal("25")]

        cart.apply_last_prices(history(a="9"))
        assert cart.get_lines()[0].unit_price == Decimal("9")
        cart.restore_original_prices()

        assert [line.unit_price for line in cart.get_lines()] == before
        assert cart.get_lines()[0].quantity == 2

    def test_customer_change_discards_overlay(self, cart):
        self._apply(cart)
        cart.set_customer(make_customer("cust-2", "Other Buyer"))

        assert not cart.get_overlay_status().is_applied
        assert isinstance(cart.restore_original_prices().error, NothingToRestoreError)
        assert cart.get_lines()[0].unit_price == Decimal("45")

    def test_same_customer_keeps_overlay(self, cart):
        self._apply(cart)
        cart.set_customer(make_customer())
        assert cart.get_overlay_status().is_applied


class TestLastOrderPricesParsing:

    def test_from_mapping(self):
        parsed = LastOrderPrices.from_mapping({
            "prices": {
                "a": {"unitPrice": 45},
                "b": {"unitPrice": "12.50"},
                "c": {"unitPrice": None},
                "d": {"unitPrice": "n/a"},
            },
            "orderNumber": "SO-X-20240105-0001",
            "orderDate": "2024-01-05T09:00:00Z",
        })
        assert parsed.prices == {
            CatalogItemId("a"): Decimal("45"),
            CatalogItemId("b"): Decimal("12.50"),
        }
        assert parsed.order_number == "SO-X-20240105-0001"
        assert parsed.order_date == ORDER_DATE

    def test_empty(self):
        assert LastOrderPrices.from_mapping(None).is_empty


class TestLastPurchasePriceCache:

    def test_first_value_wins(self):
        cache = LastPurchasePriceCache()
        key = CatalogItemId("a")
        assert cache.remember(key, Decimal("10"))
        assert not cache.remember(key, Decimal("12"))
        assert cache[key] == Decimal("10")

    def test_unknown_cost_is_remembered(self):
        cache = LastPurchasePriceCache()
        cache.remember(CatalogItemId("a"), None)
        assert CatalogItemId("a") in cache
        assert cache.get(CatalogItemId("a")) is None

    def test_forget_and_clear(self):
        cache = LastPurchasePriceCache()
        cache.remember(CatalogItemId("a"), Decimal("1"))
        cache.remember(CatalogItemId("b"), Decimal("2"))
        cache.forget(CatalogItemId("a"))
        assert list(cache) == [CatalogItemId("b")]
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.parametrize("raw", ["a", " a "])
    def test_lookup_by_normalized_id(self, raw):
        cache = LastPurchasePriceCache()
        cache.remember(CatalogItemId.of(raw), Decimal("3"))
        assert cache.get(CatalogItemId("a")) == Decimal("3")

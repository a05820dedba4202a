"""Tests for order number generation."""

from datetime import datetime, timezone

import pytest

from sales_engines.order_number import OrderNumberGenerator, customer_initials
from sales_kernel.domain.catalog import CustomerAccount
from sales_kernel.domain.clock import DeterministicClock

# 2024-03-15 10:30:00 UTC -> epoch millis 1710498600000
FIXED = datetime(2024, 3, 15, 10, 30, 0, tzinfo=timezone.utc)


class TestCustomerInitials:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Acme Trading Company", "ATC"),
            ("acme trading", "AT"),
            ("Big Blue Box Store Inc", "BBB"),
            ("Solo", "S"),
            ("  spaced   out  name ", "SON"),
            ("123 Market Street", "MS"),
        ],
    )
    def test_initials(self, name, expected):
        assert customer_initials(name) == expected

    def test_fallback(self):
        assert customer_initials(None) == "GEN"
        assert customer_initials("") == "GEN"
        assert customer_initials("123 456") == "GEN"


class TestOrderNumberGenerator:

    def setup_method(self):
        self.clock = DeterministicClock(FIXED)
        self.generator = OrderNumberGenerator(self.clock)

    def test_format_with_customer(self):
        customer = CustomerAccount(id="c1", name="x", business_name="Acme Trading Company")
        assert self.generator.generate(customer) == "SO-ATC-20240315-0000"

    def test_without_customer(self):
        assert self.generator.generate(None) == "SO-GEN-20240315-0000"

    def test_display_name_used_when_no_business_or_name(self):
        customer = CustomerAccount(id="c1", display_name="Zed Yard")
        assert self.generator.generate(customer).startswith("SO-ZY-")

    def test_tail_follows_clock(self):
        self.clock.advance(1.234)
        assert self.generator.generate(None).endswith("-1234")

    def test_custom_prefix(self):
        generator = OrderNumberGenerator(self.clock, prefix="QT", fallback="WALK")
        assert generator.generate(None) == "QT-WALK-20240315-0000"

    def test_empty_prefix_rejected(self):
        with pytest.raises(ValueError):
            OrderNumberGenerator(self.clock, prefix="")

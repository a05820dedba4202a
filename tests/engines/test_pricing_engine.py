"""
Tests for the price tier resolver.

Covers:
- Fallback chains per tier
- Missing tiers resolving to zero
- Tier change outputs (both sides exposed)
- Business type to tier mapping
"""

from decimal import Decimal

import pytest

from sales_engines.pricing import (
    PriceTier,
    resolve_tier_change,
    resolve_unit_price,
    tier_for_business_type,
)
from sales_kernel.domain.catalog import CatalogItem, Pricing


def _item(**prices) -> CatalogItem:
    return CatalogItem(id="sku-1", name="Widget", pricing=Pricing(**prices))


class TestResolveUnitPrice:
    """Tests for resolve_unit_price fallback chains."""

    def test_retail_reads_retail(self):
        item = _item(wholesale=50, retail=40)
        assert resolve_unit_price(item, PriceTier.RETAIL) == Decimal("40")

    def test_retail_without_retail_is_zero(self):
        item = _item(wholesale=50)
        assert resolve_unit_price(item, PriceTier.RETAIL) == Decimal("0")

    def test_distributor_falls_back_to_wholesale(self):
        item = _item(wholesale=50)
        assert resolve_unit_price(item, PriceTier.DISTRIBUTOR) == Decimal("50")

    def test_distributor_falls_back_to_retail(self):
        item = _item(retail=70)
        assert resolve_unit_price(item, PriceTier.DISTRIBUTOR) == Decimal("70")

    def test_distributor_prefers_distributor(self):
        item = _item(distributor=30, wholesale=50, retail=70)
        assert resolve_unit_price(item, PriceTier.DISTRIBUTOR) == Decimal("30")

    def test_wholesale_falls_back_to_retail(self):
        item = _item(retail=70)
        assert resolve_unit_price(item, PriceTier.WHOLESALE) == Decimal("70")

    def test_custom_uses_wholesale_chain(self):
        assert resolve_unit_price(_item(wholesale=50, retail=70), "custom") == Decimal("50")
        assert resolve_unit_price(_item(retail=70), "custom") == Decimal("70")

    def test_zero_price_is_present_not_absent(self):
        """A tier set to 0 is a value, not a missing tier."""
        item = _item(wholesale=0, retail=70)
        assert resolve_unit_price(item, PriceTier.WHOLESALE) == Decimal("0")

    def test_no_pricing_at_all(self):
        item = CatalogItem(id="sku-2", name="Bare")
        for tier in PriceTier:
            assert resolve_unit_price(item, tier) == Decimal("0")

    def test_string_tier_accepted(self):
        assert resolve_unit_price(_item(retail=5), "retail") == Decimal("5")

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValueError):
            resolve_unit_price(_item(retail=5), "platinum")


class TestResolveTierChange:
    """Tests for the two-sided tier change result."""

    def test_exposes_both_prices(self):
        item = _item(distributor=30, wholesale=50, retail=70)
        change = resolve_tier_change(item, PriceTier.WHOLESALE, PriceTier.RETAIL)

        assert change.from_tier is PriceTier.WHOLESALE
        assert change.to_tier is PriceTier.RETAIL
        assert change.previous == Decimal("50")
        assert change.current == Decimal("70")
        assert change.changed

    def test_unchanged_when_chains_agree(self):
        item = _item(retail=70)
        change = resolve_tier_change(item, "wholesale", "distributor")
        assert not change.changed


class TestTierForBusinessType:

    @pytest.mark.parametrize(
        "business_type, expected",
        [
            ("retail", PriceTier.RETAIL),
            ("individual", PriceTier.RETAIL),
            ("Wholesale", PriceTier.WHOLESALE),
            ("distributor", PriceTier.DISTRIBUTOR),
        ],
    )
    def test_known_types(self, business_type, expected):
        assert tier_for_business_type(business_type) is expected

    def test_unknown_or_missing_keeps_tier(self):
        assert tier_for_business_type("government") is None
        assert tier_for_business_type(None) is None
        assert tier_for_business_type("") is None

    def test_custom_mapping(self):
        mapping = {"government": PriceTier.DISTRIBUTOR}
        assert tier_for_business_type("government", mapping) is PriceTier.DISTRIBUTOR

"""
sales_engines.pricing -- Price tier resolution.

Responsibility:
    Map a catalog item and a price tier to the suggested unit price, and
    describe what a tier switch does to that suggestion.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only sales_kernel.domain.

Invariants enforced:
    - Never raises and never returns None: an item with no usable tier
      resolves to ``Decimal("0")``.
    - Fallback chains (first present value wins, ``None`` means absent):
        distributor -> distributor, wholesale, retail, 0
        wholesale   -> wholesale, retail, 0
        retail      -> retail, 0
        custom      -> wholesale, retail, 0  (initial suggestion only)

Usage:
    from sales_engines.pricing import PriceTier, resolve_unit_price

    price = resolve_unit_price(item, PriceTier.WHOLESALE)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from sales_kernel.domain.catalog import CatalogItem, Pricing
from sales_kernel.domain.values import ZERO
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")


class PriceTier(str, Enum):
    """Which price list a draft reads from by default."""

    RETAIL = "retail"
    WHOLESALE = "wholesale"
    DISTRIBUTOR = "distributor"
    CUSTOM = "custom"


_FALLBACK_CHAINS: dict[PriceTier, tuple[str, ...]] = {
    PriceTier.DISTRIBUTOR: ("distributor", "wholesale", "retail"),
    PriceTier.WHOLESALE: ("wholesale", "retail"),
    PriceTier.RETAIL: ("retail",),
    PriceTier.CUSTOM: ("wholesale", "retail"),
}

# Customer business type -> tier selected when the customer is chosen
DEFAULT_BUSINESS_TYPE_TIERS: dict[str, PriceTier] = {
    "retail": PriceTier.RETAIL,
    "individual": PriceTier.RETAIL,
    "wholesale": PriceTier.WHOLESALE,
    "distributor": PriceTier.DISTRIBUTOR,
}


def _resolve_from_pricing(pricing: Pricing, tier: PriceTier) -> Decimal:
    for field_name in _FALLBACK_CHAINS[tier]:
        value = getattr(pricing, field_name)
        if value is not None:
            return value
    return ZERO


def resolve_unit_price(item: CatalogItem, tier: PriceTier | str) -> Decimal:
    """
    Resolve the suggested unit price of ``item`` for ``tier``.

    Postconditions:
        Always returns a Decimal; ``0`` when no tier in the chain is set.
    """
    return _resolve_from_pricing(item.pricing, PriceTier(tier))


@dataclass(frozen=True)
class TierChange:
    """
    Both sides of a tier switch for one item.

    ``previous`` is what the old tier suggested, ``current`` what the new
    tier suggests.  Callers use ``previous`` to recognise lines that still
    carry the old suggestion.
    """

    from_tier: PriceTier
    to_tier: PriceTier
    previous: Decimal
    current: Decimal

    @property
    def changed(self) -> bool:
        return self.previous != self.current


def resolve_tier_change(
    item: CatalogItem,
    from_tier: PriceTier | str,
    to_tier: PriceTier | str,
) -> TierChange:
    """Resolve ``item`` under both tiers of a switch."""
    old, new = PriceTier(from_tier), PriceTier(to_tier)
    change = TierChange(
        from_tier=old,
        to_tier=new,
        previous=_resolve_from_pricing(item.pricing, old),
        current=_resolve_from_pricing(item.pricing, new),
    )
    logger.debug("tier_change_resolved", extra={
        "item_id": str(item.id),
        "from_tier": old.value,
        "to_tier": new.value,
        "previous": change.previous,
        "current": change.current,
    })
    return change


def tier_for_business_type(
    business_type: str | None,
    mapping: dict[str, PriceTier] | None = None,
) -> PriceTier | None:
    """Tier implied by a customer's business type, or None to keep the current one."""
    if not business_type:
        return None
    return (mapping or DEFAULT_BUSINESS_TYPE_TIERS).get(business_type.lower())

"""
Catalog -- Immutable snapshots of catalog items and customer accounts.

Responsibility:
    Frozen value objects for the data the engine receives from its external
    collaborators: sellable catalog items (base products and variants merged
    into one shape) and the read-only customer account fields used for
    balance reconciliation and credit checks.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Consumed by every engine and by
    the order-entry module.  The engine never mutates these; cart lines keep
    their own copy taken at add-time.

Invariants enforced:
    - Prices and balances are ``Decimal`` or ``None`` (absent tier).
    - ``current_stock`` and ``reorder_point`` are integers >= 0.
    - A variant always knows its base product id (cost lookups go through it).

Failure modes:
    - ValueError from ``__post_init__`` on negative prices, negative stock,
      or a variant without ``base_product_id``.
    - ValueError from ``from_mapping`` when the record has no id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

from sales_kernel.domain.values import ZERO, CatalogItemId, to_decimal

_PRICE_FIELDS = ("retail", "wholesale", "distributor", "cost", "purchase_price", "wholesale_cost")


@dataclass(frozen=True)
class Pricing:
    """
    Multi-tier price list of a catalog item.

    Any tier may be absent (``None``); resolution falls back per tier.
    ``cost``, ``purchase_price`` and ``wholesale_cost`` are the snapshot's
    own cost-tier variants used when no last purchase price is known.
    """

    retail: Decimal | None = None
    wholesale: Decimal | None = None
    distributor: Decimal | None = None
    cost: Decimal | None = None
    purchase_price: Decimal | None = None
    wholesale_cost: Decimal | None = None

    def __post_init__(self) -> None:
        for name in _PRICE_FIELDS:
            raw = getattr(self, name)
            value = to_decimal(raw)
            if value is not None and value.is_finite() and value < ZERO:
                raise ValueError(f"{name} price cannot be negative, got {value}")
            object.__setattr__(self, name, value)

    @property
    def cost_candidates(self) -> tuple[Decimal | None, ...]:
        """Cost-tier prices in fallback priority order."""
        return (self.cost, self.purchase_price, self.wholesale_cost)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Pricing:
        data = data or {}
        return cls(
            retail=data.get("retail"),
            wholesale=data.get("wholesale"),
            distributor=data.get("distributor"),
            cost=data.get("cost"),
            purchase_price=data.get("purchasePrice"),
            wholesale_cost=data.get("wholesaleCost"),
        )


@dataclass(frozen=True)
class Inventory:
    """Stock position of a catalog item at snapshot time."""

    current_stock: int = 0
    reorder_point: int = 0

    def __post_init__(self) -> None:
        if self.current_stock < 0:
            raise ValueError(f"current_stock cannot be negative, got {self.current_stock}")
        if self.reorder_point < 0:
            raise ValueError(f"reorder_point cannot be negative, got {self.reorder_point}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Inventory:
        data = data or {}
        reorder = data.get("reorderPoint")
        if reorder is None:
            reorder = data.get("minStock")
        return cls(
            current_stock=max(int(data.get("currentStock") or 0), 0),
            reorder_point=max(int(reorder or 0), 0),
        )


@dataclass(frozen=True)
class CatalogItem:
    """
    A sellable unit: a base product or one of its variants.

    Contract:
        Immutable snapshot supplied by the catalog collaborator.  Variants
        carry ``base_product_id``; purchase-cost history is recorded against
        the base product, so ``cost_lookup_id`` routes there.
    """

    id: CatalogItemId
    name: str
    pricing: Pricing = field(default_factory=Pricing)
    inventory: Inventory = field(default_factory=Inventory)
    is_variant: bool = False
    display_name: str | None = None
    base_product_id: CatalogItemId | None = None
    variant_type: str | None = None
    variant_value: str | None = None
    tax_rate: Decimal | None = None  # percent, e.g. Decimal("8")

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", CatalogItemId.of(self.id))
        if self.base_product_id is not None:
            object.__setattr__(
                self, "base_product_id", CatalogItemId.of(self.base_product_id)
            )
        if self.is_variant and self.base_product_id is None:
            raise ValueError(f"Variant {self.id} must reference its base product")
        rate = to_decimal(self.tax_rate)
        if rate is not None and rate < ZERO:
            raise ValueError(f"tax_rate cannot be negative, got {rate}")
        object.__setattr__(self, "tax_rate", rate)

    @property
    def label(self) -> str:
        """Name shown to the user (variants prefer their own display name)."""
        if self.is_variant:
            return self.display_name or self.name
        return self.name

    @property
    def cost_lookup_id(self) -> CatalogItemId:
        """Id under which purchase history is kept."""
        if self.is_variant and self.base_product_id is not None:
            return self.base_product_id
        return self.id

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CatalogItem:
        """
        Build a snapshot from the catalog collaborator's record.

        Accepts products and variants merged into one list; variants are
        flagged ``isVariant`` and take their tax rate from the base product.
        """
        raw_id = data.get("_id", data.get("id"))
        if raw_id is None:
            raise ValueError("Catalog record has no id")

        is_variant = bool(data.get("isVariant", False))
        if is_variant:
            tax_settings = (data.get("baseProduct") or {}).get("taxSettings") or {}
        else:
            tax_settings = data.get("taxSettings") or {}

        base_id = data.get("baseProductId")
        if base_id is None and isinstance(data.get("baseProduct"), Mapping):
            base_id = data["baseProduct"].get("_id")

        return cls(
            id=CatalogItemId.of(raw_id),
            name=data.get("name") or "",
            pricing=Pricing.from_mapping(data.get("pricing")),
            inventory=Inventory.from_mapping(data.get("inventory")),
            is_variant=is_variant,
            display_name=data.get("displayName") or data.get("variantName"),
            base_product_id=CatalogItemId.of(base_id) if base_id is not None else None,
            variant_type=data.get("variantType"),
            variant_value=data.get("variantValue"),
            tax_rate=tax_settings.get("taxRate"),
        )


@dataclass(frozen=True)
class CustomerAccount:
    """
    Read-only customer record fields used by the order engine.

    ``pending_balance`` is what the customer owes (receivable),
    ``advance_balance`` what they have prepaid.  ``credit_limit`` of zero
    means no limit is enforced.
    """

    id: str
    name: str = ""
    business_name: str | None = None
    display_name: str | None = None
    business_type: str | None = None
    pending_balance: Decimal = ZERO
    advance_balance: Decimal = ZERO
    credit_limit: Decimal = ZERO
    current_balance: Decimal = ZERO

    def __post_init__(self) -> None:
        if not str(self.id).strip():
            raise ValueError("Customer id cannot be empty")
        object.__setattr__(self, "id", str(self.id).strip())
        for name in ("pending_balance", "advance_balance", "credit_limit", "current_balance"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), ZERO))

    @property
    def naming_source(self) -> str:
        """Name used for order-number initials."""
        return self.business_name or self.name or self.display_name or ""

    @property
    def label(self) -> str:
        return self.display_name or self.business_name or self.name or self.id

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CustomerAccount:
        raw_id = data.get("_id", data.get("id"))
        if raw_id is None:
            raise ValueError("Customer record has no id")
        return cls(
            id=str(raw_id),
            name=data.get("name") or "",
            business_name=data.get("businessName"),
            display_name=data.get("displayName"),
            business_type=data.get("businessType"),
            pending_balance=data.get("pendingBalance"),
            advance_balance=data.get("advanceBalance"),
            credit_limit=data.get("creditLimit"),
            current_balance=data.get("currentBalance"),
        )

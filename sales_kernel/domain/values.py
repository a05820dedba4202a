"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the identity and numeric primitives shared by every engine and
    by the order-entry module: the canonical ``CatalogItemId`` key type and
    the Decimal coercion / rounding helpers used for unit prices, subtotals
    and tax amounts.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines and modules.  No outward dependencies.

Invariants enforced:
    - Item identity is a single canonical type.  Strings, UUIDs and integers
      coming from different collaborators normalize to the same key, so map
      lookups never depend on how an id was spelled.
    - Monetary values are ``Decimal``; floats are converted through ``str``
      so that ``0.1`` stays ``Decimal("0.1")``.

Failure modes:
    - ValueError on an empty item id or a value that is not a number.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from uuid import UUID

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True, order=True)
class CatalogItemId:
    """
    Canonical identifier of a sellable catalog item (product or variant).

    Contract:
        Wraps the collaborator's id as a stripped string.  Two ids are equal
        iff their normalized strings are equal, whatever type they arrived as.

    Guarantees:
        - Immutable and hashable; safe as a dict key.
        - ``str(item_id)`` round-trips to the wire form.
    """

    value: str

    def __post_init__(self) -> None:
        normalized = str(self.value).strip() if self.value is not None else ""
        if not normalized:
            raise ValueError("CatalogItemId cannot be empty")
        object.__setattr__(self, "value", normalized)

    @classmethod
    def of(cls, raw: CatalogItemId | UUID | str | int) -> CatalogItemId:
        """Normalize any supported id representation."""
        if isinstance(raw, CatalogItemId):
            return raw
        if isinstance(raw, UUID):
            return cls(str(raw))
        if isinstance(raw, bool):
            raise ValueError(f"Invalid catalog item id: {raw!r}")
        return cls(str(raw))

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"CatalogItemId({self.value!r})"


def to_decimal(value: Any, default: Decimal | None = None) -> Decimal | None:
    """
    Coerce a collaborator-supplied number to ``Decimal``.

    Postconditions:
        - ``None`` and empty strings yield ``default``.
        - Floats go through ``str`` to avoid binary artefacts.

    Raises:
        ValueError: If the value is present but not numeric.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round half-up to ``places`` decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def is_finite_number(value: Decimal | None) -> bool:
    """True for a present, finite Decimal (rejects None, NaN, Infinity)."""
    return value is not None and value.is_finite()

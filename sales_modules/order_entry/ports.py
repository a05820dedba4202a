"""Collaborator ports -- what order entry needs from the outside world.

The cart never touches the network or storage; ``OrderEntrySession`` awaits
these and hands the data to the cart.  ``SqlAlchemyOrderStore`` implements
the purchase-price, history and submission ports against a database; the
catalog port is usually backed by an API client.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, Sequence, runtime_checkable

from sales_kernel.domain.catalog import CatalogItem
from sales_kernel.domain.values import CatalogItemId
from sales_modules.order_entry.models import LastOrderPrices, OrderSubmission


@runtime_checkable
class CatalogLookup(Protocol):
    """Products and variants merged into one searchable list."""

    async def search_catalog_items(self, query: str) -> Sequence[CatalogItem]:
        ...

    async def get_catalog_items(self, item_ids: Sequence[CatalogItemId]) -> Sequence[CatalogItem]:
        """Live snapshots for ``item_ids``; unknown ids are omitted."""
        ...


@runtime_checkable
class PurchasePriceSource(Protocol):
    async def get_last_purchase_price(self, base_product_id: CatalogItemId) -> Decimal | None:
        """Unit cost of the most recent purchase, None when never purchased."""
        ...


@runtime_checkable
class OrderHistorySource(Protocol):
    async def get_last_order_prices(self, customer_id: str) -> LastOrderPrices:
        """Prices of the customer's most recent order (empty when none)."""
        ...


@runtime_checkable
class OrderSubmitter(Protocol):
    async def create_order(self, submission: OrderSubmission) -> tuple[str, str]:
        """Persist a new order; returns ``(order_id, order_number)``."""
        ...

    async def update_order(self, order_id: str, submission: OrderSubmission) -> tuple[str, str]:
        ...

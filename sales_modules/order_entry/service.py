"""
Order Entry Session - Async glue between the cart and its collaborators.

Thin layer that:
1. Fetches the last purchase cost when an item is first added
2. Fetches the customer's last-order prices for the overlay
3. Re-validates stock against live catalog data at submission
4. Creates or updates the order and resets the draft on success

All calculation lives in the engines; all draft state lives in ``Cart``.
Collaborator failures never leave the draft partially changed: a failed
cost lookup degrades to "no cost data", every other failure comes back as
an UPSTREAM error on the result.

Usage:
    session = OrderEntrySession(cart, catalog, store, store, store)
    result = await session.add_item(item, 3)
    overlay = await session.apply_last_prices()
    submitted = await session.submit()
"""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Sequence
from uuid import uuid4

from sales_kernel.domain.catalog import CatalogItem, CustomerAccount
from sales_kernel.domain.values import CatalogItemId
from sales_kernel.exceptions import (
    CollaboratorFetchError,
    EmptyCartError,
    OrderSubmissionError,
    StockShortfallError,
)
from sales_kernel.logging_config import LogContext, get_logger
from sales_modules.order_entry.cart import Cart
from sales_modules.order_entry.models import (
    CartResult,
    OverlayApplyResult,
    OverlayRestoreResult,
    SubmissionResult,
)
from sales_modules.order_entry.ports import (
    CatalogLookup,
    OrderHistorySource,
    OrderSubmitter,
    PurchasePriceSource,
)

logger = get_logger("modules.order_entry.service")


class OrderEntrySession:
    """
    One user's order-entry session around a single ``Cart``.

    The caller disables the triggering control while an await is in flight;
    overlapping calls are not de-duplicated here.
    """

    def __init__(
        self,
        cart: Cart,
        catalog: CatalogLookup,
        purchase_prices: PurchasePriceSource,
        history: OrderHistorySource,
        submitter: OrderSubmitter,
        session_id: str | None = None,
    ):
        self._cart = cart
        self._catalog = catalog
        self._purchase_prices = purchase_prices
        self._history = history
        self._submitter = submitter
        self._session_id = session_id or str(uuid4())

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def session_id(self) -> str:
        return self._session_id

    def _context(self):
        customer = self._cart.customer
        return LogContext.bind(
            session_id=self._session_id,
            customer_id=customer.id if customer else None,
            order_number=self._cart.order_number,
        )

    # =========================================================================
    # Catalog and customer
    # =========================================================================

    async def search_catalog(self, query: str) -> Sequence[CatalogItem]:
        """
        Search products and variants.

        Raises:
            CollaboratorFetchError: The catalog lookup failed.
        """
        with self._context():
            try:
                return await self._catalog.search_catalog_items(query)
            except Exception as exc:
                logger.warning("catalog_search_failed", extra={
                    "query": query,
                    "error": str(exc),
                })
                raise CollaboratorFetchError("search catalog", str(exc)) from exc

    def select_customer(self, customer: CustomerAccount | None) -> None:
        with self._context():
            self._cart.set_customer(customer)

    # =========================================================================
    # Lines
    # =========================================================================

    async def _ensure_last_purchase_price(self, item: CatalogItem) -> None:
        if self._cart.has_last_purchase_price(item):
            return
        try:
            price: Decimal | None = await self._purchase_prices.get_last_purchase_price(
                item.cost_lookup_id
            )
        except Exception as exc:
            # Cost warnings become unavailable; the add still goes ahead.
            logger.warning("last_purchase_price_fetch_failed", extra={
                "item_id": str(item.id),
                "cost_lookup_id": str(item.cost_lookup_id),
                "error": str(exc),
            })
            return
        self._cart.record_last_purchase_price(item, price)

    async def add_item(
        self,
        item: CatalogItem,
        quantity: int,
        unit_price: Decimal | None = None,
        *,
        allow_insufficient_stock: bool = False,
        confirm_below_cost: bool = False,
    ) -> CartResult:
        """Look up the item's last purchase cost once, then add the line."""
        with self._context():
            await self._ensure_last_purchase_price(item)
            return self._cart.add_line(
                item,
                quantity,
                unit_price,
                allow_insufficient_stock=allow_insufficient_stock,
                confirm_below_cost=confirm_below_cost,
            )

    # =========================================================================
    # Historical price overlay
    # =========================================================================

    async def apply_last_prices(self) -> OverlayApplyResult:
        """Fetch the customer's last-order prices and overlay them."""
        with self._context():
            error = self._cart.check_overlay_preconditions()
            if error is not None:
                return OverlayApplyResult(success=False, error=error)

            customer_id = self._cart.customer.id
            try:
                history = await self._history.get_last_order_prices(customer_id)
            except Exception as exc:
                logger.warning("last_order_prices_fetch_failed", extra={
                    "error": str(exc),
                })
                return OverlayApplyResult(
                    success=False,
                    error=CollaboratorFetchError("fetch last order prices", str(exc)),
                )

            if self._cart.customer is None or self._cart.customer.id != customer_id:
                # Customer changed while the fetch was in flight.
                return OverlayApplyResult(
                    success=False,
                    error=CollaboratorFetchError(
                        "fetch last order prices", "customer changed during fetch"
                    ),
                )
            return self._cart.apply_last_prices(history)

    def restore_original_prices(self) -> OverlayRestoreResult:
        with self._context():
            return self._cart.restore_original_prices()

    # =========================================================================
    # Submission
    # =========================================================================

    async def _stock_shortfalls(self) -> dict[str, tuple[int, int]]:
        requested: Counter[CatalogItemId] = Counter()
        for line in self._cart.get_lines():
            if not line.stock_override:
                requested[line.catalog_item_id] += line.quantity
        if not requested:
            return {}

        live = await self._catalog.get_catalog_items(list(requested))
        available = {item.id: item.inventory.current_stock for item in live}
        return {
            str(item_id): (qty, available.get(item_id, 0))
            for item_id, qty in requested.items()
            if qty > available.get(item_id, 0)
        }

    async def submit(self) -> SubmissionResult:
        """
        Persist the draft (create, or update when editing) and reset it.

        Stock is re-checked against live catalog data first when configured.
        On any failure the draft is left as it was.
        """
        with self._context():
            try:
                submission = self._cart.build_submission()
            except EmptyCartError as exc:
                return SubmissionResult(success=False, error=exc)

            if self._cart.config.revalidate_stock_on_submit:
                try:
                    shortfalls = await self._stock_shortfalls()
                except Exception as exc:
                    logger.warning("stock_revalidation_failed", extra={"error": str(exc)})
                    return SubmissionResult(
                        success=False,
                        error=CollaboratorFetchError("re-validate stock", str(exc)),
                    )
                if shortfalls:
                    logger.warning("submission_stock_shortfall", extra={
                        "shortfalls": {k: list(v) for k, v in shortfalls.items()},
                    })
                    return SubmissionResult(
                        success=False, error=StockShortfallError(shortfalls)
                    )

            order_id = self._cart.order_id
            try:
                if order_id is None:
                    new_id, order_number = await self._submitter.create_order(submission)
                else:
                    new_id, order_number = await self._submitter.update_order(
                        order_id, submission
                    )
            except Exception as exc:
                logger.error("order_submission_failed", extra={
                    "order_id": order_id,
                    "error": str(exc),
                })
                return SubmissionResult(
                    success=False,
                    order_number=submission.order_number,
                    error=OrderSubmissionError(submission.order_number, str(exc)),
                )

            logger.info("order_submitted", extra={
                "order_id": new_id,
                "submitted_order_number": order_number,
                "line_count": len(submission.items),
                "total": submission.total,
                "updated_existing": order_id is not None,
            })
            self._cart.reset()
            return SubmissionResult(success=True, order_id=new_id, order_number=order_number)

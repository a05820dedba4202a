"""
Cart -- The order draft aggregate of sales-order entry.

Responsibility:
    Owns the ordered lines of one draft plus its order-level flags (order
    type, price tier, tax exemption, order number, notes, customer) and the
    session state that lives with it (historical price overlay and
    last-purchase-price cache).  Every mutation validates, delegates the
    arithmetic to the engines, and returns a ``CartResult``.

Architecture position:
    Modules > order_entry -- synchronous, in-memory, zero I/O.  Collaborator
    fetches happen in ``OrderEntrySession``, which hands the fetched data to
    the methods here.

Invariants enforced:
    - Every line satisfies ``total == subtotal - discount_amount + tax_amount``
      after any mutation.
    - Business failures never raise: VALIDATION and STOCK errors block the
      mutation, a PRICING error holds it until repeated with
      ``confirm_below_cost=True``.  State is untouched on failure.
    - Lines keep the catalog snapshot taken when they were added.
    - Tier switches never overwrite a manually edited price.
    - A customer change discards the overlay state.

Failure modes:
    - ``build_submission()`` raises ``EmptyCartError`` for an empty draft.
    - ValueError from construction with an invalid config.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sales_engines.balance import (
    BalanceReconciliation,
    CreditCheck,
    check_credit_limit,
    reconcile_with_customer_balance,
)
from sales_engines.margin import MarginEvaluation, compute_order_profit, evaluate_line
from sales_engines.order_number import OrderNumberGenerator
from sales_engines.pricing import PriceTier, resolve_tier_change, resolve_unit_price, tier_for_business_type
from sales_engines.stock import StockIssue, check_quantity
from sales_engines.totals import OrderTotals, compute_totals, effective_tax_rate
from sales_kernel.domain.catalog import CatalogItem, CustomerAccount
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.values import ZERO, to_decimal
from sales_kernel.exceptions import (
    BelowCostError,
    EmptyCartError,
    ExceedsStockError,
    InvalidPriceError,
    InvalidQuantityError,
    LineNotFoundError,
    NoCustomerError,
    NoPriorOrderError,
    OrderNumberLockedError,
    OrderValidationError,
    OutOfStockError,
    SalesKernelError,
)
from sales_kernel.logging_config import get_logger
from sales_modules.order_entry.config import OrderEntryConfig
from sales_modules.order_entry.models import (
    CartLine,
    CartResult,
    LastOrderPrices,
    OrderSubmission,
    OverlayApplyResult,
    OverlayLineStatus,
    OverlayRestoreResult,
    OverlayStatus,
    SubmissionLine,
)
from sales_modules.order_entry.overlay import HistoricalPriceOverlay, LastPurchasePriceCache

logger = get_logger("modules.order_entry.cart")


def _parse_quantity(quantity: Any) -> int | None:
    if isinstance(quantity, bool):
        return None
    if isinstance(quantity, int):
        return quantity
    if isinstance(quantity, Decimal) and quantity.is_finite() and quantity == quantity.to_integral_value():
        return int(quantity)
    return None


def _parse_price(price: Any) -> Decimal | None:
    try:
        value = to_decimal(price)
    except ValueError:
        return None
    if value is None or not value.is_finite():
        return None
    return value


class Cart:
    """
    One in-progress sales order.

    Contract:
        One line per catalog item; adding an item again grows its line.
        Lines are addressed by their position; positions shift on removal
        and sorting.  Read-only projections (``get_lines``, ``get_totals``,
        ``get_overlay_status``, ``get_order_profit``) never mutate.

    Non-goals:
        No network or storage access; no multi-currency; tax is a single
        flat exempt/non-exempt switch with per-item rates.
    """

    def __init__(
        self,
        config: OrderEntryConfig | None = None,
        clock: Clock | None = None,
    ):
        self._config = config or OrderEntryConfig()
        self._clock = clock or SystemClock()
        self._order_numbers = OrderNumberGenerator(
            self._clock,
            prefix=self._config.order_number_prefix,
            fallback=self._config.order_number_fallback_initials,
        )
        self._overlay = HistoricalPriceOverlay()
        self._costs = LastPurchasePriceCache()
        self._lines: list[CartLine] = []
        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return to an empty draft with configured defaults."""
        self._lines = []
        self._overlay.clear()
        self._costs.clear()
        self._order_type = self._config.default_order_type
        self._price_tier = self._config.default_price_tier
        self._is_tax_exempt = self._config.default_tax_exempt
        self._notes = ""
        self._customer: CustomerAccount | None = None
        self._order_id: str | None = None
        self._auto_generate = True
        self._order_number = self._order_numbers.generate(None)
        logger.info("cart_reset", extra={"order_number": self._order_number})

    def begin_edit(self, order_id: str, order_number: str) -> None:
        """Mark the draft as an edit of an already persisted order."""
        self._order_id = order_id
        self._order_number = order_number
        self._auto_generate = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> OrderEntryConfig:
        return self._config

    @property
    def order_id(self) -> str | None:
        return self._order_id

    @property
    def order_type(self) -> str:
        return self._order_type

    @property
    def price_tier(self) -> PriceTier:
        return self._price_tier

    @property
    def is_tax_exempt(self) -> bool:
        return self._is_tax_exempt

    @property
    def order_number(self) -> str:
        return self._order_number

    @property
    def auto_generate(self) -> bool:
        return self._auto_generate

    @property
    def notes(self) -> str:
        return self._notes

    @property
    def customer(self) -> CustomerAccount | None:
        return self._customer

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _line_at(self, line_index: int) -> CartLine | None:
        if isinstance(line_index, bool) or not isinstance(line_index, int):
            return None
        if 0 <= line_index < len(self._lines):
            return self._lines[line_index]
        return None

    def _reprice(self, line: CartLine, unit_price: Decimal, **flags: Any) -> CartLine:
        return line.recalculated(
            is_tax_exempt=self._is_tax_exempt,
            places=self._config.money_places,
            unit_price=unit_price,
            **flags,
        )

    def _stock_error(
        self, item: CatalogItem, quantity: int, in_cart: int = 0
    ) -> SalesKernelError | None:
        check = check_quantity(item=item, requested_qty=quantity)
        if check.ok:
            return None
        if check.reason is StockIssue.OUT_OF_STOCK:
            return OutOfStockError(str(item.id), item.label)
        return ExceedsStockError(str(item.id), check.requested, check.available, in_cart)

    def _margin_gate(
        self,
        item: CatalogItem,
        sale_price: Decimal,
        quantity: int,
    ) -> tuple[MarginEvaluation, BelowCostError | None]:
        margin = evaluate_line(sale_price=sale_price, cost_price=self._costs.get(item.id))
        if not margin.is_below_cost:
            return margin, None
        return margin, BelowCostError(
            item_id=str(item.id),
            sale_price=sale_price,
            cost_price=margin.cost_price,
            loss_per_unit=margin.loss_per_unit,
            loss_percent=margin.loss_percent,
            total_loss=margin.total_loss(quantity),
        )

    def _index_of(self, item_id: Any) -> int | None:
        for index, line in enumerate(self._lines):
            if line.catalog_item_id == item_id:
                return index
        return None

    # ------------------------------------------------------------------
    # Line operations
    # ------------------------------------------------------------------

    def add_line(
        self,
        item: CatalogItem,
        quantity: int,
        unit_price: Decimal | None = None,
        *,
        allow_insufficient_stock: bool = False,
        confirm_below_cost: bool = False,
    ) -> CartResult:
        """
        Add ``quantity`` of ``item`` to the draft.

        An item already in the cart is merged into its line: the stock check
        covers the combined quantity, and the line keeps its price unless
        ``unit_price`` is given.  A new line defaults to the current tier's
        price.  Stock failures block unless ``allow_insufficient_stock``; a
        below-cost price is held until ``confirm_below_cost``.
        """
        qty = _parse_quantity(quantity)
        if qty is None or qty <= 0:
            return CartResult.failed(InvalidQuantityError(quantity))

        index = self._index_of(item.id)
        existing = None if index is None else self._lines[index]

        tier_price = resolve_unit_price(item, self._price_tier)
        if unit_price is not None:
            price = _parse_price(unit_price)
            if price is None:
                return CartResult.failed(InvalidPriceError(unit_price, "not a number"))
        else:
            price = tier_price if existing is None else existing.unit_price
        if price <= ZERO and (existing is None or unit_price is not None):
            return CartResult.failed(InvalidPriceError(price, "must be greater than zero"))

        in_cart = 0 if existing is None else existing.quantity
        if not allow_insufficient_stock:
            stock_error = self._stock_error(item, in_cart + qty, in_cart)
            if stock_error is not None:
                return CartResult.failed(stock_error, line_index=index)

        margin, below_cost = self._margin_gate(item, price, in_cart + qty)
        if below_cost is not None and not confirm_below_cost:
            if existing is None or not evaluate_line(
                sale_price=existing.unit_price, cost_price=margin.cost_price
            ).is_below_cost:
                return CartResult.failed(below_cost, margin=margin, line_index=index)

        if existing is not None:
            return self._merge_into(index, qty, price, tier_price, unit_price is not None,
                                    allow_insufficient_stock, margin)

        line = CartLine.create(
            item,
            qty,
            price,
            tax_rate=effective_tax_rate(item.tax_rate, self._config.flat_tax_rate),
            is_tax_exempt=self._is_tax_exempt,
            tier_price=tier_price,
            manually_edited=unit_price is not None and price != tier_price,
            stock_override=allow_insufficient_stock,
            places=self._config.money_places,
        )
        self._lines.append(line)
        index = len(self._lines) - 1
        logger.info("cart_line_added", extra={
            "item_id": str(item.id),
            "line_index": index,
            "quantity": qty,
            "unit_price": price,
            "line_total": line.total,
        })
        return CartResult.ok(line=line, line_index=index, margin=margin)

    def _merge_into(
        self,
        index: int,
        qty: int,
        price: Decimal,
        tier_price: Decimal,
        price_given: bool,
        stock_override: bool,
        margin: MarginEvaluation,
    ) -> CartResult:
        line = self._lines[index]
        updated = line.recalculated(
            is_tax_exempt=self._is_tax_exempt,
            places=self._config.money_places,
            quantity=line.quantity + qty,
            unit_price=price,
            manually_edited=price != tier_price if price_given else line.manually_edited,
            stock_override=line.stock_override or stock_override,
        )
        self._lines[index] = updated
        logger.info("cart_line_merged", extra={
            "item_id": str(line.catalog_item_id),
            "line_index": index,
            "added_quantity": qty,
            "quantity": updated.quantity,
            "unit_price": price,
        })
        return CartResult.ok(line=updated, line_index=index, margin=margin)

    def update_quantity(
        self,
        line_index: int,
        quantity: int,
        *,
        allow_insufficient_stock: bool = False,
    ) -> CartResult:
        """Change a line's quantity; zero or less removes the line."""
        line = self._line_at(line_index)
        if line is None:
            return CartResult.failed(LineNotFoundError(line_index, len(self._lines)))

        qty = _parse_quantity(quantity)
        if qty is None:
            return CartResult.failed(InvalidQuantityError(quantity), line_index=line_index)
        if qty <= 0:
            return self.remove_line(line_index)

        if not allow_insufficient_stock:
            stock_error = self._stock_error(line.catalog_item_snapshot, qty)
            if stock_error is not None:
                return CartResult.failed(stock_error, line_index=line_index)

        updated = line.recalculated(
            is_tax_exempt=self._is_tax_exempt,
            places=self._config.money_places,
            quantity=qty,
            stock_override=line.stock_override or allow_insufficient_stock,
        )
        self._lines[line_index] = updated
        logger.info("cart_line_quantity_updated", extra={
            "line_index": line_index,
            "previous_quantity": line.quantity,
            "quantity": qty,
        })
        return CartResult.ok(line=updated, line_index=line_index)

    def update_unit_price(
        self,
        line_index: int,
        unit_price: Decimal,
        *,
        confirm_below_cost: bool = False,
    ) -> CartResult:
        """
        Set a line's price by hand.

        Held for confirmation only when the price newly crosses below cost.
        """
        line = self._line_at(line_index)
        if line is None:
            return CartResult.failed(LineNotFoundError(line_index, len(self._lines)))

        price = _parse_price(unit_price)
        if price is None:
            return CartResult.failed(
                InvalidPriceError(unit_price, "not a number"), line_index=line_index
            )
        if price < ZERO:
            return CartResult.failed(
                InvalidPriceError(price, "cannot be negative"), line_index=line_index
            )

        item = line.catalog_item_snapshot
        margin, below_cost = self._margin_gate(item, price, line.quantity)
        if below_cost is not None and not confirm_below_cost:
            previous = evaluate_line(sale_price=line.unit_price, cost_price=margin.cost_price)
            if not previous.is_below_cost:
                return CartResult.failed(below_cost, margin=margin, line_index=line_index)

        updated = self._reprice(line, price, manually_edited=True)
        self._lines[line_index] = updated
        logger.info("cart_line_price_updated", extra={
            "line_index": line_index,
            "item_id": str(line.catalog_item_id),
            "previous_price": line.unit_price,
            "unit_price": price,
        })
        return CartResult.ok(line=updated, line_index=line_index, margin=margin)

    def remove_line(self, line_index: int) -> CartResult:
        """Delete a line and any session entries only it referenced."""
        line = self._line_at(line_index)
        if line is None:
            return CartResult.failed(LineNotFoundError(line_index, len(self._lines)))

        del self._lines[line_index]
        if self._index_of(line.catalog_item_id) is None:
            self._overlay.forget(line.catalog_item_id)
            self._costs.forget(line.catalog_item_id)
        logger.info("cart_line_removed", extra={
            "line_index": line_index,
            "item_id": str(line.catalog_item_id),
        })
        return CartResult.ok(line=line, line_index=line_index, removed=True)

    def sort_lines_by_name(self) -> None:
        """Stable, case-insensitive sort by display name."""
        self._lines.sort(key=lambda line: line.display_name.casefold())

    # ------------------------------------------------------------------
    # Order-level flags
    # ------------------------------------------------------------------

    def set_price_tier(self, tier: PriceTier | str) -> int:
        """
        Switch tiers and re-resolve lines that still carry a tier price.

        Manually edited lines and lines repriced by an active overlay keep
        their price.  A tier that resolves to 0 for an item leaves that
        line's price as it is.  Returns the number of lines repriced.
        """
        new_tier = PriceTier(tier)
        old_tier = self._price_tier
        self._price_tier = new_tier
        if new_tier is old_tier:
            return 0

        repriced = 0
        for index, line in enumerate(self._lines):
            if line.manually_edited:
                continue
            if (
                self._overlay.is_applied
                and self._overlay.line_status(line.catalog_item_id) is OverlayLineStatus.UPDATED
            ):
                continue
            change = resolve_tier_change(line.catalog_item_snapshot, old_tier, new_tier)
            if change.current <= ZERO:
                continue
            if change.current != line.unit_price:
                repriced += 1
            self._lines[index] = self._reprice(line, change.current, tier_price=change.current)

        logger.info("cart_price_tier_changed", extra={
            "from_tier": old_tier.value,
            "to_tier": new_tier.value,
            "lines_repriced": repriced,
        })
        return repriced

    def set_tax_exempt(self, flag: bool) -> None:
        """Recompute tax on every line; prices are untouched."""
        self._is_tax_exempt = bool(flag)
        self._lines = [
            line.recalculated(is_tax_exempt=self._is_tax_exempt, places=self._config.money_places)
            for line in self._lines
        ]
        logger.info("cart_tax_exempt_changed", extra={"is_tax_exempt": self._is_tax_exempt})

    def set_order_type(self, order_type: str) -> None:
        self._order_type = order_type

    def set_notes(self, notes: str | None) -> None:
        self._notes = notes or ""

    def set_customer(self, customer: CustomerAccount | None) -> None:
        """
        Select (or clear) the customer.

        A different customer discards the overlay state.  The business type
        picks the price tier and an auto-generated order number is renewed.
        """
        previous_id = self._customer.id if self._customer is not None else None
        new_id = customer.id if customer is not None else None
        self._customer = customer

        if previous_id != new_id and self._overlay.is_applied:
            self._overlay.clear()
            logger.info("overlay_discarded_on_customer_change", extra={
                "previous_customer_id": previous_id,
                "customer_id": new_id,
            })

        if customer is not None:
            tier = tier_for_business_type(customer.business_type, self._config.business_type_tiers)
            if tier is not None:
                self.set_price_tier(tier)

        if self._auto_generate:
            self._order_number = self._order_numbers.generate(customer)

        logger.info("cart_customer_selected", extra={
            "customer_id": new_id,
            "price_tier": self._price_tier.value,
        })

    # ------------------------------------------------------------------
    # Order number
    # ------------------------------------------------------------------

    def set_order_number(self, order_number: str) -> CartResult:
        """Type an order number by hand; turns auto-generation off."""
        if not order_number or not order_number.strip():
            return CartResult.failed(OrderValidationError("Order number cannot be empty"))
        self._order_number = order_number.strip()
        self._auto_generate = False
        return CartResult.ok()

    def set_auto_generate(self, flag: bool) -> None:
        self._auto_generate = bool(flag)
        if self._auto_generate:
            self._order_number = self._order_numbers.generate(self._customer)

    def regenerate_order_number(self) -> CartResult:
        if not self._auto_generate:
            return CartResult.failed(OrderNumberLockedError(self._order_number))
        self._order_number = self._order_numbers.generate(self._customer)
        return CartResult.ok()

    # ------------------------------------------------------------------
    # Last purchase prices
    # ------------------------------------------------------------------

    def has_last_purchase_price(self, item: CatalogItem) -> bool:
        """True once the item's cost was looked up (even if unknown)."""
        return item.id in self._costs

    def record_last_purchase_price(self, item: CatalogItem, price: Decimal | None) -> bool:
        """Cache the item's last purchase cost unless already known."""
        return self._costs.remember(item.id, price)

    def last_purchase_price(self, item: CatalogItem) -> Decimal | None:
        return self._costs.get(item.id)

    # ------------------------------------------------------------------
    # Historical price overlay
    # ------------------------------------------------------------------

    def check_overlay_preconditions(self) -> SalesKernelError | None:
        """Error that would stop ``apply_last_prices`` before any fetch."""
        if self._customer is None:
            return NoCustomerError("apply last prices")
        if not self._lines:
            return EmptyCartError("apply last prices")
        return None

    def apply_last_prices(self, history: LastOrderPrices) -> OverlayApplyResult:
        """Overlay the customer's previous order prices onto the lines."""
        error = self.check_overlay_preconditions()
        if error is None and history.is_empty:
            error = NoPriorOrderError(self._customer.id)
        if error is not None:
            return OverlayApplyResult(success=False, error=error)

        self._lines, result = self._overlay.apply(self._lines, history, self._reprice)
        return result

    def restore_original_prices(self) -> OverlayRestoreResult:
        """Undo the overlay."""
        self._lines, result = self._overlay.restore(self._lines, self._reprice)
        return result

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def get_lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    def compute_totals(self) -> OrderTotals:
        """Order totals derived from the current lines; zeros when empty."""
        return compute_totals(self._lines)

    def get_totals(self) -> OrderTotals:
        return self.compute_totals()

    def get_overlay_status(self) -> OverlayStatus:
        return self._overlay.status()

    def get_order_profit(self) -> Decimal:
        return compute_order_profit(lines=self._lines, cost_cache=self._costs.as_mapping())

    def reconcile_with_customer_balance(self) -> BalanceReconciliation:
        """Order total against the selected customer's balance (zero without one)."""
        customer = self._customer
        return reconcile_with_customer_balance(
            receivable=customer.pending_balance if customer else ZERO,
            advance=customer.advance_balance if customer else ZERO,
            total=self.get_totals().total,
        )

    def check_credit(self, amount_paid: Decimal = ZERO) -> CreditCheck | None:
        """Credit position of the selected customer, None without one."""
        if self._customer is None:
            return None
        return check_credit_limit(
            customer=self._customer,
            order_total=self.get_totals().total,
            amount_paid=amount_paid,
            warning_ratio=self._config.credit_warning_ratio,
        )

    def build_submission(self) -> OrderSubmission:
        """
        The order document for the persistence collaborator.

        Raises:
            EmptyCartError: The draft has no lines.
        """
        if not self._lines:
            raise EmptyCartError("submit order")
        totals = self.get_totals()
        items = tuple(
            SubmissionLine(
                catalog_item_id=line.catalog_item_id,
                name=line.display_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount_amount=line.discount_amount,
                tax_rate=line.tax_rate,
                tax_amount=line.tax_amount,
                total_price=line.total,
                invoiced_quantity=0,
                remaining_quantity=line.quantity,
            )
            for line in self._lines
        )
        return OrderSubmission(
            order_number=self._order_number,
            order_type=self._order_type,
            customer_id=self._customer.id if self._customer else None,
            items=items,
            subtotal=totals.subtotal,
            discount=totals.total_discount,
            tax=totals.total_tax,
            total=totals.total,
            is_tax_exempt=self._is_tax_exempt,
            notes=self._notes,
        )

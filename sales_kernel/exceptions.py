"""
Typed Exception Hierarchy for the Sales Order Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from SalesKernelError:

    SalesKernelError (base)
    |
    +-- OrderValidationError                      category VALIDATION
    |   +-- EmptyCartError
    |   +-- NoCustomerError
    |   +-- InvalidQuantityError
    |   +-- InvalidPriceError
    |   +-- LineNotFoundError
    |   +-- OrderNumberLockedError
    |
    +-- StockError                                category STOCK
    |   +-- OutOfStockError
    |   +-- ExceedsStockError
    |   +-- StockShortfallError
    |
    +-- PricingError                              category PRICING
    |   +-- BelowCostError
    |
    +-- HistoryError                              category HISTORY
    |   +-- NoPriorOrderError
    |   +-- NothingToRestoreError
    |
    +-- UpstreamError                             category UPSTREAM
        +-- CollaboratorFetchError
        +-- OrderSubmissionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                  | When Raised / Returned
------------|-----------------------|---------------------------------------------
Validation  | EMPTY_CART            | Operation needs at least one line
            | NO_CUSTOMER           | Operation needs a selected customer
            | INVALID_QUANTITY      | Quantity is not a positive integer
            | INVALID_PRICE         | Unit price negative, zero on add, or NaN
            | LINE_NOT_FOUND        | Line index outside the cart
            | ORDER_NUMBER_LOCKED   | Regenerating while auto-generation is off
------------|-----------------------|---------------------------------------------
Stock       | OUT_OF_STOCK          | Item has zero stock
            | EXCEEDS_STOCK         | Requested quantity above current stock
            | STOCK_SHORTFALL       | Live stock no longer covers the draft
------------|-----------------------|---------------------------------------------
Pricing     | BELOW_COST            | Sale price below last purchase cost
------------|-----------------------|---------------------------------------------
History     | NO_PRIOR_ORDER        | Customer has no previous order prices
            | NOTHING_TO_RESTORE    | Restore without a captured overlay
------------|-----------------------|---------------------------------------------
Upstream    | COLLABORATOR_FETCH    | External lookup failed
            | ORDER_SUBMISSION      | Create/update of the order failed

===============================================================================
HANDLING PATTERNS
===============================================================================

Cart operations do not raise these for business failures.  They return a
``CartResult`` carrying the exception instance in ``error`` so the caller
can branch on type or on ``code``/``category``:

    result = cart.add_line(item, 3)
    if result.requires_confirmation:
        ask_user(result.error)                   # BelowCostError
    elif not result.success:
        show(result.error.code, str(result.error))

Only PRICING errors are soft: the same call repeated with
``confirm_below_cost=True`` proceeds.  Nothing here is fatal to the
process.
"""

from decimal import Decimal

VALIDATION = "VALIDATION"
STOCK = "STOCK"
PRICING = "PRICING"
HISTORY = "HISTORY"
UPSTREAM = "UPSTREAM"


class SalesKernelError(Exception):
    """
    Base exception for all sales kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification and a ``category`` naming the propagation policy.
    """

    code: str = "SALES_KERNEL_ERROR"
    category: str = VALIDATION

    @property
    def is_blocking(self) -> bool:
        """Soft gates (PRICING) need confirmation; everything else blocks."""
        return self.category != PRICING


# Validation


class OrderValidationError(SalesKernelError):
    """Base exception for bad input to a cart operation."""

    code: str = "VALIDATION_ERROR"
    category: str = VALIDATION


class EmptyCartError(OrderValidationError):
    """The cart has no lines."""

    code: str = "EMPTY_CART"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: the cart has no items")


class NoCustomerError(OrderValidationError):
    """No customer is selected for the draft."""

    code: str = "NO_CUSTOMER"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: select a customer first")


class InvalidQuantityError(OrderValidationError):
    """Quantity is not a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object):
        self.quantity = quantity
        super().__init__(f"Invalid quantity: {quantity!r}")


class InvalidPriceError(OrderValidationError):
    """Unit price is not acceptable."""

    code: str = "INVALID_PRICE"

    def __init__(self, price: object, reason: str):
        self.price = price
        self.reason = reason
        super().__init__(f"Invalid unit price {price!r}: {reason}")


class LineNotFoundError(OrderValidationError):
    """Line index does not address a line in the cart."""

    code: str = "LINE_NOT_FOUND"

    def __init__(self, line_index: int, line_count: int):
        self.line_index = line_index
        self.line_count = line_count
        super().__init__(
            f"Line {line_index} does not exist (cart has {line_count} lines)"
        )


class OrderNumberLockedError(OrderValidationError):
    """Order number generation is switched off for this draft."""

    code: str = "ORDER_NUMBER_LOCKED"

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(
            f"Order number {order_number!r} is manual; enable auto-generation first"
        )


# Stock


class StockError(SalesKernelError):
    """Base exception for stock violations."""

    code: str = "STOCK_ERROR"
    category: str = STOCK


class OutOfStockError(StockError):
    """Catalog item has no stock at all."""

    code: str = "OUT_OF_STOCK"

    def __init__(self, item_id: str, display_name: str):
        self.item_id = item_id
        self.display_name = display_name
        super().__init__(
            f"{display_name} is out of stock and cannot be added to the order"
        )


class ExceedsStockError(StockError):
    """Requested quantity is larger than the available stock."""

    code: str = "EXCEEDS_STOCK"

    def __init__(self, item_id: str, requested: int, available: int, in_cart: int = 0):
        # requested counts the units already on the line (in_cart).
        self.item_id = item_id
        self.requested = requested
        self.available = available
        self.in_cart = in_cart
        if in_cart:
            message = (
                f"Cannot add {requested - in_cart} more units. Only "
                f"{max(available - in_cart, 0)} additional units available "
                f"({in_cart} already in cart)"
            )
        else:
            message = f"Cannot add {requested} units. Only {available} units available in stock"
        super().__init__(message)


class StockShortfallError(StockError):
    """Live stock no longer covers one or more draft lines."""

    code: str = "STOCK_SHORTFALL"

    def __init__(self, shortfalls: dict[str, tuple[int, int]]):
        # item_id -> (requested, available)
        self.shortfalls = shortfalls
        detail = ", ".join(
            f"{item_id}: requested {req}, available {avail}"
            for item_id, (req, avail) in sorted(shortfalls.items())
        )
        super().__init__(f"Insufficient stock at submission: {detail}")


# Pricing


class PricingError(SalesKernelError):
    """Base exception for pricing advisories."""

    code: str = "PRICING_ERROR"
    category: str = PRICING


class BelowCostError(PricingError):
    """
    Sale price is below the last known purchase cost.

    Advisory: the caller confirms and repeats the operation to proceed.
    """

    code: str = "BELOW_COST"

    def __init__(
        self,
        item_id: str,
        sale_price: Decimal,
        cost_price: Decimal,
        loss_per_unit: Decimal,
        loss_percent: Decimal,
        total_loss: Decimal,
    ):
        self.item_id = item_id
        self.sale_price = sale_price
        self.cost_price = cost_price
        self.loss_per_unit = loss_per_unit
        self.loss_percent = loss_percent
        self.total_loss = total_loss
        super().__init__(
            f"Sale price ({sale_price}) is below cost price ({cost_price}). "
            f"Loss per unit: {loss_per_unit} ({loss_percent}%), total loss: {total_loss}"
        )


# History


class HistoryError(SalesKernelError):
    """Base exception for historical price overlay failures."""

    code: str = "HISTORY_ERROR"
    category: str = HISTORY


class NoPriorOrderError(HistoryError):
    """The customer has no previous order to take prices from."""

    code: str = "NO_PRIOR_ORDER"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"No previous order found for customer {customer_id}")


class NothingToRestoreError(HistoryError):
    """No original prices were captured."""

    code: str = "NOTHING_TO_RESTORE"

    def __init__(self) -> None:
        super().__init__("No original prices to restore")


# Upstream


class UpstreamError(SalesKernelError):
    """Base exception for collaborator failures (retryable)."""

    code: str = "UPSTREAM_ERROR"
    category: str = UPSTREAM


class CollaboratorFetchError(UpstreamError):
    """A lookup against an external collaborator failed."""

    code: str = "COLLABORATOR_FETCH"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


class OrderSubmissionError(UpstreamError):
    """The order persistence collaborator rejected or failed the write."""

    code: str = "ORDER_SUBMISSION"

    def __init__(self, order_number: str, reason: str):
        self.order_number = order_number
        self.reason = reason
        super().__init__(f"Submitting order {order_number} failed: {reason}")

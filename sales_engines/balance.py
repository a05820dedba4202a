"""
sales_engines.balance -- Customer balance reconciliation and credit checks.

Responsibility:
    Combine an order total with the customer's running balance for display,
    and classify the draft against the customer's credit limit.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Reads customer balance
    fields; never writes them.

Invariants enforced:
    - ``net_balance = receivable - advance``; ``is_payable = net_balance < 0``;
      ``grand_total = total + net_balance``.
    - A credit limit of zero (or less) means no limit is enforced.
    - Outstanding balance for credit purposes is ``current + pending``.

Usage:
    from sales_engines.balance import reconcile_with_customer_balance

    rec = reconcile_with_customer_balance(
        receivable=Decimal("200"), advance=Decimal("50"), total=Decimal("135"),
    )
    assert rec.grand_total == Decimal("285")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from sales_engines.tracer import traced_engine
from sales_kernel.domain.catalog import CustomerAccount
from sales_kernel.domain.values import ZERO, to_decimal
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.balance")

RECEIVABLES_LABEL = "Receivables"
PAYABLES_LABEL = "Payables"


@dataclass(frozen=True)
class BalanceReconciliation:
    """Order total combined with the customer's outstanding balance."""

    net_balance: Decimal
    is_payable: bool
    grand_total: Decimal

    @property
    def label(self) -> str:
        return PAYABLES_LABEL if self.is_payable else RECEIVABLES_LABEL

    @property
    def display_amount(self) -> Decimal:
        return abs(self.net_balance)


@traced_engine(
    "balance_reconciliation", "1.0",
    fingerprint_fields=("receivable", "advance", "total"),
)
def reconcile_with_customer_balance(
    receivable: Decimal | None,
    advance: Decimal | None,
    total: Decimal,
) -> BalanceReconciliation:
    """
    Reconcile ``total`` against the customer's receivable and advance.

    Missing balances count as zero.
    """
    net = to_decimal(receivable, ZERO) - to_decimal(advance, ZERO)
    return BalanceReconciliation(
        net_balance=net,
        is_payable=net < ZERO,
        grand_total=total + net,
    )


class CreditStatus(str, Enum):
    NO_LIMIT = "NO_LIMIT"
    WITHIN_LIMIT = "WITHIN_LIMIT"
    NEAR_LIMIT = "NEAR_LIMIT"
    EXCEEDED = "EXCEEDED"


@dataclass(frozen=True)
class CreditCheck:
    """
    Credit position of a customer if the draft were placed.

    ``available_credit`` is what remains of the limit before this order;
    ``remaining_after_order`` what remains after the unpaid part of it.
    Both are None when no limit applies.
    """

    status: CreditStatus
    credit_limit: Decimal
    outstanding: Decimal
    unpaid_amount: Decimal
    available_credit: Decimal | None = None
    remaining_after_order: Decimal | None = None

    @property
    def exceeded(self) -> bool:
        return self.status is CreditStatus.EXCEEDED


@traced_engine("credit_limit", "1.0", fingerprint_fields=("order_total", "amount_paid"))
def check_credit_limit(
    customer: CustomerAccount,
    order_total: Decimal,
    amount_paid: Decimal = ZERO,
    warning_ratio: Decimal = Decimal("0.10"),
) -> CreditCheck:
    """
    Classify the unpaid part of an order against the customer's credit limit.

    Postconditions:
        - NO_LIMIT when ``credit_limit <= 0``.
        - EXCEEDED when ``outstanding + unpaid > credit_limit``.
        - NEAR_LIMIT when the credit left after the order is below
          ``warning_ratio * credit_limit``.
        - WITHIN_LIMIT otherwise.
    """
    limit = customer.credit_limit
    outstanding = customer.current_balance + customer.pending_balance
    unpaid = max(order_total - to_decimal(amount_paid, ZERO), ZERO)

    if limit <= ZERO:
        return CreditCheck(
            status=CreditStatus.NO_LIMIT,
            credit_limit=limit,
            outstanding=outstanding,
            unpaid_amount=unpaid,
        )

    available = limit - outstanding
    remaining = available - unpaid
    if outstanding + unpaid > limit:
        status = CreditStatus.EXCEEDED
    elif remaining < to_decimal(warning_ratio) * limit:
        status = CreditStatus.NEAR_LIMIT
    else:
        status = CreditStatus.WITHIN_LIMIT

    if status is not CreditStatus.WITHIN_LIMIT:
        logger.warning("credit_limit_check", extra={
            "customer_id": customer.id,
            "status": status.value,
            "credit_limit": limit,
            "outstanding": outstanding,
            "unpaid_amount": unpaid,
        })
    return CreditCheck(
        status=status,
        credit_limit=limit,
        outstanding=outstanding,
        unpaid_amount=unpaid,
        available_credit=available,
        remaining_after_order=remaining,
    )

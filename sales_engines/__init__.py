"""
Module: sales_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines used by order entry.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import sales_kernel (domain, logging, exceptions) and sibling
    engine modules.  MUST NOT import sales_modules.

Invariants enforced:
    - Engines never call ``datetime.now()``; time arrives through an
      injected ``Clock``.
    - Decimal-only arithmetic for every monetary amount.
    - Identical inputs always produce identical outputs.

Usage:
    from sales_engines.pricing import PriceTier, resolve_unit_price
    from sales_engines.stock import check_quantity
    from sales_engines.margin import evaluate_line, compute_order_profit
    from sales_engines.balance import reconcile_with_customer_balance
"""

from sales_kernel.logging_config import get_logger

logger = get_logger("engines")

from sales_engines.balance import (
    BalanceReconciliation,
    CreditCheck,
    CreditStatus,
    check_credit_limit,
    reconcile_with_customer_balance,
)
from sales_engines.margin import (
    MarginEvaluation,
    MarginStatus,
    compute_order_profit,
    evaluate_line,
    resolve_line_cost,
)
from sales_engines.order_number import OrderNumberGenerator, customer_initials
from sales_engines.pricing import (
    DEFAULT_BUSINESS_TYPE_TIERS,
    PriceTier,
    TierChange,
    resolve_tier_change,
    resolve_unit_price,
    tier_for_business_type,
)
from sales_engines.stock import (
    StockCheck,
    StockIssue,
    StockLevel,
    check_quantity,
    classify_stock_level,
)
from sales_engines.totals import (
    LineAmounts,
    OrderTotals,
    compute_line_amounts,
    compute_totals,
    effective_tax_rate,
)
from sales_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "BalanceReconciliation",
    "CreditCheck",
    "CreditStatus",
    "check_credit_limit",
    "reconcile_with_customer_balance",
    "MarginEvaluation",
    "MarginStatus",
    "compute_order_profit",
    "evaluate_line",
    "resolve_line_cost",
    "OrderNumberGenerator",
    "customer_initials",
    "DEFAULT_BUSINESS_TYPE_TIERS",
    "PriceTier",
    "TierChange",
    "resolve_tier_change",
    "resolve_unit_price",
    "tier_for_business_type",
    "StockCheck",
    "StockIssue",
    "StockLevel",
    "check_quantity",
    "classify_stock_level",
    "LineAmounts",
    "OrderTotals",
    "compute_line_amounts",
    "compute_totals",
    "effective_tax_rate",
    "compute_input_fingerprint",
    "traced_engine",
]

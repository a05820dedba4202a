"""
sales_engines.totals -- Line amounts and order totals.

Responsibility:
    Derive ``subtotal``, ``tax_amount`` and ``total`` for one line and sum a
    set of lines into order totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``subtotal = quantity * unit_price``.
    - ``tax_amount = 0`` when the order is tax exempt, otherwise
      ``round(taxable * rate / 100)`` where ``taxable = subtotal - discount``
      and ``rate`` is the line's own rate or the flat rate when it has none.
    - ``total = subtotal - discount + tax_amount`` for every line and for the
      order (order totals are sums of line values).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from sales_kernel.domain.values import HUNDRED, ZERO, round_money


@dataclass(frozen=True)
class LineAmounts:
    subtotal: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class OrderTotals:
    """Order-level sums; all zero for an empty cart."""

    subtotal: Decimal = ZERO
    total_discount: Decimal = ZERO
    total_tax: Decimal = ZERO
    total: Decimal = ZERO


class TotalsLine(Protocol):
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal


def effective_tax_rate(line_rate: Decimal | None, flat_rate: Decimal) -> Decimal:
    """The line's own rate, or the flat rate when the line has none."""
    return flat_rate if line_rate is None else line_rate


def compute_line_amounts(
    quantity: int,
    unit_price: Decimal,
    tax_rate: Decimal,
    is_tax_exempt: bool,
    discount_amount: Decimal = ZERO,
    places: int = 2,
) -> LineAmounts:
    subtotal = unit_price * quantity
    if is_tax_exempt:
        tax_amount = ZERO
    else:
        tax_amount = round_money((subtotal - discount_amount) * tax_rate / HUNDRED, places)
    return LineAmounts(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total=subtotal - discount_amount + tax_amount,
    )


def compute_totals(lines: Iterable[TotalsLine]) -> OrderTotals:
    subtotal = discount = tax = ZERO
    for line in lines:
        subtotal += line.subtotal
        discount += line.discount_amount
        tax += line.tax_amount
    return OrderTotals(
        subtotal=subtotal,
        total_discount=discount,
        total_tax=tax,
        total=subtotal - discount + tax,
    )

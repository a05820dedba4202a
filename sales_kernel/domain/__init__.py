"""
Pure domain layer.

Value objects, catalog/customer snapshots and the clock abstraction, with
NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O
"""

from sales_kernel.domain.catalog import CatalogItem, CustomerAccount, Inventory, Pricing
from sales_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from sales_kernel.domain.values import (
    HUNDRED,
    ZERO,
    CatalogItemId,
    is_finite_number,
    round_money,
    to_decimal,
)

__all__ = [
    "CatalogItem",
    "CustomerAccount",
    "Inventory",
    "Pricing",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CatalogItemId",
    "HUNDRED",
    "ZERO",
    "is_finite_number",
    "round_money",
    "to_decimal",
]

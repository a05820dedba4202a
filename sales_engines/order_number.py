"""
sales_engines.order_number -- Human-readable order number generation.

Format: ``{prefix}-{initials}-{YYYYMMDD}-{last4(epoch millis)}``, e.g.
``SO-ATC-20240101-0000``.  Initials are the first letters of up to three
words of the customer's business (or display) name, uppercased; without a
customer, or when the name yields no letters, the fallback ``GEN`` is used.

Uniqueness is not guaranteed here; the order persistence service enforces it.
"""

from __future__ import annotations

from sales_kernel.domain.catalog import CustomerAccount
from sales_kernel.domain.clock import Clock
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.order_number")

MAX_INITIALS = 3


def customer_initials(name: str | None, fallback: str = "GEN") -> str:
    """First letter of each word, letters only, uppercased, at most three."""
    if not name:
        return fallback
    letters = [word[0] for word in name.split() if word[0].isalpha()]
    initials = "".join(letters[:MAX_INITIALS]).upper()
    return initials or fallback


class OrderNumberGenerator:
    """Derives order numbers from the customer and an injected clock."""

    def __init__(self, clock: Clock, prefix: str = "SO", fallback: str = "GEN"):
        if not prefix:
            raise ValueError("Order number prefix cannot be empty")
        self._clock = clock
        self._prefix = prefix
        self._fallback = fallback

    def generate(self, customer: CustomerAccount | None = None) -> str:
        name = customer.naming_source if customer is not None else None
        initials = customer_initials(name, self._fallback)
        date_part = self._clock.now().strftime("%Y%m%d")
        tail = str(self._clock.epoch_millis())[-4:]
        order_number = f"{self._prefix}-{initials}-{date_part}-{tail}"
        logger.debug("order_number_generated", extra={
            "order_number": order_number,
            "customer_id": customer.id if customer is not None else None,
        })
        return order_number

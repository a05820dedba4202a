"""
Order Entry Configuration Schema.

Defines the structure and sensible defaults for order-entry settings.
Actual values are loaded through ``sales_config.get_active_config()``.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sales_engines.pricing import DEFAULT_BUSINESS_TYPE_TIERS, PriceTier
from sales_kernel.domain.values import HUNDRED, ZERO, to_decimal
from sales_kernel.logging_config import get_logger

logger = get_logger("modules.order_entry.config")

VALID_ORDER_TYPES = frozenset({"retail", "wholesale", "distributor", "custom"})


@dataclass
class OrderEntryConfig:
    """
    Configuration schema for the order-entry module.

    Override at instantiation with company-specific values:

        config = OrderEntryConfig(flat_tax_rate=Decimal("5"), default_tax_exempt=False)
    """

    # Tax (percent, applied to lines without their own rate)
    flat_tax_rate: Decimal = Decimal("8")
    default_tax_exempt: bool = True

    # Draft defaults
    default_price_tier: PriceTier = PriceTier.WHOLESALE
    default_order_type: str = "wholesale"

    # Order numbers
    order_number_prefix: str = "SO"
    order_number_fallback_initials: str = "GEN"

    # Credit
    credit_warning_ratio: Decimal = Decimal("0.10")

    # Rounding of tax amounts
    money_places: int = 2

    # Customer business type -> price tier on customer selection
    business_type_tiers: dict[str, PriceTier] = field(
        default_factory=lambda: dict(DEFAULT_BUSINESS_TYPE_TIERS)
    )

    # Re-check live stock before submitting
    revalidate_stock_on_submit: bool = True

    def __post_init__(self):
        self.flat_tax_rate = to_decimal(self.flat_tax_rate)
        if self.flat_tax_rate is None or not ZERO <= self.flat_tax_rate <= HUNDRED:
            raise ValueError(
                f"flat_tax_rate must be between 0 and 100, got {self.flat_tax_rate}"
            )

        self.default_price_tier = PriceTier(self.default_price_tier)
        if self.default_order_type not in VALID_ORDER_TYPES:
            raise ValueError(
                f"default_order_type must be one of {sorted(VALID_ORDER_TYPES)}, "
                f"got '{self.default_order_type}'"
            )

        if not self.order_number_prefix or not self.order_number_prefix.strip():
            raise ValueError("order_number_prefix cannot be empty")
        if not self.order_number_fallback_initials.isalpha():
            raise ValueError("order_number_fallback_initials must be letters")

        self.credit_warning_ratio = to_decimal(self.credit_warning_ratio)
        if self.credit_warning_ratio is None or not ZERO <= self.credit_warning_ratio < 1:
            raise ValueError("credit_warning_ratio must be in [0, 1)")

        if self.money_places < 0:
            raise ValueError("money_places cannot be negative")

        self.business_type_tiers = {
            str(k).lower(): PriceTier(v) for k, v in self.business_type_tiers.items()
        }

        logger.info(
            "order_entry_config_initialized",
            extra={
                "flat_tax_rate": str(self.flat_tax_rate),
                "default_price_tier": self.default_price_tier.value,
                "default_tax_exempt": self.default_tax_exempt,
                "revalidate_stock_on_submit": self.revalidate_stock_on_submit,
            },
        )

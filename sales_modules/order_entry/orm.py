"""
Order Entry ORM Models (``sales_modules.order_entry.orm``).

Responsibility
--------------
SQLAlchemy persistence models for the reference order store: submitted
sales orders with their lines, and purchase cost records used for last
purchase price lookups.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``sales_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``sales_kernel`` (except
by ``create_tables`` for registration).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sales_kernel.db.base import Base, TrackedBase


# ---------------------------------------------------------------------------
# 1. SalesOrderModel
# ---------------------------------------------------------------------------


class SalesOrderModel(TrackedBase):
    """
    ORM model for submitted sales orders.

    Guarantees:
        - order_number is unique (uq_sales_orders_order_number).
        - ordered_at comes from the injected clock, so "most recent order"
          is deterministic under test.
    """

    __tablename__ = "sales_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_sales_orders_order_number"),
        Index("idx_sales_orders_customer_ordered_at", "customer_id", "ordered_at"),
    )

    order_number: Mapped[str] = mapped_column(String(64), nullable=False)
    order_type: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(38, 9), default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    is_tax_exempt: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    ordered_at: Mapped[datetime] = mapped_column(nullable=False)

    lines: Mapped[list["SalesOrderLineModel"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="SalesOrderLineModel.line_no",
    )

    def __repr__(self) -> str:
        return f"<SalesOrderModel {self.order_number}: {self.total}>"


# ---------------------------------------------------------------------------
# 2. SalesOrderLineModel
# ---------------------------------------------------------------------------


class SalesOrderLineModel(Base):
    """One item of a submitted order, in cart order."""

    __tablename__ = "sales_order_lines"

    __table_args__ = (
        Index("idx_sales_order_lines_order_id", "order_id"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("sales_orders.id"), nullable=False)
    line_no: Mapped[int] = mapped_column(nullable=False)
    catalog_item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="")
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(38, 9), default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    invoiced_quantity: Mapped[int] = mapped_column(default=0)
    remaining_quantity: Mapped[int] = mapped_column(default=0)

    order: Mapped[SalesOrderModel] = relationship(back_populates="lines")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from sales_kernel.domain.values import CatalogItemId
        from sales_modules.order_entry.models import SubmissionLine

        return SubmissionLine(
            catalog_item_id=CatalogItemId.of(self.catalog_item_id),
            name=self.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount_amount=self.discount_amount,
            tax_rate=self.tax_rate,
            tax_amount=self.tax_amount,
            total_price=self.total_price,
            invoiced_quantity=self.invoiced_quantity,
            remaining_quantity=self.remaining_quantity,
        )

    @classmethod
    def from_dto(cls, dto, line_no: int) -> "SalesOrderLineModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            line_no=line_no,
            catalog_item_id=str(dto.catalog_item_id),
            name=dto.name,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            discount_amount=dto.discount_amount,
            tax_rate=dto.tax_rate,
            tax_amount=dto.tax_amount,
            total_price=dto.total_price,
            invoiced_quantity=dto.invoiced_quantity,
            remaining_quantity=dto.remaining_quantity,
        )


# ---------------------------------------------------------------------------
# 3. PurchaseCostModel
# ---------------------------------------------------------------------------


class PurchaseCostModel(TrackedBase):
    """
    Unit cost paid for a product on one purchase.

    Recorded against the base product; variants share their base's history.
    """

    __tablename__ = "purchase_costs"

    __table_args__ = (
        Index("idx_purchase_costs_product_purchased_at", "product_id", "purchased_at"),
    )

    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    quantity: Mapped[int] = mapped_column(default=0)
    purchased_at: Mapped[datetime] = mapped_column(nullable=False)
    purchase_reference: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<PurchaseCostModel {self.product_id}: {self.unit_cost}>"

"""
SqlAlchemyOrderStore -- Reference persistence adapter for order entry.

Responsibility:
    Implements the ``PurchasePriceSource``, ``OrderHistorySource`` and
    ``OrderSubmitter`` ports against the ``orm.py`` tables.

Architecture position:
    Modules > order_entry -- persistence adapter.  Owns its transaction
    boundary per call through ``session_scope``.  The port methods are
    coroutines so the session can await them; the SQL itself runs
    synchronously on the configured engine.

Invariants enforced:
    - Last purchase price = ``unit_cost`` of the most recent purchase row
      for the base product (``purchased_at``, then insertion order).
    - Last order prices = unit prices of the customer's most recent order
      (``ordered_at``); a later line of the same item wins.
    - ``ordered_at`` and ``purchased_at`` defaults come from the injected
      clock.

Failure modes:
    - ``sqlalchemy.exc.IntegrityError`` on a duplicate order number.
    - ``LookupError`` when updating an order id that does not exist.
    Both propagate; ``OrderEntrySession.submit`` turns them into
    ``OrderSubmissionError``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from sales_kernel.db.engine import session_scope
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.values import CatalogItemId, to_decimal
from sales_kernel.logging_config import get_logger
from sales_modules.order_entry.models import LastOrderPrices, OrderSubmission
from sales_modules.order_entry.orm import (
    PurchaseCostModel,
    SalesOrderLineModel,
    SalesOrderModel,
)

logger = get_logger("modules.order_entry.repository")


class SqlAlchemyOrderStore:
    """Order history, purchase costs and order writes backed by SQLAlchemy."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    # =========================================================================
    # Purchase costs
    # =========================================================================

    def record_purchase(
        self,
        product_id: CatalogItemId | str,
        unit_cost: Decimal,
        quantity: int = 0,
        purchased_at: datetime | None = None,
        purchase_reference: str | None = None,
    ) -> UUID:
        """Record the unit cost paid on one purchase of ``product_id``."""
        with session_scope(self._session_factory) as session:
            row = PurchaseCostModel(
                product_id=str(CatalogItemId.of(product_id)),
                unit_cost=to_decimal(unit_cost),
                quantity=quantity,
                purchased_at=purchased_at or self._clock.now_utc(),
                purchase_reference=purchase_reference,
            )
            session.add(row)
            session.flush()
            logger.info("purchase_cost_recorded", extra={
                "product_id": row.product_id,
                "unit_cost": row.unit_cost,
            })
            return row.id

    async def get_last_purchase_price(self, base_product_id: CatalogItemId) -> Decimal | None:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                select(PurchaseCostModel)
                .where(PurchaseCostModel.product_id == str(base_product_id))
                .order_by(
                    PurchaseCostModel.purchased_at.desc(),
                    PurchaseCostModel.created_at.desc(),
                )
                .limit(1)
            ).scalar_one_or_none()
            return row.unit_cost if row is not None else None

    # =========================================================================
    # Order history
    # =========================================================================

    async def get_last_order_prices(self, customer_id: str) -> LastOrderPrices:
        with session_scope(self._session_factory) as session:
            order = session.execute(
                select(SalesOrderModel)
                .options(selectinload(SalesOrderModel.lines))
                .where(SalesOrderModel.customer_id == customer_id)
                .order_by(SalesOrderModel.ordered_at.desc())
                .limit(1)
            ).scalar_one_or_none()

            if order is None:
                logger.info("no_previous_order", extra={"history_customer_id": customer_id})
                return LastOrderPrices()

            prices = {
                CatalogItemId.of(line.catalog_item_id): line.unit_price
                for line in order.lines
            }
            return LastOrderPrices(
                prices=prices,
                order_number=order.order_number,
                order_date=order.ordered_at,
            )

    # =========================================================================
    # Order writes
    # =========================================================================

    @staticmethod
    def _apply_submission(order: SalesOrderModel, submission: OrderSubmission) -> None:
        order.order_number = submission.order_number
        order.order_type = submission.order_type
        order.customer_id = submission.customer_id
        order.subtotal = submission.subtotal
        order.discount = submission.discount
        order.tax = submission.tax
        order.total = submission.total
        order.is_tax_exempt = submission.is_tax_exempt
        order.notes = submission.notes or None
        order.lines = [
            SalesOrderLineModel.from_dto(item, line_no=index)
            for index, item in enumerate(submission.items)
        ]

    async def create_order(self, submission: OrderSubmission) -> tuple[str, str]:
        with session_scope(self._session_factory) as session:
            order = SalesOrderModel(ordered_at=self._clock.now_utc())
            self._apply_submission(order, submission)
            session.add(order)
            session.flush()
            logger.info("sales_order_created", extra={
                "order_id": str(order.id),
                "created_order_number": order.order_number,
                "line_count": len(order.lines),
            })
            return str(order.id), order.order_number

    async def update_order(self, order_id: str, submission: OrderSubmission) -> tuple[str, str]:
        with session_scope(self._session_factory) as session:
            order = session.get(SalesOrderModel, UUID(order_id))
            if order is None:
                raise LookupError(f"Sales order {order_id} not found")
            self._apply_submission(order, submission)
            session.flush()
            logger.info("sales_order_updated", extra={
                "order_id": order_id,
                "updated_order_number": order.order_number,
                "line_count": len(order.lines),
            })
            return order_id, order.order_number

    def get_order(self, order_id: str) -> OrderSubmission | None:
        """Read back a stored order as its submission document."""
        with session_scope(self._session_factory) as session:
            order = session.execute(
                select(SalesOrderModel)
                .options(selectinload(SalesOrderModel.lines))
                .where(SalesOrderModel.id == UUID(order_id))
            ).scalar_one_or_none()
            if order is None:
                return None
            return OrderSubmission(
                order_number=order.order_number,
                order_type=order.order_type,
                customer_id=order.customer_id,
                items=tuple(line.to_dto() for line in order.lines),
                subtotal=order.subtotal,
                discount=order.discount,
                tax=order.tax,
                total=order.total,
                is_tax_exempt=order.is_tax_exempt,
                notes=order.notes or "",
            )

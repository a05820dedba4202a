"""Tests for structured JSON logging and session log context."""

import asyncio
import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from sales_engines.pricing import PriceTier
from sales_kernel.domain.values import CatalogItemId
from sales_kernel.exceptions import BelowCostError, ExceedsStockError
from sales_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_stream():
    """Fresh JSON handler on the sales_kernel logger; restores the suite setup."""
    reset_logging()
    stream = StringIO()
    configure_logging(stream=stream, level=logging.DEBUG)

    def records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield records
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestJsonLines:

    def test_envelope(self, log_stream):
        get_logger("modules.order_entry.cart").info("cart_reset")

        (record,) = log_stream()
        assert record["message"] == "cart_reset"
        assert record["level"] == "INFO"
        assert record["logger"] == "sales_kernel.modules.order_entry.cart"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields_and_types(self, log_stream):
        order_id = uuid4()
        get_logger("test").info("cart_line_added", extra={
            "item_id": CatalogItemId("sku-1"),
            "unit_price": Decimal("12.50"),
            "price_tier": PriceTier.RETAIL,
            "order_id": order_id,
            "line_index": 0,
        })

        (record,) = log_stream()
        assert record["item_id"] == "sku-1"
        assert record["unit_price"] == "12.50"
        assert record["price_tier"] == "retail"
        assert record["order_id"] == str(order_id)
        assert record["line_index"] == 0

    def test_level_filtering(self):
        reset_logging()
        stream = StringIO()
        configure_logging(stream=stream)
        try:
            logger = get_logger("test")
            logger.debug("dropped")
            logger.warning("kept")
            messages = [json.loads(line)["message"] for line in stream.getvalue().splitlines()]
            assert messages == ["kept"]
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)


class TestExceptionRendering:

    def test_plain_exception(self, log_stream):
        try:
            raise RuntimeError("collaborator down")
        except RuntimeError:
            get_logger("test").error("order_submission_failed", exc_info=True)

        (record,) = log_stream()
        assert record["error"] == {"type": "RuntimeError", "message": "collaborator down"}
        assert "Traceback" in record["traceback"]

    def test_sales_error_context(self, log_stream):
        try:
            raise ExceedsStockError("sku-1", requested=5, available=3)
        except ExceedsStockError:
            get_logger("test").warning("stock_rejected", exc_info=True)

        error = log_stream()[0]["error"]
        assert error["code"] == "EXCEEDS_STOCK"
        assert error["category"] == "STOCK"
        assert error["context"] == {
            "item_id": "sku-1", "requested": 5, "available": 3, "in_cart": 0,
        }

    def test_decimal_context_serialized(self, log_stream):
        exc = BelowCostError(
            item_id="sku-1",
            sale_price=Decimal("80"),
            cost_price=Decimal("100"),
            loss_per_unit=Decimal("20"),
            loss_percent=Decimal("20.00"),
            total_loss=Decimal("40"),
        )
        get_logger("test").info("below_cost_held", exc_info=(type(exc), exc, None))

        error = log_stream()[0]["error"]
        assert error["category"] == "PRICING"
        assert error["context"]["loss_percent"] == "20.00"


class TestLogContext:

    def test_bound_fields_in_output(self, log_stream):
        with LogContext.bind(session_id="sess-1", order_number="SO-GEN-20240315-0000"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = log_stream()
        assert inside["session_id"] == "sess-1"
        assert inside["order_number"] == "SO-GEN-20240315-0000"
        assert "session_id" not in outside

    def test_set_is_additive(self):
        LogContext.set(correlation_id="c-1")
        LogContext.set(customer_id="cust-1", actor_id=None)
        assert LogContext.get_all() == {"correlation_id": "c-1", "customer_id": "cust-1"}

    def test_bind_restores_previous(self):
        LogContext.set(customer_id="outer")
        with LogContext.bind(customer_id="inner", session_id="s"):
            assert LogContext.get_all() == {"customer_id": "inner", "session_id": "s"}
        assert LogContext.get_all() == {"customer_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(KeyError):
            with LogContext.bind(session_id="s"):
                raise KeyError("x")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(tenant="acme")

    def test_isolated_between_tasks(self):
        async def worker(session_id: str) -> str:
            with LogContext.bind(session_id=session_id):
                await asyncio.sleep(0)
                return LogContext.get_all()["session_id"]

        async def main():
            return await asyncio.gather(worker("a"), worker("b"))

        assert asyncio.run(main()) == ["a", "b"]


class TestConfigureLogging:

    def test_second_call_is_noop(self, log_stream):
        configure_logging(stream=StringIO())
        ours = [
            handler for handler in logging.getLogger("sales_kernel").handlers
            if isinstance(handler.formatter, StructuredFormatter)
        ]
        assert len(ours) == 1

        get_logger("test").info("still_first_stream")
        assert log_stream()[-1]["message"] == "still_first_stream"

    def test_namespace(self):
        assert get_logger("engines.margin").name == "sales_kernel.engines.margin"

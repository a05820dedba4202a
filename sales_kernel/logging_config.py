"""
Logging -- Structured JSON logs for order entry.

Responsibility:
    One JSON object per log line.  Every record carries the event name as
    ``message``, the ``extra`` fields passed at the call site, and whatever
    session context is bound (session, customer, order number).  Exceptions
    logged with ``exc_info`` are rendered as a nested ``error`` object; for
    ``SalesKernelError`` subclasses that object includes ``code``,
    ``category`` and the error's context attributes.

Architecture position:
    Kernel -- imported by every layer.  Standard library only.

Usage:
    logger = get_logger("modules.order_entry.cart")
    with LogContext.bind(session_id=sid, order_number=number):
        logger.info("cart_line_added", extra={"item_id": "sku-1", "quantity": 2})
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

ROOT_LOGGER_NAME = "sales_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "session_id",
    "customer_id",
    "actor_id",
    "order_number",
)

_context: ContextVar[dict[str, str]] = ContextVar("sales_log_context", default={})


class LogContext:
    """
    Session-scoped log fields, safe across threads and asyncio tasks.

    The bound fields live in one ``ContextVar`` holding an immutable-by-
    convention dict; every change installs a new dict.
    """

    @staticmethod
    def _merged(fields: dict[str, str | None]) -> dict[str, str]:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
        current = dict(_context.get())
        current.update({k: str(v) for k, v in fields.items() if v is not None})
        return current

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Add or replace fields; ``None`` values are skipped."""
        _context.set(cls._merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """Bind fields for the duration of a ``with`` block."""
        token = _context.set(cls._merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    # UUID, CatalogItemId and anything else with a readable str()
    return str(value)


def _describe_exception(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        error["code"] = code
        error["category"] = getattr(exc, "category", None)
        context = {k: v for k, v in vars(exc).items() if not k.startswith("_")}
        if context:
            error["context"] = context
    return error


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context.get())
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry["error"] = _describe_exception(record.exc_info[1])
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``sales_kernel`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``sales_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.
    """
    global _installed_handler
    if _installed_handler is not None:
        return

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.propagate = False

    _installed_handler = handler or logging.StreamHandler(stream or sys.stderr)
    _installed_handler.setFormatter(StructuredFormatter())
    root.addHandler(_installed_handler)


def reset_logging() -> None:
    """Remove the installed handler (tests only)."""
    global _installed_handler
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)
        _installed_handler = None
    root.setLevel(logging.WARNING)
    root.propagate = True

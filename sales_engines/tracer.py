"""
sales_engines.tracer -- SALES_ENGINE_TRACE records around pure engine calls.

Responsibility:
    ``@traced_engine(name, version, fingerprint_fields)`` logs one DEBUG
    record per call with the engine identity, a fingerprint of the named
    inputs and the wall time spent.  Two calls with equal inputs produce
    equal fingerprints, so traces can be compared across sessions.

Architecture position:
    Engines -- support code for the calculation layer.  Logging only; the
    wrapped function's arguments and result pass through untouched.

Failure modes:
    - A fingerprint field the function does not accept is recorded as null.
    - Values JSON cannot encode are fingerprinted by ``str()``.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from sales_kernel.logging_config import get_logger

F = TypeVar("F", bound=Callable[..., Any])

_logger = get_logger("engines.tracer")

TRACE_MESSAGE = "SALES_ENGINE_TRACE"


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-hex SHA-256 prefix over the named arguments (missing ones as null)."""
    selected = {name: arguments.get(name) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[F], F]:
    """Wrap an engine function so every call emits a trace record."""

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            _logger.debug(TRACE_MESSAGE, extra={
                "trace_type": TRACE_MESSAGE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fingerprint,
                "duration_ms": round(elapsed_ms, 3),
                "engine_function": func.__qualname__,
            })
            return result

        return wrapper  # type: ignore[return-value]

    return decorator

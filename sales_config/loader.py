"""
Configuration Loader (``sales_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into an
``OrderEntryConfig``.  Internal tooling: callers use
``sales_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are rejected with ``ValueError``; a typo never silently
  falls back to a default.
* Decimal settings are parsed through ``str`` so YAML floats keep their
  written value.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from sales_kernel.domain.values import to_decimal
from sales_modules.order_entry.config import OrderEntryConfig

_DECIMAL_KEYS = frozenset({"flat_tax_rate", "credit_warning_ratio"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_order_entry(data: dict[str, Any]) -> OrderEntryConfig:
    """Parse the ``order_entry`` section into an ``OrderEntryConfig``."""
    known = {f.name for f in fields(OrderEntryConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown order_entry settings: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in _DECIMAL_KEYS:
            value = to_decimal(value)
        elif key == "business_type_tiers":
            value = dict(value or {})
        kwargs[key] = value
    return OrderEntryConfig(**kwargs)


def config_to_dict(config: OrderEntryConfig) -> dict[str, Any]:
    """Canonical dict form used for checksums and trace logs."""
    result: dict[str, Any] = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if isinstance(value, Decimal):
            value = str(value)
        elif f.name == "business_type_tiers":
            value = {k: v.value for k, v in sorted(value.items())}
        elif hasattr(value, "value"):
            value = value.value
        result[f.name] = value
    return result


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

"""
sales_config -- single public entrypoint for order-entry configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly; the cart and session receive an
    ``OrderEntryConfig`` by injection.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  Sits above
    ``sales_kernel`` and beside ``sales_modules``; the kernel and engines
    never import it.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic checksum: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` -- unknown keys or invalid values.
    - ``yaml.YAMLError`` -- malformed YAML.

Audit relevance:
    Every successful call emits a ``SALES_CONFIG_TRACE`` log entry with the
    config_id, version and checksum, tying each session to the exact
    settings it ran with.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sales_config.loader import compute_checksum, config_to_dict, load_yaml_file, parse_order_entry
from sales_modules.order_entry.config import OrderEntryConfig

_logger = logging.getLogger("sales_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_CONFIG_FILE = _DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_config(path: Path | str | None = None) -> OrderEntryConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to ``sales_config/sets/default.yaml``.

    Returns:
        A validated ``OrderEntryConfig``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the ``order_entry`` section is invalid.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_FILE
    raw = load_yaml_file(config_path)

    config = parse_order_entry(raw.get("order_entry") or {})
    checksum = compute_checksum(config_to_dict(config))

    _logger.info(
        "SALES_CONFIG_TRACE",
        extra={
            "trace_type": "SALES_CONFIG_TRACE",
            "config_id": raw.get("config_id", config_path.stem),
            "config_version": raw.get("version"),
            "checksum": checksum,
            "source_path": str(config_path),
        },
    )
    return config


__all__ = ["OrderEntryConfig", "get_active_config"]

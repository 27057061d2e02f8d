"""
stock_config -- single public entrypoint for stock engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a validated, frozen
    ``StockEngineConfig``.

Architecture position:
    Configuration -- sits above ``stock_kernel``.  The kernel MUST NEVER
    import from ``stock_config``; ``stock_config.bridges`` translates the
    config into kernel objects (TransitionPolicy, engine, services).

Resolution order for the configuration file:
    1. the ``path`` argument
    2. the ``STOCK_CONFIG_PATH`` environment variable
    3. ``stock_config/sets/default.yaml``

``DATABASE_URL``, when set, overrides ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``InvalidConfigError`` -- validation failed.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from stock_config.loader import load_config_file
from stock_config.schema import AtomicityMode, DatabaseConfig, StockEngineConfig
from stock_config.validator import validate_configuration
from stock_kernel.exceptions import InvalidConfigError

_logger = logging.getLogger("stock_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> StockEngineConfig:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned config has passed validation.
        - A ``STOCK_CONFIG_TRACE`` log entry is emitted on every call.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        InvalidConfigError: If validation fails.
    """
    env_path = os.environ.get("STOCK_CONFIG_PATH")
    config_path = Path(path or env_path or _DEFAULT_CONFIG_FILE)

    config = load_config_file(config_path)

    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=database_url),
        )

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise InvalidConfigError(validation.errors)
    for warning in validation.warnings:
        _logger.warning("stock_config_warning", extra={"detail": warning})

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(config_path),
            "atomicity": config.atomicity.value,
            "consuming_statuses": sorted(config.consuming_statuses),
            "returning_statuses": sorted(config.returning_statuses),
        },
    )

    return config


__all__ = [
    "AtomicityMode",
    "DatabaseConfig",
    "StockEngineConfig",
    "get_active_config",
]

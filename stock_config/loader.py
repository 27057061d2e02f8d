"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``stock_config.schema`` dataclasses.  Runtime callers go through
``stock_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown atomicity mode  -> ``InvalidConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import AtomicityMode, DatabaseConfig, StockEngineConfig
from stock_kernel.exceptions import InvalidConfigError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the parsed YAML, for config identity in logs."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _status_set(values: Any) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset({values})
    return frozenset(str(v) for v in values)


def parse_database(data: dict[str, Any] | None) -> DatabaseConfig:
    """Parse the optional ``database`` section."""
    if not data:
        return DatabaseConfig()
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
    )


def parse_atomicity(value: Any) -> AtomicityMode:
    if value is None:
        return AtomicityMode.PER_INGREDIENT
    try:
        return AtomicityMode(value)
    except ValueError:
        allowed = ", ".join(m.value for m in AtomicityMode)
        raise InvalidConfigError(
            [f"unknown atomicity mode {value!r} (expected one of: {allowed})"]
        ) from None


def parse_config(data: dict[str, Any]) -> StockEngineConfig:
    """
    Parse a ``StockEngineConfig`` from a dict.

    Required keys: ``config_id``, ``version``, ``statuses.consuming``,
    ``statuses.returning``.
    """
    statuses = data["statuses"]
    return StockEngineConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        consuming_statuses=_status_set(statuses["consuming"]),
        returning_statuses=_status_set(statuses["returning"]),
        atomicity=parse_atomicity(data.get("atomicity")),
        database=parse_database(data.get("database")),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> StockEngineConfig:
    """Load and parse one configuration file."""
    return parse_config(load_yaml_file(path))

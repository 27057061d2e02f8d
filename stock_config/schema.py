"""
StockEngineConfig schema.

Defines the typed, frozen form of the stock engine configuration.  YAML
files are parsed into these types by the loader and checked by the
validator before any service sees them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class AtomicityMode(str, Enum):
    """How many ingredients one store transaction covers."""

    # One transaction per ingredient; a failure on ingredient K leaves
    # ingredients before K adjusted and the rest untouched.
    PER_INGREDIENT = "per_ingredient"
    # One transaction for the whole order; all-or-nothing.
    PER_ORDER = "per_order"


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings handed to ``stock_kernel.db.engine``."""

    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class StockEngineConfig:
    """
    Runtime configuration for the stock engine.

    Contract:
        ``consuming_statuses`` and ``returning_statuses`` are disjoint.
    """

    config_id: str
    version: int
    consuming_statuses: frozenset[str]
    returning_statuses: frozenset[str]
    atomicity: AtomicityMode = AtomicityMode.PER_INGREDIENT
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    checksum: str = ""

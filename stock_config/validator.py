"""
Configuration Validator (``stock_config.validator``).

Responsibility
--------------
Checks a parsed ``StockEngineConfig`` before services are built from it.

Invariants enforced
-------------------
* At least one consuming status.
* Consuming and returning status sets are disjoint.
* Statuses are non-empty strings without surrounding whitespace (status
  matching is exact, so " READY" would silently never match).
* Pool sizes are non-negative.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stock_config.schema import StockEngineConfig


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: StockEngineConfig) -> ConfigValidationResult:
    """Validate a stock engine configuration."""
    result = ConfigValidationResult()

    if not config.consuming_statuses:
        result.add_error("statuses.consuming must list at least one status")

    overlap = config.consuming_statuses & config.returning_statuses
    if overlap:
        result.add_error(
            f"statuses {sorted(overlap)} are both consuming and returning"
        )

    for status in sorted(config.consuming_statuses | config.returning_statuses):
        if not status or status != status.strip():
            result.add_error(f"status {status!r} is empty or has surrounding whitespace")

    if not config.returning_statuses:
        result.add_warning(
            "no returning statuses: cancelled orders only return stock "
            "through the left-fulfillment rule"
        )

    if config.database.pool_size < 0 or config.database.max_overflow < 0:
        result.add_error("database pool sizes must be non-negative")

    return result

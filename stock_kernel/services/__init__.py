"""
Stock kernel services: consumption, adjustment, transition orchestration,
and ledger reconciliation.
"""

from stock_kernel.services.consumption_calculator import ConsumptionCalculator
from stock_kernel.services.ledger_auditor import LedgerAuditor, StockDrift
from stock_kernel.services.stock_ledger_adjuster import (
    AdjustmentResult,
    InsufficientStock,
    StockLedgerAdjuster,
    default_reason,
)
from stock_kernel.services.transition_service import (
    StockTransitionService,
    TransitionOutcome,
    TransitionStatus,
)

__all__ = [
    "ConsumptionCalculator",
    "LedgerAuditor",
    "StockDrift",
    "AdjustmentResult",
    "InsufficientStock",
    "StockLedgerAdjuster",
    "default_reason",
    "StockTransitionService",
    "TransitionOutcome",
    "TransitionStatus",
]

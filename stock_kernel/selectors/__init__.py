"""Read-only selectors over stock and the inventory ledger."""

from stock_kernel.selectors.base import BaseSelector
from stock_kernel.selectors.ledger_selector import LedgerMovement, LedgerSelector
from stock_kernel.selectors.stock_selector import StockLevel, StockSelector

__all__ = [
    "BaseSelector",
    "LedgerMovement",
    "LedgerSelector",
    "StockLevel",
    "StockSelector",
]

"""Persistence contract consumed by the stock engine, plus its SQLAlchemy implementation."""

from stock_kernel.store.base import (
    NewLedgerEntry,
    RecordedLedgerEntry,
    StockStore,
    StockTransaction,
    TransitionRecord,
)
from stock_kernel.store.sqlalchemy_store import SessionStockTransaction, SqlAlchemyStockStore

__all__ = [
    "NewLedgerEntry",
    "RecordedLedgerEntry",
    "StockStore",
    "StockTransaction",
    "TransitionRecord",
    "SessionStockTransaction",
    "SqlAlchemyStockStore",
]

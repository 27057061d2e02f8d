"""Database layer - engine, base classes, immutability listeners."""

from stock_kernel.db.base import Base, IdType, Quantity
from stock_kernel.db.engine import create_tables, get_engine, get_session

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "IdType",
    "Quantity",
]

"""
Module: stock_kernel.models.transition
Responsibility: ORM persistence for applied stock transitions, keyed by an
    idempotency key supplied by the caller.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - transition_key is unique: a keyed transition is applied at most once.
    - Written in the same transaction as the delivery's last stock
      movement; alone only when the delivery moves nothing.
    - Append-only (db/immutability.py).

Failure modes:
    - IntegrityError when two callers record the same key concurrently.
"""

from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, IdType


class StockTransition(Base):
    """Record that a keyed (order, old status, new status) transition was applied."""

    __tablename__ = "stock_transitions"

    transition_key: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    order_id: Mapped[int] = mapped_column(IdType, nullable=False, index=True)

    old_status: Mapped[str] = mapped_column(String(50), nullable=False)

    new_status: Mapped[str] = mapped_column(String(50), nullable=False)

    action: Mapped[str] = mapped_column(String(10), nullable=False)

    actor_id: Mapped[int] = mapped_column(IdType, nullable=False)

    applied_at: Mapped[datetime] = mapped_column(nullable=False)

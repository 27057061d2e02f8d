"""
Module: stock_kernel.models.ledger
Responsibility: ORM persistence for the append-only inventory ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: ledger entries are never updated or deleted (ORM listener
      in db/immutability.py).
    - Exactly one entry per ingredient per applied adjustment, written in the
      same transaction as the stock increment it describes.
    - At most one entry per (transition_key, ingredient): a keyed delivery
      retried after a partial failure never moves an ingredient twice.
    - change is signed: negative for CONSUME, positive for RETURN.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.

Audit relevance:
    The ledger IS the audit trail of stock.  For any ingredient,
    initial_stock + sum(change) must equal current_stock.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base, IdType


class InventoryLedgerEntry(Base):
    """
    One immutable stock movement.

    Contract:
        Written by the stock ledger adjuster only.  ``direction`` holds the
        StockDirection value ("CONSUME" / "RETURN"); ``reason`` is free text
        naming the order and the direction.

    Non-goals:
        - Entries are never corrected in place.  A wrong movement is undone
          by a new, opposite movement.
    """

    __tablename__ = "inventory_ledger_entries"

    __table_args__ = (
        Index("idx_ledger_ingredient", "ingredient_id", "id"),
        Index("idx_ledger_order", "order_id"),
        Index("idx_ledger_created_at", "created_at"),
        UniqueConstraint("transition_key", "ingredient_id", name="uq_ledger_transition_ingredient"),
    )

    ingredient_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("ingredients.id"),
        nullable=False,
    )

    change: Mapped[Decimal] = mapped_column(nullable=False)

    reason: Mapped[str] = mapped_column(String(500), nullable=False)

    direction: Mapped[str] = mapped_column(String(10), nullable=False)

    order_id: Mapped[int | None] = mapped_column(IdType, nullable=True)

    actor_id: Mapped[int] = mapped_column(IdType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    # Idempotency key of the delivery that wrote this entry, if keyed
    transition_key: Mapped[str | None] = mapped_column(String(200), nullable=True)

    ingredient = relationship("Ingredient")

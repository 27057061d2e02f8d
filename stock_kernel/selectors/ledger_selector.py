"""
LedgerSelector -- read-only queries over the inventory ledger.

Responsibility:
    Lists ledger movements per ingredient, per order, and across the shop
    (most recent first), and sums an ingredient's ledger changes.

Architecture position:
    Kernel > Selectors.

Failure modes:
    - Returns empty lists / zero sums when no entries exist.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from stock_kernel.models.ingredient import Ingredient
from stock_kernel.models.ledger import InventoryLedgerEntry
from stock_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerMovement:
    """One ledger entry with its ingredient's name and unit."""

    entry_id: int
    ingredient_id: int
    ingredient_name: str
    unit: str
    change: Decimal
    direction: str
    reason: str
    order_id: int | None
    actor_id: int
    created_at: datetime

    @property
    def is_consumption(self) -> bool:
        return self.change < 0


class LedgerSelector(BaseSelector[InventoryLedgerEntry]):
    """
    Selector for ledger movements.

    Guarantees:
        - Per-ingredient and per-order listings are in insertion order
          (ascending entry id).
        - ``recent_movements`` is newest first.
    """

    def _base_query(self):
        return select(
            InventoryLedgerEntry.id,
            InventoryLedgerEntry.ingredient_id,
            Ingredient.name,
            Ingredient.unit,
            InventoryLedgerEntry.change,
            InventoryLedgerEntry.direction,
            InventoryLedgerEntry.reason,
            InventoryLedgerEntry.order_id,
            InventoryLedgerEntry.actor_id,
            InventoryLedgerEntry.created_at,
        ).join(Ingredient, Ingredient.id == InventoryLedgerEntry.ingredient_id)

    @staticmethod
    def _to_movement(row) -> LedgerMovement:
        return LedgerMovement(
            entry_id=row.id,
            ingredient_id=row.ingredient_id,
            ingredient_name=row.name,
            unit=row.unit,
            change=Decimal(row.change),
            direction=row.direction,
            reason=row.reason,
            order_id=row.order_id,
            actor_id=row.actor_id,
            created_at=row.created_at,
        )

    def entries_for_ingredient(self, ingredient_id: int, limit: int | None = None) -> list[LedgerMovement]:
        query = (
            self._base_query()
            .where(InventoryLedgerEntry.ingredient_id == ingredient_id)
            .order_by(InventoryLedgerEntry.id)
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_movement(row) for row in self.session.execute(query)]

    def entries_for_order(self, order_id: int) -> list[LedgerMovement]:
        query = (
            self._base_query()
            .where(InventoryLedgerEntry.order_id == order_id)
            .order_by(InventoryLedgerEntry.id)
        )
        return [self._to_movement(row) for row in self.session.execute(query)]

    def recent_movements(self, limit: int = 5) -> list[LedgerMovement]:
        """The ``limit`` most recent movements across all ingredients."""
        query = (
            self._base_query()
            .order_by(InventoryLedgerEntry.created_at.desc(), InventoryLedgerEntry.id.desc())
            .limit(limit)
        )
        return [self._to_movement(row) for row in self.session.execute(query)]

    def ledger_sum(self, ingredient_id: int) -> Decimal:
        """Sum of all ledger changes for an ingredient (zero when none)."""
        total = self.session.execute(
            select(func.coalesce(func.sum(InventoryLedgerEntry.change), 0)).where(
                InventoryLedgerEntry.ingredient_id == ingredient_id
            )
        ).scalar_one()
        return Decimal(str(total))

"""
LedgerAuditor -- reconcile stock counters against the ledger.

Responsibility:
    Verifies, per ingredient, that the stored stock counter equals the
    ingredient's initial stock plus the sum of all its ledger changes.

Architecture position:
    Kernel > Services.  Read-only over a caller-owned session; used by
    operators and by tests after concurrent or failed adjustments.

Invariants enforced:
    - current_stock == initial_stock + SUM(inventory_ledger.change), compared
      at the storage scale of nine decimal places.

Failure modes:
    - IngredientNotFoundError from ``verify_ingredient`` for unknown ids.
    - LedgerInvariantViolationError from ``assert_consistent`` when any
      ingredient drifts.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.exceptions import IngredientNotFoundError, LedgerInvariantViolationError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.ingredient import Ingredient
from stock_kernel.models.ledger import InventoryLedgerEntry

logger = get_logger("services.ledger_auditor")

QUANTUM = Decimal("0.000000001")


def _q(value) -> Decimal:
    return Decimal(str(value if value is not None else 0)).quantize(QUANTUM)


@dataclass(frozen=True)
class StockDrift:
    """Reconciliation of one ingredient's counter against its ledger."""

    ingredient_id: int
    name: str
    initial_stock: Decimal
    ledger_total: Decimal
    current_stock: Decimal
    entry_count: int

    @property
    def expected_stock(self) -> Decimal:
        return self.initial_stock + self.ledger_total

    @property
    def drift(self) -> Decimal:
        return self.current_stock - self.expected_stock

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0


class LedgerAuditor:
    """Stock/ledger reconciliation over a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        ledger = (
            select(
                InventoryLedgerEntry.ingredient_id.label("ingredient_id"),
                func.coalesce(func.sum(InventoryLedgerEntry.change), 0).label("total"),
                func.count(InventoryLedgerEntry.id).label("entry_count"),
            )
            .group_by(InventoryLedgerEntry.ingredient_id)
            .subquery()
        )
        return (
            select(
                Ingredient.id,
                Ingredient.name,
                Ingredient.initial_stock,
                Ingredient.current_stock,
                ledger.c.total,
                ledger.c.entry_count,
            )
            .outerjoin(ledger, ledger.c.ingredient_id == Ingredient.id)
            .order_by(Ingredient.id)
        )

    @staticmethod
    def _drift(row) -> StockDrift:
        return StockDrift(
            ingredient_id=row.id,
            name=row.name,
            initial_stock=_q(row.initial_stock),
            ledger_total=_q(row.total),
            current_stock=_q(row.current_stock),
            entry_count=row.entry_count or 0,
        )

    def verify_ingredient(self, ingredient_id: int) -> StockDrift:
        row = self.session.execute(
            self._query().where(Ingredient.id == ingredient_id)
        ).one_or_none()
        if row is None:
            raise IngredientNotFoundError(ingredient_id)
        return self._drift(row)

    def verify_all(self) -> list[StockDrift]:
        """Reconcile every ingredient, soft-deleted ones included."""
        return [self._drift(row) for row in self.session.execute(self._query())]

    def find_drift(self) -> list[StockDrift]:
        return [d for d in self.verify_all() if not d.is_consistent]

    def assert_consistent(self) -> None:
        """
        Raise if any ingredient's counter disagrees with its ledger.

        Raises:
            LedgerInvariantViolationError: listing every drifting ingredient.
        """
        drifted = self.find_drift()
        if drifted:
            for d in drifted:
                logger.error(
                    "ledger_drift_detected",
                    extra={
                        "ingredient_id": d.ingredient_id,
                        "current_stock": d.current_stock,
                        "expected_stock": d.expected_stock,
                        "drift": d.drift,
                    },
                )
            raise LedgerInvariantViolationError([d.ingredient_id for d in drifted])
        logger.debug("ledger_consistent")

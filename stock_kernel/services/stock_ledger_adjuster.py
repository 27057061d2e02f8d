"""
StockLedgerAdjuster -- apply a ConsumptionMap to stock and the ledger.

Responsibility:
    For every ingredient in a ConsumptionMap, atomically increments the
    ingredient's stock counter by the signed quantity and appends one
    immutable ledger entry, both inside the same store transaction.

Architecture position:
    Kernel > Services.  Called by StockTransitionService; owns
    Ingredient.current_stock for the duration of an adjustment.

Invariants enforced:
    - One stock increment and one ledger entry per ingredient per call.
    - Keyed deliveries: at most one entry per (key, ingredient), and the
      transition record commits with the last movement, so a retry after a
      partial failure or a lost commit acknowledgement moves nothing twice.
    - delta = -quantity for CONSUME, +quantity for RETURN.
    - Storage-side increment (no read-modify-write in engine memory), so
      concurrent adjustments from other orders are never lost.
    - Ingredients are processed sequentially, in ConsumptionMap order.
    - Insufficient stock on CONSUME is a warning, never an error: stock may
      go negative, signalling an unreconciled shortfall.

Transaction modes:
    - Default: one isolated transaction per ingredient.  A failure on
      ingredient K halts the call; ingredients before K stay adjusted,
      ingredients after K are untouched.  No compensation.
    - ``atomic_batch=True``: the whole map in one transaction,
      all-or-nothing.  Use when the store supports multi-row transactions.

Failure modes:
    - IngredientNotFoundError when an ingredient does not exist.
    - StoreTransactionFailedError when a transaction or commit fails.
    - TransitionKeyConflictError when the key was recorded by another
      delivery.
    - ValueError when the map holds a negative quantity.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from functools import partial

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.consumption import ConsumptionLine, ConsumptionMap
from stock_kernel.domain.values import StockDirection
from stock_kernel.exceptions import IngredientNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.store.base import (
    NewLedgerEntry,
    RecordedLedgerEntry,
    StockStore,
    StockTransaction,
    TransitionRecord,
)

logger = get_logger("services.stock_ledger_adjuster")


@dataclass(frozen=True, slots=True)
class InsufficientStock:
    """Warning record: consumption exceeded the stock available at the time."""

    ingredient_id: int
    ingredient_name: str
    unit: str
    required: Decimal
    available: Decimal

    @property
    def shortfall(self) -> Decimal:
        return self.required - self.available


@dataclass(frozen=True, slots=True)
class AdjustmentResult:
    """Entries written by one ``apply_adjustment`` call."""

    order_id: int
    direction: StockDirection
    entries: tuple[RecordedLedgerEntry, ...] = ()
    shortfalls: tuple[InsufficientStock, ...] = ()
    # Ingredients skipped because the same keyed delivery already moved them
    already_applied: tuple[int, ...] = ()

    @property
    def total_change(self) -> Decimal:
        return sum((e.change for e in self.entries), Decimal("0"))


def default_reason(direction: StockDirection, order_id: int) -> str:
    """Ledger reason used when the caller does not supply one."""
    if direction is StockDirection.CONSUME:
        return f"Order {order_id} status changed to stock-consuming status"
    return f"Order {order_id} was cancelled - returning ingredients to stock"


class StockLedgerAdjuster:
    """
    Applies signed consumption to stock counters with an audit trail.

    Contract:
        ``apply_adjustment`` either processes every ingredient in the map or
        raises the first error encountered.  It never retries.

    Non-goals:
        - Does NOT decide whether a transition needs an adjustment.
        - Does NOT block consumption on insufficient stock.
        - Without a ``transition`` it does NOT guard against the same
          adjustment being applied twice.
    """

    def __init__(
        self,
        store: StockStore,
        clock: Clock | None = None,
        atomic_batch: bool = False,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._atomic_batch = atomic_batch

    def apply_adjustment(
        self,
        consumption: ConsumptionMap,
        direction: StockDirection,
        order_id: int,
        actor_id: int,
        reason: str | None = None,
        transition: TransitionRecord | None = None,
    ) -> AdjustmentResult:
        """
        Debit (CONSUME) or credit (RETURN) every ingredient in ``consumption``.

        Args:
            consumption: Aggregated quantities per ingredient.
            direction: CONSUME or RETURN.
            order_id: Order the adjustment belongs to (ledger provenance).
            actor_id: User who triggered the transition (ledger provenance).
            reason: Ledger reason text; defaults to ``default_reason``.
            transition: Keyed delivery this adjustment belongs to.  Its key is
                stamped on every ledger entry, ingredients already moved under
                the key are skipped, and the record itself is written in the
                transaction that makes the last movement.

        Returns:
            AdjustmentResult with one ledger entry per adjusted ingredient,
            the ids of ingredients skipped as already applied, and any
            insufficient-stock warnings.

        Raises:
            IngredientNotFoundError: An ingredient in the map does not exist.
            StoreTransactionFailedError: A store transaction failed.
            TransitionKeyConflictError: The key was recorded by another delivery.
            ValueError: A quantity in the map is negative.
        """
        direction = StockDirection(direction)
        for line in consumption:
            if line.total_quantity < 0:
                raise ValueError(
                    f"Negative quantity {line.total_quantity} for ingredient "
                    f"{line.ingredient_id} in order {order_id}"
                )
        lines = [line for line in consumption if line.total_quantity != 0]
        reason = reason or default_reason(direction, order_id)

        adjust = partial(
            self._adjust_one,
            direction=direction,
            order_id=order_id,
            actor_id=actor_id,
            reason=reason,
            transition_key=transition.transition_key if transition is not None else None,
        )

        if not lines:
            if transition is not None:
                self._store.run_batch_transaction(lambda tx: tx.record_transition(transition))
            return AdjustmentResult(order_id=order_id, direction=direction)

        if self._atomic_batch:
            results = self._store.run_batch_transaction(
                partial(self._adjust_batch, adjust, lines, transition)
            )
            for entry, _ in results:
                if entry is not None:
                    self._log_adjusted(entry)
        else:
            results = []
            last = len(lines) - 1
            for position, line in enumerate(lines):
                record = transition if position == last else None
                try:
                    result = self._store.run_isolated_transaction(
                        line.ingredient_id, partial(adjust, line=line, record=record)
                    )
                except Exception:
                    logger.error(
                        "stock_adjustment_failed",
                        extra={
                            "order_id": order_id,
                            "ingredient_id": line.ingredient_id,
                            "direction": direction.value,
                            "adjusted_ingredient_ids": [
                                entry.ingredient_id for entry, _ in results if entry is not None
                            ],
                            "unprocessed_ingredient_ids": [
                                later.ingredient_id for later in lines[position + 1:]
                            ],
                        },
                        exc_info=True,
                    )
                    raise
                if result[0] is not None:
                    self._log_adjusted(result[0])
                results.append(result)

        return AdjustmentResult(
            order_id=order_id,
            direction=direction,
            entries=tuple(entry for entry, _ in results if entry is not None),
            shortfalls=tuple(s for _, s in results if s is not None),
            already_applied=tuple(
                line.ingredient_id
                for line, (entry, _) in zip(lines, results)
                if entry is None
            ),
        )

    @staticmethod
    def _adjust_batch(adjust, lines, transition, tx: StockTransaction):
        results = [adjust(tx, line) for line in lines]
        if transition is not None and any(entry is not None for entry, _ in results):
            tx.record_transition(transition)
        return results

    def _adjust_one(
        self,
        tx: StockTransaction,
        line: ConsumptionLine,
        direction: StockDirection,
        order_id: int,
        actor_id: int,
        reason: str,
        transition_key: str | None = None,
        record: TransitionRecord | None = None,
    ) -> tuple[RecordedLedgerEntry | None, InsufficientStock | None]:
        ingredient = tx.get_ingredient(line.ingredient_id)
        if ingredient is None:
            raise IngredientNotFoundError(line.ingredient_id)

        # Checked under the row lock so a concurrent delivery of the same
        # key sees the other's committed entry.
        if transition_key is not None and tx.keyed_entry_exists(transition_key, line.ingredient_id):
            logger.info(
                "stock_adjustment_already_applied",
                extra={"order_id": order_id, "ingredient_id": line.ingredient_id},
            )
            return None, None

        delta = direction.signed(line.total_quantity)

        shortfall = None
        if direction is StockDirection.CONSUME and ingredient.current_stock < line.total_quantity:
            shortfall = InsufficientStock(
                ingredient_id=ingredient.ingredient_id,
                ingredient_name=ingredient.name,
                unit=ingredient.unit,
                required=line.total_quantity,
                available=ingredient.current_stock,
            )
            logger.warning(
                "insufficient_stock",
                extra={
                    "order_id": order_id,
                    "ingredient_id": ingredient.ingredient_id,
                    "ingredient_name": ingredient.name,
                    "required": line.total_quantity,
                    "available": ingredient.current_stock,
                    "unit": ingredient.unit,
                },
            )

        stock_after = tx.increment_stock(line.ingredient_id, delta)
        entry = tx.append_ledger_entry(
            NewLedgerEntry(
                ingredient_id=line.ingredient_id,
                change=delta,
                reason=reason,
                direction=direction,
                actor_id=actor_id,
                created_at=self._clock.now(),
                order_id=order_id,
                transition_key=transition_key,
            ),
            stock_after=stock_after,
        )
        if record is not None:
            tx.record_transition(record)
        return entry, shortfall

    @staticmethod
    def _log_adjusted(entry: RecordedLedgerEntry) -> None:
        logger.info(
            "stock_adjusted",
            extra={
                "order_id": entry.order_id,
                "ingredient_id": entry.ingredient_id,
                "ledger_entry_id": entry.entry_id,
                "change": entry.change,
                "stock_after": entry.stock_after,
                "direction": entry.direction.value,
            },
        )

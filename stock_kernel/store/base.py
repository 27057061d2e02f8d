"""
StockStore -- the persistence contract the stock engine consumes.

Responsibility:
    Declares the primitives the engine needs from storage and nothing more:
    load an order with its recipes, run a unit of work in an isolated
    transaction, increment a stock counter atomically, append a ledger entry,
    and look up or record idempotency keys.

Architecture position:
    Kernel > Store.  Services depend on this abstract contract;
    ``SqlAlchemyStockStore`` is the production implementation.

Invariants enforced:
    - ``increment_stock`` is applied by the storage layer
      (``stock = stock + delta``), never as an overwrite of a value read
      earlier, so concurrent adjustments from other orders are not lost.
    - ``increment_stock`` and ``append_ledger_entry`` issued through the same
      StockTransaction commit or roll back together.
    - A keyed transition is recorded inside the transaction that makes its
      last stock movement; alone only when it moves nothing.

Failure modes:
    - StoreTransactionFailedError when the underlying transaction or commit
      fails.  Domain errors raised by the unit of work propagate unchanged
      after rollback.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from stock_kernel.domain.values import IngredientStock, OrderSnapshot, StockDirection

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class NewLedgerEntry:
    """A ledger entry about to be appended."""

    ingredient_id: int
    change: Decimal
    reason: str
    direction: StockDirection
    actor_id: int
    created_at: datetime
    order_id: int | None = None
    transition_key: str | None = None


@dataclass(frozen=True, slots=True)
class RecordedLedgerEntry:
    """A ledger entry as persisted, with its id and the stock it produced."""

    entry_id: int
    ingredient_id: int
    change: Decimal
    reason: str
    direction: StockDirection
    actor_id: int
    created_at: datetime
    order_id: int | None
    stock_after: Decimal
    transition_key: str | None = None


@dataclass(frozen=True, slots=True)
class TransitionRecord:
    """An applied, keyed status transition."""

    transition_key: str
    order_id: int
    old_status: str
    new_status: str
    action: str
    actor_id: int
    applied_at: datetime


class StockTransaction(ABC):
    """
    Handle on one open store transaction.

    Valid only inside the callable passed to ``run_isolated_transaction`` or
    ``run_batch_transaction``.
    """

    @abstractmethod
    def get_ingredient(self, ingredient_id: int) -> IngredientStock | None:
        """Consistent (row-locked where supported) read of an ingredient."""

    @abstractmethod
    def increment_stock(self, ingredient_id: int, delta: Decimal) -> Decimal:
        """Atomically add ``delta`` to the stock counter; return the new stock."""

    @abstractmethod
    def append_ledger_entry(self, entry: NewLedgerEntry, stock_after: Decimal) -> RecordedLedgerEntry:
        """Append one immutable ledger entry."""

    @abstractmethod
    def keyed_entry_exists(self, transition_key: str, ingredient_id: int) -> bool:
        """Whether a delivery with this key already moved this ingredient."""

    @abstractmethod
    def record_transition(self, record: TransitionRecord) -> None:
        """
        Record a keyed transition in this transaction.

        Raises TransitionKeyConflictError if the key is already recorded;
        the caller lets it propagate so the whole transaction rolls back.
        """


class StockStore(ABC):
    """Abstract store consumed (not owned) by the stock engine."""

    @abstractmethod
    def load_order_with_recipes(self, order_id: int) -> OrderSnapshot | None:
        """Load an order with line items, recipes and recipe quantities; None if absent."""

    @abstractmethod
    def run_isolated_transaction(self, ingredient_id: int, fn: Callable[[StockTransaction], T]) -> T:
        """Run ``fn`` in a transaction scoped to one ingredient and commit atomically."""

    @abstractmethod
    def run_batch_transaction(self, fn: Callable[[StockTransaction], T]) -> T:
        """Run ``fn`` in ONE transaction spanning several ingredients."""

    @abstractmethod
    def find_transition(self, transition_key: str) -> TransitionRecord | None:
        """Look up an applied transition by idempotency key."""

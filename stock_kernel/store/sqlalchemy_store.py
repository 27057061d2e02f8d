"""
SqlAlchemyStockStore -- StockStore over SQLAlchemy sessions.

Responsibility:
    Implements the stock engine's persistence contract on the ORM models.
    Each unit of work gets its own session and its own transaction.

Architecture position:
    Kernel > Store.  Imports models and domain snapshots; never imports
    services.

Invariants enforced:
    - Row lock: ``get_ingredient`` reads with SELECT ... FOR UPDATE
      (PostgreSQL).  SQLite has no row locks and serializes writers instead.
    - Storage-side increment: ``UPDATE ingredients SET current_stock =
      current_stock + :delta``.  The session's identity map is not consulted.
    - Stock increment, ledger append and (for keyed deliveries) the
      transition record share the session transaction.

Failure modes:
    - StoreTransactionFailedError wrapping any SQLAlchemyError (execute or
      commit).  The transaction is rolled back first.
    - StockKernelError subclasses raised by the unit of work are rolled back
      and re-raised unchanged.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from stock_kernel.domain.values import IngredientStock, OrderSnapshot
from stock_kernel.exceptions import (
    IngredientNotFoundError,
    StockKernelError,
    StoreTransactionFailedError,
    TransitionKeyConflictError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.ingredient import Ingredient
from stock_kernel.models.ledger import InventoryLedgerEntry
from stock_kernel.models.order import Order, OrderLineItem
from stock_kernel.models.recipe import Recipe
from stock_kernel.models.transition import StockTransition
from stock_kernel.store.base import (
    NewLedgerEntry,
    RecordedLedgerEntry,
    StockStore,
    StockTransaction,
    TransitionRecord,
)

logger = get_logger("store.sqlalchemy")

T = TypeVar("T")


class SessionStockTransaction(StockTransaction):
    """StockTransaction bound to one open SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def get_ingredient(self, ingredient_id: int) -> IngredientStock | None:
        ingredient = self.session.execute(
            select(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .with_for_update()
        ).scalar_one_or_none()
        if ingredient is None:
            return None
        return IngredientStock.from_model(ingredient)

    def increment_stock(self, ingredient_id: int, delta: Decimal) -> Decimal:
        result = self.session.execute(
            update(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .values(current_stock=Ingredient.current_stock + delta),
            execution_options={"synchronize_session": False},
        )
        if result.rowcount == 0:
            raise IngredientNotFoundError(ingredient_id)

        # Column select bypasses the identity map
        return Decimal(
            self.session.execute(
                select(Ingredient.current_stock).where(Ingredient.id == ingredient_id)
            ).scalar_one()
        )

    def append_ledger_entry(self, entry: NewLedgerEntry, stock_after: Decimal) -> RecordedLedgerEntry:
        row = InventoryLedgerEntry(
            ingredient_id=entry.ingredient_id,
            change=entry.change,
            reason=entry.reason,
            direction=entry.direction.value,
            order_id=entry.order_id,
            actor_id=entry.actor_id,
            created_at=entry.created_at,
            transition_key=entry.transition_key,
        )
        self.session.add(row)
        self.session.flush()

        return RecordedLedgerEntry(
            entry_id=row.id,
            ingredient_id=entry.ingredient_id,
            change=entry.change,
            reason=entry.reason,
            direction=entry.direction,
            actor_id=entry.actor_id,
            created_at=entry.created_at,
            order_id=entry.order_id,
            stock_after=stock_after,
            transition_key=entry.transition_key,
        )

    def keyed_entry_exists(self, transition_key: str, ingredient_id: int) -> bool:
        return (
            self.session.execute(
                select(InventoryLedgerEntry.id).where(
                    InventoryLedgerEntry.transition_key == transition_key,
                    InventoryLedgerEntry.ingredient_id == ingredient_id,
                )
            ).first()
            is not None
        )

    def record_transition(self, record: TransitionRecord) -> None:
        taken = self.session.execute(
            select(StockTransition.id).where(
                StockTransition.transition_key == record.transition_key
            )
        ).first()
        if taken is not None:
            raise TransitionKeyConflictError(record.transition_key, record.order_id)
        # A concurrent insert of the same key fails the flush on the unique
        # constraint and rolls back the whole transaction.
        self.session.add(
            StockTransition(
                transition_key=record.transition_key,
                order_id=record.order_id,
                old_status=record.old_status,
                new_status=record.new_status,
                action=record.action,
                actor_id=record.actor_id,
                applied_at=record.applied_at,
            )
        )
        self.session.flush()


class SqlAlchemyStockStore(StockStore):
    """
    Production StockStore.

    Contract:
        Accepts a session factory, not a session: every unit of work opens
        and closes its own session so per-ingredient transactions really are
        independent of each other.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def load_order_with_recipes(self, order_id: int) -> OrderSnapshot | None:
        query = (
            select(Order)
            .where(Order.id == order_id)
            .options(
                selectinload(Order.line_items)
                .selectinload(OrderLineItem.recipe)
                .selectinload(Recipe.ingredients)
            )
        )
        try:
            with self._session_factory() as session:
                order = session.execute(query).scalar_one_or_none()
                if order is None:
                    return None
                return OrderSnapshot.from_model(order)
        except SQLAlchemyError as exc:
            logger.error(
                "order_load_failed",
                extra={"order_id": order_id},
                exc_info=True,
            )
            raise StoreTransactionFailedError(None, str(exc)) from exc

    def run_isolated_transaction(self, ingredient_id: int, fn: Callable[[StockTransaction], T]) -> T:
        return self._run(fn, ingredient_id=ingredient_id)

    def run_batch_transaction(self, fn: Callable[[StockTransaction], T]) -> T:
        return self._run(fn, ingredient_id=None)

    def _run(self, fn: Callable[[StockTransaction], T], ingredient_id: int | None) -> T:
        session = self._session_factory()
        logger.debug("transaction_started", extra={"ingredient_id": ingredient_id})
        try:
            with session.begin():
                result = fn(SessionStockTransaction(session))
            logger.debug("transaction_committed", extra={"ingredient_id": ingredient_id})
            return result
        except StockKernelError:
            logger.warning(
                "transaction_rolled_back",
                extra={"ingredient_id": ingredient_id},
                exc_info=True,
            )
            raise
        except SQLAlchemyError as exc:
            logger.warning(
                "transaction_rolled_back",
                extra={"ingredient_id": ingredient_id},
                exc_info=True,
            )
            raise StoreTransactionFailedError(ingredient_id, str(exc)) from exc
        finally:
            session.close()

    def find_transition(self, transition_key: str) -> TransitionRecord | None:
        try:
            with self._session_factory() as session:
                row = session.execute(
                    select(StockTransition).where(
                        StockTransition.transition_key == transition_key
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreTransactionFailedError(None, str(exc)) from exc

        if row is None:
            return None
        return TransitionRecord(
            transition_key=row.transition_key,
            order_id=row.order_id,
            old_status=row.old_status,
            new_status=row.new_status,
            action=row.action,
            actor_id=row.actor_id,
            applied_at=row.applied_at,
        )


"""
Tests for ORM immutability enforcement.

- Ledger entries are append-only.
- Applied transition records are append-only.
- Ingredients used by a recipe are never physically deleted.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from stock_kernel.exceptions import ImmutabilityViolationError, IngredientReferencedError
from stock_kernel.models.ingredient import Ingredient
from stock_kernel.models.ledger import InventoryLedgerEntry
from stock_kernel.models.transition import StockTransition

ACTOR = 1


@pytest.fixture
def ledger_entry(session, transition_service, cafe):
    transition_service.on_order_status_changed(cafe["order_id"], "PENDING", "PREPARING", ACTOR)
    return session.execute(
        select(InventoryLedgerEntry).where(InventoryLedgerEntry.ingredient_id == cafe["beans"])
    ).scalar_one()


class TestLedgerEntries:

    def test_update_blocked(self, session, ledger_entry):
        ledger_entry.change = Decimal("0")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "InventoryLedgerEntry"

    def test_delete_blocked(self, session, ledger_entry):
        session.delete(ledger_entry)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestStockTransitions:

    def test_update_and_delete_blocked(self, session):
        record = StockTransition(
            transition_key="order-1-PENDING-PREPARING",
            order_id=1,
            old_status="PENDING",
            new_status="PREPARING",
            action="CONSUME",
            actor_id=ACTOR,
            applied_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        session.add(record)
        session.commit()

        record.new_status = "READY"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        session.delete(record)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestIngredientDeletion:

    def test_referenced_ingredient_cannot_be_deleted(self, session, cafe):
        ingredient = session.get(Ingredient, cafe["beans"])
        session.delete(ingredient)

        with pytest.raises(IngredientReferencedError) as exc_info:
            session.flush()

        assert exc_info.value.ingredient_id == cafe["beans"]
        assert exc_info.value.recipe_count == 1

    def test_unreferenced_ingredient_can_be_deleted(self, session, make_ingredient):
        spare = make_ingredient()
        session.delete(session.get(Ingredient, spare))
        session.commit()

        assert session.get(Ingredient, spare) is None

    def test_soft_delete_allowed_and_still_adjusted(
        self, session, transition_service, cafe, stock_of
    ):
        session.get(Ingredient, cafe["beans"]).is_deleted = True
        session.commit()

        transition_service.on_order_status_changed(cafe["order_id"], "PENDING", "PREPARING", ACTOR)

        assert stock_of(cafe["beans"]) == Decimal("64")

"""Tests for LedgerAuditor reconciliation of counters against the ledger."""

from decimal import Decimal

import pytest
from sqlalchemy import update

from stock_kernel.exceptions import IngredientNotFoundError, LedgerInvariantViolationError
from stock_kernel.models.ingredient import Ingredient
from stock_kernel.services.ledger_auditor import LedgerAuditor

ACTOR = 1


def test_fresh_ingredients_are_consistent(session, make_ingredient):
    beans = make_ingredient(stock="100")

    drift = LedgerAuditor(session).verify_ingredient(beans)

    assert drift.is_consistent
    assert drift.ledger_total == Decimal("0")
    assert drift.entry_count == 0


def test_consistent_after_transitions(session, transition_service, cafe):
    transition_service.on_order_status_changed(cafe["order_id"], "PENDING", "PREPARING", ACTOR)
    transition_service.on_order_status_changed(cafe["order_id"], "PREPARING", "CANCELLED", ACTOR)
    transition_service.on_order_status_changed(cafe["order_id"], "CANCELLED", "READY", ACTOR)

    auditor = LedgerAuditor(session)
    drift = auditor.verify_ingredient(cafe["beans"])

    assert drift.entry_count == 3
    assert drift.ledger_total == Decimal("-36")
    assert drift.current_stock == Decimal("64")
    auditor.assert_consistent()


def test_direct_counter_write_is_detected(session, transition_service, cafe, captured_logs):
    transition_service.on_order_status_changed(cafe["order_id"], "PENDING", "PREPARING", ACTOR)
    # Simulate an out-of-band overwrite that bypasses the ledger
    session.execute(
        update(Ingredient).where(Ingredient.id == cafe["water"]).values(current_stock=Decimal("999"))
    )
    session.commit()

    auditor = LedgerAuditor(session)
    drifted = auditor.find_drift()

    assert [d.ingredient_id for d in drifted] == [cafe["water"]]
    assert drifted[0].drift == Decimal("619")
    with pytest.raises(LedgerInvariantViolationError) as exc_info:
        auditor.assert_consistent()
    assert exc_info.value.ingredient_ids == [cafe["water"]]
    assert any(r["message"] == "ledger_drift_detected" for r in captured_logs())


def test_verify_all_includes_every_ingredient(session, make_ingredient):
    ids = [make_ingredient() for _ in range(3)]

    assert [d.ingredient_id for d in LedgerAuditor(session).verify_all()] == ids


def test_unknown_ingredient(session):
    with pytest.raises(IngredientNotFoundError):
        LedgerAuditor(session).verify_ingredient(12345)

"""
Pytest fixtures for the stock kernel test suite.

Provides:
- An in-memory SQLite database per test (StaticPool, foreign keys on)
- The SqlAlchemyStockStore and services wired over it
- Factories for ingredients, recipes and orders
- Structured log capture

Environment Variables:
- DATABASE_URL is ignored here; PostgreSQL-only tests read it themselves
  and are marked ``postgres``.
"""

import json
import logging
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from stock_kernel.db.engine import build_engine, create_tables, drop_tables
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_kernel.models.ingredient import Ingredient
from stock_kernel.models.ledger import InventoryLedgerEntry
from stock_kernel.models.order import Order, OrderLineItem
from stock_kernel.models.recipe import Product, Recipe, RecipeIngredient
from stock_kernel.services.consumption_calculator import ConsumptionCalculator
from stock_kernel.services.stock_ledger_adjuster import StockLedgerAdjuster
from stock_kernel.services.transition_service import StockTransitionService
from stock_kernel.store.sqlalchemy_store import SqlAlchemyStockStore


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _json_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _fresh_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


class _JsonCapture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.setFormatter(StructuredFormatter())
        self.payloads: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.payloads.append(json.loads(self.format(record)))


@pytest.fixture
def captured_logs():
    """
    Collect kernel log records as decoded JSON payloads.

    Call the fixture value to get the records emitted so far::

        assert "stock_adjusted" in [r["message"] for r in captured_logs()]
    """
    capture = _JsonCapture()
    kernel_logger = logging.getLogger("stock_kernel")
    kernel_logger.addHandler(capture)
    yield lambda: list(capture.payloads)
    kernel_logger.removeHandler(capture)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with the full schema."""
    eng = build_engine("sqlite:///:memory:")
    create_tables(eng)
    register_immutability_listeners()
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """
    Session for arranging data and reading results.

    The in-memory database has ONE connection, so tests commit their
    arrangements before calling into the store.
    """
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def store(session_factory):
    return SqlAlchemyStockStore(session_factory)


@pytest.fixture
def calculator(store):
    return ConsumptionCalculator(store)


@pytest.fixture
def adjuster(store, clock):
    return StockLedgerAdjuster(store, clock=clock)


@pytest.fixture
def batch_adjuster(store, clock):
    return StockLedgerAdjuster(store, clock=clock, atomic_batch=True)


@pytest.fixture
def transition_service(store, clock):
    return StockTransitionService(store, clock=clock)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def make_ingredient(session):
    """Create and commit an ingredient; returns its id."""
    counter = {"n": 0}

    def _make(name: str | None = None, stock="100", unit: str = "g") -> int:
        counter["n"] += 1
        stock = Decimal(str(stock))
        ingredient = Ingredient(
            name=name or f"ingredient-{counter['n']}",
            unit=unit,
            current_stock=stock,
            initial_stock=stock,
        )
        session.add(ingredient)
        session.commit()
        return ingredient.id

    return _make


@pytest.fixture
def make_recipe(session):
    """
    Create a product and recipe from ``{ingredient_id: quantity_per_unit}``.

    Returns (product_id, recipe_id).
    """

    def _make(quantities: dict[int, object], name: str = "Latte") -> tuple[int, int]:
        product = Product(name=name)
        recipe = Recipe(product=product)
        for ingredient_id, qty in quantities.items():
            recipe.ingredients.append(
                RecipeIngredient(ingredient_id=ingredient_id, quantity=Decimal(str(qty)))
            )
        session.add_all([product, recipe])
        session.commit()
        return product.id, recipe.id

    return _make


@pytest.fixture
def make_order(session):
    """
    Create an order from ``[(product_id, recipe_id | None, quantity), ...]``.

    Returns the order id.
    """

    def _make(lines, status: str = "PENDING") -> int:
        order = Order(status=status)
        for product_id, recipe_id, qty in lines:
            order.line_items.append(
                OrderLineItem(product_id=product_id, recipe_id=recipe_id, quantity=qty)
            )
        session.add(order)
        session.commit()
        return order.id

    return _make


@pytest.fixture
def cafe(make_ingredient, make_recipe, make_order):
    """
    Coffee beans (100g) and water (500ml); a Latte needs 18g beans and
    60ml water.  One PENDING order for two lattes.
    """
    beans = make_ingredient("coffeeBeans", stock="100", unit="g")
    water = make_ingredient("water", stock="500", unit="ml")
    product_id, recipe_id = make_recipe({beans: "18", water: "60"})
    order_id = make_order([(product_id, recipe_id, 2)])
    return {
        "beans": beans,
        "water": water,
        "product_id": product_id,
        "recipe_id": recipe_id,
        "order_id": order_id,
    }


@pytest.fixture
def stock_of(session):
    """Read an ingredient's committed stock counter."""

    def _stock(ingredient_id: int) -> Decimal:
        session.expire_all()
        return Decimal(
            session.execute(
                select(Ingredient.current_stock).where(Ingredient.id == ingredient_id)
            ).scalar_one()
        )

    return _stock


@pytest.fixture
def ledger_of(session):
    """Read an ingredient's ledger entries in insertion order."""

    def _ledger(ingredient_id: int) -> list[InventoryLedgerEntry]:
        session.expire_all()
        return list(
            session.execute(
                select(InventoryLedgerEntry)
                .where(InventoryLedgerEntry.ingredient_id == ingredient_id)
                .order_by(InventoryLedgerEntry.id)
            ).scalars()
        )

    return _ledger

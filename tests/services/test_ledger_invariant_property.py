"""
Property test: for any sequence of status changes, every ingredient's
stock equals its opening stock plus the sum of its ledger changes, and
the order is debited at most once at any point in time.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st
from sqlalchemy.orm import sessionmaker

from stock_kernel.db.engine import build_engine, create_tables
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.transition_policy import DEFAULT_CONSUMING_STATUSES
from stock_kernel.models.ingredient import Ingredient
from stock_kernel.models.order import Order, OrderLineItem
from stock_kernel.models.recipe import Product, Recipe, RecipeIngredient
from stock_kernel.services.ledger_auditor import LedgerAuditor
from stock_kernel.services.transition_service import StockTransitionService
from stock_kernel.store.sqlalchemy_store import SqlAlchemyStockStore

STATUSES = ["PENDING", "PREPARING", "READY", "COMPLETED", "CANCELLED", "ON_HOLD"]


@settings(max_examples=30, deadline=None)
@given(
    path=st.lists(st.sampled_from(STATUSES), max_size=10),
    per_unit=st.decimals(min_value=Decimal("0.5"), max_value=Decimal("50"), places=1),
    quantity=st.integers(min_value=1, max_value=5),
)
def test_stock_tracks_ledger_for_any_status_path(path, per_unit, quantity):
    engine = build_engine("sqlite:///:memory:")
    create_tables(engine)
    register_immutability_listeners()
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    try:
        with factory() as s:
            beans = Ingredient(
                name="beans", unit="g",
                current_stock=Decimal("100"), initial_stock=Decimal("100"),
            )
            product = Product(name="Espresso")
            recipe = Recipe(product=product)
            recipe.ingredients.append(RecipeIngredient(ingredient=beans, quantity=per_unit))
            order = Order(status="PENDING")
            order.line_items.append(OrderLineItem(product=product, recipe=recipe, quantity=quantity))
            s.add_all([beans, product, recipe, order])
            s.commit()
            beans_id, order_id = beans.id, order.id

        service = StockTransitionService(SqlAlchemyStockStore(factory), clock=DeterministicClock())

        old = "PENDING"
        for new in path:
            service.on_order_status_changed(order_id, old, new, actor_id=1)
            old = new

        consumed = old in DEFAULT_CONSUMING_STATUSES
        expected = Decimal("100") - (per_unit * quantity if consumed else Decimal("0"))

        with factory() as s:
            assert Decimal(s.get(Ingredient, beans_id).current_stock) == expected
            LedgerAuditor(s).assert_consistent()
    finally:
        engine.dispose()

"""
Tests for stock_config: YAML loading, validation, environment overrides
and the bridge into kernel services.
"""

from decimal import Decimal
from textwrap import dedent

import pytest
from sqlalchemy import select

from stock_config import AtomicityMode, get_active_config
from stock_config.bridges import build_transition_policy, build_transition_service
from stock_config.validator import validate_configuration
from stock_kernel.db.immutability import unregister_immutability_listeners
from stock_kernel.domain.values import StockAction
from stock_kernel.exceptions import (
    ImmutabilityViolationError,
    IngredientNotFoundError,
    InvalidConfigError,
)
from stock_kernel.models.ledger import InventoryLedgerEntry
from stock_kernel.store.sqlalchemy_store import SessionStockTransaction


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("STOCK_CONFIG_PATH", raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(body: str):
        path = tmp_path / "stock.yaml"
        path.write_text(dedent(body))
        return path

    return _write


class TestDefaultConfig:

    def test_default_statuses(self):
        config = get_active_config()

        assert config.config_id == "cafe-default"
        assert config.consuming_statuses == frozenset({"PREPARING", "READY", "COMPLETED"})
        assert config.returning_statuses == frozenset({"CANCELLED"})
        assert config.atomicity is AtomicityMode.PER_INGREDIENT
        assert config.database.url.startswith("postgresql://")
        assert len(config.checksum) == 64

    def test_trace_is_logged(self, captured_logs):
        get_active_config()

        (trace,) = [r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE"]
        assert trace["config_id"] == "cafe-default"
        assert trace["atomicity"] == "per_ingredient"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")

        assert get_active_config().database.url == "sqlite:///:memory:"


class TestCustomFiles:

    def test_explicit_path(self, write_config):
        path = write_config("""
            config_id: night-shift
            version: 3
            statuses:
              consuming: [BREWING]
              returning: [VOIDED]
            atomicity: per_order
        """)

        config = get_active_config(path)

        assert config.config_id == "night-shift"
        assert config.version == 3
        assert config.atomicity is AtomicityMode.PER_ORDER
        assert config.database.url == "sqlite:///:memory:"

    def test_env_path(self, write_config, monkeypatch):
        path = write_config("""
            config_id: from-env
            version: 1
            statuses:
              consuming: [PREPARING]
              returning: CANCELLED
        """)
        monkeypatch.setenv("STOCK_CONFIG_PATH", str(path))

        config = get_active_config()

        assert config.config_id == "from-env"
        assert config.returning_statuses == frozenset({"CANCELLED"})

    def test_overlapping_statuses_rejected(self, write_config):
        path = write_config("""
            config_id: broken
            version: 1
            statuses:
              consuming: [PREPARING, CANCELLED]
              returning: [CANCELLED]
        """)

        with pytest.raises(InvalidConfigError) as exc_info:
            get_active_config(path)

        assert exc_info.value.code == "INVALID_CONFIG"
        assert any("CANCELLED" in e for e in exc_info.value.errors)

    def test_unknown_atomicity_rejected(self, write_config):
        path = write_config("""
            config_id: broken
            version: 1
            statuses:
              consuming: [PREPARING]
              returning: [CANCELLED]
            atomicity: per_shift
        """)

        with pytest.raises(InvalidConfigError):
            get_active_config(path)

    def test_whitespace_status_rejected(self, write_config):
        path = write_config("""
            config_id: broken
            version: 1
            statuses:
              consuming: [" READY"]
              returning: [CANCELLED]
        """)

        with pytest.raises(InvalidConfigError):
            get_active_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_no_returning_statuses_is_a_warning(self, write_config):
        path = write_config("""
            config_id: lenient
            version: 1
            statuses:
              consuming: [PREPARING]
              returning: []
        """)

        config = get_active_config(path)
        result = validate_configuration(config)

        assert result.is_valid
        assert len(result.warnings) == 1


class TestBridges:

    def test_policy_from_config(self, write_config):
        config = get_active_config(write_config("""
            config_id: night-shift
            version: 1
            statuses:
              consuming: [BREWING]
              returning: [VOIDED]
        """))

        policy = build_transition_policy(config)

        assert policy.classify("NEW", "BREWING") is StockAction.CONSUME
        assert policy.classify("BREWING", "VOIDED") is StockAction.RETURN

    def test_per_order_service_is_all_or_nothing(
        self, write_config, session_factory, clock, make_ingredient, make_recipe,
        make_order, stock_of, ledger_of, monkeypatch,
    ):
        config = get_active_config(write_config("""
            config_id: strict
            version: 1
            statuses:
              consuming: [PREPARING]
              returning: [CANCELLED]
            atomicity: per_order
        """))
        first = make_ingredient(stock="100")
        doomed = make_ingredient(stock="100")
        product_id, recipe_id = make_recipe({first: "10", doomed: "10"})
        order_id = make_order([(product_id, recipe_id, 1)])
        service = build_transition_service(config, session_factory, clock=clock)

        original_get = SessionStockTransaction.get_ingredient

        def get_or_vanish(tx, ingredient_id):
            if ingredient_id == doomed:
                return None
            return original_get(tx, ingredient_id)

        monkeypatch.setattr(SessionStockTransaction, "get_ingredient", get_or_vanish)

        with pytest.raises(IngredientNotFoundError):
            service.on_order_status_changed(order_id, "PENDING", "PREPARING", actor_id=1)

        assert stock_of(first) == Decimal("100")
        assert ledger_of(first) == []

    def test_service_builder_installs_append_only_guards(
        self, session, session_factory, clock, cafe
    ):
        unregister_immutability_listeners()
        service = build_transition_service(get_active_config(), session_factory, clock=clock)
        service.on_order_status_changed(cafe["order_id"], "PENDING", "PREPARING", actor_id=1)

        entry = session.execute(
            select(InventoryLedgerEntry).where(InventoryLedgerEntry.ingredient_id == cafe["beans"])
        ).scalar_one()
        entry.change = Decimal("0")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

"""
Config -> Kernel Bridges.

Functions that turn a StockEngineConfig into kernel objects.  They live in
stock_config (the producer) because the kernel must NEVER import
stock_config.

Usage:
    from stock_config import get_active_config
    from stock_config.bridges import build_transition_service, init_engine_from_config

    config = get_active_config()
    init_engine_from_config(config)
    service = build_transition_service(config, get_session_factory())

``build_transition_service`` also installs the ledger's append-only ORM
guards (``register_immutability_listeners``); hosts that wire the kernel
by hand must call that themselves.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from stock_config.schema import AtomicityMode, StockEngineConfig
from stock_kernel.db.engine import init_engine_from_url
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.transition_policy import TransitionPolicy
from stock_kernel.services.transition_service import StockTransitionService
from stock_kernel.store.sqlalchemy_store import SqlAlchemyStockStore


def build_transition_policy(config: StockEngineConfig) -> TransitionPolicy:
    """TransitionPolicy over the configured consuming/returning statuses."""
    return TransitionPolicy(
        consuming_statuses=config.consuming_statuses,
        returning_statuses=config.returning_statuses,
    )


def init_engine_from_config(config: StockEngineConfig) -> Engine:
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )


def build_transition_service(
    config: StockEngineConfig,
    session_factory: sessionmaker[Session],
    clock: Clock | None = None,
) -> StockTransitionService:
    """
    Wire a StockTransitionService from configuration.

    ``per_order`` atomicity runs every adjustment in a single batch
    transaction; ``per_ingredient`` (the default) isolates each ingredient.
    Installs the append-only ledger guards if they are not installed yet.
    """
    register_immutability_listeners()
    return StockTransitionService(
        SqlAlchemyStockStore(session_factory),
        policy=build_transition_policy(config),
        clock=clock,
        atomic_batch=config.atomicity is AtomicityMode.PER_ORDER,
    )

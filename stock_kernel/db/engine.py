"""
Database engine and session plumbing for the stock kernel.

Two ways in:

* ``build_engine(url)`` returns a standalone engine.  Tests and the
  concurrency suite use it directly so each test owns its database.
* ``init_engine_from_url(url)`` builds an engine and installs it, plus a
  session factory, as the process-wide default read by ``get_engine``,
  ``get_session``, ``get_session_factory`` and ``session_scope``.

Backends:
    PostgreSQL runs at READ COMMITTED with a pre-pinged QueuePool.  The
    store relies on ``SELECT ... FOR UPDATE`` on the ingredient row and on
    storage-side ``current_stock = current_stock + :delta`` updates.
    SQLite has foreign keys switched on per connection.  An in-memory
    SQLite URL gets a StaticPool, so every session shares one connection
    and therefore one database.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from stock_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_READY = "Database engine not initialized; call init_engine_from_url() first."

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_pragmas(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _sqlite_engine(url, echo: bool) -> Engine:
    in_memory = url.database in (None, "", ":memory:")
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        **({"poolclass": StaticPool} if in_memory else {}),
    )
    event.listen(engine, "connect", _sqlite_pragmas)
    return engine


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """Create an engine for ``database_url``; module state is untouched."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return _sqlite_engine(url, echo)
    return create_engine(
        url,
        echo=echo,
        isolation_level="READ COMMITTED",
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Install the process-wide engine and session factory.

    ``pool_options`` are forwarded to ``build_engine`` (pool_size,
    max_overflow, pool_pre_ping, pool_timeout, pool_recycle) and are
    ignored for SQLite.  A previously installed engine is replaced but
    not disposed; call ``reset_engine`` first to release it.
    """
    global _engine, _session_factory

    _engine = build_engine(database_url, echo=echo, **pool_options)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo, **pool_options},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    The installed session factory.

    SqlAlchemyStockStore takes this rather than a session because each
    ingredient adjustment opens its own session and transaction.
    """
    if _session_factory is None:
        raise RuntimeError(_NOT_READY)
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    ``with session_scope() as session:`` commits on success, rolls back
    and re-raises on error, and always closes the session.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from stock_kernel.db.base import Base
    import stock_kernel.models  # noqa: F401  (registers every table)

    return Base.metadata


def create_tables(engine: Engine | None = None) -> None:
    _metadata().create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every kernel table.  Tests only."""
    _metadata().drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the installed engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def is_postgres(engine: Engine | None = None) -> bool:
    target = engine if engine is not None else _engine
    return target is not None and target.dialect.name == "postgresql"


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()

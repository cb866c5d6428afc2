"""
Module: studio_kernel.db.engine
Responsibility: Builds the one engine and session factory the studio core
    runs on, and creates or drops the schema.
Architecture position: Kernel > DB.  May import from db/base.py and
    models/ (for schema creation only).

Invariants enforced:
    - Sessions never expire loaded rows on commit; the orchestrator expires
      the identity map itself at the start of every operation.
    - PostgreSQL runs at READ COMMITTED.  Film rows are locked with
      SELECT ... FOR UPDATE and studio budgets move through conditional
      UPDATEs.
    - File-backed SQLite opens every transaction with BEGIN IMMEDIATE, so
      two writers queue on the database lock instead of both reading and
      then failing to upgrade.  FOR UPDATE is a no-op there.

Failure modes:
    - RuntimeError from the accessors before init_engine_from_url().
"""

import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from studio_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

DATABASE_URL_ENV = "STUDIO_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite:///studio.db"
SQLITE_BUSY_TIMEOUT_SECONDS = 30

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_memory_sqlite(url: str) -> bool:
    return ":memory:" in url or url in ("sqlite://", "sqlite:///")


def _serialize_sqlite_writers(engine: Engine) -> None:
    # pysqlite's implicit BEGIN is disabled so the begin hook owns it
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine(
    database_url: str,
    echo: bool,
    pool_size: int,
    max_overflow: int,
    pool_timeout: int,
) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_timeout=pool_timeout,
            pool_recycle=1800,
            isolation_level="READ COMMITTED",
        )

    if _is_memory_sqlite(database_url):
        # One shared connection; only safe for single-threaded play
        return create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    engine = create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS},
    )
    _serialize_sqlite_writers(engine)
    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> Engine:
    """
    Initialize the module-level engine and session factory.

    A second call replaces the first; dispose the old engine with
    reset_engine() beforehand if it is still open.

    Args:
        database_url: PostgreSQL or SQLite URL.
        echo: Log every SQL statement.
        pool_size: Connections kept in the pool.  One per concurrent
            orchestrator is enough.
        max_overflow: Connections allowed beyond pool_size.
        pool_timeout: Seconds to wait for a pooled connection.
    """
    global _engine, _SessionFactory

    _engine = _build_engine(database_url, echo, pool_size, max_overflow, pool_timeout)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()

    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "echo": echo,
        },
    )
    return _engine


def init_engine_from_env(**kwargs) -> Engine:
    """Initialize from ``STUDIO_DATABASE_URL``, falling back to ./studio.db."""
    url = os.environ.get(DATABASE_URL_ENV) or DEFAULT_DATABASE_URL
    return init_engine_from_url(url, **kwargs)


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    The session factory.  Each thread (and each orchestrator) needs its own
    session.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    A session that commits on normal exit and rolls back on an exception.

    For callers that use kernel services directly instead of going through
    the orchestrator, which manages its own transactions.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from studio_kernel.db.base import Base

    # Registers every table on Base.metadata
    import studio_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every studio table.  Test and reset use only."""
    from studio_kernel.db.base import Base

    import studio_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None

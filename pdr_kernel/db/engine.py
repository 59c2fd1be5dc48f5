"""
Module: pdr_kernel.db.engine
Responsibility: The single place a database connection is configured: engine
    and session factory setup, the request-level transaction scope, and
    schema create/drop for tests and first-run setup.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, domain/, or outer layers
    (create_tables/drop_tables import models lazily to register tables).

Invariants enforced:
    - PostgreSQL (``postgresql+psycopg://``) runs at READ COMMITTED.  Lost
      updates on a PDR are caught by its ``version`` column, not by a
      stricter isolation level.
    - SQLite is for tests.  In-memory databases share one connection, and
      SQLAlchemy (not pysqlite) emits BEGIN so services can use SAVEPOINTs.
    - Sessions do not expire on commit: receipts and views handed back to
      callers stay readable after the scope closes.

Failure modes:
    - RuntimeError from every accessor before ``init_engine_from_url()``.
"""

import atexit
import os
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from pdr_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

DATABASE_URL_ENV_VARS = ("PDR_DATABASE_URL", "DATABASE_URL")
DEFAULT_DATABASE_URL = "sqlite://"

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def database_url_from_env(default: str = DEFAULT_DATABASE_URL) -> str:
    """``$PDR_DATABASE_URL``, else ``$DATABASE_URL``, else ``default``."""
    for name in DATABASE_URL_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return default


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _postgres_options(pool_size: int, max_overflow: int) -> dict[str, Any]:
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def _sqlite_options(url: URL) -> dict[str, Any]:
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if _is_memory_sqlite(url):
        options["poolclass"] = StaticPool
    return options


def _install_sqlite_savepoint_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    A second call replaces the first; the old engine is not disposed, so
    call ``reset_engine()`` first when switching databases.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    sqlite = url.get_backend_name() == "sqlite"
    options = _sqlite_options(url) if sqlite else _postgres_options(pool_size, max_overflow)

    _engine = create_engine(url, echo=echo, **options)
    if sqlite:
        _install_sqlite_savepoint_hooks(_engine)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "database": url.render_as_string(hide_password=True),
            "pool_size": None if sqlite else pool_size,
        },
    )
    return _engine


def _require_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_engine() -> Engine:
    return _require_engine()


def get_session() -> Session:
    _require_engine()
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One request, one transaction: commit on success, roll back and re-raise
    on any exception.  Services inside only flush.

    Usage:
        with session_scope() as session:
            PDRWorkflowService(session, clock).execute(
                pdr_id, PDRAction.SUBMIT_FOR_REVIEW, actor
            )
    """
    session = get_session()
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
    from pdr_kernel.db.base import Base
    import pdr_kernel.models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(_require_engine())


def drop_tables() -> None:
    """Drop every PDR table.  Tests and local resets only."""
    from pdr_kernel.db.base import Base
    import pdr_kernel.models  # noqa: F401

    Base.metadata.drop_all(_require_engine())


def reset_engine() -> None:
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()

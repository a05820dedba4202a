"""
Engine and session handling for the order store.

One process-wide engine is configured with ``init_engine_from_url``.  Work
is done inside ``session_scope``, which commits on success and rolls back
on any exception before re-raising it.  In-memory SQLite URLs get a single
shared connection so every session sees the same tables.

Failure modes:
    - RuntimeError when the engine is used before ``init_engine_from_url``.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sales_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Create the engine and session factory, replacing any previous ones."""
    global _engine, _session_factory

    reset_engine()
    options: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        options["pool_pre_ping"] = True

    _engine = create_engine(database_url, **options)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database engine not initialized; call init_engine_from_url()")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized; call init_engine_from_url()")
    return _session_factory


@contextmanager
def session_scope(session_factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """One transaction: commit on success, roll back and re-raise on error."""
    session = (session_factory or get_session_factory())()
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
    """Create the order store tables on the configured engine."""
    from sales_kernel.db.base import Base

    # Registers the order-entry tables on Base.metadata.
    import sales_modules.order_entry.orm  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from sales_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None

# app/database.py
import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Process-scoped connection pool.
#
# The engine is created once by init_engine() (called from the app
# lifespan, or by tests) and handed out through get_session().
# Nothing connects at import time.
#
# Postgres:
#   - sslmode=require is appended unless already present
#   - pool_pre_ping=True validates connections before use
#
# SQLite (tests / local dev):
#   - in-memory URLs share a single connection (StaticPool)
#   - pysqlite's implicit transaction handling is disabled so that
#     BEGIN / SAVEPOINT / ROLLBACK behave like a real server
# ---------------------------------------------------------

_engine: Engine | None = None


def _with_sslmode(db_url: str) -> str:
    if "sslmode=" in db_url:
        return db_url
    separator = "&" if "?" in db_url else "?"
    return f"{db_url}{separator}sslmode=require"


def _enable_sqlite_transactions(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine(database_url: str | None = None) -> Engine:
    """
    Create (or replace) the process-wide engine.

    Args:
        database_url: overrides settings.DATABASE_URL (used by tests).

    Returns:
        The new Engine.
    """
    global _engine

    settings = get_settings()
    db_url = database_url or settings.DATABASE_URL

    if db_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(db_url, echo=False, **kwargs)
        _enable_sqlite_transactions(engine)
    else:
        if settings.DATABASE_SSL_REQUIRED and db_url.startswith("postgres"):
            db_url = _with_sslmode(db_url)
        engine = create_engine(
            db_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
        )

    if _engine is not None:
        _engine.dispose()
    _engine = engine
    return engine


def get_engine() -> Engine:
    """Return the initialised engine, or raise if init_engine() was never called."""
    if _engine is None:
        raise RuntimeError("Database engine is not initialised; call init_engine() first.")
    return _engine


def create_db_and_tables(engine: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    # Register every table on the metadata before create_all()
    from app.models import address, cart, order, product, token, user  # noqa: F401

    SQLModel.metadata.create_all(engine or get_engine())


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    The session borrows one pooled connection for the whole request and
    gives it back on every exit path. Uncommitted work is rolled back
    when the session closes.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(get_engine()) as session:
        yield session

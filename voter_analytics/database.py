from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from .config import settings

logger = logging.getLogger(__name__)


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_postgres(database_url: str) -> bool:
    return database_url.startswith("postgresql")


def _is_sqlite_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def _ensure_sqlite_dir(database_url: str) -> None:
    """
    Ensure the parent folder exists for SQLite file-based DB URLs like:
      sqlite:///./data/voter_analytics.sqlite
      sqlite:////absolute/path/to/db.sqlite
    """
    if not database_url.startswith("sqlite:///") or _is_sqlite_memory(database_url):
        return

    path = database_url.replace("sqlite:///", "", 1)
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def _sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()


def _apply_statement_timeout(dbapi_connection) -> None:
    """
    statement_timeout keeps a runaway aggregation from pinning a connection.
    Some poolers reject SET on connect; the connection is still usable then.
    """
    try:
        cursor = dbapi_connection.cursor()
        cursor.execute("SET statement_timeout = 30000;")
        cursor.close()
    except Exception as e:
        logger.warning("could not set statement_timeout: %s", e)


def _postgres_session_settings(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_postgres_settings(dbapi_connection, connection_record):
        _apply_statement_timeout(dbapi_connection)


def build_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    - SQLite gets pragmas + check_same_thread=False for FastAPI's threadpool
    - In-memory SQLite shares one connection (StaticPool) so every session sees the same tables
    - Postgres works by just changing DATABASE_URL
    """
    if _is_sqlite(database_url):
        _ensure_sqlite_dir(database_url)

    connect_args = {"check_same_thread": False} if _is_sqlite(database_url) else {}
    kwargs = {}
    if _is_sqlite_memory(database_url):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(
        database_url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
        **kwargs,
    )

    if _is_sqlite(database_url) and not _is_sqlite_memory(database_url):
        _sqlite_pragmas(engine)

    if _is_postgres(database_url):
        _postgres_session_settings(engine)

    return engine


def get_engine() -> Engine:
    return build_engine(settings.resolved_database_url)


# Single, shared engine for the app process
engine: Engine = get_engine()


def register_models() -> None:
    """
    Central place to import ALL models so SQLModel registers them.
    """
    from .models.voter_contact import VoterContactRecord  # noqa: F401
    from .models.upload_run import UploadRun  # noqa: F401


def init_db(create_tables: bool = True, bind: Engine | None = None) -> None:
    """
    Register models, then create missing tables.
    Non-destructive: create_all will not drop or alter existing tables.
    """
    register_models()
    if create_tables:
        SQLModel.metadata.create_all(bind or engine)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency:
        def route(db: Session = Depends(get_db)):
            ...
    Ensures the session is closed after each request.
    """
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Context manager for scripts/jobs that need commit/rollback safety.

    Usage:
        with session_scope() as db:
            db.add(...)
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

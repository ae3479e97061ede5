# backend/immotep/db/db_connection.py
"""Engine / session factory for the batch jobs (PostgreSQL or SQLite)."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from immotep.core.errors import ConfigError, StorageError
from immotep.core.settings import Settings, get_settings
from immotep.db.orm_registry import Base, import_all_models

LOGGER = logging.getLogger(__name__)


def make_engine(url: Optional[str] = None, *, settings: Optional[Settings] = None) -> Engine:
    """
    Build a sync engine and check the connection once.
    Raises StorageError when the database cannot be reached (fatal for the run).
    """
    if url is None:
        url = (settings or get_settings()).SYNC_DATABASE_URL
    if not url:
        raise ConfigError("SYNC_DATABASE_URL is not set. Check your .env.")

    engine = create_engine(url, echo=False, future=True, pool_pre_ping=True)

    if engine.dialect.name == "postgresql":
        # pin search_path on connect
        @event.listens_for(engine, "connect")
        def _set_search_path(dbapi_conn, conn_record):
            with dbapi_conn.cursor() as cur:
                cur.execute("SET search_path TO public")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        engine.dispose()
        raise StorageError(f"cannot connect to database ({engine.url.render_as_string(hide_password=True)}): {e}") from e

    LOGGER.info("connected to %s", engine.url.render_as_string(hide_password=True))
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(engine: Engine) -> None:
    """Create missing tables (no-op for tables that already exist)."""
    import_all_models()
    Base.metadata.create_all(engine)


def open_database(settings: Optional[Settings] = None) -> sessionmaker:
    """Engine + missing tables + session factory, the usual script prologue."""
    engine = make_engine(settings=settings)
    init_db(engine)
    return make_session_factory(engine)


__all__ = ["init_db", "make_engine", "make_session_factory", "open_database"]

"""
Database Session Management Module.

This module builds the SQLAlchemy engine and session factory used by the
catalog. Nothing here is created at import time: the application lifespan
calls ``create_db_engine`` with the configured URL and hands the resulting
session factory to ``Catalog``.

Key features:
- SQLite engines are made usable from the request threadpool
- Foreign keys and WAL journaling are switched on for SQLite files
- Connections are checked before use for server databases
"""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the catalog database.

    For file-backed SQLite the parent directory is created, since the driver
    only creates the database file itself.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Engine: The configured engine
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True, echo=echo)

    kwargs = {"connect_args": {"check_same_thread": False}, "echo": echo}
    in_memory = url.database in (None, "", ":memory:")
    if in_memory:
        # a single shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    else:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a sessionmaker bound to the given engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine
    )

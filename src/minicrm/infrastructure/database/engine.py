"""Database engine setup for SQLite with WAL mode and a bounded pool.

SQLite is the persistence layer: WAL mode for concurrent readers, ACID
transactions for data integrity, declared unique constraints as the
authoritative uniqueness guard.

SQLAlchemy Core (not ORM) is used: repositories map rows to pydantic
entities explicitly, so an identity map or unit-of-work adds nothing.
The connection pool is a ``QueuePool`` capped at ``max_connections``;
callers block up to ``connection_timeout`` seconds for a free slot.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from minicrm.domain.entity import utc_now
from minicrm.infrastructure.database.migrations import current_revision, stamp_head
from minicrm.infrastructure.database.schema import SCHEMA_VERSION, metadata, system_config

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 10
DEFAULT_CONNECTION_TIMEOUT = 30.0


def create_db_engine(
    db_path: Path,
    *,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
    connection_timeout: float = DEFAULT_CONNECTION_TIMEOUT,
) -> Engine:
    """Create a pooled SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        poolclass=QueuePool,
        pool_size=max_connections,
        max_overflow=0,
        pool_timeout=connection_timeout,
        pool_pre_ping=True,
        connect_args={"timeout": connection_timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(
    db_path: Path,
    *,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
    connection_timeout: float = DEFAULT_CONNECTION_TIMEOUT,
) -> Engine:
    """Initialize the minicrm database at *db_path*.

    Creates the parent directory, all tables from :data:`schema.metadata`,
    seeds ``system_config`` with the schema version, and stamps the
    Alembic head on a fresh database.

    Safe to call again on an existing database.

    Returns the engine ready for use.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(
        db_path,
        max_connections=max_connections,
        connection_timeout=connection_timeout,
    )

    metadata.create_all(engine)
    _seed_config(engine)

    if current_revision(engine) is None:
        stamp_head(engine)

    logger.debug("Database ready at %s (pool size %d)", db_path, max_connections)
    return engine


def _seed_config(engine: Engine) -> None:
    """Insert the ``schema_version`` row if it does not exist yet."""
    with engine.begin() as conn:
        row = conn.execute(
            select(system_config.c.key).where(system_config.c.key == "schema_version")
        ).first()
        if row is None:
            conn.execute(
                insert(system_config).values(
                    key="schema_version",
                    value=SCHEMA_VERSION,
                    updated_at=utc_now().isoformat(),
                )
            )

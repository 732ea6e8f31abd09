"""Alembic migration infrastructure for minicrm.

Builds the Alembic configuration in code; there is no alembic.ini.
The migration scripts live alongside this module. Commands run on a
caller-supplied connection so they share the application's pool and
pragmas instead of opening a second engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine


def build_config(connection: Connection | None = None) -> Config:
    """Build an Alembic Config pointing at our migration scripts."""
    cfg = Config()
    cfg.set_main_option("script_location", str(Path(__file__).parent))
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


def head_revision() -> str | None:
    """The newest revision shipped with this package."""
    return ScriptDirectory.from_config(build_config()).get_current_head()


def current_revision(engine: Engine) -> str | None:
    """The revision the database is stamped at, or None if never stamped."""
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def pending_revisions(engine: Engine) -> list[dict[str, str]]:
    """Revisions between the database's current stamp and head, newest first."""
    script = ScriptDirectory.from_config(build_config())
    current = current_revision(engine)
    head = script.get_current_head()

    pending: list[dict[str, str]] = []
    if head is None or current == head:
        return pending
    for rev in script.iterate_revisions(head, current or "base"):
        pending.append({"revision": rev.revision, "description": rev.doc or ""})
    return pending


def stamp_head(engine: Engine) -> None:
    """Stamp a database as at the current head revision.

    Called by :func:`init_database` so freshly created databases start
    at the correct Alembic version without running migrations.
    """
    with engine.begin() as conn:
        command.stamp(build_config(conn), "head")


def upgrade_head(engine: Engine) -> None:
    """Apply every pending migration."""
    with engine.begin() as conn:
        command.upgrade(build_config(conn), "head")

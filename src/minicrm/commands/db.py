"""Group: database setup, migrations, and health."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from minicrm.commands._base import CrmGroup
from minicrm.infrastructure.database.migrations import (
    current_revision,
    head_revision,
    pending_revisions,
    upgrade_head,
)
from minicrm.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from minicrm.commands._context import AppContext


@click.group(
    cls=CrmGroup,
    examples="""\
  minicrm db init
  minicrm --db /tmp/crm.db db upgrade
  minicrm --json db health""",
)
def db() -> None:
    """Create, migrate and check the database."""


@db.command("init")
@click.pass_obj
def init_cmd(app: AppContext) -> None:
    """Create the database file and tables if missing."""

    def action(_warnings: list[str]) -> dict[str, Any]:
        engine = app.factory.engine
        return {"path": str(app.factory.db_path), "revision": current_revision(engine)}

    app.run("init_database", action)


@db.command("upgrade")
@click.pass_obj
def upgrade(app: AppContext) -> None:
    """Apply pending schema migrations."""

    def action(_warnings: list[str]) -> dict[str, Any]:
        engine = app.factory.engine
        pending = pending_revisions(engine)
        if pending:
            upgrade_head(engine)
        return {
            "applied_count": len(pending),
            "current": current_revision(engine),
            "head": head_revision(),
        }

    app.run("upgrade_database", action)


@db.command("health")
@click.pass_obj
def health(app: AppContext) -> None:
    """Check connectivity, schema and pool usage. Exits 1 when unhealthy."""
    report = app.factory.health()
    data = report.to_dict()
    if report.healthy:
        app.emit(ServiceResult(ok=True, op="check_health", data=data))
        return
    error = ServiceError(
        code="UNHEALTHY",
        message="Database health check failed",
        detail={"failed": [c.name for c in report.checks if not c.passed]},
    )
    app.emit(ServiceResult(ok=False, op="check_health", data=data, error=error))

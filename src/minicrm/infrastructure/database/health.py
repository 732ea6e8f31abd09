"""Database health checks: connectivity, schema presence, pool utilization."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from minicrm.domain.entity import utc_now
from minicrm.infrastructure.database.schema import ENTITY_TABLES

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolStats:
    """Snapshot of the connection pool."""

    max_connections: int
    checked_out: int
    idle: int

    @property
    def utilization(self) -> float:
        """Checked-out share of the pool, as a percentage."""
        if self.max_connections <= 0:
            return 0.0
        return round(self.checked_out / self.max_connections * 100, 1)


@dataclass(frozen=True)
class HealthCheck:
    name: str
    passed: bool
    duration_ms: float
    error: str | None = None


@dataclass(frozen=True)
class HealthReport:
    """Aggregate result of :func:`check_health`."""

    healthy: bool
    timestamp: str
    response_time_ms: float
    pool: PoolStats
    checks: list[HealthCheck] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["pool"]["utilization"] = self.pool.utilization
        return data


def pool_stats(engine: Engine) -> PoolStats:
    """Read pool counters; non-queue pools report zeros."""
    pool: Any = engine.pool
    size = pool.size() if hasattr(pool, "size") else 0
    checked_out = pool.checkedout() if hasattr(pool, "checkedout") else 0
    idle = pool.checkedin() if hasattr(pool, "checkedin") else 0
    return PoolStats(max_connections=size, checked_out=checked_out, idle=idle)


class MissingTablesError(Exception):
    """The database lacks tables the repositories need."""


def _timed_check(name: str, fn: Any) -> HealthCheck:
    start = time.perf_counter()
    error: str | None = None
    try:
        fn()
    except MissingTablesError as exc:
        error = str(exc)
        logger.warning("Health check %s failed: %s", name, error)
    except SQLAlchemyError as exc:
        # Driver text stays in the log.
        logger.warning("Health check %s failed: %s", name, exc)
        error = type(exc).__name__
    return HealthCheck(
        name=name,
        passed=error is None,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
        error=error,
    )


def check_health(engine: Engine) -> HealthReport:
    """Run connectivity and schema checks against *engine*."""
    start = time.perf_counter()

    def _connectivity() -> None:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).scalar_one()

    def _schema() -> None:
        present = set(inspect(engine).get_table_names())
        missing = [name for name in ENTITY_TABLES if name not in present]
        if missing:
            msg = f"missing tables: {missing}"
            raise MissingTablesError(msg)

    checks = [_timed_check("connectivity", _connectivity), _timed_check("schema", _schema)]
    failed = [c for c in checks if not c.passed]

    return HealthReport(
        healthy=not failed,
        timestamp=utc_now().isoformat(),
        response_time_ms=round((time.perf_counter() - start) * 1000, 2),
        pool=pool_stats(engine),
        checks=checks,
        error=", ".join(f"{c.name}: {c.error}" for c in failed) or None,
    )

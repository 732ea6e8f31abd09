"""SQLite database engine, schema, migrations, and health checks via SQLAlchemy Core."""

from minicrm.infrastructure.database.engine import create_db_engine, init_database
from minicrm.infrastructure.database.health import HealthReport, check_health
from minicrm.infrastructure.database.schema import customers, metadata, suppliers, system_config

__all__ = [
    "HealthReport",
    "check_health",
    "create_db_engine",
    "customers",
    "init_database",
    "metadata",
    "suppliers",
    "system_config",
]

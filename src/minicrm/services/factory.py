"""ServiceFactory — builds the engine, event bus, and services from settings.

The factory is the single owner of shared resources: one pooled engine,
one :class:`EventBus`, and one service per entity type. Plugins are
attached to the bus here, before any service can publish.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from minicrm.config.models import DatabaseConfig
from minicrm.events.bus import EventBus
from minicrm.infrastructure.database.engine import create_db_engine, init_database
from minicrm.infrastructure.database.health import HealthReport, check_health
from minicrm.infrastructure.repositories import CUSTOMER_MAPPING, SUPPLIER_MAPPING, Repository
from minicrm.plugins.builtins.audit import AuditLogPlugin
from minicrm.plugins.manager import PluginManager
from minicrm.services.customers import CustomerService
from minicrm.services.suppliers import SupplierService

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from minicrm.config.settings import CrmSettings
    from minicrm.services.base import LevelStrategy

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Owns the engine and bus; hands out services that share them.

    Parameters:
        settings: Source of the database location, pool size, timeout and
            event policy. Keyword arguments below override it.
        db_path: Database file; required when *settings* is None.
        initialize: Create tables and stamp migrations on first use.
        load_plugins: Discover ``minicrm.plugins`` entry points and
            register the built-in audit plugin.
    """

    def __init__(
        self,
        settings: CrmSettings | None = None,
        *,
        db_path: Path | None = None,
        max_connections: int | None = None,
        connection_timeout: float | None = None,
        strict_events: bool | None = None,
        initialize: bool = True,
        load_plugins: bool = True,
    ) -> None:
        if db_path is not None:
            self._db_path = Path(db_path)
        elif settings is not None:
            self._db_path = settings.db_path
        else:
            msg = "ServiceFactory needs settings or db_path"
            raise ValueError(msg)

        base = settings.database if settings is not None else DatabaseConfig()
        overrides = {
            key: value
            for key, value in (
                ("max_connections", max_connections),
                ("connection_timeout", connection_timeout),
            )
            if value is not None
        }
        # Explicit overrides obey the same bounds as config values.
        database = DatabaseConfig.model_validate({**base.model_dump(), **overrides})
        self._max_connections = database.max_connections
        self._connection_timeout = database.connection_timeout
        if strict_events is None:
            strict_events = settings.events.strict if settings is not None else False

        self._initialize = initialize
        self._engine: Engine | None = None
        self._bus = EventBus(strict=strict_events)
        self._plugins = PluginManager()
        self._plugin_failures: list[str] = []
        self._customers: CustomerService | None = None
        self._suppliers: SupplierService | None = None

        if load_plugins:
            self._load_plugins()

    # ── Shared resources ─────────────────────────────────────────────

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def plugins(self) -> PluginManager:
        return self._plugins

    @property
    def plugin_failures(self) -> list[str]:
        """Plugins that failed to register their handlers."""
        return list(self._plugin_failures)

    @property
    def engine(self) -> Engine:
        """Pooled engine, created lazily on first access."""
        if self._engine is None:
            if self._initialize:
                self._engine = init_database(
                    self._db_path,
                    max_connections=self._max_connections,
                    connection_timeout=self._connection_timeout,
                )
            else:
                self._engine = create_db_engine(
                    self._db_path,
                    max_connections=self._max_connections,
                    connection_timeout=self._connection_timeout,
                )
        return self._engine

    # ── Services ─────────────────────────────────────────────────────

    def customers(self, *, level_strategy: LevelStrategy | None = None) -> CustomerService:
        """The customer service. A *level_strategy* builds a fresh, unshared instance."""
        if level_strategy is not None:
            return CustomerService(
                Repository(self.engine, CUSTOMER_MAPPING), self._bus, level_strategy=level_strategy
            )
        if self._customers is None:
            self._customers = CustomerService(Repository(self.engine, CUSTOMER_MAPPING), self._bus)
        return self._customers

    def suppliers(self, *, level_strategy: LevelStrategy | None = None) -> SupplierService:
        """The supplier service. A *level_strategy* builds a fresh, unshared instance."""
        if level_strategy is not None:
            return SupplierService(
                Repository(self.engine, SUPPLIER_MAPPING), self._bus, level_strategy=level_strategy
            )
        if self._suppliers is None:
            self._suppliers = SupplierService(Repository(self.engine, SUPPLIER_MAPPING), self._bus)
        return self._suppliers

    def health(self) -> HealthReport:
        return check_health(self.engine)

    # ── Lifecycle ────────────────────────────────────────────────────

    def close(self) -> None:
        """Dispose of the pool. Services handed out earlier must not be used afterwards."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._customers = None
        self._suppliers = None

    def __enter__(self) -> ServiceFactory:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _load_plugins(self) -> None:
        try:
            self._plugins.discover_and_load()
        except Exception:
            logger.warning("Plugin discovery failed", exc_info=True)
        self._plugins.register_plugin(AuditLogPlugin(), name="audit")
        self._plugin_failures = self._plugins.attach(self._bus)

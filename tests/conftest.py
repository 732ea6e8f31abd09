"""Shared pytest fixtures and test helpers for minicrm tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from minicrm.domain.entities import Customer, Supplier
from minicrm.events.bus import EventBus
from minicrm.infrastructure.database.engine import init_database
from minicrm.infrastructure.repositories import CUSTOMER_MAPPING, SUPPLIER_MAPPING, Repository
from minicrm.services.customers import CustomerService
from minicrm.services.factory import ServiceFactory
from minicrm.services.suppliers import SupplierService


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "crm.db"


@pytest.fixture
def db_engine(db_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(db_path, max_connections=4, connection_timeout=2)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def customer_repo(db_engine: Engine) -> Repository[Customer]:
    return Repository(db_engine, CUSTOMER_MAPPING)


@pytest.fixture
def supplier_repo(db_engine: Engine) -> Repository[Supplier]:
    return Repository(db_engine, SUPPLIER_MAPPING)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def customers(customer_repo: Repository[Customer], bus: EventBus) -> CustomerService:
    return CustomerService(customer_repo, bus)


@pytest.fixture
def suppliers(supplier_repo: Repository[Supplier], bus: EventBus) -> SupplierService:
    return SupplierService(supplier_repo, bus)


@pytest.fixture
def factory(db_path: Path) -> Iterator[ServiceFactory]:
    """Factory on a temp database, without entry-point plugin discovery."""
    f = ServiceFactory(
        db_path=db_path, max_connections=4, connection_timeout=2, load_plugins=False
    )
    try:
        yield f
    finally:
        f.close()


@pytest.fixture
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run in a temp directory with no minicrm config or env overrides.

    Use via ``@pytest.mark.usefixtures("_isolated_cwd")`` on command test classes.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MINICRM_CONFIG", raising=False)
    monkeypatch.delenv("MINICRM_DATABASE__PATH", raising=False)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_customer(name: str = "Acme", **kwargs: Any) -> Customer:
    """An unsaved customer with a valid phone unless one is given."""
    kwargs.setdefault("phone", "13800138000")
    return Customer(name=name, **kwargs)


def make_supplier(name: str = "Parts Co", **kwargs: Any) -> Supplier:
    kwargs.setdefault("phone", "010-12345678")
    return Supplier(name=name, **kwargs)


class Recorder:
    """Event handler that remembers every event it receives."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]

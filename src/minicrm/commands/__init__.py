"""Subcommand modules for minicrm.

Provides register_commands() which attaches the entity groups and the
``db`` group to the root CLI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from minicrm.commands._entity import build_entity_group
from minicrm.commands.db import db
from minicrm.domain.entities import Customer, Supplier
from minicrm.domain.levels import CUSTOMER_LADDER, SUPPLIER_LADDER

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups on the root CLI group."""
    cli.add_command(
        build_entity_group(
            "customer",
            entity_cls=Customer,
            ladder=CUSTOMER_LADDER,
            service=lambda factory: factory.customers(),
        )
    )
    cli.add_command(
        build_entity_group(
            "supplier",
            entity_cls=Supplier,
            ladder=SUPPLIER_LADDER,
            service=lambda factory: factory.suppliers(),
        )
    )
    cli.add_command(db)

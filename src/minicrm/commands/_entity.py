"""Command group builder shared by ``minicrm customer`` and ``minicrm supplier``.

Both groups expose the same subcommands; what differs is the entity
class, its level tiers, and which service the factory hands out.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from minicrm.commands._base import CrmGroup
from minicrm.domain.search import MAX_PAGE_SIZE, SearchQuery, SortOrder
from minicrm.infrastructure.repositories.mappings import PARTY_KEYWORD_COLUMNS

if TYPE_CHECKING:
    from minicrm.commands._context import AppContext
    from minicrm.domain.entity import Entity
    from minicrm.domain.levels import LevelLadder
    from minicrm.services.base import EntityService
    from minicrm.services.factory import ServiceFactory

SORT_FIELDS = ("id", *PARTY_KEYWORD_COLUMNS, "level", "created_at", "updated_at")
EDITABLE_FIELDS = ("name", "contact_person", "phone", "email", "address")


def _as_data(entity: Entity) -> dict[str, Any]:
    return entity.model_dump(mode="json")


def _party_options(*, required_name: bool) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Shared --name/--contact/--phone/--email/--address options."""

    def decorate(fn: Callable[..., Any]) -> Callable[..., Any]:
        for option in reversed(
            [
                click.option("--name", required=required_name, default=None, help="Display name."),
                click.option("--contact", "contact_person", default=None, help="Contact person."),
                click.option("--phone", default=None, help="Mobile or landline number."),
                click.option("--email", default=None, help="Email address."),
                click.option("--address", default=None, help="Postal address."),
            ]
        ):
            fn = option(fn)
        return fn

    return decorate


def build_entity_group(
    name: str,
    *,
    entity_cls: type[Entity],
    ladder: LevelLadder,
    service: Callable[[ServiceFactory], EntityService[Any]],
) -> click.Group:
    """Build the ``create/show/update/delete/search/level/stats`` group for one entity type."""
    level_choice = click.Choice([str(tier) for tier in ladder.tiers])

    @click.group(
        name,
        cls=CrmGroup,
        help=f"Manage {entity_cls.entity_name}.",
        examples=f"""\
  minicrm {name} create --name "Acme" --phone 13800138000 --email ops@acme.example
  minicrm {name} search acme --level {ladder.initial}
  minicrm {name} level 1 {ladder.top}
  minicrm --json {name} show 1""",
    )
    def group() -> None:
        pass

    @group.command("create")
    @_party_options(required_name=True)
    @click.option("--level", type=level_choice, default=None, help="Initial level.")
    @click.pass_obj
    def create(app: AppContext, level: str | None, **fields: Any) -> None:
        """Create a record."""

        def action(warnings: list[str]) -> dict[str, Any]:
            entity = entity_cls(**{k: v for k, v in fields.items() if v is not None}, level=level)
            return _as_data(service(app.factory).create(entity, warnings=warnings))

        app.run(f"create_{name}", action)

    @group.command("show")
    @click.argument("entity_id", type=int)
    @click.pass_obj
    def show(app: AppContext, entity_id: int) -> None:
        """Show one record."""
        app.run(f"show_{name}", lambda _w: _as_data(service(app.factory).get(entity_id)))

    @group.command("update")
    @click.argument("entity_id", type=int)
    @_party_options(required_name=False)
    @click.pass_obj
    def update(app: AppContext, entity_id: int, **fields: Any) -> None:
        """Change contact details. Use ``level`` to change the tier."""
        changes = {k: v for k, v in fields.items() if v is not None}
        if not changes:
            click.echo("No changes specified. Use --help for options.", err=True)
            raise SystemExit(1)

        def action(warnings: list[str]) -> dict[str, Any]:
            svc = service(app.factory)
            entity = svc.get(entity_id).with_changes(changes)
            data = _as_data(svc.update(entity, warnings=warnings))
            data["fields_changed"] = sorted(changes)
            return data

        app.run(f"update_{name}", action)

    @group.command("delete")
    @click.argument("entity_id", type=int)
    @click.confirmation_option(prompt="Delete this record permanently?")
    @click.pass_obj
    def delete(app: AppContext, entity_id: int) -> None:
        """Delete a record permanently."""

        def action(warnings: list[str]) -> dict[str, Any]:
            service(app.factory).delete(entity_id, warnings=warnings)
            return {"id": entity_id, "deleted": True}

        app.run(f"delete_{name}", action)

    @group.command("search")
    @click.argument("keyword", required=False)
    @click.option(
        "--level", type=level_choice, multiple=True, help="Filter by level (repeatable)."
    )
    @click.option("--sort", "sort_field", type=click.Choice(SORT_FIELDS), default=None)
    @click.option("--desc", is_flag=True, help="Sort descending.")
    @click.option("--page", type=click.IntRange(min=1), default=1, help="1-based page number.")
    @click.option("--page-size", type=click.IntRange(1, MAX_PAGE_SIZE), default=None)
    @click.pass_obj
    def search(
        app: AppContext,
        keyword: str | None,
        level: tuple[str, ...],
        sort_field: str | None,
        desc: bool,
        page: int,
        page_size: int | None,
    ) -> None:
        """Search by keyword over name, contact, phone and email."""
        search_cfg = app.settings.search
        size = min(page_size or search_cfg.default_page_size, search_cfg.max_page_size)

        def action(_warnings: list[str]) -> dict[str, Any]:
            filters: dict[str, Any] = {}
            if level:
                filters["level"] = list(level)
            query = SearchQuery(
                keyword=keyword,
                filters=filters,
                sort_field=sort_field,
                sort_order=SortOrder.DESC if desc else SortOrder.ASC,
                page=page - 1,
                page_size=size,
            )
            result = service(app.factory).search(query)
            return {
                "items": [_as_data(e) for e in result.items],
                "total_count": result.total_count,
                "page": result.page,
                "page_size": result.page_size,
                "total_pages": result.total_pages,
                "has_next": result.has_next,
                "has_previous": result.has_previous,
            }

        app.run(f"search_{name}", action)

    @group.command("level")
    @click.argument("entity_id", type=int)
    @click.argument("level", type=level_choice)
    @click.pass_obj
    def change_level(app: AppContext, entity_id: int, level: str) -> None:
        """Upgrade a record to a higher level."""

        def action(warnings: list[str]) -> dict[str, Any]:
            return _as_data(service(app.factory).change_level(entity_id, level, warnings=warnings))

        app.run(f"level_{name}", action)

    @group.command("stats")
    @click.pass_obj
    def stats(app: AppContext) -> None:
        """Totals per level and new records this month."""
        app.run(f"stats_{name}", lambda _w: service(app.factory).statistics().to_dict())

    return group

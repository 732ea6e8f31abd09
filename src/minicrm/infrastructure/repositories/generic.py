"""Generic repository — CRUD, search, and count for one entity type.

A single :class:`Repository` implementation serves every entity type.
What differs per type is supplied explicitly at construction through an
:class:`EntityMapping`: the table, the entity class, and the functions
that convert between entities and rows. No SQL is generated by
reflection and no value is ever interpolated into statement text; every
filter and keyword is a bound parameter.

Each write runs in its own ``engine.begin()`` transaction, so a failure
rolls back with no partial row. Driver errors are wrapped into the
:mod:`minicrm.domain.errors` taxonomy with the failing operation named.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import Table, and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from minicrm.domain.entity import Entity
from minicrm.domain.errors import (
    ConflictError,
    FieldViolation,
    IdentityError,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    ValidationError,
)
from minicrm.domain.search import Range, SearchQuery, SearchResult, SortOrder

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Connection
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

_UNIQUE_FAILED = re.compile(r"UNIQUE constraint failed: (?P<cols>[\w., ]+)")
_LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class EntityMapping(Generic[E]):
    """How one entity type maps onto its table.

    Attributes:
        table: The SQLAlchemy Core table holding the rows.
        entity_cls: The entity class rows are converted into.
        to_row: Entity -> column values (including ``id``, which inserts drop).
        from_row: Row mapping -> entity.
        keyword_columns: Text columns searched by ``SearchQuery.keyword``.
    """

    table: Table
    entity_cls: type[E]
    to_row: Callable[[E], dict[str, Any]]
    from_row: Callable[[Mapping[str, Any]], E]
    keyword_columns: tuple[str, ...]

    def __post_init__(self) -> None:
        if self.table.name != self.entity_cls.entity_name:
            msg = (
                f"Table {self.table.name!r} does not match entity "
                f"{self.entity_cls.__name__}.entity_name={self.entity_cls.entity_name!r}"
            )
            raise ValueError(msg)
        unknown = [c for c in self.keyword_columns if c not in self.table.c]
        if unknown:
            msg = f"Keyword columns not in {self.table.name}: {unknown}"
            raise ValueError(msg)

    @property
    def entity_name(self) -> str:
        return self.entity_cls.entity_name


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def _bind_value(value: Any) -> Any:
    """Convert a filter value to its stored representation."""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class Repository(Generic[E]):
    """Persistence gateway for one entity type."""

    def __init__(self, engine: Engine, mapping: EntityMapping[E]) -> None:
        self._engine = engine
        self._mapping = mapping
        self._table = mapping.table

    @property
    def entity_name(self) -> str:
        return self._mapping.entity_name

    @property
    def mapping(self) -> EntityMapping[E]:
        return self._mapping

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, entity: E) -> E:
        """Insert a new row and assign the generated id onto *entity*.

        Raises:
            IdentityError: If *entity* already has an id.
            ConflictError: If a storage unique constraint rejects the row.
            StorageConnectionError: If no pooled connection is available.
        """
        if entity.id is not None:
            msg = f"create() needs a new {self.entity_name}; got id {entity.id}"
            raise IdentityError(msg)

        values = self._mapping.to_row(entity)
        values.pop("id", None)

        with self._connect("create", write=True, entity=entity) as conn:
            result = conn.execute(insert(self._table).values(**values))
            new_id = result.inserted_primary_key[0]

        entity.set_id(int(new_id))
        logger.debug("Created %s id=%s", self.entity_name, new_id)
        return entity

    def find_by_id(self, entity_id: int) -> E | None:
        """Return the entity with *entity_id*, or None. Absence is not an error."""
        stmt = select(self._table).where(self._table.c.id == entity_id)
        with self._connect("find_by_id") as conn:
            row = conn.execute(stmt).mappings().first()
        return self._mapping.from_row(row) if row is not None else None

    def find_all(self) -> list[E]:
        """Every row, in insertion order. Meant for small reference tables."""
        stmt = select(self._table).order_by(self._table.c.id)
        with self._connect("find_all") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [self._mapping.from_row(row) for row in rows]

    def update(self, entity: E) -> E:
        """Replace the stored row's mutable fields and refresh ``updated_at``.

        On failure ``updated_at`` is restored, leaving *entity* as it was.

        Raises:
            IdentityError: If *entity* has no id.
            NotFoundError: If no row with that id exists.
            ConflictError: If a storage unique constraint rejects the row.
        """
        if entity.id is None:
            msg = f"update() needs a persisted {self.entity_name}; id is None"
            raise IdentityError(msg)

        previous = entity.updated_at
        entity.touch()
        values = self._mapping.to_row(entity)
        values.pop("id", None)
        values.pop("created_at", None)

        try:
            with self._connect("update", write=True, entity=entity) as conn:
                result = conn.execute(
                    update(self._table).where(self._table.c.id == entity.id).values(**values)
                )
                if result.rowcount == 0:
                    raise NotFoundError(self.entity_name, entity.id)
        except Exception:
            entity.updated_at = previous
            raise

        logger.debug("Updated %s id=%s", self.entity_name, entity.id)
        return entity

    def delete(self, entity_id: int) -> None:
        """Remove the row irreversibly. No cascade is performed here.

        Raises:
            NotFoundError: If no row with *entity_id* exists.
        """
        with self._connect("delete", write=True) as conn:
            result = conn.execute(delete(self._table).where(self._table.c.id == entity_id))
            if result.rowcount == 0:
                raise NotFoundError(self.entity_name, entity_id)
        logger.debug("Deleted %s id=%s", self.entity_name, entity_id)

    # ------------------------------------------------------------------
    # Search / count
    # ------------------------------------------------------------------

    def search(self, query: SearchQuery) -> SearchResult[E]:
        """Run keyword + filters, then sort and paginate.

        Keyword: case-insensitive substring over the mapping's keyword
        columns, OR-ed. Filters: AND-ed with the keyword and each other.
        Default order is newest id first. ``total_count`` ignores paging.

        Raises:
            ValidationError: If a filter or sort field is not a column.
        """
        clauses = self._where(query)

        count_stmt = select(func.count()).select_from(self._table).where(*clauses)
        page_stmt = (
            select(self._table)
            .where(*clauses)
            .order_by(*self._order_by(query))
            .limit(query.page_size)
            .offset(query.offset)
        )

        with self._connect("search") as conn:
            total = int(conn.execute(count_stmt).scalar_one())
            rows = conn.execute(page_stmt).mappings().all()

        return SearchResult(
            items=[self._mapping.from_row(row) for row in rows],
            total_count=total,
            page=query.page,
            page_size=query.page_size,
        )

    def count(self) -> int:
        """Total rows for this entity type, ignoring any query."""
        stmt = select(func.count()).select_from(self._table)
        with self._connect("count") as conn:
            return int(conn.execute(stmt).scalar_one())

    # ------------------------------------------------------------------
    # Supplemental reads (uniqueness probes, statistics)
    # ------------------------------------------------------------------

    def find_by(self, column: str, value: Any) -> list[E]:
        """Rows whose *column* equals *value*, in id order."""
        col = self._column(column, "field")
        stmt = select(self._table).where(col == _bind_value(value)).order_by(self._table.c.id)
        with self._connect("find_by") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [self._mapping.from_row(row) for row in rows]

    def exists(self, column: str, value: Any, *, exclude_id: int | None = None) -> bool:
        """Whether another row already holds *value* in *column*."""
        col = self._column(column, "field")
        stmt = select(self._table.c.id).where(col == _bind_value(value))
        if exclude_id is not None:
            stmt = stmt.where(self._table.c.id != exclude_id)
        with self._connect("exists") as conn:
            return conn.execute(stmt.limit(1)).first() is not None

    def count_grouped(self, column: str) -> dict[str, int]:
        """Row counts per distinct value of *column*."""
        col = self._column(column, "field")
        stmt = select(col, func.count()).group_by(col)
        with self._connect("count_grouped") as conn:
            rows = conn.execute(stmt).all()
        return {str(value): int(n) for value, n in rows}

    def count_created_since(self, since: datetime) -> int:
        """Rows whose ``created_at`` is at or after *since*."""
        stmt = (
            select(func.count())
            .select_from(self._table)
            .where(self._table.c.created_at >= since.isoformat())
        )
        with self._connect("count_created_since") as conn:
            return int(conn.execute(stmt).scalar_one())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _column(self, name: str, role: str) -> Any:
        column = self._table.c.get(name)
        if column is None:
            raise ValidationError(
                [FieldViolation(field=name, message=f"Unknown {role} for {self.entity_name}")]
            )
        return column

    def _where(self, query: SearchQuery) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if query.keyword:
            pattern = f"%{escape_like(query.keyword)}%"
            clauses.append(
                or_(
                    *(
                        self._table.c[name].ilike(pattern, escape=_LIKE_ESCAPE)
                        for name in self._mapping.keyword_columns
                    )
                )
            )
        for name, value in query.filters.items():
            clauses.append(self._filter_clause(self._column(name, "filter field"), value))
        return clauses

    @staticmethod
    def _filter_clause(column: Any, value: Any) -> ColumnElement[bool]:
        if value is None:
            return column.is_(None)
        if isinstance(value, Range):
            bounds = []
            if value.start is not None:
                bounds.append(column >= _bind_value(value.start))
            if value.end is not None:
                bounds.append(column <= _bind_value(value.end))
            return and_(*bounds)
        if isinstance(value, (list, tuple, set, frozenset)):
            return column.in_([_bind_value(v) for v in value])
        return column == _bind_value(value)

    def _order_by(self, query: SearchQuery) -> list[Any]:
        id_col = self._table.c.id
        if query.sort_field is None:
            return [id_col.desc()]
        col = self._column(query.sort_field, "sort field")
        primary = col.desc() if query.sort_order is SortOrder.DESC else col.asc()
        return [primary, id_col.asc()]

    @contextmanager
    def _connect(
        self,
        operation: str,
        *,
        write: bool = False,
        entity: E | None = None,
    ) -> Iterator[Connection]:
        """Yield a pooled connection, translating driver errors.

        ``write=True`` wraps the block in a transaction that commits on
        success and rolls back on any exception.
        """
        name = self.entity_name
        try:
            ctx = self._engine.begin() if write else self._engine.connect()
            with ctx as conn:
                yield conn
        except IntegrityError as exc:
            field = _conflict_field(str(exc.orig))
            if field is None:
                logger.warning("Constraint rejected %s on %s: %s", operation, name, exc.orig)
                raise StorageError(operation, name, cause=str(exc.orig)) from exc
            value = getattr(entity, field, None) if entity is not None else None
            logger.info("Unique constraint rejected %s on %s: %s", operation, name, exc.orig)
            raise ConflictError(
                operation, name, field=field, value=value, cause=str(exc.orig)
            ) from exc
        except (PoolTimeoutError, DisconnectionError) as exc:
            logger.warning("No connection for %s on %s: %s", operation, name, exc)
            raise StorageConnectionError(operation, name, cause=str(exc)) from exc
        except OperationalError as exc:
            logger.warning("Storage failure during %s on %s: %s", operation, name, exc.orig)
            if "unable to open" in str(exc.orig):
                raise StorageConnectionError(operation, name, cause=str(exc.orig)) from exc
            raise StorageError(operation, name, cause=str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            logger.warning("Storage failure during %s on %s: %s", operation, name, exc)
            raise StorageError(operation, name, cause=str(exc)) from exc


def _conflict_field(message: str) -> str | None:
    """Extract the column from ``UNIQUE constraint failed: table.column``."""
    match = _UNIQUE_FAILED.search(message)
    if match is None:
        return None
    first = match.group("cols").split(",")[0].strip()
    return first.rsplit(".", 1)[-1]

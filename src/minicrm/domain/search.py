"""Search primitives — entity-agnostic query and paginated result contracts.

``SearchQuery`` only describes *what* to match; the repository turns it
into a parameterized statement. Sorting and pagination never change
which rows match, so ``SearchResult.total_count`` is the same for every
page of one query.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

E = TypeVar("E")


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Range:
    """Inclusive bounds filter; either side may be open."""

    start: Any = None
    end: Any = None

    def __post_init__(self) -> None:
        if self.start is None and self.end is None:
            msg = "Range needs at least one bound"
            raise ValueError(msg)


class SearchQuery(BaseModel):
    """Keyword + filters + sort + page for one entity type.

    Attributes:
        keyword: Free text, matched case-insensitively as a substring.
        filters: Column name -> value. A scalar means equality, ``None``
            means IS NULL, a list/tuple/set means IN, a :class:`Range`
            means inclusive bounds.
        sort_field: Column to sort by; ``None`` sorts newest id first.
        sort_order: Direction for ``sort_field``.
        page: Zero-based page index.
        page_size: Rows per page.
    """

    model_config = ConfigDict(frozen=True)

    keyword: str | None = None
    filters: dict[str, Any] = Field(default_factory=dict)
    sort_field: str | None = None
    sort_order: SortOrder = SortOrder.ASC
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, le=MAX_PAGE_SIZE)

    @field_validator("keyword")
    @classmethod
    def _blank_keyword_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def offset(self) -> int:
        return self.page * self.page_size

    def with_filters(self, extra: Mapping[str, Any]) -> SearchQuery:
        """Return a copy with *extra* filters merged in (extra wins on key clash)."""
        return self.model_copy(update={"filters": {**self.filters, **extra}})

    def for_page(self, page: int) -> SearchQuery:
        return self.model_copy(update={"page": page})


@dataclass(frozen=True)
class SearchResult(Generic[E]):
    """One page of matches plus the unpaginated match count."""

    items: list[E] = field(default_factory=list)
    total_count: int = 0
    page: int = 0
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    def __iter__(self) -> Iterator[E]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

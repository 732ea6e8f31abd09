"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, minicrm.toml only contains overrides.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

DEFAULT_DB_PATH = Path("data") / "minicrm.db"


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    path: Path = DEFAULT_DB_PATH
    max_connections: int = Field(default=10, gt=0)
    connection_timeout: float = Field(default=30.0, gt=0)


class SearchConfig(BaseModel):
    """[search] section."""

    model_config = {"frozen": True}

    default_page_size: int = Field(default=20, gt=0)
    max_page_size: int = Field(default=100, gt=0)

    @model_validator(mode="after")
    def _default_within_max(self) -> SearchConfig:
        if self.default_page_size > self.max_page_size:
            msg = "default_page_size must not exceed max_page_size"
            raise ValueError(msg)
        return self


class EventsConfig(BaseModel):
    """[events] section."""

    model_config = {"frozen": True}

    strict: bool = False

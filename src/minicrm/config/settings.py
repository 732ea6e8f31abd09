"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``MINICRM_*`` prefix, ``__`` between nested keys
  3. TOML file    — ``minicrm.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

A relative ``database.path`` is resolved against the directory holding
the config file (or the working directory when there is none).
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from minicrm.config.discovery import find_config
from minicrm.config.models import DatabaseConfig, EventsConfig, SearchConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``minicrm.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class CrmSettings(BaseSettings):
    """Settings for the minicrm CLI and :class:`~minicrm.services.factory.ServiceFactory`.

    Attributes:
        base_dir: Directory relative database paths resolve against.
        config_path: The TOML file in use, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "MINICRM_",
        "env_nested_delimiter": "__",
    }

    base_dir: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @property
    def db_path(self) -> Path:
        """Absolute database file path."""
        path = self.database.path.expanduser()
        return path if path.is_absolute() else self.base_dir / path

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        db_path: str | None = None,
        **cli_flags: Any,
    ) -> CrmSettings:
        """Construct settings from a CLI invocation.

        Discovers ``minicrm.toml`` via walk-up (or explicit *config_path*)
        and merges CLI flags as highest-priority overrides. *db_path*
        (``--db``) replaces ``database.path`` and is taken relative to the
        working directory.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config()

        base_dir = toml_path.parent.resolve() if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            settings = cls(base_dir=base_dir, config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

        if db_path:
            database = settings.database.model_copy(update={"path": Path(db_path).resolve()})
            settings = settings.model_copy(update={"database": database})
        return settings

"""Configuration from TOML files, environment variables and CLI flags."""

from minicrm.config.settings import CrmSettings

__all__ = ["CrmSettings"]

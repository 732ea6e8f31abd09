"""minicrm — entity persistence, search, validation and event core."""

__version__ = "0.1.0"

"""Infrastructure layer: SQLite storage and generic repositories."""

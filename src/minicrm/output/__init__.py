"""Presentation helpers: Rich rendering and JSON output for ServiceResult."""

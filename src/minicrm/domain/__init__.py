"""Domain layer — entities, levels, search contracts, validation, events.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""

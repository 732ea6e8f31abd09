"""Generic entity repositories and their per-type field mappings."""

from minicrm.infrastructure.repositories.generic import EntityMapping, Repository
from minicrm.infrastructure.repositories.mappings import CUSTOMER_MAPPING, SUPPLIER_MAPPING

__all__ = ["CUSTOMER_MAPPING", "SUPPLIER_MAPPING", "EntityMapping", "Repository"]

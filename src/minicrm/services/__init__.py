"""Service layer — business operations over repositories and the event bus."""

from minicrm.services.base import EntityService, EntityStatistics, keep_level
from minicrm.services.customers import CustomerService
from minicrm.services.factory import ServiceFactory
from minicrm.services.result import ServiceError, ServiceResult, result_from_error
from minicrm.services.suppliers import SupplierService

__all__ = [
    "CustomerService",
    "EntityService",
    "EntityStatistics",
    "ServiceError",
    "ServiceFactory",
    "ServiceResult",
    "SupplierService",
    "keep_level",
    "result_from_error",
]

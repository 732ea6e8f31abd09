"""Error taxonomy for the entity core.

Every recoverable failure raised by repositories and services derives
from :class:`CrmError`. The presentation layer maps each subclass to a
distinct :class:`~minicrm.services.result.ServiceError` code.

:class:`IdentityError` is deliberately outside that family: it signals a
programming error (an id assigned twice, a new entity passed to
``update``) and should crash loudly rather than be rendered to a user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class IdentityError(RuntimeError):
    """An entity identifier was misused (reassigned, missing, or unexpected)."""


class CrmError(Exception):
    """Base class for all recoverable entity-core errors."""

    code: str = "ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def detail(self) -> dict[str, Any]:
        """Structured context for the caller (never raw storage text)."""
        return {}


@dataclass(frozen=True)
class FieldViolation:
    """A single schema-level violation on one field."""

    field: str
    message: str


class ValidationError(CrmError):
    """Schema-level violations; carries every offending field, not just the first."""

    code = "VALIDATION_FAILED"

    def __init__(self, violations: list[FieldViolation]) -> None:
        self.violations = list(violations)
        fields = ", ".join(sorted({v.field for v in self.violations}))
        super().__init__(f"Invalid value for: {fields}")

    @property
    def fields(self) -> list[str]:
        return [v.field for v in self.violations]

    def detail(self) -> dict[str, Any]:
        return {"violations": [{"field": v.field, "message": v.message} for v in self.violations]}


class BusinessRuleError(CrmError):
    """A domain-policy check failed (uniqueness, illegal level transition, ...)."""

    code = "BUSINESS_RULE"

    def __init__(
        self,
        rule: str,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.rule = rule
        self.field = field
        self.value = value

    def detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"rule": self.rule}
        if self.field is not None:
            detail["field"] = self.field
            detail["value"] = self.value
        return detail


class NotFoundError(CrmError):
    """An operation referenced an id with no stored row."""

    code = "NOT_FOUND"

    def __init__(self, entity_name: str, entity_id: Any) -> None:
        super().__init__(f"No {entity_name} found with id {entity_id}")
        self.entity_name = entity_name
        self.entity_id = entity_id

    def detail(self) -> dict[str, Any]:
        return {"entity": self.entity_name, "id": self.entity_id}


class StorageError(CrmError):
    """The store failed to complete an operation.

    ``cause`` keeps the driver's message for logs; ``message`` stays generic.
    """

    code = "STORAGE_ERROR"

    def __init__(
        self,
        operation: str,
        entity_name: str,
        *,
        cause: str | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(message or f"Storage failure during {operation} on {entity_name}")
        self.operation = operation
        self.entity_name = entity_name
        self.cause = cause

    def detail(self) -> dict[str, Any]:
        return {"operation": self.operation, "entity": self.entity_name}


class StorageConnectionError(StorageError):
    """No pooled connection could be obtained (exhausted pool, unreachable store)."""

    code = "CONNECTION_ERROR"

    def __init__(self, operation: str, entity_name: str, *, cause: str | None = None) -> None:
        super().__init__(
            operation,
            entity_name,
            cause=cause,
            message=f"No database connection available for {operation} on {entity_name}",
        )


class ConflictError(StorageError):
    """A storage-layer uniqueness constraint rejected the write."""

    code = "CONFLICT"

    def __init__(
        self,
        operation: str,
        entity_name: str,
        *,
        field: str | None = None,
        value: Any = None,
        cause: str | None = None,
    ) -> None:
        target = f" on {field}" if field else ""
        super().__init__(
            operation,
            entity_name,
            cause=cause,
            message=f"Uniqueness conflict{target} during {operation} on {entity_name}",
        )
        self.field = field
        self.value = value

    def detail(self) -> dict[str, Any]:
        detail = super().detail()
        if self.field is not None:
            detail["field"] = self.field
        return detail


@dataclass(frozen=True)
class HandlerFailure:
    """One handler that raised while an event was being published."""

    handler: str
    event: str
    error: str


class EventHandlingError(CrmError):
    """One or more event handlers failed after the write had committed."""

    code = "EVENT_HANDLING"

    def __init__(self, failures: list[HandlerFailure]) -> None:
        self.failures = list(failures)
        names = ", ".join(f.handler for f in self.failures)
        super().__init__(f"Event handlers failed: {names}")

    def detail(self) -> dict[str, Any]:
        return {
            "failures": [
                {"handler": f.handler, "event": f.event, "error": f.error} for f in self.failures
            ]
        }

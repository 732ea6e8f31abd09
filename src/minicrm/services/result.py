"""ServiceResult and ServiceError — the presentation contract.

INVARIANT: Services raise :class:`~minicrm.domain.errors.CrmError`
subclasses; the CLI (or any other front end) converts each outcome into
a ServiceResult. Raw storage text never reaches ``ServiceError.message``.
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic
from pydantic import BaseModel, Field

from minicrm.domain.errors import (
    BusinessRuleError,
    ConflictError,
    CrmError,
    EventHandlingError,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for presented operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"create_customer"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing, counts, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None


# ── Error mapping ────────────────────────────────────────────────────


def _user_message(exc: CrmError) -> str:
    match exc:
        case ValidationError():
            lines = [f"{v.field}: {v.message}" for v in exc.violations]
            return "Invalid input. " + "; ".join(lines)
        case BusinessRuleError():
            return exc.message
        case NotFoundError():
            return exc.message
        case StorageConnectionError():
            return "The database is busy or unavailable. Please try again."
        case ConflictError():
            target = f" ({exc.field})" if exc.field else ""
            return f"This record conflicts with an existing one{target}."
        case StorageError():
            return "The operation could not be saved. Please try again."
        case EventHandlingError():
            return "The change was saved, but some follow-up actions failed."
    return exc.message


def result_from_error(op: str, exc: Exception) -> ServiceResult:
    """Map a raised error onto a failed :class:`ServiceResult`.

    Storage errors keep the driver's text in the log only.
    """
    if isinstance(exc, StorageError):
        logger.error("%s failed: %s (cause: %s)", op, exc.message, exc.cause)
    if isinstance(exc, CrmError):
        error = ServiceError(code=exc.code, message=_user_message(exc), detail=exc.detail())
    elif isinstance(exc, pydantic.ValidationError):
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        error = ServiceError(
            code=ValidationError.code,
            message=f"Invalid input for: {', '.join(fields)}",
            detail={"fields": fields},
        )
    else:
        raise exc
    return ServiceResult(ok=False, op=op, error=error)

"""Tests for the error taxonomy."""

from minicrm.domain.errors import (
    BusinessRuleError,
    ConflictError,
    CrmError,
    EventHandlingError,
    FieldViolation,
    HandlerFailure,
    IdentityError,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    ValidationError,
)


class TestTaxonomy:
    def test_family(self) -> None:
        for cls in (ValidationError, BusinessRuleError, NotFoundError, StorageError):
            assert issubclass(cls, CrmError)
        assert issubclass(ConflictError, StorageError)
        assert issubclass(StorageConnectionError, StorageError)
        assert not issubclass(IdentityError, CrmError)

    def test_distinct_codes(self) -> None:
        codes = {
            ValidationError.code,
            BusinessRuleError.code,
            NotFoundError.code,
            StorageError.code,
            StorageConnectionError.code,
            ConflictError.code,
            EventHandlingError.code,
        }
        assert len(codes) == 7

    def test_validation_detail(self) -> None:
        err = ValidationError(
            [FieldViolation("name", "too short"), FieldViolation("phone", "bad")]
        )
        assert err.fields == ["name", "phone"]
        assert err.detail()["violations"][0] == {"field": "name", "message": "too short"}

    def test_not_found_message(self) -> None:
        err = NotFoundError("customers", 42)
        assert "42" in err.message
        assert err.detail() == {"entity": "customers", "id": 42}

    def test_storage_error_hides_cause(self) -> None:
        err = StorageError("create", "customers", cause="disk I/O error")
        assert "disk" not in err.message
        assert err.cause == "disk I/O error"

    def test_event_handling_error(self) -> None:
        err = EventHandlingError([HandlerFailure("h", "created", "boom")])
        assert "h" in err.message
        assert err.detail()["failures"][0]["error"] == "boom"

"""Unit tests for haste.engine.errors — error hierarchy and serialization."""

import json

import pytest

from haste.engine.errors import (
    DocumentDecodeError,
    DocumentNotAcceptableError,
    DocumentNotFoundError,
    DocumentTooLargeError,
    HasteConfigError,
    HasteError,
    HasteValidationError,
    IncompleteDocumentError,
    StoreUnavailableError,
)


class TestHierarchy:

    @pytest.mark.parametrize("cls", [
        DocumentDecodeError,
        DocumentNotFoundError,
        IncompleteDocumentError,
        StoreUnavailableError,
        HasteValidationError,
        DocumentTooLargeError,
        DocumentNotAcceptableError,
        HasteConfigError,
    ])
    def test_subclasses_haste_error(self, cls):
        assert issubclass(cls, HasteError)
        assert issubclass(cls, Exception)

    @pytest.mark.parametrize("cls,status", [
        (HasteError, 500),
        (DocumentDecodeError, 500),
        (DocumentNotFoundError, 404),
        (IncompleteDocumentError, 404),
        (StoreUnavailableError, 503),
        (HasteValidationError, 400),
        (DocumentTooLargeError, 413),
        (DocumentNotAcceptableError, 415),
        (HasteConfigError, 500),
    ])
    def test_status_codes(self, cls, status):
        assert cls("x").status_code == status


class TestHasteError:

    def test_basic(self):
        err = HasteError("Something broke", key="AbcDefGhij", operation="fetch")
        assert str(err) == "Something broke"
        assert err.message == "Something broke"
        assert err.key == "AbcDefGhij"
        assert err.operation == "fetch"
        assert err.error_type == "HasteError"
        assert err.timestamp

    def test_to_dict(self):
        err = HasteError("boom", key="K", operation="get", attempt=3)
        d = err.to_dict()
        assert d["error_type"] == "HasteError"
        assert d["message"] == "boom"
        assert d["key"] == "K"
        assert d["operation"] == "get"
        assert d["context"] == {"attempt": "3"}

    def test_to_json(self):
        data = json.loads(HasteError("boom", key="K").to_json())
        assert data["key"] == "K"

    def test_to_response_hides_context(self):
        err = DocumentNotFoundError("Document not found", key="K", operation="fetch")
        assert err.to_response() == {
            "error": "DocumentNotFoundError",
            "message": "Document not found",
        }

    def test_repr(self):
        r = repr(HasteError("boom", key="K", operation="get"))
        assert "HasteError: boom" in r
        assert "key=K" in r
        assert "operation=get" in r

    def test_repr_without_context(self):
        assert repr(HasteError("boom")) == "HasteError: boom"


class TestSubclassFields:

    def test_incomplete(self):
        err = IncompleteDocumentError("half", key="K", missing="data")
        assert err.missing == "data"
        assert err.to_dict()["missing"] == "data"

    def test_store_unavailable(self):
        err = StoreUnavailableError("down", circuit_open=True)
        assert err.circuit_open is True
        assert err.to_dict()["circuit_open"] is True
        assert StoreUnavailableError("down").circuit_open is False

    def test_validation(self):
        errors = [{"loc": ["key"], "msg": "Field required"}]
        err = HasteValidationError("bad", validation_errors=errors)
        assert err.validation_errors == errors
        assert err.to_dict()["validation_errors"] == errors

    def test_too_large(self):
        err = DocumentTooLargeError("big", max_length=10, actual_length=40)
        d = err.to_dict()
        assert d["max_length"] == 10
        assert d["actual_length"] == 40

    def test_catch_as_base(self):
        with pytest.raises(HasteError):
            raise DocumentNotFoundError("gone", key="K")

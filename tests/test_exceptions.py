"""Tests for the exception hierarchy."""

import pytest

from puppet_expressions.exceptions import (
    ConfigurationError,
    DuplicateExpressionError,
    ExpressionError,
    ExpressionNotFoundError,
    InvalidConfigError,
    InvalidDescriptorError,
    ModelError,
    NoActiveModelError,
    PuppetExpressionError,
    UnknownParameterError,
    ValidationFailedError,
)


class TestHierarchy:
    """Every error derives from PuppetExpressionError via its family."""

    @pytest.mark.parametrize("error,family", [
        (InvalidDescriptorError("bad"), ModelError),
        (UnknownParameterError("ParamX"), ModelError),
        (NoActiveModelError("apply_expression"), ModelError),
        (ValidationFailedError("Smile", ["oops"]), ExpressionError),
        (ExpressionNotFoundError("Smile"), ExpressionError),
        (DuplicateExpressionError("Smile"), ExpressionError),
        (InvalidConfigError("fps", 0, "must be positive"), ConfigurationError),
    ])
    def test_family(self, error, family):
        assert isinstance(error, family)
        assert isinstance(error, PuppetExpressionError)

    def test_catchable_as_base(self):
        with pytest.raises(PuppetExpressionError):
            raise NoActiveModelError("reset_expression")


class TestBaseError:
    """Tests for PuppetExpressionError."""

    def test_str_without_details(self):
        assert str(PuppetExpressionError("boom")) == "boom"

    def test_str_with_details(self):
        error = PuppetExpressionError("boom", details={"a": 1})
        assert str(error) == "boom ({'a': 1})"

    def test_to_dict(self):
        error = UnknownParameterError("ParamFoo", model_name="hiyori")
        assert error.to_dict() == {
            "type": "UnknownParameterError",
            "message": "Unknown parameter: ParamFoo",
            "details": {"parameter_id": "ParamFoo", "model_name": "hiyori"},
            "recoverable": True,
        }


class TestModelErrors:
    """Tests for catalogue errors."""

    def test_invalid_descriptor_path(self):
        error = InvalidDescriptorError("missing Parameters array", "/models/a.cdi3.json")
        assert error.reason == "missing Parameters array"
        assert error.path == "/models/a.cdi3.json"
        assert error.details["path"] == "/models/a.cdi3.json"
        assert error.recoverable is False

    def test_invalid_descriptor_without_path(self):
        error = InvalidDescriptorError("malformed JSON: x")
        assert "path" not in error.details
        assert error.message == "Invalid model descriptor: malformed JSON: x"

    def test_no_active_model(self):
        error = NoActiveModelError("apply_expression")
        assert error.command == "apply_expression"
        assert error.recoverable is True


class TestExpressionErrors:
    """Tests for definition errors."""

    def test_validation_failed_keeps_lists(self):
        error = ValidationFailedError("Smile", ["a", "b"], ["w"])
        assert error.errors == ["a", "b"]
        assert error.warnings == ["w"]
        assert error.message == "Validation failed: a, b"
        assert error.details["expression"] == "Smile"

    def test_not_found_vs_disabled(self):
        assert ExpressionNotFoundError("Smile").message == "Expression not found: Smile"
        disabled = ExpressionNotFoundError("Smile", disabled=True)
        assert disabled.message == "Expression disabled: Smile"
        assert disabled.disabled is True

    def test_duplicate(self):
        error = DuplicateExpressionError("Smile")
        assert error.name == "Smile"
        assert "already exists" in error.message

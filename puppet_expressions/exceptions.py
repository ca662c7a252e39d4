"""Puppet Expressions Exception Hierarchy.

Provides structured exception classes for the blending engine and its adapters.

Hierarchy:
    PuppetExpressionError (base)
    ├── ModelError
    │   ├── InvalidDescriptorError
    │   ├── UnknownParameterError
    │   └── NoActiveModelError
    ├── ExpressionError
    │   ├── ValidationFailedError
    │   ├── ExpressionNotFoundError
    │   └── DuplicateExpressionError
    └── ConfigurationError
        └── InvalidConfigError
"""

from typing import Any


class PuppetExpressionError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the caller can retry or continue
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Model Errors
# =============================================================================


class ModelError(PuppetExpressionError):
    """Base exception for model/catalogue errors."""

    pass


class InvalidDescriptorError(ModelError):
    """Raised when a model descriptor cannot be turned into a catalogue.

    Fatal to the load: the previously loaded model stays active.
    """

    def __init__(self, reason: str, path: str | None = None) -> None:
        details: dict[str, Any] = {"reason": reason}
        if path:
            details["path"] = path
        super().__init__(
            message=f"Invalid model descriptor: {reason}",
            details=details,
            recoverable=False,
        )
        self.reason = reason
        self.path = path


class UnknownParameterError(ModelError):
    """Raised when a parameter id is absent from the active catalogue."""

    def __init__(self, parameter_id: str, model_name: str | None = None) -> None:
        details: dict[str, Any] = {"parameter_id": parameter_id}
        if model_name:
            details["model_name"] = model_name
        super().__init__(
            message=f"Unknown parameter: {parameter_id}",
            details=details,
            recoverable=True,  # Offending entry is skipped
        )
        self.parameter_id = parameter_id


class NoActiveModelError(ModelError):
    """Raised when a command arrives before any catalogue is loaded."""

    def __init__(self, command: str) -> None:
        super().__init__(
            message=f"No active model for command: {command}",
            details={"command": command},
            recoverable=True,  # Retry once a model is loaded
        )
        self.command = command


# =============================================================================
# Expression Errors
# =============================================================================


class ExpressionError(PuppetExpressionError):
    """Base exception for expression-definition errors."""

    pass


class ValidationFailedError(ExpressionError):
    """Raised when a definition has structural errors.

    The definition is not accepted and nothing is applied.
    """

    def __init__(
        self,
        name: str | None,
        errors: list[str],
        warnings: list[str] | None = None,
    ) -> None:
        super().__init__(
            message=f"Validation failed: {', '.join(errors)}",
            details={
                "expression": name,
                "errors": list(errors),
                "warnings": list(warnings or []),
            },
            recoverable=False,
        )
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class ExpressionNotFoundError(ExpressionError):
    """Raised when a named expression is not registered or is disabled."""

    def __init__(self, key: str, disabled: bool = False) -> None:
        reason = "disabled" if disabled else "not found"
        super().__init__(
            message=f"Expression {reason}: {key}",
            details={"expression": key, "disabled": disabled},
            recoverable=False,
        )
        self.key = key
        self.disabled = disabled


class DuplicateExpressionError(ExpressionError):
    """Raised when an expression name is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(
            message=f"Expression name already exists: {name}",
            details={"expression": name},
            recoverable=False,
        )
        self.name = name


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PuppetExpressionError):
    """Base exception for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(
        self,
        config_key: str,
        value: Any,
        reason: str,
    ) -> None:
        super().__init__(
            message=f"Invalid configuration for {config_key}: {reason}",
            details={
                "config_key": config_key,
                "value": str(value),
                "reason": reason,
            },
            recoverable=False,
        )

"""Puppet Expressions - Expression parameter blending engine for 2D puppets."""

__version__ = "1.0.0"

# Export exception hierarchy for easy importing
from puppet_expressions.exceptions import (
    PuppetExpressionError,
    ModelError,
    InvalidDescriptorError,
    UnknownParameterError,
    NoActiveModelError,
    ExpressionError,
    ValidationFailedError,
    ExpressionNotFoundError,
    DuplicateExpressionError,
    ConfigurationError,
    InvalidConfigError,
)

__all__ = [
    "__version__",
    # Base
    "PuppetExpressionError",
    # Model
    "ModelError",
    "InvalidDescriptorError",
    "UnknownParameterError",
    "NoActiveModelError",
    # Expressions
    "ExpressionError",
    "ValidationFailedError",
    "ExpressionNotFoundError",
    "DuplicateExpressionError",
    # Configuration
    "ConfigurationError",
    "InvalidConfigError",
]

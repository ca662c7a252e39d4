"""Expressions package - Definitions, validation and the in-memory library."""

from puppet_expressions.expressions.definition import (
    BlendMode,
    ExpressionDefinition,
    ExpressionParameter,
    ValidationResult,
    generate_expression_id,
)
from puppet_expressions.expressions.library import ExpressionLibrary
from puppet_expressions.expressions.validation import validate

__all__ = [
    "BlendMode",
    "ExpressionDefinition",
    "ExpressionParameter",
    "ValidationResult",
    "generate_expression_id",
    "ExpressionLibrary",
    "validate",
]

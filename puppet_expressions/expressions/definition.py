"""Expression Definition - Named bundles of parameter targets.

An expression is a set of (parameter, target value, weight, blend mode)
entries applied together. Definitions are authored externally, validated
before acceptance, and held in memory for the session.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class BlendMode(str, Enum):
    """How an expression's target combines with the running value."""

    OVERWRITE = "overwrite"
    ADD = "add"
    MULTIPLY = "multiply"


def generate_expression_id() -> str:
    """Generate a unique expression id (``expr_<ms>_<suffix>``)."""
    return f"expr_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp (naive means UTC; non-strings mean now).

    Raises:
        ValueError: If a string is not ISO 8601
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        return _utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def field_value(data: Mapping[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read a key that may be spelled in snake_case or camelCase."""
    if snake in data:
        return data[snake]
    return data.get(camel, default)


@dataclass
class ExpressionParameter:
    """One line of an expression definition.

    ``target_value`` is designed for 0.0-1.0 but may exceed it for rigs with
    wider ranges. ``weight`` is a true blend coefficient in [0, 1].
    """

    parameter_id: str
    target_value: float
    weight: float = 1.0
    blend_mode: BlendMode = BlendMode.OVERWRITE
    parameter_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "parameter_id": self.parameter_id,
            "parameter_name": self.parameter_name,
            "target_value": self.target_value,
            "weight": self.weight,
            "blend_mode": self.blend_mode.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExpressionParameter":
        """Build from a mapping.

        Raises:
            ValueError: If ``blend_mode`` is not a recognized mode
        """
        return cls(
            parameter_id=field_value(data, "parameter_id", "parameterId"),
            target_value=float(field_value(data, "target_value", "targetValue")),
            weight=float(data.get("weight", 1.0)),
            blend_mode=BlendMode(
                field_value(data, "blend_mode", "blendMode", BlendMode.OVERWRITE.value)
            ),
            parameter_name=field_value(data, "parameter_name", "parameterName"),
        )


@dataclass
class ExpressionDefinition:
    """A named, validated set of expression parameters."""

    name: str
    parameters: list[ExpressionParameter] = field(default_factory=list)
    description: str | None = None
    enabled: bool = True
    fade_duration_ms: int | None = None
    id: str = field(default_factory=generate_expression_id)
    created_at: datetime = field(default_factory=_utcnow)
    modified_at: datetime = field(default_factory=_utcnow)

    @property
    def parameter_ids(self) -> list[str]:
        return [p.parameter_id for p in self.parameters]

    def touch(self) -> None:
        """Mark the definition as modified now."""
        self.modified_at = _utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
            "enabled": self.enabled,
            "fade_duration_ms": self.fade_duration_ms,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExpressionDefinition":
        """Build from a mapping (snake_case or camelCase keys).

        Missing ``id`` and timestamps are generated. Validate the mapping
        first; this only converts.
        """
        definition = cls(
            name=data["name"],
            parameters=[ExpressionParameter.from_dict(p) for p in data.get("parameters", [])],
            description=data.get("description"),
            enabled=bool(data.get("enabled", True)),
            fade_duration_ms=field_value(data, "fade_duration_ms", "fadeDurationMs"),
        )
        if data.get("id"):
            definition.id = data["id"]
        created = field_value(data, "created_at", "createdAt")
        modified = field_value(data, "modified_at", "modifiedAt")
        definition.created_at = parse_datetime(created)
        definition.modified_at = parse_datetime(modified) if modified else definition.created_at
        return definition


@dataclass
class ValidationResult:
    """Outcome of validating a definition. Warnings never block."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }

"""Expression Validation - Structural and referential checks.

validate() never raises. Errors block acceptance; warnings are advisory.

Errors:
- blank name
- empty parameter list
- blank parameter id
- weight outside [0, 1] (or not a number)
- unknown blend mode
- non-boolean enabled flag or malformed timestamp
- duplicate parameter id
- parameter id missing from the catalogue (when one is given)

Warnings:
- name longer than 50 characters
- target value outside [0, 1]
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping

from puppet_expressions.config.constants import ENGINE
from puppet_expressions.expressions.definition import (
    BlendMode,
    ExpressionDefinition,
    ValidationResult,
    field_value,
    parse_datetime,
)
from puppet_expressions.model.catalogue import ParameterCatalogue

_BLEND_MODES = frozenset(mode.value for mode in BlendMode)


def _as_number(value: Any) -> float | None:
    # bool is an int subclass but never a valid coefficient
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(value)


def _is_timestamp(value: Any) -> bool:
    if isinstance(value, datetime):
        return True
    if not isinstance(value, str):
        return False
    try:
        parse_datetime(value)
    except ValueError:
        return False
    return True


def _normalize(
    definition: ExpressionDefinition | Mapping[str, Any],
) -> tuple[Any, list[dict[str, Any]] | None]:
    if isinstance(definition, ExpressionDefinition):
        return definition.name, [
            {
                "parameter_id": p.parameter_id,
                "target_value": p.target_value,
                "weight": p.weight,
                # Hand-built definitions may carry a raw string
                "blend_mode": getattr(p.blend_mode, "value", p.blend_mode),
            }
            for p in definition.parameters
        ]

    parameters = definition.get("parameters")
    if parameters is not None and not isinstance(parameters, list):
        return definition.get("name"), None
    normalized = []
    for entry in parameters or []:
        if not isinstance(entry, Mapping):
            normalized.append({})
            continue
        mode = field_value(entry, "blend_mode", "blendMode", BlendMode.OVERWRITE.value)
        if isinstance(mode, BlendMode):
            mode = mode.value
        normalized.append({
            "parameter_id": field_value(entry, "parameter_id", "parameterId"),
            "target_value": field_value(entry, "target_value", "targetValue"),
            "weight": entry.get("weight", 1.0),
            "blend_mode": mode,
        })
    return definition.get("name"), normalized


def validate(
    definition: ExpressionDefinition | Mapping[str, Any],
    catalogue: ParameterCatalogue | None = None,
) -> ValidationResult:
    """Validate a definition, optionally against a catalogue.

    Args:
        definition: ExpressionDefinition or raw mapping (e.g. parsed JSON)
        catalogue: Active catalogue for the referential check

    Returns:
        ValidationResult with errors and warnings
    """
    errors: list[str] = []
    warnings: list[str] = []

    name, parameters = _normalize(definition)

    if not isinstance(name, str) or not name.strip():
        errors.append("Expression name is required")
    elif len(name) > ENGINE.MAX_NAME_LENGTH:
        warnings.append(
            f"Expression name is quite long (over {ENGINE.MAX_NAME_LENGTH} characters)"
        )

    if isinstance(definition, ExpressionDefinition):
        fade = definition.fade_duration_ms
    else:
        fade = field_value(definition, "fade_duration_ms", "fadeDurationMs")
    if fade is not None:
        fade_ms = _as_number(fade)
        if fade_ms is None or not 0 <= fade_ms <= ENGINE.MAX_FADE_MS:
            errors.append(
                f"Fade duration must be between 0 and {ENGINE.MAX_FADE_MS} ms"
            )

    if not isinstance(definition, ExpressionDefinition):
        if not isinstance(definition.get("enabled", True), bool):
            errors.append("Enabled must be true or false")
        for snake, camel, label in (
            ("created_at", "createdAt", "Created"),
            ("modified_at", "modifiedAt", "Modified"),
        ):
            stamp = field_value(definition, snake, camel)
            if stamp is not None and not _is_timestamp(stamp):
                errors.append(f"{label} timestamp is not ISO 8601: {stamp}")

    if parameters is None:
        errors.append("Parameters must be a list")
        return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

    if not parameters:
        errors.append("At least one parameter must be configured")

    seen: set[str] = set()
    duplicates: list[str] = []

    for position, entry in enumerate(parameters, start=1):
        label = f"Parameter {position}"
        parameter_id = entry.get("parameter_id")

        if not isinstance(parameter_id, str) or not parameter_id.strip():
            errors.append(f"{label}: Parameter ID is required")
            parameter_id = None
        else:
            if parameter_id in seen and parameter_id not in duplicates:
                duplicates.append(parameter_id)
            seen.add(parameter_id)
            if catalogue is not None and parameter_id not in catalogue:
                errors.append(f"{label}: Parameter {parameter_id} is not in the active model")

        target = _as_number(entry.get("target_value"))
        if target is None:
            errors.append(f"{label}: Target value must be a number")
        elif not ENGINE.UNIT_RANGE_MIN <= target <= ENGINE.UNIT_RANGE_MAX:
            warnings.append(
                f"{label}: Target value {target} is outside normal range (0.0-1.0)"
            )

        weight = _as_number(entry.get("weight"))
        if weight is None:
            errors.append(f"{label}: Weight must be a number")
        elif not ENGINE.UNIT_RANGE_MIN <= weight <= ENGINE.UNIT_RANGE_MAX:
            errors.append(f"{label}: Weight must be between 0.0 and 1.0")

        mode = entry.get("blend_mode")
        if not isinstance(mode, str) or mode not in _BLEND_MODES:
            errors.append(f'{label}: Invalid blend mode "{mode}"')

    if duplicates:
        errors.append(f"Duplicate parameter IDs found: {', '.join(duplicates)}")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

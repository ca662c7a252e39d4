"""Blend Resolver - Fold expression layers onto the base pose.

Layers are ordered lowest to highest priority. For each entry, with
``k = weight * intensity``:

    overwrite:  result = lerp(result, target, k)
    add:        result = result + target * k
    multiply:   result = result * (1 + (target - 1) * k)

Every result is clamped to the parameter's [min, max]. Parameters no layer
touches keep their base value. Entries for parameters missing from the
catalogue are skipped and reported; resolving never raises.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from puppet_expressions.expressions.definition import (
    BlendMode,
    ExpressionDefinition,
    ExpressionParameter,
)
from puppet_expressions.model.catalogue import ParameterCatalogue


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1]; NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * t


@dataclass(frozen=True)
class BlendLayer:
    """One (expression, intensity) contribution for a tick."""

    name: str
    parameters: tuple[ExpressionParameter, ...]
    intensity: float = 1.0
    expression_id: str | None = None

    @classmethod
    def from_definition(
        cls,
        definition: ExpressionDefinition,
        intensity: float = 1.0,
    ) -> "BlendLayer":
        return cls(
            name=definition.name,
            parameters=tuple(definition.parameters),
            intensity=clamp_unit(intensity),
            expression_id=definition.id,
        )

    @classmethod
    def from_values(
        cls,
        name: str,
        values: Mapping[str, float],
        expression_id: str | None = None,
    ) -> "BlendLayer":
        """Overwrite layer pinning each parameter to a captured value."""
        return cls(
            name=name,
            parameters=tuple(
                ExpressionParameter(parameter_id=pid, target_value=value)
                for pid, value in values.items()
            ),
            intensity=1.0,
            expression_id=expression_id,
        )

    def with_intensity(self, intensity: float) -> "BlendLayer":
        return BlendLayer(
            name=self.name,
            parameters=self.parameters,
            intensity=clamp_unit(intensity),
            expression_id=self.expression_id,
        )


LayerInput = BlendLayer | tuple[ExpressionDefinition, float]


@dataclass
class BlendResult:
    """Resolved values plus the parameter ids that were skipped."""

    values: dict[str, float]
    skipped: list[str] = field(default_factory=list)
    touched: set[str] = field(default_factory=set)


def _as_layer(layer: LayerInput) -> BlendLayer:
    if isinstance(layer, BlendLayer):
        return layer
    definition, intensity = layer
    return BlendLayer.from_definition(definition, intensity)


def blend_value(
    current: float,
    target: float,
    amount: float,
    mode: BlendMode,
) -> float:
    """Apply one blend step (unclamped)."""
    if mode is BlendMode.OVERWRITE:
        return lerp(current, target, amount)
    if mode is BlendMode.ADD:
        return current + target * amount
    if mode is BlendMode.MULTIPLY:
        return current * (1.0 + (target - 1.0) * amount)
    raise ValueError(f"unknown blend mode: {mode!r}")


def resolve_layers(
    base_values: Mapping[str, float],
    layers: Iterable[LayerInput],
    catalogue: ParameterCatalogue,
) -> BlendResult:
    """Resolve layers and report what was skipped.

    Args:
        base_values: Starting value per parameter (the idle pose)
        layers: Layers, lowest priority first
        catalogue: Supplies ranges; unknown ids are skipped

    Returns:
        BlendResult with a value for every base parameter
    """
    result = BlendResult(values=dict(base_values))
    values = result.values

    for layer in layers:
        layer = _as_layer(layer)
        intensity = clamp_unit(layer.intensity)

        for entry in layer.parameters:
            param = catalogue.get(entry.parameter_id)
            if param is None:
                result.skipped.append(entry.parameter_id)
                continue

            try:
                mode = BlendMode(entry.blend_mode)
                amount = float(entry.weight) * intensity
                current = values.get(param.id, param.default_value)
                blended = blend_value(current, float(entry.target_value), amount, mode)
            except (TypeError, ValueError):
                result.skipped.append(entry.parameter_id)
                continue

            if not math.isfinite(blended):
                result.skipped.append(entry.parameter_id)
                continue

            values[param.id] = param.clamp(blended)
            result.touched.add(param.id)

    return result


def resolve(
    base_values: Mapping[str, float],
    layers: Sequence[LayerInput],
    catalogue: ParameterCatalogue,
) -> dict[str, float]:
    """Resolve layers onto the base pose and return the final values."""
    return resolve_layers(base_values, layers, catalogue).values

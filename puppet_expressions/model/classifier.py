"""Parameter Classifier - Heuristic tagging of expression-capable parameters.

A parameter is expression-capable when its id or display name matches any
of a fixed set of facial-expression patterns. The result is advisory: any
catalogue parameter may be targeted by an expression regardless.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from puppet_expressions.config.constants import ENGINE
from puppet_expressions.model.catalogue import ModelParameter, ParameterCatalogue

EXPRESSION_PARAMETER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        # Emotions
        r"smile", r"happy", r"sad", r"angry", r"surprised", r"fear", r"disgust",
        # Eye states
        r"eye.*open", r"eye.*close", r"wink", r"blink", r"love.*eye", r"heart.*eye",
        # Mouth states
        r"mouth", r"lips", r"kiss", r"pout",
        # Mood
        r"blush", r"shy", r"embarrass", r"confident", r"tired", r"sleepy",
        r"excited", r"nervous",
        # Generic markers
        r"special", r"unique", r"custom",
        r"param.*expression", r"param.*emotion", r"param.*face",
    )
)

_MOVEMENT_WORDS = ("angle", "rotation", "turn")
_POSE_WORDS = ("body", "pose", "position")


def is_expression_parameter(text: str) -> bool:
    """Check a single id or display name against the expression patterns."""
    return any(pattern.search(text) for pattern in EXPRESSION_PARAMETER_PATTERNS)


def _is_expression(param: ModelParameter) -> bool:
    return is_expression_parameter(param.id) or is_expression_parameter(param.name)


@dataclass
class ClassificationResult:
    """Catalogue split into expression-capable and other parameters."""

    expression_parameters: list[ModelParameter] = field(default_factory=list)
    other_parameters: list[ModelParameter] = field(default_factory=list)

    @property
    def expression_ids(self) -> list[str]:
        return [p.id for p in self.expression_parameters]


def classify(catalogue: ParameterCatalogue) -> ClassificationResult:
    """Partition a catalogue, preserving catalogue order within each side."""
    result = ClassificationResult()
    for param in catalogue:
        if _is_expression(param):
            result.expression_parameters.append(param)
        else:
            result.other_parameters.append(param)
    return result


def categorize(catalogue: ParameterCatalogue) -> dict[str, list[ModelParameter]]:
    """Group parameters for authoring UIs.

    Expression-capable parameters go to ``Expression``. Others use the
    descriptor's own category when present, otherwise a name heuristic
    (``Movement``, ``Pose``, ``Other``). Empty groups are dropped.
    """
    groups: dict[str, list[ModelParameter]] = {
        "Expression": [],
        "Pose": [],
        "Movement": [],
        "Other": [],
    }

    for param in catalogue:
        if _is_expression(param):
            groups["Expression"].append(param)
        elif param.category:
            groups.setdefault(param.category, []).append(param)
        else:
            name = param.name.lower()
            if any(word in name for word in _MOVEMENT_WORDS):
                groups["Movement"].append(param)
            elif any(word in name for word in _POSE_WORDS):
                groups["Pose"].append(param)
            else:
                groups["Other"].append(param)

    return {key: params for key, params in groups.items() if params}


def search(catalogue: ParameterCatalogue, query: str) -> list[ModelParameter]:
    """Case-insensitive substring search over id, name, description and category."""
    needle = query.lower()
    matches = []
    for param in catalogue:
        haystacks = (param.id, param.name, param.description or "", param.category or "")
        if any(needle in text.lower() for text in haystacks):
            matches.append(param)
    return matches


def statistics(catalogue: ParameterCatalogue) -> dict[str, Any]:
    """Summarize parameter ranges, types and categories."""
    params = catalogue.parameters
    zero_to_one = sum(1 for p in params if p.min_value == 0 and p.max_value == 1)
    negative_to_positive = sum(1 for p in params if p.min_value < 0 < p.max_value)
    continuous = sum(
        1 for p in params if abs(p.max_value - p.min_value) > ENGINE.CONTINUOUS_SPAN
    )

    return {
        "total": len(params),
        "expression_related": sum(1 for p in params if _is_expression(p)),
        "by_range": {
            "zero_to_one": zero_to_one,
            "negative_to_positive": negative_to_positive,
            "other": len(params) - zero_to_one - negative_to_positive,
        },
        "by_type": {
            "continuous": continuous,
            "discrete": len(params) - continuous,
        },
        "by_category": {
            category: len(members)
            for category, members in categorize(catalogue).items()
        },
    }

"""Expression Library - In-memory collection of accepted definitions.

Names are unique. Every mutation validates first and changes nothing when
validation fails. JSON import/export works on strings only; where the text
is stored is the caller's concern.

Export format:
    {
        "model_name": "...",
        "exported_at": "<ISO-8601>",
        "config": {"version": 1, "enabled": true, "expressions": [...]},
        "model_parameters": [{"id", "name", "is_expression_parameter"}]
    }
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Mapping

from puppet_expressions.config.constants import ENGINE
from puppet_expressions.exceptions import (
    DuplicateExpressionError,
    ExpressionNotFoundError,
    ValidationFailedError,
)
from puppet_expressions.expressions.definition import (
    ExpressionDefinition,
    ExpressionParameter,
    ValidationResult,
    generate_expression_id,
)
from puppet_expressions.expressions.validation import validate
from puppet_expressions.model.catalogue import ParameterCatalogue
from puppet_expressions.model.classifier import is_expression_parameter

ParameterInput = ExpressionParameter | Mapping[str, Any]


def _parameter_mapping(entry: ParameterInput) -> dict[str, Any]:
    if isinstance(entry, ExpressionParameter):
        return entry.to_dict()
    return dict(entry)


class ExpressionLibrary:
    """Name-unique, insertion-ordered store of expression definitions.

    Usage:
        library = ExpressionLibrary()

        smile, result = library.create(
            "Smile",
            [{"parameter_id": "ParamMouthOpenY", "target_value": 1.0}],
        )
        library.set_enabled(smile.id, False)
        text = library.export_json(model_name="hiyori")
    """

    def __init__(self, definitions: Iterable[ExpressionDefinition] = ()) -> None:
        self._expressions: dict[str, ExpressionDefinition] = {}
        for definition in definitions:
            self.add(definition)

    def __len__(self) -> int:
        return len(self._expressions)

    def __iter__(self) -> Iterator[ExpressionDefinition]:
        return iter(list(self._expressions.values()))

    def __contains__(self, name: object) -> bool:
        return self.get_by_name(name) is not None if isinstance(name, str) else False

    @property
    def expressions(self) -> list[ExpressionDefinition]:
        """All definitions in insertion order."""
        return list(self._expressions.values())

    def get_by_id(self, expression_id: str) -> ExpressionDefinition | None:
        return self._expressions.get(expression_id)

    def get_by_name(self, name: str) -> ExpressionDefinition | None:
        for definition in self._expressions.values():
            if definition.name == name:
                return definition
        return None

    def require(self, expression_id: str) -> ExpressionDefinition:
        """Look up by id.

        Raises:
            ExpressionNotFoundError: If no definition has this id
        """
        definition = self._expressions.get(expression_id)
        if definition is None:
            raise ExpressionNotFoundError(expression_id)
        return definition

    def require_enabled(self, name: str) -> ExpressionDefinition:
        """Look up an applicable definition by name.

        Raises:
            ExpressionNotFoundError: If missing or disabled
        """
        definition = self.get_by_name(name)
        if definition is None:
            raise ExpressionNotFoundError(name)
        if not definition.enabled:
            raise ExpressionNotFoundError(name, disabled=True)
        return definition

    def is_name_taken(self, name: str, exclude_id: str | None = None) -> bool:
        existing = self.get_by_name(name)
        return existing is not None and existing.id != exclude_id

    def enabled_names(self) -> list[str]:
        """Names of enabled definitions, in insertion order."""
        return [d.name for d in self._expressions.values() if d.enabled]

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add(self, definition: ExpressionDefinition) -> ValidationResult:
        """Accept an already-built definition.

        Raises:
            ValidationFailedError: On structural errors
            DuplicateExpressionError: If the name is taken
        """
        result = validate(definition)
        if not result.is_valid:
            raise ValidationFailedError(definition.name, result.errors, result.warnings)
        if self.is_name_taken(definition.name, exclude_id=definition.id):
            raise DuplicateExpressionError(definition.name)
        if definition.id in self._expressions:
            definition.id = generate_expression_id()
        self._expressions[definition.id] = definition
        return result

    def create(
        self,
        name: str,
        parameters: Iterable[ParameterInput],
        description: str | None = None,
        fade_duration_ms: int | None = None,
        enabled: bool = True,
        catalogue: ParameterCatalogue | None = None,
    ) -> tuple[ExpressionDefinition, ValidationResult]:
        """Validate and register a new definition.

        When a catalogue is given, display names are filled in from it.
        Parameter ids are not checked against it here: a definition may be
        authored for a different model and is checked again at apply time.

        Returns:
            The new definition and its validation result (with warnings)

        Raises:
            ValidationFailedError: On structural errors
            DuplicateExpressionError: If the name is taken
        """
        raw = {
            "name": name,
            "description": description,
            "parameters": [_parameter_mapping(p) for p in parameters],
            "enabled": enabled,
            "fade_duration_ms": fade_duration_ms,
        }
        result = validate(raw)
        if not result.is_valid:
            raise ValidationFailedError(name, result.errors, result.warnings)
        if self.is_name_taken(name):
            raise DuplicateExpressionError(name)

        definition = ExpressionDefinition.from_dict(raw)
        self._enrich(definition, catalogue)
        self._expressions[definition.id] = definition
        return definition, result

    def update(
        self,
        expression_id: str,
        name: str | None = None,
        description: str | None = None,
        parameters: Iterable[ParameterInput] | None = None,
        fade_duration_ms: int | None = None,
        catalogue: ParameterCatalogue | None = None,
    ) -> tuple[ExpressionDefinition, ValidationResult]:
        """Apply a partial update. Nothing changes if the result is invalid.

        Raises:
            ExpressionNotFoundError: If no definition has this id
            ValidationFailedError: On structural errors
            DuplicateExpressionError: If the new name is taken
        """
        current = self.require(expression_id)
        raw = current.to_dict()
        if name is not None:
            raw["name"] = name
        if description is not None:
            raw["description"] = description
        if parameters is not None:
            raw["parameters"] = [_parameter_mapping(p) for p in parameters]
        if fade_duration_ms is not None:
            raw["fade_duration_ms"] = fade_duration_ms

        result = validate(raw)
        if not result.is_valid:
            raise ValidationFailedError(raw["name"], result.errors, result.warnings)
        if self.is_name_taken(raw["name"], exclude_id=expression_id):
            raise DuplicateExpressionError(raw["name"])

        updated = ExpressionDefinition.from_dict(raw)
        updated.created_at = current.created_at
        updated.touch()
        self._enrich(updated, catalogue)
        self._expressions[expression_id] = updated
        return updated, result

    def delete(self, expression_id: str) -> ExpressionDefinition:
        """Remove a definition and return it.

        Raises:
            ExpressionNotFoundError: If no definition has this id
        """
        definition = self._expressions.pop(expression_id, None)
        if definition is None:
            raise ExpressionNotFoundError(expression_id)
        return definition

    def set_enabled(self, expression_id: str, enabled: bool) -> ExpressionDefinition:
        """Enable or disable a definition.

        Raises:
            ExpressionNotFoundError: If no definition has this id
        """
        definition = self.require(expression_id)
        if definition.enabled != enabled:
            definition.enabled = enabled
            definition.touch()
        return definition

    def clear(self) -> None:
        self._expressions.clear()

    @staticmethod
    def _enrich(
        definition: ExpressionDefinition,
        catalogue: ParameterCatalogue | None,
    ) -> None:
        if catalogue is None:
            return
        for entry in definition.parameters:
            param = catalogue.get(entry.parameter_id)
            if param is not None:
                entry.parameter_name = param.name

    # -------------------------------------------------------------------------
    # JSON import/export
    # -------------------------------------------------------------------------

    def export_json(
        self,
        model_name: str | None = None,
        catalogue: ParameterCatalogue | None = None,
    ) -> str:
        """Serialize the library to the versioned export format."""
        model_parameters = []
        if catalogue is not None:
            model_parameters = [
                {
                    "id": p.id,
                    "name": p.name,
                    "is_expression_parameter": (
                        is_expression_parameter(p.id) or is_expression_parameter(p.name)
                    ),
                }
                for p in catalogue
            ]

        payload = {
            "model_name": model_name,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "config": {
                "version": ENGINE.EXPRESSION_CONFIG_VERSION,
                "enabled": True,
                "expressions": [d.to_dict() for d in self._expressions.values()],
            },
            "model_parameters": model_parameters,
        }
        return json.dumps(payload, indent=2)

    def import_json(self, text: str | bytes, merge: bool = False) -> int:
        """Load definitions from the export format.

        Every incoming definition is validated before anything changes.
        With ``merge`` the incoming definitions are added, skipping names
        already present. Otherwise the library is replaced.

        Returns:
            Number of definitions imported

        Raises:
            ValidationFailedError: On bad JSON, bad shape, or any invalid
                definition
            DuplicateExpressionError: If the import repeats a name
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationFailedError(None, [f"Invalid import data: {e.msg}"]) from e

        config = data.get("config") if isinstance(data, dict) else None
        raw_expressions = config.get("expressions") if isinstance(config, dict) else None
        if not isinstance(raw_expressions, list):
            raise ValidationFailedError(None, ["Invalid import data format"])

        incoming: list[ExpressionDefinition] = []
        names: set[str] = set()
        ids: set[str] = set()
        for raw in raw_expressions:
            if not isinstance(raw, dict):
                raise ValidationFailedError(None, ["Invalid import data format"])
            result = validate(raw)
            if not result.is_valid:
                raise ValidationFailedError(raw.get("name"), result.errors, result.warnings)
            if raw["name"] in names:
                raise DuplicateExpressionError(raw["name"])
            names.add(raw["name"])

            definition = ExpressionDefinition.from_dict(raw)
            if definition.id in ids:
                definition.id = generate_expression_id()
            ids.add(definition.id)
            incoming.append(definition)

        if not merge:
            self._expressions = {d.id: d for d in incoming}
            return len(incoming)

        imported = 0
        for definition in incoming:
            if self.get_by_name(definition.name) is not None:
                continue
            if definition.id in self._expressions:
                definition.id = generate_expression_id()
            self._expressions[definition.id] = definition
            imported += 1
        return imported

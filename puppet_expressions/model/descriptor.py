"""Model Descriptor - CDI3 JSON schema and catalogue construction.

The descriptor lists the model's parameters:

    {
        "Version": 3,
        "Type": "...",
        "Name": "hiyori",
        "Parameters": [
            {"Id": "ParamMouthOpenY", "Name": "Mouth Open",
             "DefaultValue": 0, "MinValue": 0, "MaxValue": 1}
        ],
        "Groups": [...],
        "ParameterGroups": [...]
    }

Descriptors often omit value ranges; missing values fall back to
default 0, min 0, max 1. Missing ``Index`` falls back to array position.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from puppet_expressions.config.constants import ENGINE
from puppet_expressions.exceptions import InvalidDescriptorError
from puppet_expressions.model.catalogue import (
    ModelParameter,
    ParameterCatalogue,
    humanize_parameter_id,
)


class DescriptorParameter(BaseModel):
    """One entry of the descriptor's ``Parameters`` array."""

    model_config = ConfigDict(extra="ignore")

    Id: str = Field(..., min_length=1)
    Name: str | None = None
    GroupId: str | None = None
    DefaultValue: float | None = None
    MinValue: float | None = None
    MaxValue: float | None = None
    Index: int | None = None
    Description: str | None = None
    Category: str | None = None


class ModelDescriptor(BaseModel):
    """Top-level descriptor document."""

    model_config = ConfigDict(extra="ignore")

    Version: int | str | None = None
    Type: str | None = None
    Name: str | None = None
    Parameters: list[DescriptorParameter]
    Groups: list[Any] | None = None
    ParameterGroups: list[Any] | None = None


def load_descriptor(data: Mapping[str, Any] | str | bytes) -> ModelDescriptor:
    """Validate raw descriptor data.

    Args:
        data: Parsed JSON mapping, or the raw JSON text

    Returns:
        Validated ModelDescriptor

    Raises:
        InvalidDescriptorError: If the data is not a descriptor
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise InvalidDescriptorError(f"malformed JSON: {e.msg}") from e

    if not isinstance(data, Mapping):
        raise InvalidDescriptorError("descriptor must be a JSON object")

    parameters = data.get("Parameters")
    if not isinstance(parameters, list):
        raise InvalidDescriptorError("missing Parameters array")

    try:
        return ModelDescriptor.model_validate(dict(data))
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidDescriptorError(f"{location}: {first['msg']}") from e


def build_catalogue(
    descriptor: ModelDescriptor,
    model_name: str | None = None,
) -> ParameterCatalogue:
    """Convert a validated descriptor into a ParameterCatalogue.

    Args:
        descriptor: Validated descriptor
        model_name: Overrides the descriptor's ``Name``

    Raises:
        InvalidDescriptorError: On duplicate ids or inconsistent ranges
    """
    parameters = []
    for position, entry in enumerate(descriptor.Parameters):
        default = entry.DefaultValue
        if default is None:
            default = ENGINE.DESCRIPTOR_DEFAULT_VALUE
        minimum = entry.MinValue
        if minimum is None:
            minimum = ENGINE.DESCRIPTOR_MIN_VALUE
        maximum = entry.MaxValue
        if maximum is None:
            maximum = ENGINE.DESCRIPTOR_MAX_VALUE

        parameters.append(
            ModelParameter(
                id=entry.Id,
                name=entry.Name or humanize_parameter_id(entry.Id),
                index=entry.Index if entry.Index is not None else position,
                default_value=default,
                min_value=minimum,
                max_value=maximum,
                description=entry.Description,
                category=entry.Category,
                group_id=entry.GroupId,
            )
        )

    return ParameterCatalogue(
        parameters,
        model_name=model_name or descriptor.Name or "",
        version=descriptor.Version,
        descriptor_type=descriptor.Type,
    )


def parse_descriptor(
    data: Mapping[str, Any] | str | bytes,
    model_name: str | None = None,
) -> ParameterCatalogue:
    """Validate a descriptor and build its catalogue in one step."""
    return build_catalogue(load_descriptor(data), model_name=model_name)

"""Parameter Catalogue - Static per-model parameter identities and ranges.

The catalogue is sourced from the model descriptor and is immutable once
loaded. Loading a different model replaces it wholesale.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from puppet_expressions.exceptions import InvalidDescriptorError, UnknownParameterError

_PREFIX_RE = re.compile(r"^(Param|Parameter|param_|parameter_)", re.IGNORECASE)
_CAMEL_RE = re.compile(r"([a-z])([A-Z])")
_AXIS_WORDS = {"L": "Left", "R": "Right", "X": "X-Axis", "Y": "Y-Axis", "Z": "Z-Axis"}


def humanize_parameter_id(parameter_id: str) -> str:
    """Derive a display name from a raw parameter id.

    ``ParamEyeLOpen`` becomes ``Eye Left Open`` and ``ParamAngleX`` becomes
    ``Angle X-Axis``. Ids that humanize to fewer than two characters are
    returned unchanged.
    """
    name = _PREFIX_RE.sub("", parameter_id)
    name = _CAMEL_RE.sub(r"\1 \2", name)
    name = re.sub(r"[_-]", " ", name)
    # Split trailing single capitals that camel-case splitting misses ("EyeLOpen")
    name = re.sub(r"([A-Z])([A-Z][a-z])", r"\1 \2", name)
    words = [w[:1].upper() + w[1:] for w in name.split()]
    words = [_AXIS_WORDS.get(w, w) for w in words]
    name = " ".join(words).strip()

    if len(name) < 2:
        return parameter_id
    return name


@dataclass(frozen=True)
class ModelParameter:
    """Identity and static bounds of one model parameter.

    ``index`` is the position in the host runtime's parameter array and is
    only used for interop with that runtime.
    """

    id: str
    name: str
    index: int
    default_value: float
    min_value: float
    max_value: float
    description: str | None = None
    category: str | None = None
    group_id: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidDescriptorError("parameter id must not be empty")
        if not (self.min_value <= self.default_value <= self.max_value):
            raise InvalidDescriptorError(
                f"parameter {self.id}: expected min <= default <= max, got "
                f"{self.min_value} <= {self.default_value} <= {self.max_value}"
            )

    def clamp(self, value: float) -> float:
        """Clamp a value to this parameter's legal range."""
        return max(self.min_value, min(self.max_value, value))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "index": self.index,
            "default_value": self.default_value,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "description": self.description,
            "category": self.category,
            "group_id": self.group_id,
        }


class ParameterCatalogue:
    """Ordered, immutable table of a model's parameters.

    Usage:
        catalogue = ParameterCatalogue(parameters, model_name="hiyori")

        if "ParamMouthOpenY" in catalogue:
            param = catalogue["ParamMouthOpenY"]

        for param in catalogue:  # catalogue order
            ...
    """

    def __init__(
        self,
        parameters: Iterable[ModelParameter],
        model_name: str = "",
        version: int | str | None = None,
        descriptor_type: str | None = None,
    ) -> None:
        self._parameters: tuple[ModelParameter, ...] = tuple(parameters)
        self._by_id: dict[str, ModelParameter] = {}
        for param in self._parameters:
            if param.id in self._by_id:
                raise InvalidDescriptorError(f"duplicate parameter id: {param.id}")
            self._by_id[param.id] = param

        self._model_name = model_name
        self._version = version
        self._descriptor_type = descriptor_type

    @property
    def model_name(self) -> str:
        """Name of the model this catalogue describes."""
        return self._model_name

    @property
    def version(self) -> int | str | None:
        """Descriptor format version."""
        return self._version

    @property
    def descriptor_type(self) -> str | None:
        """Descriptor ``Type`` field, if present."""
        return self._descriptor_type

    @property
    def parameters(self) -> tuple[ModelParameter, ...]:
        """All parameters in catalogue order."""
        return self._parameters

    @property
    def ids(self) -> list[str]:
        """Parameter ids in catalogue order."""
        return [p.id for p in self._parameters]

    def get(self, parameter_id: str) -> ModelParameter | None:
        """Look up a parameter, returning None when absent."""
        return self._by_id.get(parameter_id)

    def require(self, parameter_id: str) -> ModelParameter:
        """Look up a parameter.

        Raises:
            UnknownParameterError: If the id is not in this catalogue
        """
        param = self._by_id.get(parameter_id)
        if param is None:
            raise UnknownParameterError(parameter_id, self._model_name or None)
        return param

    def __getitem__(self, parameter_id: str) -> ModelParameter:
        return self.require(parameter_id)

    def __contains__(self, parameter_id: object) -> bool:
        return parameter_id in self._by_id

    def __iter__(self) -> Iterator[ModelParameter]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def defaults(self) -> dict[str, float]:
        """Default value per parameter (the idle pose)."""
        return {p.id: p.default_value for p in self._parameters}

    def clamp(self, parameter_id: str, value: float) -> float:
        """Clamp a value to the named parameter's range."""
        return self.require(parameter_id).clamp(value)

    def __repr__(self) -> str:
        return f"ParameterCatalogue(model_name={self._model_name!r}, parameters={len(self)})"

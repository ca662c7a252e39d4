"""Parameter Store - Live, range-clamped value per model parameter.

One writer (the engine's commit step), many readers (the rendering runtime,
frame streams). Values live in two buffers: commits fill the back buffer and
swap it in under a lock, so readers on another thread always see a whole
frame.
"""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Mapping

from puppet_expressions.exceptions import NoActiveModelError, UnknownParameterError
from puppet_expressions.model.catalogue import ParameterCatalogue


class ParameterStore:
    """Current value per parameter of the loaded model.

    Usage:
        store = ParameterStore()
        store.load(catalogue)

        store.set("ParamMouthOpenY", 1.4)   # clamped to max
        store.get("ParamMouthOpenY")        # 1.0
        store.reset()                       # back to defaults
    """

    def __init__(self, catalogue: ParameterCatalogue | None = None) -> None:
        self._lock = threading.Lock()
        self._catalogue: ParameterCatalogue | None = None
        self._front: dict[str, float] = {}
        self._back: dict[str, float] = {}
        if catalogue is not None:
            self.load(catalogue)

    @property
    def catalogue(self) -> ParameterCatalogue | None:
        """Active catalogue, or None before the first load."""
        return self._catalogue

    @property
    def is_loaded(self) -> bool:
        return self._catalogue is not None

    def _require_catalogue(self, command: str) -> ParameterCatalogue:
        if self._catalogue is None:
            raise NoActiveModelError(command)
        return self._catalogue

    def load(self, catalogue: ParameterCatalogue) -> None:
        """Replace the catalogue and reset every value to its default."""
        defaults = catalogue.defaults()
        with self._lock:
            self._catalogue = catalogue
            self._front = defaults
            self._back = dict(defaults)

    def get(self, parameter_id: str) -> float:
        """Current committed value.

        Raises:
            NoActiveModelError: If no catalogue is loaded
            UnknownParameterError: If the id is not in the catalogue
        """
        catalogue = self._require_catalogue("get")
        front = self._front
        if parameter_id not in front:
            raise UnknownParameterError(parameter_id, catalogue.model_name or None)
        return front[parameter_id]

    def set(self, parameter_id: str, value: float) -> float:
        """Set one value, clamped to the parameter's range.

        Returns:
            The stored (clamped) value

        Raises:
            NoActiveModelError: If no catalogue is loaded
            UnknownParameterError: If the id is not in the catalogue
        """
        catalogue = self._require_catalogue("set")
        clamped = catalogue.require(parameter_id).clamp(value)
        with self._lock:
            self._front[parameter_id] = clamped
            self._back[parameter_id] = clamped
        return clamped

    def reset(self) -> None:
        """Restore every parameter to its catalogue default.

        Raises:
            NoActiveModelError: If no catalogue is loaded
        """
        catalogue = self._require_catalogue("reset")
        defaults = catalogue.defaults()
        with self._lock:
            self._front = defaults
            self._back = dict(defaults)

    def commit(self, values: Mapping[str, float]) -> list[str]:
        """Write a whole frame and publish it atomically.

        Ids missing from the catalogue are skipped, the rest clamped.
        Parameters absent from ``values`` keep their current value.

        Returns:
            Skipped parameter ids

        Raises:
            NoActiveModelError: If no catalogue is loaded
        """
        catalogue = self._require_catalogue("commit")
        skipped: list[str] = []

        with self._lock:
            back = self._back
            back.update(self._front)
            for parameter_id, value in values.items():
                param = catalogue.get(parameter_id)
                if param is None:
                    skipped.append(parameter_id)
                    continue
                back[parameter_id] = param.clamp(value)
            self._front, self._back = back, self._front

        return skipped

    def snapshot(self) -> Mapping[str, float]:
        """Read-only copy of the committed frame, in catalogue order."""
        if self._catalogue is None:
            return MappingProxyType({})
        with self._lock:
            front = dict(self._front)
        return MappingProxyType({pid: front[pid] for pid in self._catalogue.ids})

    def base_values(self) -> dict[str, float]:
        """Idle pose (catalogue defaults).

        Raises:
            NoActiveModelError: If no catalogue is loaded
        """
        return self._require_catalogue("base_values").defaults()

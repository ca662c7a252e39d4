"""Expression Engine - Command surface over catalogue, store and scheduler.

Owns the parameter state and fade state of the loaded model. Collaborators
are passed in explicitly:
- store: ParameterStore holding committed values
- sink: EventSink receiving expressions_changed / model_changed
- runtime: PuppetRuntime receiving every committed frame
- clock: FrameClock measuring time between ticks

Per tick: scheduler layers, then direct overrides on top, resolved over the
catalogue defaults and committed to the store in one swap.

Commands arrive from one control channel and are processed in order between
ticks. tick()/advance() never raise.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from puppet_expressions.animation.blend import BlendLayer, clamp_unit, resolve_layers
from puppet_expressions.animation.clock import FrameClock
from puppet_expressions.animation.store import ParameterStore
from puppet_expressions.animation.transition import TransitionScheduler
from puppet_expressions.config.constants import ENGINE
from puppet_expressions.engine.events import EventSink, EngineEvent, expressions_changed, model_changed
from puppet_expressions.engine.runtime import PuppetRuntime, push_frame
from puppet_expressions.exceptions import (
    ExpressionNotFoundError,
    InvalidDescriptorError,
    NoActiveModelError,
    UnknownParameterError,
    ValidationFailedError,
)
from puppet_expressions.expressions.definition import (
    BlendMode,
    ExpressionDefinition,
    ExpressionParameter,
    ValidationResult,
)
from puppet_expressions.expressions.library import ExpressionLibrary, ParameterInput
from puppet_expressions.expressions.validation import validate
from puppet_expressions.model.catalogue import ModelParameter, ParameterCatalogue
from puppet_expressions.model.classifier import (
    ClassificationResult,
    categorize,
    classify,
    search,
    statistics,
)
from puppet_expressions.model.descriptor import parse_descriptor
from puppet_expressions.model.discovery import find_descriptor_for_model, read_descriptor
from puppet_expressions.observability.logging import ExpressionLogger, ModelLogger
from puppet_expressions.observability.metrics import (
    record_error,
    record_expression_applied,
    record_parameters_skipped,
    record_tick,
    record_validation_failure,
    update_loaded_parameters,
    update_registered_expressions,
)

OVERRIDE_LAYER_NAME = "overrides"


@dataclass
class EngineState:
    """Introspection snapshot returned by get_state()."""

    current_expression: str | None
    target_expression: str | None
    transition_progress: float
    intensity: float
    is_transitioning: bool
    model_name: str | None = None
    override_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_expression": self.current_expression,
            "target_expression": self.target_expression,
            "transition_progress": self.transition_progress,
            "intensity": self.intensity,
            "is_transitioning": self.is_transitioning,
            "model_name": self.model_name,
            "override_count": self.override_count,
        }


@dataclass
class ApplyResult:
    """Outcome of apply_expression()."""

    expression: str
    expression_id: str
    intensity: float
    duration_ms: int
    skipped_parameters: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "expression": self.expression,
            "expression_id": self.expression_id,
            "intensity": self.intensity,
            "duration_ms": self.duration_ms,
            "skipped_parameters": list(self.skipped_parameters),
            "warnings": list(self.warnings),
        }


class ExpressionEngine:
    """Expression parameter blending engine.

    Usage:
        engine = ExpressionEngine(sink=broadcaster, runtime=renderer)
        engine.load_model(descriptor_json)

        engine.register_expression("Smile", [
            {"parameter_id": "ParamMouthOpenY", "target_value": 1.0},
        ])
        engine.apply_expression("Smile", intensity=0.8, duration_ms=300)

        # Each rendered frame
        engine.tick()
    """

    def __init__(
        self,
        store: ParameterStore | None = None,
        sink: EventSink | None = None,
        runtime: PuppetRuntime | None = None,
        clock: FrameClock | None = None,
        library: ExpressionLibrary | None = None,
        default_fade_ms: int = ENGINE.DEFAULT_FADE_MS,
    ) -> None:
        self._store = store or ParameterStore()
        self._sink = sink
        self._runtime = runtime
        self._clock = clock or FrameClock()
        self._library = library if library is not None else ExpressionLibrary()
        self._default_fade_ms = default_fade_ms

        self._logger = ExpressionLogger()
        self._model_logger = ModelLogger()
        self._scheduler = TransitionScheduler(logger=self._logger)

        # Direct overrides: top-priority layer, one entry per parameter
        self._overrides: dict[str, ExpressionParameter] = {}
        self._last_tick_ms: float | None = None
        self._ready = asyncio.Event()

        if self._store.is_loaded:
            self._ready.set()
        update_registered_expressions(len(self._library))

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def store(self) -> ParameterStore:
        return self._store

    @property
    def library(self) -> ExpressionLibrary:
        return self._library

    @property
    def scheduler(self) -> TransitionScheduler:
        return self._scheduler

    @property
    def catalogue(self) -> ParameterCatalogue | None:
        """Active catalogue, or None before the first model load."""
        return self._store.catalogue

    @property
    def model_name(self) -> str | None:
        catalogue = self._store.catalogue
        return catalogue.model_name if catalogue is not None else None

    @property
    def default_fade_ms(self) -> int:
        return self._default_fade_ms

    @property
    def is_ready(self) -> bool:
        """True once a model is loaded and commands can be applied."""
        return self._store.is_loaded

    async def wait_until_ready(self, timeout_s: float | None = ENGINE.READY_TIMEOUT_S) -> bool:
        """Wait for the first model load.

        Args:
            timeout_s: Upper bound in seconds (None waits forever)

        Returns:
            True if ready, False on timeout
        """
        if self.is_ready:
            return True
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout_s)
        except asyncio.TimeoutError:
            return False
        return True

    def _require_catalogue(self, command: str) -> ParameterCatalogue:
        catalogue = self._store.catalogue
        if catalogue is None:
            raise NoActiveModelError(command)
        return catalogue

    # -------------------------------------------------------------------------
    # Model
    # -------------------------------------------------------------------------

    def load_model(
        self,
        descriptor: ParameterCatalogue | Mapping[str, Any] | str | bytes,
        model_name: str | None = None,
    ) -> ParameterCatalogue:
        """Load a model from its descriptor (or a prebuilt catalogue).

        Replaces the catalogue, resets values, clears fades and overrides.
        On failure the previous model and state are kept.

        Raises:
            InvalidDescriptorError: If the descriptor is malformed
        """
        if isinstance(descriptor, ParameterCatalogue):
            catalogue = descriptor
        else:
            try:
                catalogue = parse_descriptor(descriptor, model_name=model_name)
            except InvalidDescriptorError as e:
                record_error("descriptor", type(e).__name__)
                self._model_logger.descriptor_rejected(e.reason, e.path)
                raise

        self._activate(catalogue)
        return catalogue

    def load_model_file(
        self,
        model_path: str | Path,
        model_name: str | None = None,
    ) -> ParameterCatalogue:
        """Locate, read and load the descriptor for a model file.

        ``model_path`` may point at the descriptor itself or at the model
        file next to it.

        Raises:
            InvalidDescriptorError: If no descriptor is found or it is malformed
        """
        path = Path(model_path)
        if path.name.endswith((".cdi3.json", ".cdi3")):
            descriptor_path: Path | None = path
        else:
            descriptor_path = find_descriptor_for_model(path)

        try:
            if descriptor_path is None:
                raise InvalidDescriptorError("no descriptor found for model", str(path))
            catalogue = read_descriptor(descriptor_path, model_name=model_name)
        except InvalidDescriptorError as e:
            record_error("descriptor", type(e).__name__)
            self._model_logger.descriptor_rejected(e.reason, e.path)
            raise

        if not catalogue.model_name:
            catalogue = ParameterCatalogue(
                catalogue.parameters,
                model_name=path.name.split(".")[0],
                version=catalogue.version,
                descriptor_type=catalogue.descriptor_type,
            )

        self._activate(catalogue)
        return catalogue

    def _activate(self, catalogue: ParameterCatalogue) -> None:
        self._scheduler.reset()
        self._overrides.clear()
        self._store.load(catalogue)
        self._last_tick_ms = None

        self._logger.rebind(catalogue.model_name)
        self._model_logger = ModelLogger(catalogue.model_name)
        classification = classify(catalogue)
        self._model_logger.model_loaded(
            catalogue.model_name,
            len(catalogue),
            len(classification.expression_parameters),
        )
        update_loaded_parameters(len(catalogue))

        self._publish(self._store.snapshot())
        self._ready.set()
        self._emit(model_changed(catalogue.model_name))

    def get_parameters(self) -> list[ModelParameter]:
        """Catalogue parameters in catalogue order.

        Raises:
            NoActiveModelError: If no model is loaded
        """
        return list(self._require_catalogue("get_parameters"))

    def classify_parameters(self) -> ClassificationResult:
        """Split the catalogue into expression-capable and other parameters.

        Raises:
            NoActiveModelError: If no model is loaded
        """
        return classify(self._require_catalogue("classify_parameters"))

    def categorize_parameters(self) -> dict[str, list[ModelParameter]]:
        """Group parameters for authoring UIs.

        Raises:
            NoActiveModelError: If no model is loaded
        """
        return categorize(self._require_catalogue("categorize_parameters"))

    def search_parameters(self, query: str) -> list[ModelParameter]:
        """Substring search over the catalogue.

        Raises:
            NoActiveModelError: If no model is loaded
        """
        return search(self._require_catalogue("search_parameters"), query)

    def parameter_statistics(self) -> dict[str, Any]:
        """Range, type and category counts.

        Raises:
            NoActiveModelError: If no model is loaded
        """
        return statistics(self._require_catalogue("parameter_statistics"))

    def get_parameter_values(self) -> Mapping[str, float]:
        """Committed values (empty before the first model load)."""
        return self._store.snapshot()

    # -------------------------------------------------------------------------
    # Expression library
    # -------------------------------------------------------------------------

    def get_expressions(self) -> list[ExpressionDefinition]:
        return self._library.expressions

    def validate_expression(
        self,
        definition: ExpressionDefinition | Mapping[str, Any],
    ) -> ValidationResult:
        """Validate against the active catalogue when one is loaded."""
        return validate(definition, self._store.catalogue)

    def register_expression(
        self,
        name: str,
        parameters: Iterable[ParameterInput],
        description: str | None = None,
        fade_duration_ms: int | None = None,
        enabled: bool = True,
    ) -> tuple[ExpressionDefinition, ValidationResult]:
        """Validate and add a definition to the library.

        Raises:
            ValidationFailedError: On structural errors
            DuplicateExpressionError: If the name is taken
        """
        try:
            definition, result = self._library.create(
                name,
                parameters,
                description=description,
                fade_duration_ms=fade_duration_ms,
                enabled=enabled,
                catalogue=self._store.catalogue,
            )
        except ValidationFailedError as e:
            self._reject(name, e)
            raise

        self._expressions_changed("created", definition.name)
        return definition, result

    def capture_expression(
        self,
        name: str,
        description: str | None = None,
    ) -> tuple[ExpressionDefinition, ValidationResult]:
        """Register the committed pose as a new expression.

        Parameters within ``ENGINE.CAPTURE_TOLERANCE`` of their default are
        left out. The rest become full-weight overwrite entries holding the
        committed value, so applying the capture reproduces the pose.

        Raises:
            NoActiveModelError: If no model is loaded
            ValidationFailedError: If every parameter is at its default
            DuplicateExpressionError: If the name is taken
        """
        catalogue = self._require_catalogue("capture_expression")
        defaults = catalogue.defaults()
        parameters = [
            {
                "parameter_id": parameter_id,
                "target_value": value,
                "weight": 1.0,
                "blend_mode": BlendMode.OVERWRITE.value,
            }
            for parameter_id, value in self._store.snapshot().items()
            if abs(value - defaults[parameter_id]) > ENGINE.CAPTURE_TOLERANCE
        ]
        return self.register_expression(name, parameters, description=description)

    def update_expression(
        self,
        expression_id: str,
        name: str | None = None,
        description: str | None = None,
        parameters: Iterable[ParameterInput] | None = None,
        fade_duration_ms: int | None = None,
    ) -> tuple[ExpressionDefinition, ValidationResult]:
        """Partially update a definition.

        A running fade keeps the parameters it started with; the update
        takes effect on the next apply.

        Raises:
            ExpressionNotFoundError: If no definition has this id
            ValidationFailedError: On structural errors
            DuplicateExpressionError: If the new name is taken
        """
        try:
            definition, result = self._library.update(
                expression_id,
                name=name,
                description=description,
                parameters=parameters,
                fade_duration_ms=fade_duration_ms,
                catalogue=self._store.catalogue,
            )
        except ValidationFailedError as e:
            self._reject(name, e)
            raise

        self._expressions_changed("updated", definition.name)
        return definition, result

    def delete_expression(self, expression_id: str) -> ExpressionDefinition:
        """Remove a definition, stopping it first if it is playing.

        Raises:
            ExpressionNotFoundError: If no definition has this id
        """
        definition = self._library.delete(expression_id)
        self._stop_if_active({expression_id})
        self._expressions_changed("deleted", definition.name)
        return definition

    def set_expression_enabled(self, expression_id: str, enabled: bool) -> ExpressionDefinition:
        """Enable or disable a definition. Disabling a playing one stops it.

        Raises:
            ExpressionNotFoundError: If no definition has this id
        """
        definition = self._library.set_enabled(expression_id, enabled)
        if not enabled:
            self._stop_if_active({expression_id})
        self._expressions_changed("enabled" if enabled else "disabled", definition.name)
        return definition

    def import_expressions(self, text: str | bytes, merge: bool = False) -> int:
        """Import definitions from JSON text (replace or merge).

        Raises:
            ValidationFailedError: On bad data; nothing is imported
            DuplicateExpressionError: If the import repeats a name
        """
        try:
            count = self._library.import_json(text, merge=merge)
        except ValidationFailedError as e:
            self._reject(e.details.get("expression"), e)
            raise

        remaining = {d.id for d in self._library}
        self._stop_if_active(self._active_expression_ids() - remaining)
        self._expressions_changed("imported")
        return count

    def export_expressions(self) -> str:
        """Export the library as JSON text."""
        return self._library.export_json(
            model_name=self.model_name,
            catalogue=self._store.catalogue,
        )

    def _reject(self, name: str | None, error: ValidationFailedError) -> None:
        record_validation_failure()
        self._logger.validation_failed(name, error.errors, error.warnings)

    def _expressions_changed(self, action: str, name: str | None = None) -> None:
        update_registered_expressions(len(self._library))
        self._emit(expressions_changed(self._library.enabled_names(), action, name))

    def _active_expression_ids(self) -> set[str]:
        layers = (
            self._scheduler.resting_layer,
            self._scheduler.incoming_layer,
            self._scheduler.outgoing_layer,
        )
        return {layer.expression_id for layer in layers if layer and layer.expression_id}

    def _stop_if_active(self, expression_ids: set[str]) -> None:
        if not expression_ids & self._active_expression_ids():
            return
        self._scheduler.reset()
        if self._store.is_loaded:
            self._render([])

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def apply_expression(
        self,
        name: str,
        intensity: float = 1.0,
        duration_ms: int | None = None,
    ) -> ApplyResult:
        """Start a fade to a named expression.

        Entries whose parameters are missing from the active model are
        skipped with a warning each. The fade progresses on tick()/advance().

        Args:
            name: Expression name
            intensity: Steady-state intensity, clamped to [0, 1]
            duration_ms: Fade length; defaults to the definition's own fade,
                then the engine default. 0 snaps on the next tick.

        Raises:
            NoActiveModelError: If no model is loaded
            ExpressionNotFoundError: If missing or disabled
            ValidationFailedError: If the definition is malformed or none of
                its parameters exist in the active model
        """
        try:
            catalogue = self._require_catalogue("apply_expression")
        except NoActiveModelError:
            record_expression_applied("no_model")
            raise

        try:
            definition = self._library.require_enabled(name)
        except ExpressionNotFoundError:
            record_expression_applied("not_found")
            raise

        result = validate(definition)
        if not result.is_valid:
            record_expression_applied("invalid")
            error = ValidationFailedError(definition.name, result.errors, result.warnings)
            self._reject(definition.name, error)
            raise error

        warnings = list(result.warnings)
        known: list[ExpressionParameter] = []
        skipped: list[str] = []
        for entry in definition.parameters:
            if entry.parameter_id in catalogue:
                known.append(entry)
                continue
            skipped.append(entry.parameter_id)
            warnings.append(UnknownParameterError(entry.parameter_id, catalogue.model_name).message)
            self._logger.parameter_skipped(entry.parameter_id, "unknown_parameter")

        if not known:
            record_expression_applied("invalid")
            error = ValidationFailedError(
                definition.name,
                ["No parameters of this expression exist in the active model"],
                warnings,
            )
            self._reject(definition.name, error)
            raise error

        if duration_ms is None:
            duration_ms = definition.fade_duration_ms
        if duration_ms is None:
            duration_ms = self._default_fade_ms
        duration_ms = int(max(0, min(ENGINE.MAX_FADE_MS, duration_ms)))
        intensity = clamp_unit(float(intensity))

        layer = BlendLayer(
            name=definition.name,
            parameters=tuple(known),
            intensity=intensity,
            expression_id=definition.id,
        )
        now = self._clock.now_ms()
        self._scheduler.start(
            layer,
            duration_ms,
            now_ms=int(now),
            base_values=self._store.base_values(),
            catalogue=catalogue,
        )
        # Fade time counts from the command, not from the previous tick
        self._last_tick_ms = now

        record_expression_applied("ok")
        record_parameters_skipped(len(skipped))
        self._logger.expression_applied(definition.name, intensity, duration_ms, len(skipped))

        return ApplyResult(
            expression=definition.name,
            expression_id=definition.id,
            intensity=intensity,
            duration_ms=duration_ms,
            skipped_parameters=skipped,
            warnings=warnings,
        )

    def reset_expression(self) -> Mapping[str, float]:
        """Cancel fades and overrides and restore defaults immediately.

        Returns:
            The committed (default) values

        Raises:
            NoActiveModelError: If no model is loaded
        """
        self._require_catalogue("reset_expression")
        self._scheduler.reset()
        self._overrides.clear()
        self._store.reset()
        self._last_tick_ms = self._clock.now_ms()

        snapshot = self._store.snapshot()
        self._publish(snapshot)
        self._logger.expression_reset()
        return snapshot

    def set_parameter_value(
        self,
        parameter_id: str,
        value: float,
        weight: float = 1.0,
        blend_mode: BlendMode | str = BlendMode.OVERWRITE,
    ) -> float:
        """Directly override one parameter, on top of any expression.

        The override persists until reset_expression() or a model load, and
        is committed immediately.

        Returns:
            The committed value

        Raises:
            NoActiveModelError: If no model is loaded
            UnknownParameterError: If the id is not in the catalogue
            ValidationFailedError: If weight or blend mode is invalid
        """
        catalogue = self._require_catalogue("set_parameter_value")
        param = catalogue.require(parameter_id)

        result = validate({
            "name": OVERRIDE_LAYER_NAME,
            "parameters": [{
                "parameter_id": parameter_id,
                "target_value": value,
                "weight": weight,
                "blend_mode": blend_mode.value if isinstance(blend_mode, BlendMode) else blend_mode,
            }],
        })
        if not result.is_valid:
            error = ValidationFailedError(parameter_id, result.errors, result.warnings)
            self._reject(parameter_id, error)
            raise error

        self._overrides.pop(parameter_id, None)
        self._overrides[parameter_id] = ExpressionParameter(
            parameter_id=parameter_id,
            target_value=float(value),
            weight=float(weight),
            blend_mode=BlendMode(blend_mode),
            parameter_name=param.name,
        )

        self._render(self._scheduler.layers())
        return self._store.get(parameter_id)

    def clear_overrides(self) -> None:
        """Drop all direct overrides, keeping expressions."""
        self._overrides.clear()
        if self._store.is_loaded:
            self._render(self._scheduler.layers())

    @property
    def overrides(self) -> dict[str, ExpressionParameter]:
        return dict(self._overrides)

    def get_state(self) -> EngineState:
        """Current/target expression, progress and intensity."""
        scheduler = self._scheduler
        if scheduler.is_transitioning:
            outgoing = scheduler.outgoing_layer
            incoming = scheduler.incoming_layer
            return EngineState(
                current_expression=outgoing.name if outgoing else None,
                target_expression=incoming.name if incoming else None,
                transition_progress=scheduler.progress,
                intensity=incoming.intensity if incoming else 0.0,
                is_transitioning=True,
                model_name=self.model_name,
                override_count=len(self._overrides),
            )

        resting = scheduler.resting_layer
        return EngineState(
            current_expression=resting.name if resting else None,
            target_expression=None,
            transition_progress=1.0 if resting else 0.0,
            intensity=resting.intensity if resting else 0.0,
            is_transitioning=False,
            model_name=self.model_name,
            override_count=len(self._overrides),
        )

    # -------------------------------------------------------------------------
    # Frame loop
    # -------------------------------------------------------------------------

    def tick(self) -> Mapping[str, float]:
        """Advance by the clock time since the previous tick and commit."""
        now = self._clock.now_ms()
        delta = 0.0 if self._last_tick_ms is None else now - self._last_tick_ms
        self._last_tick_ms = now
        return self.advance(delta)

    def advance(self, delta_ms: float) -> Mapping[str, float]:
        """Advance fades by ``delta_ms`` and commit one frame.

        Never raises: failures are logged and counted, and the previous
        frame stays committed.

        Returns:
            The committed values (empty before the first model load)
        """
        if not self._store.is_loaded:
            return self._store.snapshot()

        start = time.perf_counter()
        try:
            layers = self._scheduler.advance(delta_ms)
            return self._render(layers)
        except Exception as e:
            record_error("tick", type(e).__name__)
            self._logger.tick_failed(str(e), delta_ms=delta_ms)
            return self._store.snapshot()
        finally:
            record_tick(time.perf_counter() - start)

    def _render(self, layers: list[BlendLayer]) -> Mapping[str, float]:
        catalogue = self._require_catalogue("render")
        if self._overrides:
            layers = [
                *layers,
                BlendLayer(
                    name=OVERRIDE_LAYER_NAME,
                    parameters=tuple(self._overrides.values()),
                ),
            ]

        result = resolve_layers(self._store.base_values(), layers, catalogue)
        skipped = result.skipped + self._store.commit(result.values)
        if skipped:
            record_parameters_skipped(len(skipped))

        snapshot = self._store.snapshot()
        self._publish(snapshot)
        return snapshot

    def _publish(self, values: Mapping[str, float]) -> None:
        if self._runtime is None:
            return
        try:
            push_frame(self._runtime, values)
        except Exception as e:
            record_error("runtime", type(e).__name__)
            self._logger.tick_failed(str(e), component="runtime")

    def _emit(self, event: EngineEvent) -> None:
        if self._sink is None:
            return
        try:
            self._sink.emit(event)
        except Exception as e:
            record_error("events", type(e).__name__)
            self._logger.tick_failed(str(e), component="events")


def create_engine(
    sink: EventSink | None = None,
    runtime: PuppetRuntime | None = None,
    default_fade_ms: int | None = None,
) -> ExpressionEngine:
    """Create an engine configured from settings."""
    from puppet_expressions.config.settings import get_settings

    settings = get_settings()
    return ExpressionEngine(
        sink=sink,
        runtime=runtime,
        default_fade_ms=settings.default_fade_ms if default_fade_ms is None else default_fade_ms,
    )

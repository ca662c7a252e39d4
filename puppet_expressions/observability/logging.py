"""Structured Logging - JSON logs with model correlation.

Provides structured logging for:
- Model loads and descriptor rejections
- Expression applies, fades and resets
- Skipped parameters and validation failures

All engine logs include model_name for correlation.
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON; else human-readable
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _level_number(level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Also configure standard logging (uvicorn, fastapi)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=_level_number(level),
    )


def _level_number(level: str) -> int:
    # Settings allow "WARN", which logging spells WARNING
    name = level.upper()
    if name == "WARN":
        name = "WARNING"
    return getattr(logging, name)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)


def bind_model(model_name: str) -> None:
    """Bind model_name to all logs in current context."""
    structlog.contextvars.bind_contextvars(model_name=model_name)


def unbind_model() -> None:
    """Remove model_name from log context."""
    structlog.contextvars.unbind_contextvars("model_name")


# -----------------------------------------------------------------------------
# Event-specific logging functions
# -----------------------------------------------------------------------------


class ModelLogger:
    """Logger for model catalogue events."""

    def __init__(self, model_name: str | None = None) -> None:
        self._log = get_logger("model")
        if model_name:
            self._log = self._log.bind(model_name=model_name)

    def model_loaded(
        self,
        model_name: str,
        parameter_count: int,
        expression_parameter_count: int,
    ) -> None:
        """Log a successful catalogue load."""
        self._log.info(
            "model_loaded",
            event_type="model.loaded",
            model_name=model_name,
            parameter_count=parameter_count,
            expression_parameter_count=expression_parameter_count,
        )

    def descriptor_rejected(self, reason: str, path: str | None = None) -> None:
        """Log an invalid descriptor (load aborted)."""
        self._log.error(
            "descriptor_rejected",
            event_type="model.descriptor_rejected",
            reason=reason,
            path=path,
        )

    def descriptor_found(self, model_path: str, descriptor_path: str | None) -> None:
        """Log the outcome of descriptor discovery."""
        self._log.debug(
            "descriptor_lookup",
            event_type="model.descriptor_lookup",
            model_path=model_path,
            descriptor_path=descriptor_path,
            found=descriptor_path is not None,
        )


class ExpressionLogger:
    """Logger for expression and transition events."""

    def __init__(self, model_name: str | None = None) -> None:
        self._log = get_logger("expression")
        if model_name:
            self._log = self._log.bind(model_name=model_name)

    def rebind(self, model_name: str) -> None:
        """Correlate subsequent logs with a newly loaded model."""
        self._log = get_logger("expression").bind(model_name=model_name)

    def expression_applied(
        self,
        name: str,
        intensity: float,
        duration_ms: int,
        skipped: int = 0,
    ) -> None:
        """Log an apply command."""
        self._log.info(
            "expression_applied",
            event_type="expression.applied",
            expression=name,
            intensity=intensity,
            duration_ms=duration_ms,
            skipped_parameters=skipped,
        )

    def transition_started(
        self,
        from_id: str | None,
        to_id: str | None,
        duration_ms: int,
    ) -> None:
        """Log the start of a fade."""
        self._log.debug(
            "transition_started",
            event_type="transition.started",
            from_expression=from_id,
            to_expression=to_id,
            duration_ms=duration_ms,
        )

    def transition_retargeted(
        self,
        from_id: str | None,
        to_id: str | None,
        progress: float,
    ) -> None:
        """Log a re-target while a fade is in flight."""
        self._log.debug(
            "transition_retargeted",
            event_type="transition.retargeted",
            from_expression=from_id,
            to_expression=to_id,
            progress=progress,
        )

    def transition_completed(self, to_id: str | None, elapsed_ms: float) -> None:
        """Log fade completion."""
        self._log.debug(
            "transition_completed",
            event_type="transition.completed",
            to_expression=to_id,
            elapsed_ms=elapsed_ms,
        )

    def expression_reset(self) -> None:
        """Log reset to the base pose."""
        self._log.info(
            "expression_reset",
            event_type="expression.reset",
        )

    def parameter_skipped(self, parameter_id: str, reason: str) -> None:
        """Log a parameter entry that could not be applied."""
        self._log.warning(
            "parameter_skipped",
            event_type="expression.parameter_skipped",
            parameter_id=parameter_id,
            reason=reason,
        )

    def validation_failed(
        self,
        name: str | None,
        errors: list[str],
        warnings: list[str] | None = None,
    ) -> None:
        """Log a rejected definition."""
        self._log.warning(
            "validation_failed",
            event_type="expression.validation_failed",
            expression=name,
            errors=errors,
            warnings=warnings or [],
        )

    def tick_failed(self, error: str, **context: Any) -> None:
        """Log a frame that degraded instead of raising."""
        self._log.error(
            "tick_failed",
            event_type="engine.tick_failed",
            error=error,
            **context,
        )


# Initialize default logging configuration
def init_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Initialize logging with defaults.

    Call this once at application startup.
    """
    configure_logging(level=level, json_format=json_format)

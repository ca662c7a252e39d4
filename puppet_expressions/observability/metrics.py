"""Prometheus Metrics - Engine observability.

Exports:
- Expression apply counts
- Transition completions and re-targets
- Skipped parameters and validation failures
- Tick duration
- Catalogue and library sizes
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# -----------------------------------------------------------------------------
# Histograms
# -----------------------------------------------------------------------------

# Time spent resolving and committing one animation tick
TICK_DURATION = Histogram(
    "puppet_expressions_tick_seconds",
    "Time to resolve and commit one animation tick",
    buckets=[0.0001, 0.00025, 0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025],
)

# -----------------------------------------------------------------------------
# Counters
# -----------------------------------------------------------------------------

EXPRESSIONS_APPLIED = Counter(
    "puppet_expressions_applied_total",
    "Apply-expression commands",
    ["result"],  # ok, not_found, invalid, no_model
)

TRANSITIONS_COMPLETED = Counter(
    "puppet_expressions_transitions_completed_total",
    "Fades that reached progress 1.0",
)

TRANSITIONS_RETARGETED = Counter(
    "puppet_expressions_transitions_retargeted_total",
    "Fades re-targeted while in flight",
)

PARAMETERS_SKIPPED = Counter(
    "puppet_expressions_parameters_skipped_total",
    "Parameter entries skipped (unknown to the active catalogue)",
)

VALIDATION_FAILURES = Counter(
    "puppet_expressions_validation_failures_total",
    "Definitions rejected by validation",
)

ENGINE_ERRORS = Counter(
    "puppet_expressions_errors_total",
    "Errors by component",
    ["component", "type"],  # descriptor, tick, runtime, events
)

# -----------------------------------------------------------------------------
# Gauges
# -----------------------------------------------------------------------------

LOADED_PARAMETERS = Gauge(
    "puppet_expressions_loaded_parameters",
    "Parameters in the active catalogue",
)

REGISTERED_EXPRESSIONS = Gauge(
    "puppet_expressions_registered_expressions",
    "Expressions held in the library",
)

TRANSITION_ACTIVE = Gauge(
    "puppet_expressions_transition_active",
    "1 while a fade is in flight",
)

# -----------------------------------------------------------------------------
# Info
# -----------------------------------------------------------------------------

BUILD_INFO = Info(
    "puppet_expressions_build",
    "Build information",
)


# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def record_tick(duration_s: float) -> None:
    """Record tick duration in seconds."""
    TICK_DURATION.observe(duration_s)


def record_expression_applied(result: str = "ok") -> None:
    """Record an apply-expression command outcome."""
    EXPRESSIONS_APPLIED.labels(result=result).inc()


def record_transition_complete() -> None:
    """Record a completed fade."""
    TRANSITIONS_COMPLETED.inc()


def record_transition_retarget() -> None:
    """Record a fade re-targeted mid-flight."""
    TRANSITIONS_RETARGETED.inc()


def record_parameters_skipped(count: int = 1) -> None:
    """Record skipped parameter entries."""
    if count > 0:
        PARAMETERS_SKIPPED.inc(count)


def record_validation_failure() -> None:
    """Record a rejected definition."""
    VALIDATION_FAILURES.inc()


def record_error(component: str, error_type: str) -> None:
    """Record error by component."""
    ENGINE_ERRORS.labels(component=component, type=error_type).inc()


def update_loaded_parameters(count: int) -> None:
    """Update catalogue size gauge."""
    LOADED_PARAMETERS.set(count)


def update_registered_expressions(count: int) -> None:
    """Update library size gauge."""
    REGISTERED_EXPRESSIONS.set(count)


def update_transition_active(active: bool) -> None:
    """Update fade-in-flight gauge."""
    TRANSITION_ACTIVE.set(1 if active else 0)


def set_build_info(version: str, commit: str, build_time: str) -> None:
    """Set build information."""
    BUILD_INFO.info({
        "version": version,
        "commit": commit,
        "build_time": build_time,
    })

"""Tests for Prometheus Metrics.

Tests cover:
- Helper function invocations
- Counter and gauge values after recording
- Build info setting
"""

from prometheus_client import REGISTRY

from puppet_expressions.observability.metrics import (
    record_error,
    record_expression_applied,
    record_parameters_skipped,
    record_tick,
    record_transition_complete,
    record_transition_retarget,
    record_validation_failure,
    set_build_info,
    update_loaded_parameters,
    update_registered_expressions,
    update_transition_active,
)


def _sample(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestCounters:
    """Counters increase by what was recorded."""

    def test_expression_applied_by_result(self):
        before = _sample("puppet_expressions_applied_total", {"result": "ok"})
        record_expression_applied("ok")
        assert _sample("puppet_expressions_applied_total", {"result": "ok"}) == before + 1

    def test_parameters_skipped_ignores_zero(self):
        before = _sample("puppet_expressions_parameters_skipped_total")
        record_parameters_skipped(0)
        record_parameters_skipped(3)
        assert _sample("puppet_expressions_parameters_skipped_total") == before + 3

    def test_error_labels(self):
        labels = {"component": "tick", "type": "ValueError"}
        before = _sample("puppet_expressions_errors_total", labels)
        record_error("tick", "ValueError")
        assert _sample("puppet_expressions_errors_total", labels) == before + 1

    def test_transition_counters(self):
        completed = _sample("puppet_expressions_transitions_completed_total")
        retargeted = _sample("puppet_expressions_transitions_retargeted_total")
        record_transition_complete()
        record_transition_retarget()
        assert _sample("puppet_expressions_transitions_completed_total") == completed + 1
        assert _sample("puppet_expressions_transitions_retargeted_total") == retargeted + 1

    def test_validation_failure(self):
        before = _sample("puppet_expressions_validation_failures_total")
        record_validation_failure()
        assert _sample("puppet_expressions_validation_failures_total") == before + 1


class TestGauges:
    """Gauges hold the last value set."""

    def test_loaded_parameters(self):
        update_loaded_parameters(7)
        assert _sample("puppet_expressions_loaded_parameters") == 7

    def test_registered_expressions(self):
        update_registered_expressions(2)
        assert _sample("puppet_expressions_registered_expressions") == 2

    def test_transition_active(self):
        update_transition_active(True)
        assert _sample("puppet_expressions_transition_active") == 1
        update_transition_active(False)
        assert _sample("puppet_expressions_transition_active") == 0


class TestHistogramAndInfo:
    """Tick histogram and build info."""

    def test_record_tick(self):
        before = _sample("puppet_expressions_tick_seconds_count")
        record_tick(0.0004)
        assert _sample("puppet_expressions_tick_seconds_count") == before + 1

    def test_build_info(self):
        set_build_info("1.0.0", "abc123", "2024-01-01")
        assert _sample(
            "puppet_expressions_build_info",
            {"version": "1.0.0", "commit": "abc123", "build_time": "2024-01-01"},
        ) == 1.0

"""Tests for Prometheus metrics."""

from prometheus_client import REGISTRY

from wayfarer.observability.metrics import (
    BATCH_COUNT,
    HOOK_FAILURES,
    LLM_CALLS,
    PHASE_LATENCY,
    metrics_enabled,
    record_batch,
    record_hook_failure,
    record_llm_call,
    record_phase,
    record_validation_errors,
    setup_metrics,
)


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricDefinitions:
    """Tests that the metrics are registered."""

    def test_metrics_exist(self) -> None:
        """Batch, phase, hook and LLM metrics are defined."""
        assert BATCH_COUNT is not None
        assert PHASE_LATENCY is not None
        assert HOOK_FAILURES is not None
        assert LLM_CALLS is not None


class TestRecordHelpers:
    """Tests for the record_* helpers."""

    def test_record_batch(self) -> None:
        """Batch count is labelled by stopped reason; size is observed."""
        before = _sample("wayfarer_batch_count_total", {"stopped_reason": "end_route"})
        size_before = _sample("wayfarer_batch_size_steps_count")

        record_batch("end_route", 3)

        assert _sample(
            "wayfarer_batch_count_total", {"stopped_reason": "end_route"}
        ) == before + 1
        assert _sample("wayfarer_batch_size_steps_count") == size_before + 1

    def test_record_phase_in_seconds(self) -> None:
        """Phase durations are recorded in seconds."""
        labels = {"phase": "llm_call"}
        before = _sample("wayfarer_batch_phase_latency_seconds_sum", labels)

        record_phase("llm_call", 250.0)

        after = _sample("wayfarer_batch_phase_latency_seconds_sum", labels)
        assert abs(after - before - 0.25) < 1e-9

    def test_record_hook_failure(self) -> None:
        """Hook failures are counted per phase."""
        labels = {"phase": "finalize"}
        before = _sample("wayfarer_hook_failures_total", labels)

        record_hook_failure("finalize", 2)

        assert _sample("wayfarer_hook_failures_total", labels) == before + 2

    def test_zero_counts_are_ignored(self) -> None:
        """Recording zero failures or errors changes nothing."""
        before = _sample("wayfarer_validation_errors_total")
        record_validation_errors(0)
        assert _sample("wayfarer_validation_errors_total") == before

    def test_record_llm_call(self) -> None:
        """LLM calls are counted by outcome."""
        labels = {"outcome": "cancelled"}
        before = _sample("wayfarer_llm_calls_total", labels)

        record_llm_call("cancelled")

        assert _sample("wayfarer_llm_calls_total", labels) == before + 1


class TestSetupMetrics:
    """Tests for switching metrics off."""

    def test_disabled_records_nothing(self) -> None:
        """With metrics disabled the helpers are no-ops."""
        setup_metrics(enabled=False)
        labels = {"outcome": "success"}
        before = _sample("wayfarer_llm_calls_total", labels)

        record_llm_call("success")
        record_validation_errors(5)

        assert not metrics_enabled()
        assert _sample("wayfarer_llm_calls_total", labels) == before

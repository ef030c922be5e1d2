"""Prometheus metrics for Wayfarer.

Batch outcomes, phase latencies, hook failures and model call outcomes.
Recording goes through the ``record_*`` helpers so it can be switched off
from configuration.
"""

from prometheus_client import Counter, Histogram

# Batch metrics
BATCH_COUNT = Counter(
    "wayfarer_batch_count_total",
    "Total number of batches executed",
    labelnames=["stopped_reason"],
)

BATCH_SIZE = Histogram(
    "wayfarer_batch_size_steps",
    "Number of steps per executed batch",
    buckets=(0, 1, 2, 3, 5, 8, 13, 21),
)

PHASE_LATENCY = Histogram(
    "wayfarer_batch_phase_latency_seconds",
    "Latency of individual batch phases",
    labelnames=["phase"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Hook metrics
HOOK_FAILURES = Counter(
    "wayfarer_hook_failures_total",
    "Total number of failed lifecycle hooks",
    labelnames=["phase"],
)

# Data collection metrics
VALIDATION_ERRORS = Counter(
    "wayfarer_validation_errors_total",
    "Total number of collected-data validation errors",
)

# LLM metrics
LLM_CALLS = Counter(
    "wayfarer_llm_calls_total",
    "Total number of generation calls",
    labelnames=["outcome"],
)

_enabled = True


def setup_metrics(enabled: bool = True) -> None:
    """Turn metric recording on or off.

    Metrics register themselves when this module is imported; this only
    controls whether the helpers below record anything.
    """
    global _enabled
    _enabled = enabled


def metrics_enabled() -> bool:
    return _enabled


def record_batch(stopped_reason: str, size: int) -> None:
    if not _enabled:
        return
    BATCH_COUNT.labels(stopped_reason=stopped_reason).inc()
    BATCH_SIZE.observe(size)


def record_phase(phase: str, duration_ms: float) -> None:
    if not _enabled:
        return
    PHASE_LATENCY.labels(phase=phase).observe(duration_ms / 1000)


def record_hook_failure(phase: str, count: int = 1) -> None:
    if _enabled and count:
        HOOK_FAILURES.labels(phase=phase).inc(count)


def record_validation_errors(count: int) -> None:
    if _enabled and count:
        VALIDATION_ERRORS.inc(count)


def record_llm_call(outcome: str) -> None:
    if _enabled:
        LLM_CALLS.labels(outcome=outcome).inc()

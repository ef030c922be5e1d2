"""Observability: structured logging and Prometheus metrics."""

from wayfarer.config.models.observability import ObservabilityConfig
from wayfarer.observability.logging import (
    bind_turn_context,
    clear_turn_context,
    get_logger,
    setup_logging,
)
from wayfarer.observability.metrics import setup_metrics


def setup_observability(config: ObservabilityConfig) -> None:
    """Configure logging and metrics from configuration."""
    setup_logging(
        level=config.logging.level,
        format=config.logging.format,
        redact_pii=config.logging.redact_pii,
        extra_sensitive_keys=config.logging.redact_fields,
    )
    setup_metrics(enabled=config.metrics.enabled)


__all__ = [
    "bind_turn_context",
    "clear_turn_context",
    "get_logger",
    "setup_logging",
    "setup_metrics",
    "setup_observability",
]

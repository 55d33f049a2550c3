"""OpenTelemetry helpers for circuit metrics."""

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader


_meter_provider_initialized = False


def init_metrics() -> None:
    """Initialize OpenTelemetry metrics with a console exporter."""
    global _meter_provider_initialized
    if _meter_provider_initialized:
        return
    reader = PeriodicExportingMetricReader(ConsoleMetricExporter())
    provider = MeterProvider(metric_readers=[reader])
    metrics.set_meter_provider(provider)
    _meter_provider_initialized = True


def _meter():
    return metrics.get_meter("ai_feature_breaker")


def get_transition_counter():
    """Return a counter of circuit state transitions."""
    return _meter().create_counter(
        name="ai_feature.circuit.transitions",
        unit="1",
        description="Circuit state transitions per feature",
    )


def get_failure_counter():
    """Return a counter of recorded feature failures."""
    return _meter().create_counter(
        name="ai_feature.circuit.failures",
        unit="1",
        description="Failures reported for guarded AI features",
    )

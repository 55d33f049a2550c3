"""Data models for circuit state."""

from .circuit_models import (
    CircuitState,
    CircuitRecord,
    CircuitSnapshot,
    FeatureStatus,
    DEFAULT_RECORD,
)

__all__ = [
    "CircuitState",
    "CircuitRecord",
    "CircuitSnapshot",
    "FeatureStatus",
    "DEFAULT_RECORD",
]

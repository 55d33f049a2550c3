"""
AI feature circuit breaker

Tracks consecutive failures of AI-backed CRM features (competitor research,
SWOT, compliance checking, win-probability prediction), disables a feature
for a cooldown period once it keeps failing, and persists that state across
restarts.
"""

__version__ = "0.1.0"

from .circuit_breaker import CircuitBreakerRegistry
from .clock import ManualClock, SystemClock
from .config import GuardConfig, BreakerConfig
from .errors import CircuitBreakerOpen, CircuitBreakerContextError, RegistryNotInitialized
from .guard import FeatureGuard, registry_scope, use_circuit_breaker
from .models import CircuitRecord, CircuitState

__all__ = [
    "CircuitBreakerRegistry",
    "ManualClock",
    "SystemClock",
    "GuardConfig",
    "BreakerConfig",
    "CircuitBreakerOpen",
    "CircuitBreakerContextError",
    "RegistryNotInitialized",
    "FeatureGuard",
    "registry_scope",
    "use_circuit_breaker",
    "CircuitRecord",
    "CircuitState",
]

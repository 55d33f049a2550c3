"""Exceptions raised by the circuit breaker."""

from typing import Optional


class CircuitBreakerError(Exception):
    """Base class for circuit breaker errors."""


class CircuitBreakerOpen(CircuitBreakerError):
    """Raised when a guarded call is rejected because the circuit is open."""

    def __init__(self, feature: str, failures: int = 0, retry_after_ms: Optional[int] = None):
        self.feature = feature
        self.failures = failures
        self.retry_after_ms = retry_after_ms
        message = f"{feature} is temporarily disabled after {failures} consecutive failures"
        if retry_after_ms is not None:
            message += f"; retry in {retry_after_ms} ms"
        super().__init__(message)


class RegistryNotInitialized(CircuitBreakerError):
    """Raised when the registry is used before init()."""


class CircuitBreakerContextError(CircuitBreakerError):
    """Raised when a feature guard is requested outside registry_scope()."""

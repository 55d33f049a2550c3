"""Feature-level guard around AI calls, bound to an active registry."""

import inspect
import logging
import math
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Iterator, Optional, Union

from pydantic import BaseModel

from .circuit_breaker import CircuitBreakerRegistry
from .errors import CircuitBreakerContextError, CircuitBreakerOpen
from .models import CircuitRecord, CircuitState

logger = logging.getLogger(__name__)

_active_registry: ContextVar[Optional[CircuitBreakerRegistry]] = ContextVar(
    "ai_feature_breaker_registry", default=None
)


@contextmanager
def registry_scope(registry: CircuitBreakerRegistry) -> Iterator[CircuitBreakerRegistry]:
    """Make ``registry`` the one ``use_circuit_breaker`` resolves to."""
    token = _active_registry.set(registry)
    try:
        yield registry
    finally:
        _active_registry.reset(token)


def current_registry() -> CircuitBreakerRegistry:
    registry = _active_registry.get()
    if registry is None:
        raise CircuitBreakerContextError("use_circuit_breaker must be used within registry_scope")
    return registry


def format_time_remaining(ms: int) -> str:
    """Render a retry delay as whole seconds under a minute, else whole minutes."""
    seconds = math.ceil(ms / 1000)
    if seconds < 60:
        return f"{seconds}s"
    return f"{math.ceil(seconds / 60)}m"


class DisabledNotice(BaseModel):
    """What to show the user while a feature's circuit rejects calls."""
    feature: str
    state: CircuitState
    failures: int
    retry_in: str

    @property
    def title(self) -> str:
        return f"{self.feature} Temporarily Disabled"


class FeatureGuard:
    """
    Circuit view and reporting callbacks for a single feature.

    Example:
        with registry_scope(registry):
            guard = use_circuit_breaker("SWOT Analysis")
            result = await guard.call(run_swot, opportunity_id)
    """

    def __init__(self, registry: CircuitBreakerRegistry, feature: str):
        self.registry = registry
        self.feature = feature

    @property
    def status(self) -> CircuitRecord:
        return self.registry.get_status(self.feature)

    @property
    def can_attempt(self) -> bool:
        return self.registry.can_attempt(self.feature)

    @property
    def is_disabled(self) -> bool:
        return not self.can_attempt

    @property
    def time_until_retry(self) -> Optional[int]:
        return self.registry.time_until_retry(self.feature)

    def record_success(self) -> None:
        self.registry.record_success(self.feature)

    def record_failure(self) -> None:
        self.registry.record_failure(self.feature)

    def notice(self) -> Optional[DisabledNotice]:
        """Disabled-state notice, or None while calls are allowed."""
        if not self.is_disabled:
            return None
        status = self.status
        remaining = self.time_until_retry
        retry_in = (
            f"Retry available in {format_time_remaining(remaining)}"
            if remaining
            else "Preparing to retry..."
        )
        return DisabledNotice(
            feature=self.feature,
            state=status.state,
            failures=status.failures,
            retry_in=retry_in,
        )

    def guard(self) -> None:
        """Raise CircuitBreakerOpen if the feature may not be attempted."""
        if self.is_disabled:
            raise CircuitBreakerOpen(
                self.feature,
                failures=self.status.failures,
                retry_after_ms=self.time_until_retry,
            )

    @contextmanager
    def attempt(self) -> Iterator["FeatureGuard"]:
        """
        Run a block as one guarded attempt.

        The circuit is checked on entry. An exception from the block is
        recorded as a failure and re-raised; a clean exit records a success.
        """
        self.guard()
        try:
            yield self
        except Exception as e:
            logger.error(f"Error in {self.feature}: {e}")
            self.record_failure()
            raise
        self.record_success()

    async def call(
        self,
        operation: Callable[..., Union[Any, Awaitable[Any]]],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Invoke a sync or async operation as one guarded attempt."""
        with self.attempt():
            result = operation(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result


def use_circuit_breaker(
    feature: str, registry: Optional[CircuitBreakerRegistry] = None
) -> FeatureGuard:
    """Guard for ``feature`` on the given registry or the one in scope."""
    return FeatureGuard(registry or current_registry(), feature)

"""Per-feature circuit breaker registry with persisted state."""

import asyncio
import logging
from typing import Dict, List, Optional

from .clock import Clock, SystemClock
from .config import BreakerConfig
from .errors import CircuitBreakerOpen, RegistryNotInitialized
from .models import CircuitRecord, CircuitSnapshot, CircuitState, FeatureStatus, DEFAULT_RECORD
from .storage import BaseStorage, InMemoryStorage
from .telemetry import get_failure_counter, get_transition_counter

logger = logging.getLogger(__name__)

__all__ = ["CircuitBreakerRegistry", "CircuitBreakerOpen"]


class CircuitBreakerRegistry:
    """
    Failure circuits for guarded AI features, keyed by feature name.

    Each feature starts CLOSED. After ``failure_threshold`` consecutive
    failures it opens for ``cooldown_period_ms``; a background sweep then
    moves it to HALF_OPEN so one probe can run. A success anywhere resets
    the feature to the default record.

    The whole registry is loaded from storage once by ``init()`` and written
    back in full after every mutation. All operations are synchronous and
    expect to be driven from a single thread / event loop.
    """

    def __init__(
        self,
        config: Optional[BreakerConfig] = None,
        storage: Optional[BaseStorage] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the registry. Call ``init()`` (or ``start()``) before use.

        Args:
            config: Thresholds and timings
            storage: Key-value store the registry is persisted to
            clock: Source of "now" in epoch milliseconds
        """
        self.config = config or BreakerConfig()
        self.storage = storage or InMemoryStorage()
        self.clock = clock or SystemClock()
        self._circuits: Dict[str, CircuitRecord] = {}
        self._initialized = False
        self._sweep_task: Optional[asyncio.Task] = None
        self._transition_counter = get_transition_counter()
        self._failure_counter = get_failure_counter()

    @classmethod
    def restore(
        cls,
        data: dict,
        config: Optional[BreakerConfig] = None,
        storage: Optional[BaseStorage] = None,
        clock: Optional[Clock] = None,
    ) -> "CircuitBreakerRegistry":
        """Build an initialized registry from a serialized snapshot."""
        registry = cls(config=config, storage=storage, clock=clock)
        registry._circuits = dict(CircuitSnapshot.model_validate(data).root)
        registry._initialized = True
        return registry

    # -- Lifecycle --

    def init(self) -> None:
        """Load persisted state. Safe to call more than once."""
        if self._initialized:
            return
        self._circuits = self._load()
        self._initialized = True
        logger.info("circuit_registry_loaded", extra={"features": len(self._circuits)})

    async def start(self) -> None:
        """Initialize and schedule the periodic sweep on the running loop."""
        self.init()
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def dispose(self) -> None:
        """Cancel the sweep task."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.dispose()

    async def _sweep_loop(self) -> None:
        interval = self.config.sweep_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Circuit sweep failed; retrying next tick")

    # -- Persistence --

    def _load(self) -> Dict[str, CircuitRecord]:
        try:
            data = self.storage.get(self.config.storage_key)
            if data is None:
                return {}
            return dict(CircuitSnapshot.model_validate(data).root)
        except (ValueError, OSError) as e:
            logger.warning(f"Ignoring unreadable circuit state under '{self.config.storage_key}': {e}")
            return {}

    def _save(self) -> None:
        self.storage.set(self.config.storage_key, self.snapshot())

    def snapshot(self) -> dict:
        """Serialized form: feature -> {state, failures, lastFailureTime, nextRetryTime}."""
        return CircuitSnapshot(self._circuits).model_dump(mode="json", by_alias=True)

    def _require_init(self) -> None:
        if not self._initialized:
            raise RegistryNotInitialized(
                "CircuitBreakerRegistry.init() must be called before the registry is used"
            )

    def _transition(self, feature: str, old: CircuitState, new: CircuitState) -> None:
        if old == new:
            return
        if new == CircuitState.OPEN:
            logger.warning(f"Circuit {feature}: {old.value} -> {new.value}")
        else:
            logger.info(f"Circuit {feature}: {old.value} -> {new.value}")
        self._transition_counter.add(
            1, attributes={"feature": feature, "from_state": old.value, "to_state": new.value}
        )

    # -- Queries --

    def get_status(self, feature: str) -> CircuitRecord:
        """Current record for a feature; the default CLOSED record if unseen."""
        self._require_init()
        return self._circuits.get(feature, DEFAULT_RECORD)

    def can_attempt(self, feature: str) -> bool:
        """Whether a guarded call for the feature should be attempted now."""
        circuit = self.get_status(feature)
        if circuit.state == CircuitState.CLOSED:
            return True
        if circuit.state == CircuitState.HALF_OPEN:
            return True
        # OPEN: allowed once the cooldown has elapsed, even before the sweep runs
        return circuit.next_retry_time is not None and self.clock.now_ms() >= circuit.next_retry_time

    def time_until_retry(self, feature: str) -> Optional[int]:
        circuit = self.get_status(feature)
        if circuit.next_retry_time is None:
            return None
        return max(0, circuit.next_retry_time - self.clock.now_ms())

    def feature_status(self, feature: str) -> FeatureStatus:
        allowed = self.can_attempt(feature)
        return FeatureStatus(
            feature=feature,
            status=self.get_status(feature),
            can_attempt=allowed,
            is_disabled=not allowed,
            time_until_retry=self.time_until_retry(feature),
        )

    def features(self) -> Dict[str, CircuitRecord]:
        """Every feature with a stored record."""
        self._require_init()
        return dict(self._circuits)

    # -- Reporting --

    def record_success(self, feature: str) -> None:
        """Reset the feature to the default CLOSED record."""
        old = self.get_status(feature)
        self._circuits[feature] = DEFAULT_RECORD
        self._transition(feature, old.state, CircuitState.CLOSED)
        self._save()

    def record_failure(self, feature: str) -> None:
        """Count a failure; open the circuit once the threshold is reached."""
        current = self.get_status(feature)
        now = self.clock.now_ms()
        failures = current.failures + 1

        if failures >= self.config.failure_threshold:
            updated = CircuitRecord(
                state=CircuitState.OPEN,
                failures=failures,
                last_failure_time=now,
                next_retry_time=now + self.config.cooldown_period_ms,
            )
        else:
            # Below threshold the state is kept as is, HALF_OPEN included
            updated = current.model_copy(update={"failures": failures, "last_failure_time": now})

        self._circuits[feature] = updated
        self._failure_counter.add(1, attributes={"feature": feature})
        self._transition(feature, current.state, updated.state)
        self._save()

    def sweep(self) -> List[str]:
        """
        Promote OPEN circuits whose retry time has passed to HALF_OPEN.

        Returns:
            Names of the promoted features
        """
        self._require_init()
        now = self.clock.now_ms()
        promoted = []
        for feature, circuit in list(self._circuits.items()):
            if (
                circuit.state == CircuitState.OPEN
                and circuit.next_retry_time is not None
                and now >= circuit.next_retry_time
            ):
                self._circuits[feature] = circuit.model_copy(
                    update={
                        "state": CircuitState.HALF_OPEN,
                        "next_retry_time": now + self.config.half_open_timeout_ms,
                    }
                )
                self._transition(feature, CircuitState.OPEN, CircuitState.HALF_OPEN)
                promoted.append(feature)
        if promoted:
            self._save()
        return promoted

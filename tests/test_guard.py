import pytest

from ai_feature_breaker.circuit_breaker import CircuitBreakerRegistry
from ai_feature_breaker.clock import ManualClock
from ai_feature_breaker.errors import CircuitBreakerContextError, CircuitBreakerOpen
from ai_feature_breaker.guard import (
    current_registry,
    format_time_remaining,
    registry_scope,
    use_circuit_breaker,
)
from ai_feature_breaker.models import CircuitState


def make_registry(clock=None):
    registry = CircuitBreakerRegistry(clock=clock or ManualClock())
    registry.init()
    return registry


def test_guard_outside_scope_fails_fast():
    with pytest.raises(CircuitBreakerContextError):
        use_circuit_breaker("SWOT Analysis")


def test_scope_binds_and_unbinds_registry():
    registry = make_registry()
    with registry_scope(registry):
        assert current_registry() is registry
        guard = use_circuit_breaker("SWOT Analysis")
        assert guard.registry is registry
        assert guard.can_attempt
        assert not guard.is_disabled
    with pytest.raises(CircuitBreakerContextError):
        current_registry()


def test_guard_reports_to_registry():
    registry = make_registry()
    guard = use_circuit_breaker("Compliance Checker", registry)
    guard.record_failure()
    assert registry.get_status("Compliance Checker").failures == 1
    guard.record_success()
    assert guard.status.failures == 0


def test_open_circuit_disables_feature_and_guard_raises():
    clock = ManualClock()
    registry = make_registry(clock)
    guard = use_circuit_breaker("x", registry)
    for _ in range(3):
        guard.record_failure()

    clock.set(12500)
    assert guard.is_disabled
    assert guard.time_until_retry == 47500
    with pytest.raises(CircuitBreakerOpen) as exc_info:
        guard.guard()
    assert exc_info.value.feature == "x"
    assert exc_info.value.failures == 3
    assert exc_info.value.retry_after_ms == 47500


def test_attempt_records_outcomes():
    registry = make_registry()
    guard = use_circuit_breaker("x", registry)

    with pytest.raises(RuntimeError):
        with guard.attempt():
            raise RuntimeError("gateway timeout")
    assert guard.status.failures == 1

    with guard.attempt():
        pass
    assert guard.status.failures == 0


def test_attempt_rejected_while_open_does_not_count_failure():
    registry = make_registry()
    guard = use_circuit_breaker("x", registry)
    for _ in range(3):
        guard.record_failure()

    ran = []
    with pytest.raises(CircuitBreakerOpen):
        with guard.attempt():
            ran.append(True)
    assert ran == []
    assert guard.status.failures == 3


@pytest.mark.asyncio
async def test_call_async_and_sync_operations():
    registry = make_registry()
    guard = use_circuit_breaker("Win Probability Predictor", registry)

    async def predict(opportunity_id, boost=0):
        return 0.42 + boost

    assert await guard.call(predict, "opp-1", boost=0.1) == pytest.approx(0.52)
    assert await guard.call(lambda: "ok") == "ok"
    assert guard.status.failures == 0


@pytest.mark.asyncio
async def test_call_failure_is_recorded_and_reraised():
    clock = ManualClock()
    registry = make_registry(clock)
    guard = use_circuit_breaker("x", registry)

    async def broken():
        raise ValueError("invalid JSON from model")

    for _ in range(3):
        with pytest.raises(ValueError):
            await guard.call(broken)

    assert guard.status.state == CircuitState.OPEN
    with pytest.raises(CircuitBreakerOpen):
        await guard.call(broken)
    assert guard.status.failures == 3


@pytest.mark.asyncio
async def test_half_open_probe_success_recovers():
    clock = ManualClock()
    registry = make_registry(clock)
    guard = use_circuit_breaker("x", registry)
    for _ in range(3):
        guard.record_failure()
    clock.set(60000)
    registry.sweep()
    assert guard.status.state == CircuitState.HALF_OPEN

    assert await guard.call(lambda: "probe ok") == "probe ok"
    assert guard.status.state == CircuitState.CLOSED
    assert guard.status.failures == 0


def test_notice():
    clock = ManualClock()
    registry = make_registry(clock)
    guard = use_circuit_breaker("SWOT Analysis", registry)
    assert guard.notice() is None

    for _ in range(3):
        guard.record_failure()
    notice = guard.notice()
    assert notice.title == "SWOT Analysis Temporarily Disabled"
    assert notice.state == CircuitState.OPEN
    assert notice.failures == 3
    assert notice.retry_in == "Retry available in 1m"

    clock.set(30500)
    assert guard.notice().retry_in == "Retry available in 30s"


def test_format_time_remaining():
    assert format_time_remaining(1) == "1s"
    assert format_time_remaining(59000) == "59s"
    assert format_time_remaining(59001) == "1m"
    assert format_time_remaining(60000) == "1m"
    assert format_time_remaining(90000) == "2m"

import pytest
import httpx

from ai_feature_breaker.clock import ManualClock
from ai_feature_breaker.config import GuardConfig
from ai_feature_breaker.server import create_app
from ai_feature_breaker.storage import InMemoryStorage


def make_config():
    return GuardConfig(features=["Competitor Intelligence", "SWOT Analysis"])


def make_client(app):
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.asyncio
async def test_health_and_listing():
    app = create_app(make_config(), storage=InMemoryStorage(), clock=ManualClock())
    async with make_client(app) as client:
        r = await client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

        r = await client.get("/circuits")
        assert r.status_code == 200
        assert [c["feature"] for c in r.json()] == ["Competitor Intelligence", "SWOT Analysis"]
        assert all(c["can_attempt"] for c in r.json())


@pytest.mark.asyncio
async def test_unknown_feature_reports_default_record():
    app = create_app(make_config(), storage=InMemoryStorage(), clock=ManualClock())
    async with make_client(app) as client:
        r = await client.get("/circuits/Document QA")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == {
            "state": "CLOSED",
            "failures": 0,
            "lastFailureTime": None,
            "nextRetryTime": None,
        }
        assert body["notice"] is None
        assert body["time_until_retry"] is None


@pytest.mark.asyncio
async def test_failures_open_circuit_and_guard_returns_503():
    clock = ManualClock()
    app = create_app(make_config(), storage=InMemoryStorage(), clock=clock)
    async with make_client(app) as client:
        for _ in range(3):
            r = await client.post("/circuits/SWOT Analysis/failure")
            assert r.status_code == 200

        body = r.json()
        assert body["status"]["state"] == "OPEN"
        assert body["is_disabled"] is True
        assert body["notice"]["retry_in"] == "Retry available in 1m"

        clock.set(20000)
        r = await client.get("/circuits/SWOT Analysis/guard")
        assert r.status_code == 503
        assert r.headers["Retry-After"] == "40"
        assert r.json()["detail"]["status"]["failures"] == 3

        r = await client.get("/circuits/Competitor Intelligence/guard")
        assert r.status_code == 200


@pytest.mark.asyncio
async def test_sweep_and_success_endpoints():
    clock = ManualClock()
    app = create_app(make_config(), storage=InMemoryStorage(), clock=clock)
    async with make_client(app) as client:
        for _ in range(3):
            await client.post("/circuits/x/failure")

        r = await client.post("/circuits/sweep")
        assert r.json() == {"promoted": []}

        clock.set(60000)
        r = await client.post("/circuits/sweep")
        assert r.json() == {"promoted": ["x"]}

        r = await client.get("/circuits/x")
        assert r.json()["status"]["state"] == "HALF_OPEN"
        assert r.json()["status"]["nextRetryTime"] == 90000

        r = await client.post("/circuits/x/success")
        assert r.json()["status"]["state"] == "CLOSED"

        r = await client.get("/circuits")
        assert [c["feature"] for c in r.json()] == [
            "Competitor Intelligence",
            "SWOT Analysis",
            "x",
        ]


@pytest.mark.asyncio
async def test_lifespan_starts_and_stops_sweep():
    app = create_app(make_config(), storage=InMemoryStorage(), clock=ManualClock())
    registry = app.state.registry
    async with app.router.lifespan_context(app):
        assert registry.is_running
    assert not registry.is_running

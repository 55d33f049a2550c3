"""HTTP application serving circuit status."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .circuit_breaker import CircuitBreakerRegistry
from .clock import Clock
from .config import GuardConfig
from .router import get_circuit_router
from .storage import BaseStorage, create_storage
from .telemetry import init_metrics


def create_app(
    config: GuardConfig,
    storage: Optional[BaseStorage] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Create a FastAPI app whose lifespan runs the registry's sweep task.

    Args:
        config: Guard configuration
        storage: Override the configured storage backend
        clock: Override the system clock

    Returns:
        FastAPI app ready to run

    Example:
        app = create_app(load_config("breaker.json"))

        # Run with uvicorn:
        # uvicorn app:app --host 0.0.0.0 --port 8000
    """
    if config.telemetry.enabled:
        init_metrics()

    registry = CircuitBreakerRegistry(
        config=config.breaker,
        storage=storage or create_storage(config.storage),
        clock=clock,
    )
    # Loaded eagerly; routes must work even when the lifespan never runs
    registry.init()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        async with registry:
            yield

    app = FastAPI(title="AI Feature Circuit Breaker", lifespan=lifespan)
    app.state.registry = registry
    app.include_router(get_circuit_router(registry, config.features))

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "sweeping": registry.is_running}

    return app

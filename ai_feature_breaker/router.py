"""FastAPI router exposing circuit status and outcome reporting."""

from typing import Iterable, List, Optional
import logging
import math
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from .circuit_breaker import CircuitBreakerRegistry
from .errors import CircuitBreakerOpen
from .guard import DisabledNotice, use_circuit_breaker
from .models import FeatureStatus


class FeatureStatusResponse(FeatureStatus):
    notice: Optional[DisabledNotice] = None


class SweepResponse(BaseModel):
    promoted: List[str]


def get_circuit_router(
    registry: CircuitBreakerRegistry, known_features: Optional[Iterable[str]] = None
) -> APIRouter:
    """
    Create a FastAPI router for circuit endpoints.

    Args:
        registry: Initialized circuit breaker registry
        known_features: Feature names listed even before their first failure

    Returns:
        APIRouter mounted under /circuits
    """
    router = APIRouter(prefix="/circuits", tags=["circuits"])
    logger = logging.getLogger(__name__)
    configured = list(known_features or [])

    def describe(feature: str) -> FeatureStatusResponse:
        current = registry.feature_status(feature)
        notice = use_circuit_breaker(feature, registry).notice()
        return FeatureStatusResponse(**current.model_dump(), notice=notice)

    @router.get("", response_model=List[FeatureStatus])
    async def list_circuits():
        """List every configured or previously seen feature."""
        names = list(dict.fromkeys(configured + sorted(registry.features())))
        return [registry.feature_status(name) for name in names]

    @router.post("/sweep", response_model=SweepResponse)
    async def run_sweep():
        """Promote eligible open circuits to half-open now."""
        return SweepResponse(promoted=registry.sweep())

    @router.get("/{feature}", response_model=FeatureStatusResponse)
    async def get_circuit(feature: str):
        """Status of one feature; unseen features report the default record."""
        return describe(feature)

    @router.get("/{feature}/guard", response_model=FeatureStatusResponse)
    async def check_guard(feature: str):
        """200 when the feature may be attempted, 503 with Retry-After otherwise."""
        try:
            use_circuit_breaker(feature, registry).guard()
        except CircuitBreakerOpen as e:
            headers = {}
            if e.retry_after_ms is not None:
                headers["Retry-After"] = str(math.ceil(e.retry_after_ms / 1000))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=describe(feature).model_dump(mode="json", by_alias=True),
                headers=headers,
            )
        return describe(feature)

    @router.post("/{feature}/success", response_model=FeatureStatusResponse)
    async def report_success(feature: str):
        registry.record_success(feature)
        logger.info("feature_success_reported", extra={"feature": feature})
        return describe(feature)

    @router.post("/{feature}/failure", response_model=FeatureStatusResponse)
    async def report_failure(feature: str):
        registry.record_failure(feature)
        logger.info("feature_failure_reported", extra={"feature": feature})
        return describe(feature)

    return router

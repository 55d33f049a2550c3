"""Pydantic models for circuit state and its persisted form."""

from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, RootModel


class CircuitState(str, Enum):
    """State of a single feature circuit."""
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitRecord(BaseModel):
    """Per-feature circuit record, persisted by alias."""
    state: CircuitState = CircuitState.CLOSED
    failures: int = Field(0, ge=0)
    last_failure_time: Optional[int] = Field(None, alias="lastFailureTime")
    next_retry_time: Optional[int] = Field(None, alias="nextRetryTime")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


DEFAULT_RECORD = CircuitRecord()


class CircuitSnapshot(RootModel[Dict[str, CircuitRecord]]):
    """Whole registry as stored: feature name -> record."""
    root: Dict[str, CircuitRecord] = Field(default_factory=dict)


class FeatureStatus(BaseModel):
    """Caller-facing view of one feature's circuit."""
    feature: str
    status: CircuitRecord
    can_attempt: bool
    is_disabled: bool
    time_until_retry: Optional[int] = Field(
        None, description="Milliseconds until nextRetryTime, None when no retry is scheduled"
    )

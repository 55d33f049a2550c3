"""Configuration management for the AI feature circuit breaker."""

import json
import logging
from pathlib import Path
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict


FAILURE_THRESHOLD = 3
COOLDOWN_PERIOD_MS = 60_000
HALF_OPEN_TIMEOUT_MS = 30_000
SWEEP_INTERVAL_MS = 5_000
STORAGE_KEY = "circuit_breaker_state"


class BreakerConfig(BaseModel):
    """Circuit thresholds and timings. Fixed for the lifetime of a registry."""
    failure_threshold: int = Field(
        FAILURE_THRESHOLD, gt=0, description="Consecutive failures required to open a circuit"
    )
    cooldown_period_ms: int = Field(
        COOLDOWN_PERIOD_MS, gt=0, description="Time an open circuit waits before a probe is allowed"
    )
    half_open_timeout_ms: int = Field(
        HALF_OPEN_TIMEOUT_MS, gt=0, description="Window assigned to a half-open probe"
    )
    sweep_interval_ms: int = Field(
        SWEEP_INTERVAL_MS, gt=0, description="Polling period of the open -> half-open sweep"
    )
    storage_key: str = Field(STORAGE_KEY, min_length=1, description="Key the registry is persisted under")


class StorageConfig(BaseModel):
    """Persistence backend configuration."""
    backend: Literal["memory", "file", "sqlite"] = Field("memory", description="Storage backend")
    path: Optional[str] = Field(
        None, description="File path for the 'file' and 'sqlite' backends"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field("INFO", description="Root log level")
    filename: Optional[str] = Field(None, description="Log to this file instead of stderr")


class TelemetryConfig(BaseModel):
    """OpenTelemetry metrics configuration."""
    enabled: bool = Field(False, description="Export circuit metrics to the console")


class GuardConfig(BaseModel):
    """Main configuration for the AI feature circuit breaker."""
    breaker: BreakerConfig = Field(default_factory=BreakerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    # Features reported by status views even before their first failure
    features: List[str] = Field(default_factory=list, description="Known AI feature names")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "breaker": {
                    "failure_threshold": 3,
                    "cooldown_period_ms": 60000,
                    "half_open_timeout_ms": 30000,
                    "sweep_interval_ms": 5000,
                    "storage_key": "circuit_breaker_state"
                },
                "storage": {
                    "backend": "file",
                    "path": ".breaker/state.json"
                },
                "logging": {
                    "level": "INFO"
                },
                "telemetry": {
                    "enabled": False
                },
                "features": [
                    "Competitor Intelligence",
                    "SWOT Analysis",
                    "Compliance Checker",
                    "Win Probability Predictor"
                ]
            }
        }
    )


def load_config(config_path: str) -> GuardConfig:
    """Load configuration from a JSON file."""
    with open(Path(config_path)) as f:
        config_data = json.load(f)
    return GuardConfig(**config_data)


def configure_logging(config: LoggingConfig) -> None:
    """Configure root logging for the CLI and server entry points."""
    logging.basicConfig(
        filename=config.filename,
        level=getattr(logging, config.level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

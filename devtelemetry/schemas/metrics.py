# devtelemetry/schemas/metrics.py
"""
Schemas for GET /metrics.

Mirrors TelemetrySnapshot.as_metrics(); the frontend charts bind to these
names, so change them deliberately.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ConnectionStats(BaseModel):
    active: int = 0
    total: int = 0


class WorkerStats(BaseModel):
    active: int = 0
    idle: int = 0
    total: int = Field(0, description="Configured worker total")


class RequestRate(BaseModel):
    total: int = 0
    per_second: float = Field(0.0, description="request_count / uptime, 2 decimals")


class CoroutineStats(BaseModel):
    active: int = 0


class RuntimeMetrics(BaseModel):
    """Runtime-engine counters."""
    connections: ConnectionStats
    workers: WorkerStats
    requests: RequestRate
    coroutines: CoroutineStats


class RequestCounts(BaseModel):
    total: int = 0
    errors: int = 0
    success: int = 0


class Uptime(BaseModel):
    seconds: int = Field(0, ge=0)
    formatted: str = Field("0s", description="e.g. 1d 2h 3m 4s")


class ApplicationMetrics(BaseModel):
    """Application counters."""
    requests: RequestCounts
    error_rate: float = Field(0.0, description="errors / max(requests, 1) * 100")
    uptime: Uptime
    average_response_time: float = Field(0.0, description="Mean http_request duration (ms)")


class ByteFigure(BaseModel):
    bytes: int = 0
    formatted: str = "0 B"


class MemoryMetrics(BaseModel):
    current: ByteFigure
    peak: ByteFigure
    limit: ByteFigure


class MetricsResponse(BaseModel):
    """Reconciled telemetry snapshot."""
    runtime: RuntimeMetrics
    application: ApplicationMetrics
    memory: MemoryMetrics
    timestamp: float = Field(..., description="Epoch seconds when the snapshot was taken")

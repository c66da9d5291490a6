# devtelemetry/api/routes/metrics.py
"""
GET /metrics

Both stats files are re-read on every call; a missing or half-written file
shows up as zeros, never as an error.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends

from devtelemetry.api.deps import get_collector
from devtelemetry.schemas.metrics import MetricsResponse
from devtelemetry.services.collector import TelemetryCollector

router = APIRouter()


@router.get("/metrics", response_model=MetricsResponse)
def get_metrics(collector: TelemetryCollector = Depends(get_collector)):
    snapshot = collector.snapshot()
    return MetricsResponse(**snapshot.as_metrics(), timestamp=time.time())

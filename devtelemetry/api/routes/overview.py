# devtelemetry/api/routes/overview.py
"""
GET /overview

Everything at once: meta, metrics, requests, errors, logs, profiler and
recommendations. Used by the dashboard landing page and by tooling that wants
one self-contained health report.

A failing source empties its own section only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from devtelemetry.api.deps import get_collector
from devtelemetry.schemas.overview import OverviewResponse
from devtelemetry.services.collector import TelemetryCollector

router = APIRouter()


@router.get("/overview", response_model=OverviewResponse)
def get_overview(collector: TelemetryCollector = Depends(get_collector)):
    return OverviewResponse(**collector.collect())

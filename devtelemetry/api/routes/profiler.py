# devtelemetry/api/routes/profiler.py
"""
GET /profiler

Newest-first events from the injected event history. Without a history
provider the endpoint answers with an empty list rather than an error.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from devtelemetry.api.deps import get_collector, get_settings
from devtelemetry.core.config import Settings
from devtelemetry.schemas.profiler import ProfilerEvent, ProfilerResponse, ProfilerStatistics
from devtelemetry.services.collector import TelemetryCollector
from devtelemetry.services.event_history import format_event

router = APIRouter()


@router.get("/profiler", response_model=ProfilerResponse)
def get_profiler(
    limit: Optional[int] = Query(default=None, ge=1, le=1000, description="Max events to return"),
    type: Optional[str] = Query(default=None, description="Only events of this type (e.g. http_request)"),
    cfg: Settings = Depends(get_settings),
    collector: TelemetryCollector = Depends(get_collector),
):
    history = collector.history
    stats = history.statistics()
    events = history.recent(kind=type, limit=limit or cfg.PROFILER_EVENT_LIMIT)

    return ProfilerResponse(
        events=[ProfilerEvent(**format_event(e)) for e in events],
        total=stats.total_events,
        statistics=ProfilerStatistics(
            total_events=stats.total_events,
            event_types=stats.counts_by_type,
            average_duration_ms=stats.average_duration_ms,
            total_duration_ms=stats.total_duration_ms,
        ),
    )

# devtelemetry/schemas/profiler.py
"""
Schemas for GET /profiler.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SegmentItem(BaseModel):
    type: str = Field(..., description="Segment kind (e.g. database_query)")
    timestamp: float = Field(0.0, description="Epoch seconds")
    payload: Dict[str, Any] = Field(default_factory=dict)


class ProfilerEvent(BaseModel):
    """One event from the history, with its total duration."""
    id: Optional[str] = None
    type: str = Field(..., description="Event kind (e.g. http_request)")
    timestamp: float = Field(0.0, description="Epoch seconds")
    time: Optional[str] = Field(default=None, description="Local time, YYYY-MM-DD HH:MM:SS.mmm")
    payload: Dict[str, Any] = Field(default_factory=dict)
    segments: List[SegmentItem] = Field(default_factory=list)
    duration: Optional[float] = Field(
        default=None,
        description="Sum of segment durations (ms); null when no segment declares one",
    )


class ProfilerStatistics(BaseModel):
    total_events: int = Field(0, ge=0)
    event_types: Dict[str, int] = Field(default_factory=dict, description="Event count per type")
    average_duration_ms: float = 0.0
    total_duration_ms: float = 0.0


class ProfilerResponse(BaseModel):
    """
    Newest-first events.

    `total` counts the whole history, not just the returned page.
    """
    events: List[ProfilerEvent] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    statistics: ProfilerStatistics

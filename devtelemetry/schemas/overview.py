# devtelemetry/schemas/overview.py
"""
Schemas for GET /overview (the full collected payload).

Requests and errors are passed through as plain objects: their payloads come
from the external event history and are not ours to constrain.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from devtelemetry.schemas.logs import RecentLogsResponse


class RecommendationItem(BaseModel):
    """An advisory finding. Reporting only; nothing acts on it automatically."""
    type: Literal["warning", "error"]
    category: str = Field(..., description="memory, errors, or the category of a sync collaborator")
    message: str
    action: str


class OverviewResponse(BaseModel):
    meta: Dict[str, Any] = Field(default_factory=dict)
    metrics: Dict[str, Any] = Field(default_factory=dict, description="Same shape as GET /metrics (minus timestamp)")
    requests: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    logs: RecentLogsResponse
    profiler: Dict[str, Any] = Field(default_factory=dict)
    recommendations: List[RecommendationItem] = Field(default_factory=list)

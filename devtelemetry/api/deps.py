# devtelemetry/api/deps.py
"""
FastAPI dependencies.

Collaborators live on `app.state` (set by `create_app`):
- history_provider: external event history, or None
- sync_checks:      {category: callable -> bool}
- tail_executor:    thread pool for per-file tailing (None until startup)
"""

from __future__ import annotations

from fastapi import Depends, Request

from devtelemetry.core.config import Settings, settings
from devtelemetry.services.collector import TelemetryCollector


def get_settings() -> Settings:
    """Overridable in tests via app.dependency_overrides."""
    return settings


def get_collector(request: Request, cfg: Settings = Depends(get_settings)) -> TelemetryCollector:
    state = request.app.state
    return TelemetryCollector(
        cfg,
        history_provider=getattr(state, "history_provider", None),
        sync_checks=getattr(state, "sync_checks", None),
        executor=getattr(state, "tail_executor", None),
    )

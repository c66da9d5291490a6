# devtelemetry/services/collector.py
"""
One-shot collection of everything the dashboard overview shows.

Sections:
- meta             server name/version/uptime/environment
- metrics          reconciled stats snapshot
- requests         latest http_request events
- errors           failed requests with extracted error details
- logs             merged tail across all log files
- profiler         latest events + statistics
- recommendations  threshold findings

Each section is computed on its own. When one source blows up, the failure
is logged and that section falls back to its empty value; the others are
unaffected.
"""

from __future__ import annotations

import logging
import platform
from concurrent.futures import Executor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from devtelemetry.core.config import Settings
from devtelemetry.services.event_history import EventHistoryProvider, EventHistoryView, format_event
from devtelemetry.services.log_service import collect_logs, log_line_as_dict
from devtelemetry.services.recommendations import SyncStatus, evaluate
from devtelemetry.services.telemetry_service import TelemetrySnapshot, compute_snapshot
from devtelemetry.utils.parsers import LogLineParser

logger = logging.getLogger(__name__)

REQUEST_LIMIT = 50
LOG_LINES = 100
PROFILER_LIMIT = 50

# Zero-argument callable answering "does this collaborator report sync issues?"
SyncCheck = Callable[[], bool]

T = TypeVar("T")


def _degrade(section: str, fn: Callable[[], T], fallback: T) -> T:
    try:
        return fn()
    except Exception:
        logger.exception("Collecting %s failed; returning empty section", section)
        return fallback


class TelemetryCollector:
    """
    Builds the overview payload.

    Collaborators are injected: `history_provider` is the external event
    history (None = not available) and `sync_checks` maps a category name to a
    SyncCheck.
    """

    def __init__(
        self,
        settings: Settings,
        history_provider: Optional[EventHistoryProvider] = None,
        sync_checks: Optional[Mapping[str, SyncCheck]] = None,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings
        self.history = EventHistoryView(history_provider)
        self.sync_checks = dict(sync_checks or {})
        self.executor = executor
        self.parser = LogLineParser(settings.LOG_SOURCE_EXTENSIONS)

    # -----------------------
    # Building blocks
    # -----------------------
    def snapshot(self) -> TelemetrySnapshot:
        s = self.settings
        return compute_snapshot(
            s.APP_STATS_PATH,
            s.RUNTIME_STATS_PATH,
            s.WORKER_NUM,
            memory_limit=s.MEMORY_LIMIT,
            history=self.history.events(),
        )

    def sync_statuses(self) -> List[SyncStatus]:
        """Run every sync check; a check that raises is skipped."""
        statuses = []
        for category, check in self.sync_checks.items():
            try:
                statuses.append(SyncStatus(category=category, has_issues=bool(check())))
            except Exception:
                logger.exception("Sync check %r failed; skipping it", category)
        return statuses

    def logs(self, max_lines: int = LOG_LINES, filter_text: Optional[str] = None) -> Dict[str, Any]:
        collection = collect_logs(
            self.settings.LOG_PATH,
            max_lines,
            filter_text,
            extension=self.settings.LOG_FILE_EXTENSION,
            parser=self.parser,
            executor=self.executor,
        )
        recent = [log_line_as_dict(e) for e in collection.entries]
        return {"recent": recent, "files": collection.files, "total_lines": len(recent)}

    def profiler(self, limit: int = PROFILER_LIMIT) -> Dict[str, Any]:
        stats = self.history.statistics()
        return {
            "events": [format_event(e) for e in self.history.recent(limit=limit)],
            "statistics": {
                "total_events": stats.total_events,
                "event_types": stats.counts_by_type,
                "average_duration_ms": stats.average_duration_ms,
                "total_duration_ms": stats.total_duration_ms,
            },
        }

    def meta(self, snapshot: Optional[TelemetrySnapshot]) -> Dict[str, Any]:
        s = self.settings
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server": {
                "name": s.APP_NAME or "Unknown",
                "version": s.APP_VERSION,
                "uptime": snapshot.derived.uptime_seconds if snapshot else 0,
                "environment": "development" if s.ENV == "dev" else "production",
                "python_version": platform.python_version(),
            },
        }

    # -----------------------
    # Overview
    # -----------------------
    def collect(self) -> Dict[str, Any]:
        snapshot = _degrade("metrics", self.snapshot, None)

        recommendations: List[Dict[str, str]] = []
        if snapshot is not None:
            findings = evaluate(
                snapshot,
                snapshot.derived.memory_limit_bytes,
                snapshot.runtime_stats.memory_total,
                sync_statuses=self.sync_statuses(),
            )
            recommendations = [r.as_dict() for r in findings]

        return {
            "meta": self.meta(snapshot),
            "metrics": snapshot.as_metrics() if snapshot else {},
            "requests": _degrade("requests", lambda: self.history.http_requests(REQUEST_LIMIT), []),
            "errors": _degrade("errors", self.history.errors, []),
            "logs": _degrade("logs", self.logs, {"recent": [], "files": [], "total_lines": 0}),
            "profiler": _degrade("profiler", self.profiler, {"events": [], "statistics": {}}),
            "recommendations": recommendations,
        }

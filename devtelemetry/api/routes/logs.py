# devtelemetry/api/routes/logs.py
"""
GET /logs         tail of one log file (the dashboard "Logs" tab)
GET /logs/recent  merged tail across every log file

Both are read-only and cheap: bounded backward reads, no caching.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from devtelemetry.api.deps import get_collector, get_settings
from devtelemetry.core.config import Settings
from devtelemetry.schemas.logs import LogItem, LogsResponse, RecentLogsResponse
from devtelemetry.services.collector import TelemetryCollector
from devtelemetry.services.log_service import list_log_files, log_line_as_dict, read_log_file
from devtelemetry.utils.parsers import LogLineParser

router = APIRouter()

FALLBACK_FILE = "error.log"


@router.get("/logs", response_model=LogsResponse)
def get_logs(
    file: Optional[str] = Query(default=None, description="Log file name (defaults to the newest)"),
    lines: Optional[int] = Query(default=None, ge=1, le=10000, description="Max lines to return"),
    filter: Optional[str] = Query(default=None, description="Case-insensitive substring filter"),
    cfg: Settings = Depends(get_settings),
):
    """
    Example:
      /logs?file=error.log&lines=200&filter=timeout
    """
    files = list_log_files(cfg.LOG_PATH, cfg.LOG_FILE_EXTENSION)
    current = file or (files[0] if files else FALLBACK_FILE)

    entries = read_log_file(
        cfg.LOG_PATH,
        current,
        lines or cfg.DEFAULT_LOG_LINES,
        filter,
        extension=cfg.LOG_FILE_EXTENSION,
        parser=LogLineParser(cfg.LOG_SOURCE_EXTENSIONS),
    )
    logs = [LogItem(**log_line_as_dict(e)) for e in entries]

    return LogsResponse(logs=logs, files=files, current_file=current, total_lines=len(logs))


@router.get("/logs/recent", response_model=RecentLogsResponse)
def get_recent_logs(
    lines: Optional[int] = Query(default=None, ge=1, le=10000, description="Max lines across all files"),
    filter: Optional[str] = Query(default=None, description="Case-insensitive substring filter (e.g. ERROR)"),
    cfg: Settings = Depends(get_settings),
    collector: TelemetryCollector = Depends(get_collector),
):
    return RecentLogsResponse(**collector.logs(lines or cfg.DEFAULT_LOG_LINES, filter))

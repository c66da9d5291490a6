# devtelemetry/schemas/logs.py
"""
Schemas for GET /logs and GET /logs/recent.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class LogItem(BaseModel):
    """A single parsed log line."""
    timestamp: str = Field(..., description="Timestamp found in the line, or the time of the request if none")
    level: str = Field(..., description="ERROR, WARNING, WARN, INFO, DEBUG or TRACE")
    message: str = Field(..., description="Line with timestamp and level keywords removed")
    context: Dict[str, Union[str, int]] = Field(
        default_factory=dict,
        description="Optional file/line/function found in the line",
    )
    file: str = Field(..., description="Log file the line was read from")


class LogsResponse(BaseModel):
    """
    Tail of a single log file, oldest line first.

    Example:
    {
      "logs": [...],
      "files": ["error.log", "app-2024-01-02.log"],
      "current_file": "error.log",
      "total_lines": 100
    }
    """
    logs: List[LogItem] = Field(default_factory=list, description="Lines in chronological order")
    files: List[str] = Field(default_factory=list, description="Available log files, newest name first")
    current_file: Optional[str] = Field(default=None, description="File that was read")
    total_lines: int = Field(..., ge=0, description="Number of lines returned")


class RecentLogsResponse(BaseModel):
    """Merged tail across all log files, newest line first."""
    recent: List[LogItem] = Field(default_factory=list, description="Lines ordered by timestamp, newest first")
    files: List[str] = Field(default_factory=list, description="Log files that were read")
    total_lines: int = Field(..., ge=0, description="Number of lines returned")

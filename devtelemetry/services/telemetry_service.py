# devtelemetry/services/telemetry_service.py
"""
Reconcile the two periodic stats snapshots into one telemetry view.

Two producers write independently, at their own cadence:
- application stats (`server-stats-<app>.json`): uptime, start_time, requests, errors
- runtime-engine stats (`runtime-stats-<app>.json`): connections, workers,
  request_count, coroutines, memory

Either file may be stale, absent, or half-written at read time. Each is loaded
on its own and a bad file simply contributes its defaults. Nothing is cached:
every call re-reads both files.
"""

from __future__ import annotations

import json
import logging
import math
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from devtelemetry.services.event_history import HTTP_REQUEST, Event

logger = logging.getLogger(__name__)

UNBOUNDED_MEMORY = sys.maxsize

_MEMORY_MULTIPLIERS = {"k": 1024, "m": 1024 ** 2, "g": 1024 ** 3}
_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")
_INT64_MAX = 2 ** 63 - 1

StatsT = TypeVar("StatsT", bound=BaseModel)


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    else:
        try:
            number = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None
    # Counters are rendered as JSON int64.
    if abs(number) > _INT64_MAX:
        return None
    return number


# -----------------------
# Stats records
# -----------------------
class RuntimeStats(BaseModel):
    """Runtime-engine stats. Every field defaults to 0."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    connection_num: int = 0
    worker_num: int = 0
    idle_worker_num: int = 0
    request_count: int = 0
    coroutine_num: int = 0
    memory_total: int = 0
    memory_peak: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def _default_non_numeric(cls, v: Any) -> int:
        coerced = _coerce_int(v)
        return 0 if coerced is None else coerced


class AppStats(BaseModel):
    """
    Application stats.

    `uptime` and `start_time` stay None when absent so uptime derivation can
    tell "missing" from "zero"; request counters default to 0.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    uptime: Optional[int] = None
    start_time: Optional[int] = None
    requests: int = 0
    errors: int = 0

    @field_validator("uptime", "start_time", mode="before")
    @classmethod
    def _optional_int(cls, v: Any) -> Optional[int]:
        return _coerce_int(v)

    @field_validator("requests", "errors", mode="before")
    @classmethod
    def _counter(cls, v: Any) -> int:
        coerced = _coerce_int(v)
        return 0 if coerced is None else coerced


def load_stats(path: str, model: Type[StatsT]) -> StatsT:
    """Load a stats JSON object; absent, unreadable or malformed -> defaults."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        logger.debug("Stats file %s not found; using defaults", path)
        return model()
    except (OSError, ValueError) as exc:
        logger.warning("Stats file %s unreadable (%s); using defaults", path, exc)
        return model()

    if not isinstance(raw, dict):
        logger.warning("Stats file %s is not a JSON object; using defaults", path)
        return model()

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Stats file %s failed validation (%s); using defaults", path, exc)
        return model()


# -----------------------
# Derivations
# -----------------------
def parse_memory_limit(limit: Optional[str]) -> int:
    """
    Convert a human memory limit ("512M", "2g", "1048576") to bytes.

    Suffixes k/m/g are 1024-based. "-1" means unbounded and maps to
    sys.maxsize. Anything unparseable is 0.
    """
    text = (limit or "").strip()
    if text == "-1":
        return UNBOUNDED_MEMORY
    if not text:
        return 0

    multiplier = _MEMORY_MULTIPLIERS.get(text[-1].lower(), 1)
    digits = text[:-1] if multiplier != 1 else text
    try:
        value = int(digits.strip())
    except ValueError:
        return 0
    return value * multiplier


def format_uptime(seconds: int) -> str:
    """1d 2h 3m 4s; zero days/hours/minutes are left out, seconds never are."""
    seconds = max(0, int(seconds))
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def format_bytes(num_bytes: int) -> str:
    """1536 -> "1.5 KB"; 1024-based, B through TB."""
    num_bytes = max(int(num_bytes), 0)
    power = min(max(num_bytes.bit_length() - 1, 0) // 10, len(_BYTE_UNITS) - 1)
    value = round(num_bytes / (1 << (10 * power)), 2)
    text = str(int(value)) if value.is_integer() else str(value)
    return f"{text} {_BYTE_UNITS[power]}"


def resolve_uptime(app: AppStats, now: Optional[float] = None) -> int:
    if app.uptime is not None:
        return max(0, app.uptime)
    if app.start_time is not None:
        current = time.time() if now is None else now
        return max(0, int(current) - app.start_time)
    return 0


def average_response_time(events: Iterable[Event]) -> float:
    """Mean `payload.duration` over http_request events that declare one."""
    durations = []
    for event in events:
        if event.type != HTTP_REQUEST or "duration" not in event.payload:
            continue
        try:
            duration = float(event.payload["duration"])
        except (TypeError, ValueError, OverflowError):
            duration = 0.0
        durations.append(duration if math.isfinite(duration) else 0.0)
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 2)


# -----------------------
# Snapshot
# -----------------------
@dataclass(frozen=True)
class DerivedMetrics:
    uptime_seconds: int
    uptime_formatted: str
    requests_per_second: float
    error_rate: float
    success_count: int
    memory_limit_bytes: int
    average_response_time_ms: float


@dataclass(frozen=True)
class TelemetrySnapshot:
    runtime_stats: RuntimeStats
    app_stats: AppStats
    derived: DerivedMetrics
    worker_total: int = 0

    def as_metrics(self) -> Dict[str, Any]:
        """Dashboard metrics payload."""
        rt = self.runtime_stats
        app = self.app_stats
        d = self.derived
        return {
            "runtime": {
                "connections": {"active": rt.connection_num, "total": rt.connection_num},
                "workers": {"active": rt.worker_num, "idle": rt.idle_worker_num, "total": self.worker_total},
                "requests": {"total": rt.request_count, "per_second": d.requests_per_second},
                "coroutines": {"active": rt.coroutine_num},
            },
            "application": {
                "requests": {"total": app.requests, "errors": app.errors, "success": d.success_count},
                "error_rate": round(d.error_rate, 2),
                "uptime": {"seconds": d.uptime_seconds, "formatted": d.uptime_formatted},
                "average_response_time": d.average_response_time_ms,
            },
            "memory": {
                "current": {"bytes": rt.memory_total, "formatted": format_bytes(rt.memory_total)},
                "peak": {"bytes": rt.memory_peak, "formatted": format_bytes(rt.memory_peak)},
                "limit": {"bytes": d.memory_limit_bytes, "formatted": format_bytes(d.memory_limit_bytes)},
            },
        }


def compute_snapshot(
    app_stats_path: str,
    runtime_stats_path: str,
    worker_total: int = 0,
    *,
    memory_limit: Optional[str] = "-1",
    history: Iterable[Event] = (),
    now: Optional[float] = None,
) -> TelemetrySnapshot:
    """
    Load both stats files and derive rates.

    Args:
        app_stats_path / runtime_stats_path: the two snapshot files.
        worker_total: configured worker count of the runtime engine.
        memory_limit: human memory limit string (see parse_memory_limit).
        history: events used for the average response time.
        now: epoch seconds used when uptime comes from start_time.
    """
    app = load_stats(app_stats_path, AppStats)
    runtime = load_stats(runtime_stats_path, RuntimeStats)

    uptime = resolve_uptime(app, now)
    per_second = round(runtime.request_count / uptime, 2) if uptime > 0 else 0.0
    error_rate = app.errors / max(app.requests, 1) * 100

    derived = DerivedMetrics(
        uptime_seconds=uptime,
        uptime_formatted=format_uptime(uptime),
        requests_per_second=per_second,
        error_rate=error_rate,
        success_count=max(0, app.requests - app.errors),
        memory_limit_bytes=parse_memory_limit(memory_limit),
        average_response_time_ms=average_response_time(history),
    )
    return TelemetrySnapshot(runtime_stats=runtime, app_stats=app, derived=derived, worker_total=worker_total)

# devtelemetry/services/event_history.py
"""
Read-only view over the external event history (request/profiling events).

The history itself lives elsewhere (a ring buffer owned by the host
application). It is handed in explicitly as an `EventHistoryProvider`;
`None` means "no history available" and every query returns an empty or
neutral value.

Event shape consumed:
    {id, type, timestamp: float, payload: {...},
     segments: [{type, timestamp, payload: {...}}]}

Duration of an event = sum of `payload.duration` over the segments that
declare one; no such segment -> None.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from devtelemetry.utils.ordering import top_n_by_timestamp_desc

logger = logging.getLogger(__name__)

HTTP_REQUEST = "http_request"
ERROR_SEGMENT_TYPES = ("error", "exception")
QUERY_SEGMENT_TYPE = "database_query"

_SQLSTATE = re.compile(r"SQLSTATE\[([^\]]+)\]")
_HTTP_CODE = re.compile(r"HTTP (\d+)")


@runtime_checkable
class EventHistoryProvider(Protocol):
    def get_history(self) -> Sequence[Mapping[str, Any]]: ...


def _as_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _as_float(value: Any) -> Optional[float]:
    """Finite float or None; NaN, infinities and oversized ints count as absent."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class Segment:
    type: str
    timestamp: float
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Any) -> "Segment":
        data = _as_mapping(raw)
        return cls(
            type=str(data.get("type") or "unknown"),
            timestamp=_as_float(data.get("timestamp")) or 0.0,
            payload=_as_mapping(data.get("payload")),
        )

    @property
    def duration(self) -> Optional[float]:
        if "duration" not in self.payload:
            return None
        return _as_float(self.payload["duration"])

    def as_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "timestamp": self.timestamp, "payload": self.payload}


@dataclass(frozen=True)
class Event:
    id: Optional[str]
    type: str
    timestamp: float
    payload: Dict[str, Any] = field(default_factory=dict)
    segments: Tuple[Segment, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Event":
        """Build an Event from a history record. Raises ValueError if `raw` is not a mapping."""
        if not isinstance(raw, Mapping):
            raise ValueError(f"event record must be a mapping, got {type(raw).__name__}")
        event_id = raw.get("id")
        segments = raw.get("segments") or ()
        if isinstance(segments, (str, bytes, Mapping)) or not isinstance(segments, Sequence):
            segments = ()
        return cls(
            id=None if event_id is None else str(event_id),
            type=str(raw.get("type") or "unknown"),
            timestamp=_as_float(raw.get("timestamp")) or 0.0,
            payload=_as_mapping(raw.get("payload")),
            segments=tuple(Segment.from_mapping(s) for s in segments),
        )

    @property
    def duration(self) -> Optional[float]:
        """Sum of segment durations; None when no segment declares one."""
        durations = [s.duration for s in self.segments if s.duration is not None]
        if not durations:
            return None
        return sum(durations)

    @property
    def status(self) -> int:
        """HTTP status; absent or outside 100-999 reads as 200."""
        status = _as_float(self.payload.get("status"))
        if status is None or not 100 <= status <= 999:
            return 200
        return int(status)


@dataclass(frozen=True)
class EventStatistics:
    total_events: int
    counts_by_type: Dict[str, int]
    average_duration_ms: float
    total_duration_ms: float


def format_event_time(timestamp: float) -> Optional[str]:
    """
    Local wall-clock time with milliseconds, e.g. 2024-01-02 03:04:05.123.

    None when the timestamp cannot be rendered, e.g. epoch milliseconds
    passed as seconds.
    """
    try:
        whole = int(timestamp)
        millis = int(round((timestamp - whole) * 1000))
        if millis >= 1000:
            whole, millis = whole + 1, 0
        moment = datetime.fromtimestamp(whole)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    return moment.strftime("%Y-%m-%d %H:%M:%S") + f".{millis:03d}"


def extract_error_code(message: str) -> Optional[str]:
    """SQLSTATE code or HTTP status embedded in an error message."""
    for pattern in (_SQLSTATE, _HTTP_CODE):
        match = pattern.search(message or "")
        if match:
            return match.group(1)
    return None


def format_stack_trace(trace: Any) -> List[Dict[str, Any]]:
    """Keep structured frames; wrap plain string frames; drop anything else."""
    if not isinstance(trace, Sequence) or isinstance(trace, (str, bytes)) or not trace:
        return []
    first = trace[0]
    if isinstance(first, Mapping) and "file" in first:
        return [dict(frame) for frame in trace if isinstance(frame, Mapping)]
    if isinstance(first, str):
        return [{"line": frame} for frame in trace if isinstance(frame, str)]
    return []


class EventHistoryView:
    """
    Queries over an injected event history.

    Every method reads the history afresh; nothing is cached between calls.
    """

    def __init__(self, provider: Optional[EventHistoryProvider] = None):
        self._provider = provider

    @property
    def available(self) -> bool:
        return self._provider is not None

    def events(self) -> List[Event]:
        """All events in history order. Provider failures degrade to []."""
        if self._provider is None:
            return []
        try:
            history = list(self._provider.get_history() or [])
        except Exception:
            logger.exception("Event history provider failed; treating history as empty")
            return []

        events: List[Event] = []
        for raw in history:
            try:
                events.append(Event.from_mapping(raw))
            except ValueError as exc:
                logger.warning("Skipping malformed history event: %s", exc)
        return events

    # -----------------------
    # Listing
    # -----------------------
    def recent(self, kind: Optional[str] = None, limit: Optional[int] = 50) -> List[Event]:
        """Newest-first events, optionally restricted to one type."""
        events = self.events()
        if kind:
            events = [e for e in events if e.type == kind]
        return top_n_by_timestamp_desc(events, limit, key=lambda e: e.timestamp)

    def http_requests(self, limit: Optional[int] = 50) -> List[Dict[str, Any]]:
        return [format_request(e) for e in self.recent(HTTP_REQUEST, limit)]

    def errors(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Failed HTTP requests (status >= 400), newest first."""
        failed = [e for e in self.events() if e.type == HTTP_REQUEST and e.status >= 400]
        newest = top_n_by_timestamp_desc(failed, limit, key=lambda e: e.timestamp)
        return [format_error(e) for e in newest]

    # -----------------------
    # Aggregates
    # -----------------------
    def statistics(self) -> EventStatistics:
        events = self.events()
        counts = Counter(e.type for e in events)
        durations = [e.duration for e in events if e.duration is not None]
        total = sum(durations)
        return EventStatistics(
            total_events=len(events),
            counts_by_type=dict(counts),
            average_duration_ms=round(total / len(durations), 2) if durations else 0.0,
            total_duration_ms=round(total, 2),
        )


# -----------------------
# Formatting
# -----------------------
def format_request(event: Event) -> Dict[str, Any]:
    payload = event.payload
    return {
        "id": event.id or "",
        "timestamp": event.timestamp,
        "method": payload.get("method") or "GET",
        "path": payload.get("path") or "/",
        "status": event.status,
        "duration_ms": _as_float(payload.get("duration")) or 0,
        "memory_bytes": payload.get("memory") or 0,
        "headers": {
            "request": _as_mapping(payload.get("request_headers")),
            "response": _as_mapping(payload.get("response_headers")),
        },
        "query": payload.get("query") or {},
        "segments": [s.as_dict() for s in event.segments],
    }


def format_error(event: Event) -> Dict[str, Any]:
    payload = event.payload
    status = event.status if "status" in payload else 500

    message = file_name = line = None
    trace: Any = []

    if "error" in payload:
        raw_error = payload["error"]
        details = _as_mapping(raw_error) if isinstance(raw_error, Mapping) else {"message": raw_error}
        message = details.get("message")
        file_name = details.get("file")
        line = details.get("line")
        trace = details.get("trace") or []

    for segment in event.segments:
        if segment.type not in ERROR_SEGMENT_TYPES:
            continue
        sp = segment.payload
        message = message or sp.get("message")
        file_name = file_name or sp.get("file")
        line = line or sp.get("line")
        trace = trace or sp.get("trace") or []

    if not message:
        message = f"HTTP {status} Error"
    message = str(message)

    return {
        "id": event.id or "",
        "timestamp": event.timestamp,
        "type": event.type,
        "method": payload.get("method") or "GET",
        "path": payload.get("path") or "/",
        "status": status,
        "duration_ms": _as_float(payload.get("duration")) or 0,
        "error": {
            "message": message,
            "code": extract_error_code(message),
            "file": file_name,
            "line": line,
            "trace": format_stack_trace(trace),
            "context": _error_context(event.segments),
        },
    }


def _error_context(segments: Sequence[Segment]) -> Dict[str, Any]:
    """Last database query (and its params) seen in the event's segments."""
    context: Dict[str, Any] = {}
    for segment in segments:
        if segment.type != QUERY_SEGMENT_TYPE:
            continue
        if "query" in segment.payload:
            context["query"] = segment.payload["query"]
        if "params" in segment.payload:
            context["params"] = segment.payload["params"]
    return context


def format_event(event: Event) -> Dict[str, Any]:
    """Profiler listing form of an event."""
    return {
        "id": event.id,
        "type": event.type,
        "timestamp": event.timestamp,
        "time": format_event_time(event.timestamp) if event.timestamp else None,
        "payload": event.payload,
        "segments": [s.as_dict() for s in event.segments],
        "duration": event.duration,
    }

# devtelemetry/services/recommendations.py
"""
Operational recommendations derived from a telemetry snapshot.

Rules run in a fixed order:
1) memory   - usage strictly above 80 % of the limit        -> warning
2) errors   - error rate strictly above 5 % of app requests -> error
3) sync     - each collaborator that reports sync anomalies -> warning

Thresholds are fixed constants, not settings. With no requests and no memory
figures nothing fires.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Sequence

from devtelemetry.services.telemetry_service import TelemetrySnapshot

MEMORY_USAGE_THRESHOLD_PCT = 80.0
ERROR_RATE_THRESHOLD_PCT = 5.0

WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class Recommendation:
    type: str
    category: str
    message: str
    action: str

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class SyncStatus:
    """Pre-computed verdict from an external collaborator (e.g. a ledger replica set)."""
    category: str
    has_issues: bool


def memory_usage_pct(memory_current_bytes: int, memory_limit_bytes: int) -> float:
    # Multiply first: 800 * 100 / 1000 is exactly 80.0.
    return memory_current_bytes * 100 / memory_limit_bytes


def evaluate(
    snapshot: TelemetrySnapshot,
    memory_limit_bytes: int,
    memory_current_bytes: int,
    *,
    sync_statuses: Sequence[SyncStatus] = (),
) -> List[Recommendation]:
    recommendations: List[Recommendation] = []

    if memory_limit_bytes > 0 and memory_current_bytes > 0:
        usage = memory_usage_pct(memory_current_bytes, memory_limit_bytes)
        if usage > MEMORY_USAGE_THRESHOLD_PCT:
            recommendations.append(
                Recommendation(
                    type=WARNING,
                    category="memory",
                    message=f"Memory usage is high: {round(usage, 1)}%",
                    action="Consider optimizing memory usage or increasing memory limit",
                )
            )

    total_requests = snapshot.app_stats.requests
    error_rate = snapshot.derived.error_rate
    if total_requests > 0 and error_rate > ERROR_RATE_THRESHOLD_PCT:
        recommendations.append(
            Recommendation(
                type=ERROR,
                category="errors",
                message=f"High error rate: {round(error_rate, 1)}%",
                action="Review error logs and fix issues",
            )
        )

    for status in sync_statuses:
        if not status.has_issues:
            continue
        label = status.category.replace("_", " ").capitalize()
        recommendations.append(
            Recommendation(
                type=WARNING,
                category=status.category,
                message=f"{label} sync issues detected",
                action=f"Check {status.category.replace('_', ' ')} synchronization between nodes",
            )
        )

    return recommendations

"""Metrics collection and analysis for edit resolution.

Tracks outcomes, match confidence and failure kinds per applied edit.
"""

from __future__ import annotations

import json
import os
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

# Store metrics next to the session logs
METRICS_FILE = Path(os.environ.get("LLM_EDIT_HOME") or Path.home() / ".llm-edit") / "metrics.json"
MAX_EVENTS = 1000
PRUNE_COUNT = 200

# Thread lock for concurrent writes
_lock = threading.Lock()


@dataclass
class MetricEvent:
    """A single metric event."""

    # Identity
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    session_id: str = ""

    # Request
    task_type: Literal["literal", "sketch"] = "literal"
    file: str = ""
    dry_run: bool = False

    # Performance
    duration_ms: int = 0

    # Outcome
    success: bool = True
    applied_edits: int = 0
    total_edits: int = 0
    match_stage: str | None = None
    error_kind: str | None = None
    error: str | None = None


def _load_metrics() -> list[dict]:
    """Load metrics from file."""
    if not METRICS_FILE.exists():
        return []
    try:
        data = json.loads(METRICS_FILE.read_text())
        return data if isinstance(data, list) else []
    except (json.JSONDecodeError, OSError):
        return []


def _save_metrics(events: list[dict]) -> None:
    """Save metrics to file with pruning."""
    if len(events) > MAX_EVENTS:
        events = events[-MAX_EVENTS + PRUNE_COUNT :]

    METRICS_FILE.parent.mkdir(parents=True, exist_ok=True)
    METRICS_FILE.write_text(json.dumps(events, indent=2))


def log_metric(
    task_type: str = "literal",
    file: str = "",
    duration_ms: int = 0,
    success: bool = True,
    applied_edits: int = 0,
    total_edits: int = 0,
    match_stage: str | None = None,
    error_kind: str | None = None,
    error: str | None = None,
    dry_run: bool = False,
    session_id: str = "",
) -> None:
    """Log a metric event.

    Fire-and-forget function to record edit outcomes.
    """
    event = MetricEvent(
        task_type=task_type,
        file=file[:200],
        duration_ms=duration_ms,
        success=success,
        applied_edits=applied_edits,
        total_edits=total_edits,
        match_stage=match_stage,
        error_kind=error_kind,
        error=error[:500] if error else None,  # Truncate errors
        dry_run=dry_run,
        session_id=session_id,
    )

    with _lock:
        events = _load_metrics()
        events.append(asdict(event))
        _save_metrics(events)


def get_metrics(
    limit: int = 100,
    task_type: str | None = None,
    match_stage: str | None = None,
    error_kind: str | None = None,
    since: str | None = None,
    success_only: bool = False,
    failures_only: bool = False,
) -> list[dict]:
    """Get metrics with optional filtering.

    Args:
        limit: Max events to return
        task_type: Filter by path ("literal" or "sketch")
        match_stage: Filter by match stage
        error_kind: Filter by error kind
        since: Filter by date (YYYY-MM-DD)
        success_only: Only successful edits
        failures_only: Only failed edits

    Returns:
        List of metric events (newest first)
    """
    events = _load_metrics()

    if task_type:
        events = [e for e in events if e.get("task_type") == task_type]
    if match_stage:
        events = [e for e in events if e.get("match_stage") == match_stage]
    if error_kind:
        events = [e for e in events if e.get("error_kind") == error_kind]
    if since:
        events = [e for e in events if e.get("timestamp", "")[:10] >= since]
    if success_only:
        events = [e for e in events if e.get("success")]
    if failures_only:
        events = [e for e in events if not e.get("success")]

    # Return newest first, limited
    return list(reversed(events[-limit:]))


def get_summary() -> dict:
    """Get summary statistics."""
    events = _load_metrics()

    if not events:
        return {
            "total": 0,
            "success_count": 0,
            "success_rate": 0.0,
            "today_count": 0,
            "avg_duration_ms": 0,
            "by_task_type": {},
            "by_stage": {},
            "by_error_kind": {},
            "non_exact_rate": None,
        }

    today = datetime.now().strftime("%Y-%m-%d")
    today_events = [e for e in events if e.get("timestamp", "")[:10] == today]

    success_count = sum(1 for e in events if e.get("success"))
    success_rate = success_count / len(events)

    durations = [e.get("duration_ms", 0) for e in events if e.get("duration_ms")]
    avg_duration = sum(durations) / len(durations) if durations else 0

    # By path (literal vs sketch)
    by_task_type = {}
    for e in events:
        task_type = e.get("task_type", "unknown")
        if task_type not in by_task_type:
            by_task_type[task_type] = {"total": 0, "success": 0}
        by_task_type[task_type]["total"] += 1
        if e.get("success"):
            by_task_type[task_type]["success"] += 1

    for stats in by_task_type.values():
        stats["success_rate"] = stats["success"] / stats["total"] if stats["total"] > 0 else 0

    # Confidence of successful matches
    by_stage: dict[str, int] = {}
    for e in events:
        stage = e.get("match_stage")
        if e.get("success") and stage:
            by_stage[stage] = by_stage.get(stage, 0) + 1

    by_error_kind: dict[str, int] = {}
    for e in events:
        kind = e.get("error_kind")
        if not e.get("success") and kind:
            by_error_kind[kind] = by_error_kind.get(kind, 0) + 1

    staged = sum(by_stage.values())
    non_exact = staged - by_stage.get("exact", 0)
    non_exact_rate = non_exact / staged if staged else None

    return {
        "total": len(events),
        "success_count": success_count,
        "success_rate": success_rate,
        "today_count": len(today_events),
        "avg_duration_ms": avg_duration,
        "by_task_type": by_task_type,
        "by_stage": by_stage,
        "by_error_kind": by_error_kind,
        "non_exact_rate": non_exact_rate,
    }


# Thresholds for metric health indicators
THRESHOLDS = {
    "success_rate": {"good": 0.90, "okay": 0.70},
    "avg_duration_ms": {"good": 50, "okay": 250},  # Lower is better
    "non_exact_rate": {"good": 0.10, "okay": 0.25},  # Lower is better
}


def get_health_indicator(metric: str, value: float | None) -> str:
    """Get health indicator for a metric value.

    Returns: 'good', 'okay', 'bad' or 'unknown'
    """
    if value is None:
        return "unknown"

    thresholds = THRESHOLDS.get(metric)
    if not thresholds:
        return "unknown"

    # For metrics where lower is better
    if metric in ("avg_duration_ms", "non_exact_rate"):
        if value <= thresholds["good"]:
            return "good"
        elif value <= thresholds["okay"]:
            return "okay"
        else:
            return "bad"
    else:
        if value >= thresholds["good"]:
            return "good"
        elif value >= thresholds["okay"]:
            return "okay"
        else:
            return "bad"


def clear_metrics() -> None:
    """Clear all metrics (for testing)."""
    with _lock:
        if METRICS_FILE.exists():
            METRICS_FILE.unlink()


__all__ = [
    "MetricEvent",
    "log_metric",
    "get_metrics",
    "get_summary",
    "get_health_indicator",
    "clear_metrics",
    "THRESHOLDS",
    "MAX_EVENTS",
]

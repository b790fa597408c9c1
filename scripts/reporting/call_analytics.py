"""
Call Analytics
================
Infers call completions from status-change history, reconciles them with
explicitly logged completions, and aggregates call metrics.

A call counts as completed the moment its status moves out of "Call Booked"
for any reason other than an explicit non-completion outcome (no-show,
reschedule). Callers do not have to log a separate Call_Completed event.

Exports:
    detect_automatic_completions, get_all_call_completions,
    calculate_call_metrics, calculate_call_volume_trends,
    analyze_call_performance
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from models.reporting_models import ActivityLog, CallCompletion, KPITargets, PipelineItem
from scripts.lib.config import DEFAULT_CONFIG, ReportingConfig
from scripts.lib.logger import setup_logger
from scripts.lib.periods import month_bounds, week_bounds
from scripts.lib.utils import as_utc, in_window, safe_div
from scripts.reporting.statuses import (
    AGREEMENT_SENT,
    CALL_BOOKED,
    CALL_COMPLETED,
    STATUS_CHANGE,
)

logger = setup_logger(__name__)


# ---------------------------------------------------------------------------
# Inference & reconciliation
# ---------------------------------------------------------------------------

def detect_automatic_completions(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    window_start: datetime,
    window_end: datetime,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> List[CallCompletion]:
    """
    Infer completions from Status_Change logs leaving "Call Booked".

    The exclusion set is matched by exact equality after lowercasing;
    "No Show - Rescheduled" is not excluded.
    """
    if excluded_statuses is None:
        excluded_statuses = DEFAULT_CONFIG.excluded_completion_statuses
    excluded = {s.lower() for s in excluded_statuses}

    completions: List[CallCompletion] = []
    for log in activity_logs:
        if log.activity_type != STATUS_CHANGE:
            continue
        if not in_window(log.timestamp, window_start, window_end):
            continue
        if log.previous_status != CALL_BOOKED:
            continue
        new_status = log.new_status
        if not new_status or new_status == CALL_BOOKED:
            continue
        if new_status.lower() in excluded:
            continue
        completions.append(CallCompletion.from_log(
            log,
            is_automatic=True,
            description=f"Automatic call completion: {CALL_BOOKED} → {new_status}",
        ))

    return completions


def get_all_call_completions(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    window_start: datetime,
    window_end: datetime,
    proximity_seconds: Optional[float] = None,
    excluded_statuses: Optional[Sequence[str]] = None,
) -> List[CallCompletion]:
    """
    Explicit Call_Completed logs plus inferred completions, deduplicated.

    A completion is dropped when an earlier entry (explicit entries come
    first) has the same pipeline item and a timestamp less than
    `proximity_seconds` away. Completions without a pipeline item are
    always kept.
    """
    if proximity_seconds is None:
        proximity_seconds = DEFAULT_CONFIG.dedup_proximity_seconds
    activity_logs = list(activity_logs)

    explicit = [
        CallCompletion.from_log(log)
        for log in activity_logs
        if log.activity_type == CALL_COMPLETED
        and in_window(log.timestamp, window_start, window_end)
    ]
    automatic = detect_automatic_completions(
        pipeline_items, activity_logs, window_start, window_end, excluded_statuses
    )

    combined = explicit + automatic
    seen: Dict[int, List[datetime]] = defaultdict(list)
    unique: List[CallCompletion] = []
    for completion in combined:
        item_id = completion.pipeline_item_id
        if item_id is not None:
            earlier = seen[item_id]
            if any(abs((completion.timestamp - ts).total_seconds()) < proximity_seconds for ts in earlier):
                earlier.append(completion.timestamp)
                continue
            earlier.append(completion.timestamp)
        unique.append(completion)

    logger.debug(
        "Call completions %s..%s: %d explicit, %d automatic, %d after dedup",
        window_start.date(), window_end.date(), len(explicit), len(automatic), len(unique),
    )
    return unique


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def calculate_call_metrics(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    window_start: datetime,
    window_end: datetime,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """Totals, per-agent and per-period counts for one window."""
    config = config or DEFAULT_CONFIG
    activity_logs = list(activity_logs)
    completions = get_all_call_completions(
        pipeline_items, activity_logs, window_start, window_end,
        proximity_seconds=config.dedup_proximity_seconds,
        excluded_statuses=config.excluded_completion_statuses,
    )

    by_agent: Dict[str, int] = defaultdict(int)
    by_period: Dict[str, int] = defaultdict(int)
    for call in completions:
        if call.bdr:
            by_agent[call.bdr] += 1
        monday = call.timestamp - timedelta(days=call.timestamp.weekday())
        by_period[f"day-{call.timestamp:%Y-%m-%d}"] += 1
        by_period[f"week-{monday:%Y-%m-%d}"] += 1
        by_period[f"month-{call.timestamp:%Y-%m}"] += 1

    agreements = sum(
        1 for log in activity_logs
        if log.activity_type == AGREEMENT_SENT
        and in_window(log.timestamp, window_start, window_end)
    )

    return {
        "total": len(completions),
        "automatic": sum(1 for c in completions if c.is_automatic),
        "by_agent": dict(by_agent),
        "by_period": dict(by_period),
        "conversion_rate": safe_div(agreements, len(completions)) * 100,
        "average_calls_per_agent": safe_div(len(completions), len(by_agent)),
    }


def _change_pct(current: int, previous: int) -> float:
    if previous > 0:
        return (current - previous) / previous * 100
    return 100.0 if current > 0 else 0.0


def calculate_call_volume_trends(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """This/last ISO week and calendar month call counts with % change."""
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)

    def _count(window) -> int:
        return len(get_all_call_completions(
            pipeline_items, activity_logs, window[0], window[1],
            proximity_seconds=config.dedup_proximity_seconds,
            excluded_statuses=config.excluded_completion_statuses,
        ))

    this_week, last_week = week_bounds(now), week_bounds(now, -1)
    this_month, last_month = month_bounds(now), month_bounds(now, -1)

    counts = {
        "this_week": _count(this_week),
        "last_week": _count(last_week),
        "this_month": _count(this_month),
        "last_month": _count(last_month),
    }

    def _week_period(window) -> str:
        return f"{window[0]:%b} {window[0].day} - {window[1]:%b} {window[1].day}"

    return {
        "this_week": {"count": counts["this_week"], "period": _week_period(this_week)},
        "last_week": {"count": counts["last_week"], "period": _week_period(last_week)},
        "this_month": {"count": counts["this_month"], "period": f"{this_month[0]:%B %Y}"},
        "last_month": {"count": counts["last_month"], "period": f"{last_month[0]:%B %Y}"},
        "trends": {
            "weekly": _change_pct(counts["this_week"], counts["last_week"]),
            "monthly": _change_pct(counts["this_month"], counts["last_month"]),
        },
    }


def analyze_call_performance(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    kpi_targets: Optional[KPITargets],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """
    Flag call-volume issues and opportunities over the trailing 30 days.

    Returns:
        {"metrics", "trends", "issues": [str], "opportunities": [str]}
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)

    metrics = calculate_call_metrics(
        pipeline_items, activity_logs, now - timedelta(days=30), now, config
    )
    trends = calculate_call_volume_trends(pipeline_items, activity_logs, now, config)

    issues: List[str] = []
    opportunities: List[str] = []

    weekly_target = (kpi_targets.weekly_calls if kpi_targets else None) or config.weekly_defaults.calls
    this_week = trends["this_week"]["count"]
    if this_week < weekly_target:
        issues.append(f"Weekly call volume ({this_week}) is below target ({weekly_target:g})")

    rate = metrics["conversion_rate"]
    if rate < 20:
        issues.append(f"Call conversion rate ({rate:.1f}%) is below 20%")
    elif rate > 30:
        opportunities.append(f"Strong call conversion rate ({rate:.1f}%)")

    weekly, monthly = trends["trends"]["weekly"], trends["trends"]["monthly"]
    if weekly < -10:
        issues.append(f"Weekly calls declining by {abs(weekly):.1f}%")
    if monthly < -10:
        issues.append(f"Monthly calls declining by {abs(monthly):.1f}%")
    if weekly > 20:
        opportunities.append(f"Weekly calls improving by {weekly:.1f}%")

    return {
        "metrics": metrics,
        "trends": trends,
        "issues": issues,
        "opportunities": opportunities,
    }

"""
Team Performance & Pipeline Health
====================================
Per-agent composite scores, support flags and benchmarks, activity scores,
and a pipeline-health snapshot (upcoming calls, pending agreements, lists
out by size, activity funnel).

Composite score per agent (all history up to `now`):
    calls × 1 + agreements × 3 + lists × 2 + sales × 5

Exports:
    calculate_team_performance, agent_activity_scores, assess_pipeline_health,
    upcoming_calls_summary, pending_agreements_summary, overdue_partner_lists
"""
from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from models.reporting_models import ActivityLog, ItemKind, PipelineItem
from scripts.lib.config import DEFAULT_CONFIG, ReportingConfig
from scripts.lib.logger import setup_logger
from scripts.lib.periods import EPOCH, start_of_day, week_bounds
from scripts.lib.utils import as_utc, round2, safe_div
from scripts.reporting.call_analytics import get_all_call_completions
from scripts.reporting.statuses import (
    AGREEMENT_SENT,
    CALL_BOOKED,
    CALLS,
    CLOSED_LIST_STATUSES,
    PARTNER_LIST_SENT,
    PROPOSAL_SENT,
    SOLD,
    is_agreement,
    is_proposal,
)

logger = setup_logger(__name__)


def _all_completions(pipeline_items, activity_logs, now: datetime, config: ReportingConfig):
    return get_all_call_completions(
        pipeline_items, activity_logs, EPOCH, now,
        proximity_seconds=config.dedup_proximity_seconds,
        excluded_statuses=config.excluded_completion_statuses,
    )


def overdue_partner_lists(pipeline_items: Iterable[PipelineItem], now: datetime) -> List[PipelineItem]:
    """Agreed items past their expected close date with no partner list sent."""
    now = as_utc(now)
    return [
        item for item in pipeline_items
        if item.expected_close_date is not None
        and item.expected_close_date < now
        and item.partner_list_sent_date is None
        and is_agreement(item.status)
    ]


# ---------------------------------------------------------------------------
# Team performance
# ---------------------------------------------------------------------------

def calculate_team_performance(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """
    Rank agents by composite score.

    Returns:
        {"total_agents", "active_agents", "agents": [per-agent rows, best first],
         "top_performers", "needs_support", "benchmark_metrics"}
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)
    thresholds = config.action_thresholds

    roster: Dict[str, None] = {}
    for record in pipeline_items + activity_logs:
        if record.bdr:
            roster.setdefault(record.bdr, None)

    cutoff = now - timedelta(days=config.active_window_days)
    active = {
        log.bdr for log in activity_logs
        if log.bdr and log.timestamp is not None and log.timestamp >= cutoff
    }

    completions = _all_completions(pipeline_items, activity_logs, now, config)
    calls_by_agent = Counter(c.bdr for c in completions if c.bdr)
    logs_by_type: Dict[str, Counter] = defaultdict(Counter)
    for log in activity_logs:
        if log.bdr and log.activity_type:
            logs_by_type[log.activity_type][log.bdr] += 1
    sales_by_agent = Counter(item.bdr for item in pipeline_items if item.bdr and item.status == SOLD)

    agents = []
    for agent in roster:
        calls = calls_by_agent[agent]
        agreements = logs_by_type[AGREEMENT_SENT][agent]
        lists = logs_by_type[PARTNER_LIST_SENT][agent]
        sales = sales_by_agent[agent]
        agents.append({
            "bdr": agent,
            "score": calls + agreements * 3 + lists * 2 + sales * 5,
            "calls": calls,
            "agreements": agreements,
            "lists": lists,
            "sales": sales,
        })
    agents.sort(key=lambda row: row["score"], reverse=True)

    needs_support = [
        row["bdr"] for row in agents
        if row["score"] < thresholds.support_score_below
        and row["calls"] < thresholds.support_calls_below
    ]

    total_agents = len(agents)
    total_calls = len(completions)
    total_agreements = sum(logs_by_type[AGREEMENT_SENT].values())
    total_lists = sum(logs_by_type[PARTNER_LIST_SENT].values())
    total_sales = sum(1 for item in pipeline_items if item.status == SOLD)

    return {
        "total_agents": total_agents,
        "active_agents": len(active),
        "agents": agents,
        "top_performers": [row["bdr"] for row in agents[:3]],
        "needs_support": needs_support,
        "benchmark_metrics": {
            "avg_calls_per_week": round(safe_div(total_calls, total_agents), 1),
            "avg_agreements_per_month": round(safe_div(total_agreements, total_agents), 1),
            "avg_lists_per_month": round(safe_div(total_lists, total_agents), 1),
            "team_conversion_rate": round2(safe_div(total_sales, total_calls) * 100),
        },
    }


def agent_activity_scores(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, float]:
    """
    Recent activity relative to book size, capped at 100.

    score = min(100, logs in the active window / max(items owned, 1) × 100)
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    cutoff = now - timedelta(days=config.active_window_days)

    items_by_agent = Counter(item.bdr for item in pipeline_items if item.bdr)
    recent = Counter(
        log.bdr for log in activity_logs
        if log.bdr and log.timestamp is not None and log.timestamp >= cutoff
    )
    return {
        agent: round2(min(100.0, recent[agent] / max(count, 1) * 100))
        for agent, count in items_by_agent.items()
    }


# ---------------------------------------------------------------------------
# Pipeline health
# ---------------------------------------------------------------------------

def upcoming_calls_summary(pipeline_items: Iterable[PipelineItem], now: datetime) -> Dict[str, int]:
    """Booked calls by horizon: today, tomorrow, this week, next week, next 30 days."""
    now = as_utc(now)
    booked = [
        item.call_date for item in pipeline_items
        if item.status == CALL_BOOKED and item.call_date is not None
    ]
    today = start_of_day(now)
    tomorrow = today + timedelta(days=1)
    this_week = week_bounds(now)
    next_week = week_bounds(now, 1)
    horizon = now + timedelta(days=30)

    return {
        "today": sum(1 for d in booked if start_of_day(d) == today),
        "tomorrow": sum(1 for d in booked if start_of_day(d) == tomorrow),
        "this_week": sum(1 for d in booked if this_week[0] <= d <= this_week[1]),
        "next_week": sum(1 for d in booked if next_week[0] <= d <= next_week[1]),
        "next_30_days": sum(1 for d in booked if now <= d <= horizon),
    }


def assess_pipeline_health(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """Forward-looking pipeline snapshot as of `now`."""
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)

    next_week_end = week_bounds(now + timedelta(days=7))[1]
    two_weeks_end = week_bounds(now + timedelta(days=14))[1]
    future_calls = [
        item.call_date for item in pipeline_items
        if item.call_date is not None and item.call_date > now
    ]

    active_lists = [
        item for item in pipeline_items
        if item.partner_list_sent_date is not None
        and (item.status or "") not in CLOSED_LIST_STATUSES
    ]
    sized = [item.partner_list_size for item in active_lists if item.partner_list_size]

    log_counts = Counter(log.activity_type for log in activity_logs if log.activity_type)

    return {
        "upcoming_calls": {
            "next_week": sum(1 for d in future_calls if d <= next_week_end),
            "next_2_weeks": sum(1 for d in future_calls if next_week_end < d <= two_weeks_end),
            "total": len(future_calls),
        },
        "pending_agreements": {
            "proposals_awaiting_response": sum(1 for item in pipeline_items if is_proposal(item.status)),
            "agreements_awaiting_lists": sum(
                1 for item in pipeline_items
                if is_agreement(item.status) and item.partner_list_sent_date is None
            ),
            "overdue_partner_lists": len(overdue_partner_lists(pipeline_items, now)),
        },
        "active_lists_out": {
            "total": len(active_lists),
            "small_lists": sum(1 for size in sized if 3 <= size <= 8),
            "medium_lists": sum(1 for size in sized if 9 <= size <= 15),
            "large_lists": sum(1 for size in sized if size >= 16),
            "average_list_size": round(safe_div(sum(sized), len(sized)), 1),
            "partner_contacts": sum(1 for item in pipeline_items if item.kind is ItemKind.CONTACT),
        },
        "conversion_funnel": {
            "calls_booked": sum(
                1 for item in pipeline_items
                if item.category == CALLS and item.status == CALL_BOOKED
            ),
            "calls_conducted": len(_all_completions(pipeline_items, activity_logs, now, config)),
            "proposals_sent": log_counts[PROPOSAL_SENT],
            "agreements_signed": log_counts[AGREEMENT_SENT],
            "lists_sent": log_counts[PARTNER_LIST_SENT],
            "sales_generated": sum(1 for item in pipeline_items if item.status == SOLD),
        },
    }


def pending_agreements_summary(pipeline_items: Iterable[PipelineItem]) -> Dict[str, Any]:
    """Items sitting at the agreement stage, with their combined value."""
    pending = [item for item in pipeline_items if is_agreement(item.status)]
    values = [item.value for item in pending if item.value]
    return {
        "total": len(pending),
        "total_value": sum(values),
        "average_value": safe_div(sum(values), len(values)),
    }

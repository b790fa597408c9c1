"""
Critical Actions & Funnel Insights
====================================
Rule-based thresholds over the aggregates, producing prioritised action
items and dashboard insight strings.

Every rule is independent: all rules that fire are emitted, then the list
is sorted urgent > high > medium (stable within a priority).

Exports:
    PRIORITY_ORDER, identify_critical_actions, generate_funnel_insights
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from models.reporting_models import ActivityLog, CriticalAction, PipelineItem
from scripts.lib.config import DEFAULT_CONFIG, ReportingConfig
from scripts.lib.logger import setup_logger
from scripts.lib.periods import week_bounds
from scripts.lib.utils import as_utc
from scripts.reporting.call_analytics import get_all_call_completions
from scripts.reporting.team_performance import overdue_partner_lists

logger = setup_logger(__name__)

PRIORITY_ORDER = {"urgent": 3, "high": 2, "medium": 1}


def identify_critical_actions(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    team_performance: Dict[str, Any],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> List[CriticalAction]:
    """
    Evaluate the action rules as of `now`.

    Args:
        pipeline_items: All pipeline items.
        activity_logs: All activity logs.
        team_performance: Output of calculate_team_performance (needs_support is read).
        now: Evaluation time.
        config: Thresholds; defaults when omitted.
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    thresholds = config.action_thresholds
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)
    actions: List[CriticalAction] = []

    overdue = len(overdue_partner_lists(pipeline_items, now))
    if overdue > 0:
        actions.append(CriticalAction(
            priority="urgent",
            category="lists",
            action=f"Send {overdue} overdue partner lists immediately",
            metric=overdue,
            deadline="Today",
        ))

    week_start = week_bounds(now)[0]
    week_calls = len(get_all_call_completions(
        pipeline_items, activity_logs, week_start, now,
        proximity_seconds=config.dedup_proximity_seconds,
        excluded_statuses=config.excluded_completion_statuses,
    ))
    if week_calls < thresholds.min_weekly_calls:
        actions.append(CriticalAction(
            priority="high",
            category="calls",
            action="Boost call volume - current week significantly below target",
            metric=week_calls,
            deadline="End of week",
        ))

    needs_support = team_performance.get("needs_support") or []
    if needs_support:
        actions.append(CriticalAction(
            priority="medium",
            category="team",
            action=f"Provide support to underperforming BDRs: {', '.join(needs_support)}",
            metric=len(needs_support),
            deadline="This week",
        ))

    horizon = now + timedelta(days=7)
    upcoming = sum(
        1 for item in pipeline_items
        if item.call_date is not None and now < item.call_date <= horizon
    )
    if upcoming < thresholds.min_upcoming_calls_next_week:
        actions.append(CriticalAction(
            priority="high",
            category="calls",
            action="Schedule more calls for next week to maintain pipeline",
            metric=upcoming,
            deadline="End of week",
        ))

    actions.sort(key=lambda a: PRIORITY_ORDER[a.priority], reverse=True)
    logger.debug("%d critical actions raised", len(actions))
    return actions


def generate_funnel_insights(
    funnel_summary: Dict[str, Any],
    agent_metrics: List[Dict[str, Any]],
    upcoming_calls: Dict[str, int],
    pending_agreements: Optional[Dict[str, Any]] = None,
) -> Dict[str, List[str]]:
    """
    Dashboard insight strings.

    Args:
        funnel_summary: Output of summarize_funnel.
        agent_metrics: Per-agent rows, best first, each with "bdr" and
            "upcoming_calls".
        upcoming_calls: Output of upcoming_calls_summary.
        pending_agreements: Output of pending_agreements_summary.

    Returns:
        {"top_opportunities", "critical_alerts", "recommendations"}
    """
    activity = funnel_summary.get("team_activity_score")
    conversion = funnel_summary.get("overall_conversion_rate", 0)
    biggest = funnel_summary.get("biggest_dropoff") or {"stage": "", "rate": 0}
    pending = pending_agreements or {"total": 0, "total_value": 0}

    opportunities: List[str] = []
    if agent_metrics and agent_metrics[0].get("upcoming_calls", 0) > 5:
        lead = agent_metrics[0]
        opportunities.append(f"{lead['bdr']} has {lead['upcoming_calls']} upcoming calls")
    if pending["total"] > 10:
        opportunities.append(
            f"{pending['total']} pending agreements worth £{round(pending['total_value']):,}"
        )
    if upcoming_calls.get("next_30_days", 0) > 20:
        opportunities.append(f"{upcoming_calls['next_30_days']} calls scheduled for next 30 days")

    alerts: List[str] = []
    if activity is not None and activity < 30:
        alerts.append("Low team activity detected")
    if conversion < 10:
        alerts.append("Very low conversion rate needs attention")
    if upcoming_calls.get("tomorrow", 0) == 0:
        alerts.append("No calls scheduled for tomorrow")

    recommendations: List[str] = []
    if biggest["rate"] > 40:
        recommendations.append(f"Focus on improving {biggest['stage']} conversion")
    if activity is not None and activity < 50:
        recommendations.append("Increase team activity and engagement")
    if any(row.get("upcoming_calls", 0) == 0 for row in agent_metrics):
        recommendations.append("Some BDRs have no upcoming calls scheduled")

    return {
        "top_opportunities": opportunities,
        "critical_alerts": alerts,
        "recommendations": recommendations,
    }

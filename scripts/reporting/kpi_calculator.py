"""
KPI Calculator
================
Team targets scaled by active headcount, and per-window actual-vs-target
KPIs classified into four status tiers.

Exports:
    calculate_team_targets, classify_status, calculate_kpi_for_period,
    calculate_sales_for_period, calculate_conversion_for_period,
    calculate_kpis
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from models.reporting_models import (
    ActivityLog,
    FinanceEntry,
    KPIMetric,
    KPIStatus,
    KPITargets,
    PipelineItem,
    TargetSet,
    TeamTargets,
)
from scripts.lib.config import DEFAULT_CONFIG, ReportingConfig, StatusTiers, TargetDefaults
from scripts.lib.logger import setup_logger
from scripts.lib.periods import Window, month_bounds, week_bounds
from scripts.lib.utils import as_utc, in_window, round2, safe_div
from scripts.reporting.call_analytics import get_all_call_completions
from scripts.reporting.sales_indicators import sold_pipeline_item_ids
from scripts.reporting.statuses import AGREEMENT_SENT, CALL_COMPLETED, PARTNER_LIST_SENT

logger = setup_logger(__name__)


# ---------------------------------------------------------------------------
# Team targets
# ---------------------------------------------------------------------------

def _agent_roster(
    pipeline_items: Iterable[PipelineItem], activity_logs: Iterable[ActivityLog]
) -> List[str]:
    roster: Dict[str, None] = {}
    for record in list(pipeline_items) + list(activity_logs):
        if record.bdr:
            roster.setdefault(record.bdr, None)
    return list(roster)


def _scaled(headcount: int, targets: Optional[KPITargets], prefix: str, defaults: TargetDefaults) -> TargetSet:
    def _per_agent(metric: str) -> float:
        # A missing or zero target falls back to the default
        value = getattr(targets, f"{prefix}_{metric}", None) if targets else None
        return value or getattr(defaults, metric)

    return TargetSet(
        calls=headcount * _per_agent("calls"),
        agreements=headcount * _per_agent("agreements"),
        lists_out=headcount * _per_agent("lists_out"),
        sales=headcount * _per_agent("sales"),
    )


def calculate_team_targets(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    kpi_targets: Optional[KPITargets],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> TeamTargets:
    """
    Scale per-agent targets to the team.

    The roster is every agent named in either collection; an agent is active
    with at least one activity log in the last `active_window_days` days.
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    activity_logs = list(activity_logs)
    roster = _agent_roster(pipeline_items, activity_logs)

    cutoff = now - timedelta(days=config.active_window_days)
    recent = {
        log.bdr for log in activity_logs
        if log.bdr and log.timestamp is not None and log.timestamp >= cutoff
    }
    active = [agent for agent in roster if agent in recent]

    logger.debug("Team roster: %d agents, %d active", len(roster), len(active))
    return TeamTargets(
        weekly=_scaled(len(active), kpi_targets, "weekly", config.weekly_defaults),
        monthly=_scaled(len(active), kpi_targets, "monthly", config.monthly_defaults),
        active_agents=active,
        all_agents=roster,
    )


# ---------------------------------------------------------------------------
# Period KPIs
# ---------------------------------------------------------------------------

def classify_status(current: float, target: float, tiers: Optional[StatusTiers] = None) -> KPIStatus:
    """Tier `current` against `target`, evaluated from the top down."""
    tiers = tiers or DEFAULT_CONFIG.status_tiers
    if current >= target * tiers.excellent:
        return "excellent"
    if current >= target * tiers.good:
        return "good"
    if current >= target * tiers.needs_attention:
        return "needs_attention"
    return "critical"


def calculate_kpi_for_period(
    activity_type: str,
    window_start: datetime,
    window_end: datetime,
    target: float,
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    config: Optional[ReportingConfig] = None,
) -> KPIMetric:
    """Count `activity_type` events in the window and classify against `target`.

    Call_Completed goes through the reconciler so inferred completions count.
    """
    config = config or DEFAULT_CONFIG
    if activity_type == CALL_COMPLETED:
        current = len(get_all_call_completions(
            pipeline_items, activity_logs, window_start, window_end,
            proximity_seconds=config.dedup_proximity_seconds,
            excluded_statuses=config.excluded_completion_statuses,
        ))
    else:
        current = sum(
            1 for log in activity_logs
            if log.activity_type == activity_type
            and in_window(log.timestamp, window_start, window_end)
        )
    return KPIMetric(
        current=current,
        target=target,
        status=classify_status(current, target, config.status_tiers),
    )


def calculate_sales_for_period(
    window_start: datetime,
    window_end: datetime,
    target: float,
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    finance_entries: Optional[Iterable[FinanceEntry]] = None,
    config: Optional[ReportingConfig] = None,
) -> KPIMetric:
    """
    Sales in the window.

    Finance entries invoiced in the window are authoritative whenever any
    finance entries are supplied; otherwise sales are inferred from notes
    and Sold statuses, one per pipeline item.
    """
    config = config or DEFAULT_CONFIG
    finance_entries = list(finance_entries or [])

    if finance_entries:
        current = sum(
            1 for entry in finance_entries
            if in_window(entry.invoice_date, window_start, window_end)
        )
    else:
        current = len(sold_pipeline_item_ids(
            pipeline_items, activity_logs, window_start, window_end,
            config.sale_keywords, config.currency_symbols,
        ))

    return KPIMetric(
        current=current,
        target=target,
        status=classify_status(current, target, config.status_tiers),
    )


def calculate_conversion_for_period(
    window_start: datetime,
    window_end: datetime,
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    config: Optional[ReportingConfig] = None,
) -> KPIMetric:
    """Distinct sold items per completed call, as a percentage. 0 with no calls."""
    config = config or DEFAULT_CONFIG
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)

    calls = len(get_all_call_completions(
        pipeline_items, activity_logs, window_start, window_end,
        proximity_seconds=config.dedup_proximity_seconds,
        excluded_statuses=config.excluded_completion_statuses,
    ))
    sold = len(sold_pipeline_item_ids(
        pipeline_items, activity_logs, window_start, window_end,
        config.sale_keywords, config.currency_symbols,
    ))

    rate = safe_div(sold, calls) * 100
    tiers = config.conversion_tiers
    if rate >= tiers.excellent:
        status = "excellent"
    elif rate >= tiers.good:
        status = "good"
    elif rate >= tiers.needs_attention:
        status = "needs_attention"
    else:
        status = "critical"

    return KPIMetric(current=round2(rate), target=tiers.target, status=status)


def _period_kpis(
    window: Window,
    targets: TargetSet,
    pipeline_items: List[PipelineItem],
    activity_logs: List[ActivityLog],
    config: ReportingConfig,
) -> Dict[str, KPIMetric]:
    start, end = window
    return {
        "call_volume": calculate_kpi_for_period(
            CALL_COMPLETED, start, end, targets.calls, pipeline_items, activity_logs, config),
        "agreements": calculate_kpi_for_period(
            AGREEMENT_SENT, start, end, targets.agreements, pipeline_items, activity_logs, config),
        "lists_out": calculate_kpi_for_period(
            PARTNER_LIST_SENT, start, end, targets.lists_out, pipeline_items, activity_logs, config),
    }


def calculate_kpis(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    kpi_targets: Optional[KPITargets],
    now: datetime,
    finance_entries: Optional[Iterable[FinanceEntry]] = None,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """
    Weekly and monthly KPIs for the current and previous periods.

    Weeks carry a sales KPI; months carry the conversion rate instead.
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)
    finance_entries = list(finance_entries or [])

    team = calculate_team_targets(pipeline_items, activity_logs, kpi_targets, now, config)

    result: Dict[str, Any] = {}
    for label, offset in (("this_week", 0), ("last_week", -1)):
        window = week_bounds(now, offset)
        period = _period_kpis(window, team.weekly, pipeline_items, activity_logs, config)
        period["sales"] = calculate_sales_for_period(
            window[0], window[1], team.weekly.sales,
            pipeline_items, activity_logs, finance_entries, config,
        )
        result[label] = period

    for label, offset in (("this_month", 0), ("last_month", -1)):
        window = month_bounds(now, offset)
        period = _period_kpis(window, team.monthly, pipeline_items, activity_logs, config)
        period["conversion_rate"] = calculate_conversion_for_period(
            window[0], window[1], pipeline_items, activity_logs, config,
        )
        result[label] = period

    result["team_targets"] = team
    logger.info(
        "KPIs computed: %d calls this week (target %g)",
        result["this_week"]["call_volume"].current, team.weekly.calls,
    )
    return result

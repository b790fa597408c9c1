"""
Trends, Predictions & Financial Summary
=========================================
Rolling calendar series (weekly calls, monthly agreements, quarterly lists
out with revenue), naive forecasts and a revenue summary.

Forecasts are the series average times a fixed optimism factor. This is a
rough heuristic for dashboard display, not a statistical model.

Exports:
    calculate_trends, generate_predictive_insights, calculate_financial_summary
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from models.reporting_models import ActivityLog, FinanceEntry, PipelineItem
from scripts.lib.config import DEFAULT_CONFIG, ReportingConfig
from scripts.lib.logger import setup_logger
from scripts.lib.periods import (
    EPOCH,
    Window,
    month_bounds,
    month_label,
    quarter_bounds,
    quarter_label,
    week_bounds,
    week_label,
)
from scripts.lib.utils import as_utc, in_window, safe_div
from scripts.reporting.call_analytics import get_all_call_completions
from scripts.reporting.statuses import AGREEMENT_SENT, PARTNER_LIST_SENT, SOLD

logger = setup_logger(__name__)


def _variance(actual: float, target: float) -> int:
    return round(safe_div(actual - target, target) * 100)


def _revenue(
    window: Window,
    sold_items: List[PipelineItem],
    finance_entries: List[FinanceEntry],
) -> float:
    """Finance amounts invoiced in the window when finance data exists, else Sold item values."""
    start, end = window
    if finance_entries:
        return sum(
            entry.gbp_amount or 0 for entry in finance_entries
            if in_window(entry.invoice_date, start, end)
        )
    return sum(
        item.value or 0 for item in sold_items
        if in_window(item.first_sale_date, start, end)
    )


def calculate_trends(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    now: datetime,
    finance_entries: Optional[Iterable[FinanceEntry]] = None,
    weekly_call_target: float = 40,
    monthly_agreement_target: float = 20,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Oldest-first series: 4 ISO weeks of calls, 4 months of agreements and
    2 quarters of lists out, each ending with the period containing `now`.
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)
    finance_entries = list(finance_entries or [])
    sold_items = [item for item in pipeline_items if item.status == SOLD]

    weekly = []
    for offset in range(-3, 1):
        start, end = week_bounds(now, offset)
        calls = len(get_all_call_completions(
            pipeline_items, activity_logs, start, end,
            proximity_seconds=config.dedup_proximity_seconds,
            excluded_statuses=config.excluded_completion_statuses,
        ))
        weekly.append({
            "week": week_label(start),
            "calls": calls,
            "target": weekly_call_target,
            "variance": _variance(calls, weekly_call_target),
        })

    monthly = []
    for offset in range(-3, 1):
        start, end = month_bounds(now, offset)
        agreements = sum(
            1 for log in activity_logs
            if log.activity_type == AGREEMENT_SENT and in_window(log.timestamp, start, end)
        )
        monthly.append({
            "month": month_label(start),
            "agreements": agreements,
            "target": monthly_agreement_target,
            "variance": _variance(agreements, monthly_agreement_target),
        })

    quarterly = []
    for offset in (-1, 0):
        window = quarter_bounds(now, offset)
        start, end = window
        quarterly.append({
            "quarter": quarter_label(start),
            "lists": sum(
                1 for log in activity_logs
                if log.activity_type == PARTNER_LIST_SENT and in_window(log.timestamp, start, end)
            ),
            "conversions": sum(1 for item in sold_items if in_window(item.first_sale_date, start, end)),
            "revenue": _revenue(window, sold_items, finance_entries),
        })

    return {
        "weekly_call_volume": weekly,
        "monthly_agreements": monthly,
        "quarterly_lists_out": quarterly,
    }


def generate_predictive_insights(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    trends: Dict[str, List[Dict[str, Any]]],
    now: datetime,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """Average-times-factor forecasts, risk factors and opportunities."""
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    factors = config.forecast_factors

    def _average(series: List[Dict[str, Any]], key: str) -> float:
        return safe_div(sum(point[key] for point in series), len(series))

    weekly = trends.get("weekly_call_volume", [])
    monthly = trends.get("monthly_agreements", [])
    quarterly = trends.get("quarterly_lists_out", [])

    risk_factors: List[str] = []
    low_weeks = sum(1 for week in weekly if week["calls"] < week["target"] * 0.8)
    if low_weeks > 1:
        risk_factors.append("Declining call volume trend could impact future pipeline")

    horizon = now + timedelta(days=14)
    upcoming = sum(
        1 for item in pipeline_items
        if item.call_date is not None and now < item.call_date <= horizon
    )
    if upcoming < config.action_thresholds.min_upcoming_calls_two_weeks:
        risk_factors.append("Insufficient upcoming calls scheduled for next 2 weeks")

    opportunities: List[str] = []
    cutoff = now - timedelta(days=30)
    recent = Counter(
        log.bdr for log in activity_logs
        if log.bdr and log.timestamp is not None and log.timestamp >= cutoff
    )
    if recent:
        top_agent, _ = recent.most_common(1)[0]
        opportunities.append(f"{top_agent} showing strong activity - consider replicating their approach")

    return {
        "expected_calls_next_week": round(_average(weekly, "calls") * factors.calls),
        "expected_agreements_next_month": round(_average(monthly, "agreements") * factors.agreements),
        "expected_revenue_next_quarter": round(_average(quarterly, "revenue") * factors.revenue),
        "risk_factors": risk_factors,
        "opportunities": opportunities,
    }


def calculate_financial_summary(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    now: datetime,
    finance_entries: Optional[Iterable[FinanceEntry]] = None,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """
    Revenue this month and quarter, plus revenue per agent, call and list.

    Finance entries drive revenue when supplied; otherwise Sold item values
    dated by first sale.
    """
    config = config or DEFAULT_CONFIG
    now = as_utc(now)
    pipeline_items = list(pipeline_items)
    activity_logs = list(activity_logs)
    finance_entries = list(finance_entries or [])
    sold_items = [item for item in pipeline_items if item.status == SOLD]

    month_start = month_bounds(now)[0]
    quarter_start = quarter_bounds(now)[0]
    monthly = _revenue((month_start, now), sold_items, finance_entries)
    quarterly = _revenue((quarter_start, now), sold_items, finance_entries)
    if finance_entries:
        total = sum(entry.gbp_amount or 0 for entry in finance_entries)
    else:
        total = sum(item.value or 0 for item in sold_items)

    agents = {item.bdr for item in pipeline_items if item.bdr}
    calls = len(get_all_call_completions(
        pipeline_items, activity_logs, EPOCH, now,
        proximity_seconds=config.dedup_proximity_seconds,
        excluded_statuses=config.excluded_completion_statuses,
    ))
    lists = sum(1 for log in activity_logs if log.activity_type == PARTNER_LIST_SENT)

    logger.debug("Revenue: month %.2f, quarter %.2f, total %.2f", monthly, quarterly, total)
    return {
        "monthly_revenue": monthly,
        "quarterly_revenue": quarterly,
        "total_revenue": total,
        "revenue_per_agent": round(safe_div(total, len(agents))),
        "revenue_per_call": round(safe_div(total, calls)),
        "revenue_per_list": round(safe_div(total, lists)),
    }

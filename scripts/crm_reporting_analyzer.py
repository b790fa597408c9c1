"""
CRM Reporting Analyzer
========================
Reads a CRM snapshot export (pipeline items, activity logs, finance entries,
KPI targets) from data/raw/ and produces the reporting metrics file at
data/processed/crm_reporting_metrics.json.

Every analysis step is pure; this script is the only place that touches
the filesystem.

Usage:
    python scripts/crm_reporting_analyzer.py
    python scripts/crm_reporting_analyzer.py --input data/raw/crm_snapshot.json
    python scripts/crm_reporting_analyzer.py --now 2025-07-30T12:00:00Z
    python scripts/crm_reporting_analyzer.py --config configs/reporting.yaml

Exports:
    load_snapshot, run_reporting_analysis, main
"""
from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError
from pydantic_core import to_jsonable_python

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
RAW_DIR = PROJECT_ROOT / "data" / "raw"
PROCESSED_DIR = PROJECT_ROOT / "data" / "processed"
DEFAULT_INPUT = RAW_DIR / "crm_snapshot.json"
DEFAULT_OUTPUT = PROCESSED_DIR / "crm_reporting_metrics.json"
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

from models.reporting_models import ReportingSnapshot, build_item_tree
from scripts.lib.config import ReportingConfig, load_reporting_config
from scripts.lib.errors import (
    AnalysisStepError,
    DataFetchError,
    ReportingError,
    SchemaValidationError,
)
from scripts.lib.logger import setup_logger
from scripts.lib.utils import as_utc, atomic_write_json, parse_ts
from scripts.reporting.call_analytics import analyze_call_performance
from scripts.reporting.funnel import funnel_by_agent, summarize_funnel, weighted_pipeline_value
from scripts.reporting.insights import generate_funnel_insights, identify_critical_actions
from scripts.reporting.kpi_calculator import calculate_kpis
from scripts.reporting.statuses import CALL_BOOKED
from scripts.reporting.team_performance import (
    agent_activity_scores,
    assess_pipeline_health,
    calculate_team_performance,
    pending_agreements_summary,
    upcoming_calls_summary,
)
from scripts.reporting.trends import (
    calculate_financial_summary,
    calculate_trends,
    generate_predictive_insights,
)

logger = setup_logger("crm_reporting_analyzer")


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------

def load_snapshot(path: str | Path) -> ReportingSnapshot:
    """
    Load and validate a snapshot export.

    Raises:
        DataFetchError: File missing, unreadable or not JSON.
        SchemaValidationError: Rows do not match the expected shapes, or
            the pipeline item tree is inconsistent.
    """
    path = Path(path)
    if not path.exists():
        raise DataFetchError(f"Snapshot not found: {path}", source=str(path))

    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise DataFetchError(f"Cannot read snapshot {path.name}: {e}", source=str(path)) from e

    if not isinstance(raw, dict):
        raise SchemaValidationError(f"{path.name} must contain a JSON object")

    try:
        snapshot = ReportingSnapshot.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise SchemaValidationError(f"Invalid snapshot {path.name}: {e}", field=field or None) from e

    build_item_tree(snapshot.pipeline_items)

    logger.info(
        "Loaded: %d pipeline items, %d activity logs, %d finance entries",
        len(snapshot.pipeline_items), len(snapshot.activity_logs), len(snapshot.finance_entries),
    )
    return snapshot


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def _run_step(name: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
    logger.info("Running %s...", name)
    try:
        return fn(*args, **kwargs)
    except ReportingError:
        raise
    except Exception as e:
        logger.error("Step %s failed: %s", name, e)
        raise AnalysisStepError(name, e) from e


def _agent_metrics(
    snapshot: ReportingSnapshot,
    team_performance: Dict[str, Any],
    activity_scores: Dict[str, float],
    now: datetime,
) -> List[Dict[str, Any]]:
    """Per-agent rows in team-performance order, with upcoming booked calls."""
    upcoming: Dict[str, int] = {}
    for item in snapshot.pipeline_items:
        if item.bdr and item.status == CALL_BOOKED and item.call_date is not None and item.call_date > now:
            upcoming[item.bdr] = upcoming.get(item.bdr, 0) + 1

    return [
        {
            **row,
            "activity_score": activity_scores.get(row["bdr"], 0.0),
            "upcoming_calls": upcoming.get(row["bdr"], 0),
        }
        for row in team_performance["agents"]
    ]


def run_reporting_analysis(
    snapshot: ReportingSnapshot,
    now: Optional[datetime] = None,
    config: Optional[ReportingConfig] = None,
) -> Dict[str, Any]:
    """Run every analysis over one snapshot.

    Returns the full, JSON-ready metrics dictionary.
    """
    now = as_utc(now) or datetime.now(timezone.utc)
    config = config or ReportingConfig()
    items = snapshot.pipeline_items
    logs = snapshot.activity_logs
    finance = snapshot.finance_entries
    logger.info("Starting CRM reporting analysis as of %s", now.isoformat())

    kpis = _run_step("KPI calculator", calculate_kpis, items, logs, snapshot.kpi_targets, now, finance, config)
    call_performance = _run_step(
        "call performance", analyze_call_performance, items, logs, snapshot.kpi_targets, now, config)
    team_performance = _run_step("team performance", calculate_team_performance, items, logs, now, config)
    activity_scores = _run_step("activity scores", agent_activity_scores, items, logs, now, config)

    team_activity = sum(activity_scores.values()) / len(activity_scores) if activity_scores else 0.0
    funnel = _run_step("funnel", summarize_funnel, items, team_activity)
    pipeline_health = _run_step("pipeline health", assess_pipeline_health, items, logs, now, config)
    upcoming = _run_step("upcoming calls", upcoming_calls_summary, items, now)
    pending = _run_step("pending agreements", pending_agreements_summary, items)

    trends = _run_step(
        "trends", calculate_trends, items, logs, now, finance,
        config.weekly_call_trend_target, config.monthly_agreement_trend_target, config,
    )
    predictions = _run_step("predictions", generate_predictive_insights, items, logs, trends, now, config)
    financial = _run_step("financial summary", calculate_financial_summary, items, logs, now, finance, config)
    actions = _run_step("critical actions", identify_critical_actions, items, logs, team_performance, now, config)

    agent_metrics = _agent_metrics(snapshot, team_performance, activity_scores, now)
    insights = _run_step("funnel insights", generate_funnel_insights, funnel, agent_metrics, upcoming, pending)

    output = {
        "generated_at": now.isoformat(),
        "data_source": "crm_snapshot",
        "record_counts": {
            "pipeline_items": len(items),
            "activity_logs": len(logs),
            "finance_entries": len(finance),
        },
        "kpis": kpis,
        "call_performance": call_performance,
        "team_performance": team_performance,
        "agent_metrics": agent_metrics,
        "conversion_funnel": funnel,
        "funnel_by_agent": funnel_by_agent(items),
        "pipeline_value": weighted_pipeline_value(items),
        "pipeline_health": pipeline_health,
        "upcoming_calls": upcoming,
        "pending_agreements": pending,
        "trends": trends,
        "predictions": predictions,
        "financial_summary": financial,
        "critical_actions": actions,
        "insights": insights,
        "config_used": config,
    }
    logger.info("Analysis complete: %d critical actions", len(actions))
    return to_jsonable_python(output)


# ---------------------------------------------------------------------------
# Standalone entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="BDR Reporting Hub - CRM reporting analyzer")
    parser.add_argument("--input", default=str(DEFAULT_INPUT), help="Snapshot JSON export")
    parser.add_argument("--output", default=str(DEFAULT_OUTPUT), help="Metrics JSON destination")
    parser.add_argument("--now", help="Report time (ISO-8601); defaults to the current time")
    parser.add_argument("--config", help="Reporting config YAML")
    args = parser.parse_args(argv)

    now = None
    if args.now:
        now = parse_ts(args.now)
        if now is None:
            parser.error(f"--now is not an ISO-8601 timestamp: {args.now}")

    try:
        config = load_reporting_config(args.config)
        snapshot = load_snapshot(args.input)
        results = run_reporting_analysis(snapshot, now=now, config=config)
    except ReportingError as e:
        logger.error("Reporting run failed: %s", e)
        return 1

    if not atomic_write_json(results, args.output):
        logger.error("Could not write %s", args.output)
        return 1

    logger.info("Output saved to %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Conversion Funnel Aggregator
==============================
Stage-by-stage counts, conversion and drop-off over the fixed stage order
Call Proposed → Call Booked → Proposal Sent → Agreement Reached → List Out
→ Sold, plus the Declined/Q&A branch outside the progression.

Items are placed by their current status via STATUS_TABLE. Partner
contacts are not opportunities and are left out; statuses missing from the
table are counted as unmapped and excluded from the total.

Exports:
    calculate_conversion_funnel, find_biggest_dropoff, summarize_funnel,
    funnel_by_agent, weighted_pipeline_value
"""
from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models.reporting_models import FunnelStage, ItemKind, PipelineItem
from scripts.lib.logger import setup_logger
from scripts.lib.utils import round2, safe_div
from scripts.reporting.statuses import (
    DECLINED_STAGE,
    FUNNEL_STAGES,
    PROGRESSIVE_STAGES,
    default_probability,
    stage_for_status,
)

logger = setup_logger(__name__)


def _funnel_items(pipeline_items: Iterable[PipelineItem]) -> Tuple[List[PipelineItem], int]:
    """Split out funnel-eligible items. Returns (mapped items, unmapped count)."""
    mapped: List[PipelineItem] = []
    unmapped = 0
    for item in pipeline_items:
        if item.kind is ItemKind.CONTACT:
            continue
        if stage_for_status(item.status) is None:
            unmapped += 1
            continue
        mapped.append(item)
    return mapped, unmapped


def calculate_conversion_funnel(pipeline_items: Iterable[PipelineItem]) -> List[FunnelStage]:
    """
    Per-stage count, share of total, conversion from the previous
    progressive stage and drop-off. Empty list when no item maps to a stage.

    The first stage, the declined branch and any stage whose predecessor is
    empty report a conversion rate of 100 and a drop-off of 0.
    """
    mapped, _ = _funnel_items(pipeline_items)
    total = len(mapped)
    if total == 0:
        return []

    counts = Counter(stage_for_status(item.status) for item in mapped)
    stages: List[FunnelStage] = []
    for index, stage in enumerate(FUNNEL_STAGES):
        count = counts.get(stage.key, 0)
        conversion = 100.0
        dropoff = 0.0
        if index > 0 and stage.key != DECLINED_STAGE:
            previous = counts.get(PROGRESSIVE_STAGES[index - 1].key, 0)
            if previous > 0:
                conversion = count / previous * 100
                dropoff = 100 - conversion

        stages.append(FunnelStage(
            key=stage.key,
            stage=stage.label,
            count=count,
            percentage=round2(count / total * 100),
            conversion_rate=round2(conversion),
            dropoff_rate=round2(dropoff),
        ))
    return stages


def find_biggest_dropoff(stages: Iterable[FunnelStage]) -> Dict[str, Any]:
    """Stage with the highest positive drop-off; the first wins a tie."""
    biggest = {"stage": "", "rate": 0.0}
    for stage in stages:
        if stage.dropoff_rate > biggest["rate"]:
            biggest = {"stage": stage.stage, "rate": stage.dropoff_rate}
    return biggest


def summarize_funnel(
    pipeline_items: Iterable[PipelineItem],
    team_activity_score: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Team funnel with headline figures and improvement opportunities.

    Args:
        pipeline_items: All pipeline items.
        team_activity_score: Average agent activity score (0-100). When
            given it feeds overall efficiency and the engagement check.
    """
    pipeline_items = list(pipeline_items)
    mapped, unmapped = _funnel_items(pipeline_items)
    stages = calculate_conversion_funnel(mapped)

    total = len(mapped)
    sold = next((s.count for s in stages if s.key == "sold"), 0)
    overall = safe_div(sold, total) * 100
    biggest = find_biggest_dropoff(stages)

    if team_activity_score is None:
        efficiency = overall
    else:
        efficiency = (overall + team_activity_score) / 2

    opportunities: List[str] = []
    if biggest["rate"] > 50:
        opportunities.append(f"High dropoff at {biggest['stage']} ({biggest['rate']:g}%)")
    if team_activity_score is not None and team_activity_score < 50:
        opportunities.append("Low team activity score - increase engagement")
    if overall < 20:
        opportunities.append("Low overall conversion rate - review qualification process")

    if unmapped:
        logger.warning("%d pipeline items have statuses outside the funnel", unmapped)

    return {
        "stages": stages,
        "total_volume": total,
        "unmapped": unmapped,
        "overall_conversion_rate": round2(overall),
        "overall_efficiency": round2(efficiency),
        "team_activity_score": team_activity_score,
        "biggest_dropoff": biggest,
        "improvement_opportunities": opportunities,
    }


def funnel_by_agent(pipeline_items: Iterable[PipelineItem]) -> Dict[str, List[FunnelStage]]:
    """Funnel per agent. Items with no agent are skipped."""
    grouped: Dict[str, List[PipelineItem]] = defaultdict(list)
    for item in pipeline_items:
        if item.bdr:
            grouped[item.bdr].append(item)
    return {agent: calculate_conversion_funnel(items) for agent, items in grouped.items()}


def weighted_pipeline_value(pipeline_items: Iterable[PipelineItem]) -> Dict[str, float]:
    """
    Sum of value × probability over items with a value.

    Items without an explicit probability use the status default.
    """
    total = 0.0
    weighted = 0.0
    for item in pipeline_items:
        if not item.value:
            continue
        probability = item.probability
        if probability is None:
            probability = default_probability(item.status)
        total += item.value
        weighted += item.value * probability / 100
    return {"total_value": round2(total), "weighted_value": round2(weighted)}

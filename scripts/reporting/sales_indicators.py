"""
Sales-Indicator Text Classifier
=================================
Keyword / currency-symbol heuristic over free-text notes. Coarse on purpose:
"deal rejected" is a false positive and that is accepted.

Exports:
    is_sale_indicated, sold_pipeline_item_ids
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence, Set

from models.reporting_models import ActivityLog, PipelineItem
from scripts.lib.config import DEFAULT_CONFIG
from scripts.lib.utils import in_window
from scripts.reporting.statuses import SOLD


def is_sale_indicated(
    text: Optional[str],
    keywords: Optional[Sequence[str]] = None,
    currency_symbols: Optional[Sequence[str]] = None,
) -> bool:
    """True if the text mentions a sale keyword or contains a currency symbol."""
    if not text:
        return False
    keywords = DEFAULT_CONFIG.sale_keywords if keywords is None else keywords
    currency_symbols = DEFAULT_CONFIG.currency_symbols if currency_symbols is None else currency_symbols

    lowered = text.lower()
    if any(k.lower() in lowered for k in keywords):
        return True
    return any(symbol in text for symbol in currency_symbols)


def sold_pipeline_item_ids(
    pipeline_items: Iterable[PipelineItem],
    activity_logs: Iterable[ActivityLog],
    window_start: datetime,
    window_end: datetime,
    keywords: Optional[Sequence[str]] = None,
    currency_symbols: Optional[Sequence[str]] = None,
) -> Set[int]:
    """
    Distinct pipeline items with evidence of a sale inside the window.

    Evidence is any of:
      - the item's notes indicate a sale and it was updated in the window
      - an activity log in the window with sale-indicating notes links the item
      - the item's status is Sold and it was updated in the window
    """
    sold: Set[int] = set()

    for item in pipeline_items:
        if not in_window(item.last_updated, window_start, window_end):
            continue
        if item.status == SOLD or is_sale_indicated(item.notes, keywords, currency_symbols):
            sold.add(item.id)

    for log in activity_logs:
        if log.pipeline_item_id is None:
            continue
        if in_window(log.timestamp, window_start, window_end) and is_sale_indicated(
            log.notes, keywords, currency_symbols
        ):
            sold.add(log.pipeline_item_id)

    return sold

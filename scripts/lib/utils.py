"""
Utility functions for BDR Reporting Hub.
Zero-safe arithmetic, timestamp normalisation and atomic file writes.

Usage:
    from scripts.lib.utils import safe_div, round2, atomic_write_json
"""
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Zero-safe division."""
    if not denominator:
        return default
    return numerator / denominator


def round2(value: float) -> float:
    """Round to two decimal places (percentages and rates)."""
    return round(value * 100) / 100


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return a timezone-aware UTC datetime. Naive values are assumed UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_ts(ts_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp string to a timezone-aware datetime."""
    if not ts_str:
        return None
    try:
        # Handle ISO format with or without trailing Z / offset
        cleaned = ts_str.replace("Z", "+00:00")
        return as_utc(datetime.fromisoformat(cleaned))
    except (ValueError, TypeError):
        return None


def in_window(dt: Optional[datetime], start: datetime, end: datetime) -> bool:
    """
    True when `dt` is set and falls inside the inclusive window [start, end].
    Naive values on either side are read as UTC.
    """
    if dt is None:
        return False
    return as_utc(start) <= as_utc(dt) <= as_utc(end)


def atomic_write_json(data: Dict, file_path: str | Path, indent: int = 2) -> bool:
    """
    Write JSON data to file atomically using temp file + rename.
    Prevents a half-written report if the process dies during write.

    Args:
        data: Dictionary to serialize as JSON.
        file_path: Target file path.
        indent: JSON indentation level.

    Returns:
        True if successful, False otherwise.
    """
    file_path = Path(file_path)
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        ensure_directory(file_path.parent)

        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent, default=str)

        os.replace(temp_path, file_path)
        logger.debug("Atomically wrote JSON to %s", file_path)
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to write JSON to %s: %s", file_path, e)
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)
        return False


def ensure_directory(path: str | Path) -> Path:
    """Ensure directory exists, create if needed."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path

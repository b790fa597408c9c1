"""
Reporting configuration for BDR Reporting Hub.

Every tunable heuristic used by the analytics (sale keywords, no-show
exclusions, dedup proximity window, default per-agent targets, status tiers,
alert thresholds, forecast optimism factors) lives in ReportingConfig.

Resolution order:
    1. explicit path passed to load_reporting_config()
    2. $REPORTING_CONFIG_PATH
    3. configs/reporting.yaml
    4. built-in defaults (file missing)

Usage:
    from scripts.lib.config import load_reporting_config
    config = load_reporting_config()
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from scripts.lib.errors import ConfigError
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "reporting.yaml"

load_dotenv(PROJECT_ROOT / ".env")


class TargetDefaults(BaseModel):
    """Per-agent fallback targets for one period length."""
    calls: float
    agreements: float
    lists_out: float
    sales: float


class StatusTiers(BaseModel):
    """Multipliers of the target for the excellent / good / needs_attention tiers."""
    excellent: float = 1.25
    good: float = 1.0
    needs_attention: float = 0.5


class ConversionTiers(BaseModel):
    """Absolute conversion-rate thresholds (percent)."""
    excellent: float = 25.0
    good: float = 18.0
    needs_attention: float = 12.0
    target: float = 20.0


class ActionThresholds(BaseModel):
    min_weekly_calls: int = 25
    min_upcoming_calls_next_week: int = 30
    min_upcoming_calls_two_weeks: int = 40
    support_score_below: float = 10
    support_calls_below: int = 5


class ForecastFactors(BaseModel):
    calls: float = 1.1
    agreements: float = 1.05
    revenue: float = 1.1


class ReportingConfig(BaseModel):
    sale_keywords: List[str] = Field(
        default_factory=lambda: ["sold", "deal", "purchase", "bought", "payment", "invoice", "revenue"]
    )
    currency_symbols: List[str] = Field(default_factory=lambda: ["£", "$", "€"])
    excluded_completion_statuses: List[str] = Field(
        default_factory=lambda: ["no show", "rescheduled"]
    )
    dedup_proximity_seconds: float = Field(60.0, gt=0)
    active_window_days: int = Field(7, ge=1)
    weekly_defaults: TargetDefaults = Field(
        default_factory=lambda: TargetDefaults(calls=10, agreements=3, lists_out=1, sales=0.5)
    )
    monthly_defaults: TargetDefaults = Field(
        default_factory=lambda: TargetDefaults(calls=40, agreements=12, lists_out=4, sales=2)
    )
    status_tiers: StatusTiers = Field(default_factory=StatusTiers)
    conversion_tiers: ConversionTiers = Field(default_factory=ConversionTiers)
    weekly_call_trend_target: float = 40
    monthly_agreement_trend_target: float = 20
    action_thresholds: ActionThresholds = Field(default_factory=ActionThresholds)
    forecast_factors: ForecastFactors = Field(default_factory=ForecastFactors)


DEFAULT_CONFIG = ReportingConfig()


def load_reporting_config(path: Optional[str | Path] = None) -> ReportingConfig:
    """
    Load reporting configuration from YAML.

    Args:
        path: Optional explicit config path.

    Returns:
        ReportingConfig with file values layered over the defaults.

    Raises:
        ConfigError: The file exists but is not valid YAML or holds invalid values.
    """
    config_path = Path(path or os.getenv("REPORTING_CONFIG_PATH") or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        if path:
            raise ConfigError(f"Config file not found: {config_path}", str(config_path))
        logger.info("No reporting config at %s; using defaults", config_path)
        return ReportingConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path.name}: {e}", str(config_path)) from e

    section = data.get("reporting", data) if isinstance(data, dict) else data
    if not isinstance(section, dict):
        raise ConfigError(f"{config_path.name} must contain a mapping", str(config_path))

    try:
        config = ReportingConfig(**section)
    except ValidationError as e:
        raise ConfigError(f"Invalid reporting config: {e}", str(config_path)) from e

    logger.info("Loaded reporting config from %s", config_path.name)
    return config

"""
BDR Reporting Hub: Reporting Pydantic Models
================================================

Input records (read-only snapshots fetched by the storage layer) and the
derived/output records produced by the analytics.

Input models accept the storage layer's camelCase keys as well as
snake_case, normalise every datetime to timezone-aware UTC, and accept the
agent either as a plain name or as a nested {"name": ...} object.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from scripts.lib.errors import SchemaValidationError
from scripts.lib.utils import as_utc

KPIStatus = Literal["excellent", "good", "needs_attention", "critical"]
ActionPriority = Literal["urgent", "high", "medium"]
ActionCategory = Literal["calls", "agreements", "lists", "team"]


# ─── Snapshot Base ──────────────────────────────────────────

class SnapshotRecord(BaseModel):
    """Base for rows coming out of the storage layer."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("bdr", mode="before", check_fields=False)
    @classmethod
    def agent_from_object(cls, value: Any) -> Optional[str]:
        return _agent_name(value)

    @field_validator("*", mode="after")
    @classmethod
    def normalise_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value


def _agent_name(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("name")
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# ─── Pipeline Items ─────────────────────────────────────────

class ItemKind(str, Enum):
    """Position of a pipeline item in the list-container tree."""
    CONTAINER = "container"
    CONTACT = "contact"
    STANDALONE = "standalone"


class PipelineItem(SnapshotRecord):
    """A sales opportunity."""
    id: int
    bdr: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    value: Optional[float] = None
    probability: Optional[float] = Field(None, ge=0, le=100)
    added_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    call_date: Optional[datetime] = None
    expected_close_date: Optional[datetime] = None
    agreement_date: Optional[datetime] = None
    partner_list_sent_date: Optional[datetime] = None
    first_sale_date: Optional[datetime] = None
    notes: Optional[str] = None
    parent_id: Optional[int] = None
    is_sublist: bool = False
    partner_list_size: Optional[int] = None

    @field_validator("is_sublist", mode="before")
    @classmethod
    def none_is_false(cls, value: Any) -> Any:
        return bool(value) if value is None else value

    @model_validator(mode="after")
    def container_has_no_parent(self) -> "PipelineItem":
        if self.is_sublist and self.parent_id is not None:
            raise ValueError(
                f"pipeline item {self.id} is a list container and cannot have a parent"
            )
        return self

    @property
    def kind(self) -> ItemKind:
        if self.is_sublist:
            return ItemKind.CONTAINER
        if self.parent_id is not None:
            return ItemKind.CONTACT
        return ItemKind.STANDALONE


def build_item_tree(items: Iterable[PipelineItem]) -> Dict[int, List[PipelineItem]]:
    """
    Group partner contacts under their list containers.

    Returns:
        {container_id: [child items]} for every container (possibly empty).

    Raises:
        SchemaValidationError: A contact references a missing item or an item
            that is not a list container.
    """
    items = list(items)
    by_id = {item.id: item for item in items}
    tree: Dict[int, List[PipelineItem]] = {
        item.id: [] for item in items if item.kind is ItemKind.CONTAINER
    }

    for item in items:
        if item.kind is not ItemKind.CONTACT:
            continue
        parent = by_id.get(item.parent_id)
        if parent is None:
            raise SchemaValidationError(
                f"Pipeline item {item.id} references missing parent {item.parent_id}",
                field="parentId",
            )
        if parent.kind is not ItemKind.CONTAINER:
            raise SchemaValidationError(
                f"Pipeline item {item.id} has parent {parent.id} which is not a list container",
                field="parentId",
            )
        tree[parent.id].append(item)

    return tree


# ─── Activity & Finance ─────────────────────────────────────

class ActivityLog(SnapshotRecord):
    """Append-only event record."""
    id: Optional[int] = None
    bdr: Optional[str] = None
    activity_type: Optional[str] = None
    timestamp: Optional[datetime] = None
    pipeline_item_id: Optional[int] = None
    lead_id: Optional[int] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None


class FinanceEntry(SnapshotRecord):
    """Billing record; the authoritative source for sales counts."""
    id: Optional[int] = None
    bdr: Optional[str] = None
    invoice_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    sold_amount: Optional[float] = None
    gbp_amount: Optional[float] = None
    status: Optional[str] = None
    month: Optional[str] = None


class KPITargets(SnapshotRecord):
    """Per-agent targets. Unset values fall back to the configured defaults."""
    weekly_calls: Optional[float] = None
    weekly_agreements: Optional[float] = None
    weekly_lists_out: Optional[float] = None
    weekly_sales: Optional[float] = None
    monthly_calls: Optional[float] = None
    monthly_agreements: Optional[float] = None
    monthly_lists_out: Optional[float] = None
    monthly_sales: Optional[float] = None

    @classmethod
    def from_rows(cls, rows: Iterable[dict]) -> "KPITargets":
        """Fold storage rows of the form {"name": "weeklyCalls", "value": 10}."""
        values = {
            row["name"]: row.get("value")
            for row in rows
            if isinstance(row, dict) and row.get("name")
        }
        return cls.model_validate(values)


# ─── Derived Records ────────────────────────────────────────

class CallCompletion(BaseModel):
    """A completed call, either logged explicitly or inferred from a status change."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    bdr: Optional[str] = None
    timestamp: datetime
    pipeline_item_id: Optional[int] = None
    lead_id: Optional[int] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    description: str = ""
    activity_type: str = "Call_Completed"
    is_automatic: bool = False

    @classmethod
    def from_log(
        cls, log: ActivityLog, is_automatic: bool = False, description: Optional[str] = None
    ) -> "CallCompletion":
        return cls(
            id=log.id,
            bdr=log.bdr,
            timestamp=log.timestamp,
            pipeline_item_id=log.pipeline_item_id,
            lead_id=log.lead_id,
            previous_status=log.previous_status,
            new_status=log.new_status,
            description=description or log.description or "",
            is_automatic=is_automatic,
        )


class KPIMetric(BaseModel):
    current: float
    target: float
    status: KPIStatus


class TargetSet(BaseModel):
    calls: float
    agreements: float
    lists_out: float
    sales: float


class TeamTargets(BaseModel):
    weekly: TargetSet
    monthly: TargetSet
    active_agents: List[str] = Field(default_factory=list)
    all_agents: List[str] = Field(default_factory=list)


class FunnelStage(BaseModel):
    key: str
    stage: str
    count: int
    percentage: float
    conversion_rate: float
    dropoff_rate: float


class CriticalAction(BaseModel):
    priority: ActionPriority
    category: ActionCategory
    action: str
    metric: Optional[float] = None
    deadline: Optional[str] = None
    assigned_to: Optional[str] = None


# ─── Snapshot Envelope ──────────────────────────────────────

class ReportingSnapshot(SnapshotRecord):
    """One export from the storage layer: everything a report run reads."""
    pipeline_items: List[PipelineItem] = Field(default_factory=list)
    activity_logs: List[ActivityLog] = Field(default_factory=list)
    finance_entries: List[FinanceEntry] = Field(default_factory=list)
    kpi_targets: KPITargets = Field(default_factory=KPITargets)

    @field_validator("kpi_targets", mode="before")
    @classmethod
    def targets_from_rows(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, list):
            return KPITargets.from_rows(value)
        return value

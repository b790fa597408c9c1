"""
Pipeline Status Vocabulary
============================
Single lookup table for every pipeline status: lifecycle category, funnel
stage and default close probability. All status-keyed logic in the
reporting modules goes through this table.

Exports:
    STATUS_TABLE, FUNNEL_STAGES, PROGRESSIVE_STAGES, StatusInfo,
    status_info, stage_for_status, default_probability
"""
from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional

# Lifecycle categories
CALLS = "Calls"
PIPELINE = "Pipeline"
LISTS_MEDIA_QA = "Lists_Media_QA"
PARTNER_CONTACTS = "Partner_Contacts"
DECLINED_RESCHEDULED = "Declined_Rescheduled"

CATEGORIES = (CALLS, PIPELINE, LISTS_MEDIA_QA, PARTNER_CONTACTS, DECLINED_RESCHEDULED)

# Activity types consumed by the analytics
STATUS_CHANGE = "Status_Change"
CALL_COMPLETED = "Call_Completed"
AGREEMENT_SENT = "Agreement_Sent"
PARTNER_LIST_SENT = "Partner_List_Sent"
PROPOSAL_SENT = "Proposal_Sent"

CALL_BOOKED = "Call Booked"
SOLD = "Sold"


class FunnelStageDef(NamedTuple):
    key: str
    label: str


# Ordered; the declined branch sits outside the progression.
FUNNEL_STAGES: List[FunnelStageDef] = [
    FunnelStageDef("call_proposed", "Call Proposed"),
    FunnelStageDef("call_booked", "Call Booked"),
    FunnelStageDef("proposal_sent", "Proposal Sent"),
    FunnelStageDef("agreement_reached", "Agreement Reached"),
    FunnelStageDef("list_out", "List Out"),
    FunnelStageDef("sold", "Sold"),
    FunnelStageDef("declined", "Declined/Q&A"),
]
DECLINED_STAGE = "declined"
PROGRESSIVE_STAGES = [s for s in FUNNEL_STAGES if s.key != DECLINED_STAGE]


class StatusInfo(NamedTuple):
    category: str
    stage: Optional[str]
    probability: float


STATUS_TABLE: Dict[str, StatusInfo] = {
    # Calls
    "BDR Followed Up":        StatusInfo(CALLS, "call_proposed", 5),
    "Call Proposed":          StatusInfo(CALLS, "call_proposed", 10),
    "Call Booked":            StatusInfo(CALLS, "call_booked", 20),
    "Call Conducted":         StatusInfo(CALLS, "call_booked", 30),
    # Pipeline
    "Proposal - Profile":     StatusInfo(PIPELINE, "proposal_sent", 40),
    "Proposal - Media":       StatusInfo(PIPELINE, "proposal_sent", 40),
    "Proposal - Media Sales": StatusInfo(PIPELINE, "proposal_sent", 40),
    "Agreement - Profile":    StatusInfo(PIPELINE, "agreement_reached", 60),
    "Agreement - Media":      StatusInfo(PIPELINE, "agreement_reached", 60),
    "Partner List Pending":   StatusInfo(PIPELINE, "agreement_reached", 65),
    # Lists, media and Q&A
    "Partner List Sent":      StatusInfo(LISTS_MEDIA_QA, "list_out", 70),
    "List Out":               StatusInfo(LISTS_MEDIA_QA, "list_out", 75),
    "Media Sales":            StatusInfo(LISTS_MEDIA_QA, "list_out", 75),
    "Sold":                   StatusInfo(LISTS_MEDIA_QA, "sold", 100),
    "List Out - Not Sold":    StatusInfo(LISTS_MEDIA_QA, "declined", 0),
    "Q&A":                    StatusInfo(LISTS_MEDIA_QA, "declined", 0),
    "Free Q&A Offered":       StatusInfo(LISTS_MEDIA_QA, "declined", 0),
    # Declined / rescheduled
    "DECLINED":               StatusInfo(DECLINED_RESCHEDULED, "declined", 0),
    "Passed Over":            StatusInfo(DECLINED_RESCHEDULED, "declined", 0),
    "Declined_Rescheduled":   StatusInfo(DECLINED_RESCHEDULED, "declined", 0),
    "Rescheduled":            StatusInfo(DECLINED_RESCHEDULED, "declined", 10),
    "Lost":                   StatusInfo(DECLINED_RESCHEDULED, "declined", 0),
    # Partner contacts (children of a list container, outside the funnel)
    "Contacted":              StatusInfo(PARTNER_CONTACTS, None, 0),
    "Interested":             StatusInfo(PARTNER_CONTACTS, None, 0),
    "Declined":               StatusInfo(PARTNER_CONTACTS, None, 0),
    "Follow-up Required":     StatusInfo(PARTNER_CONTACTS, None, 0),
    "Not Responsive":         StatusInfo(PARTNER_CONTACTS, None, 0),
}

# Statuses after which a list is no longer "out"
CLOSED_LIST_STATUSES = frozenset({"Sold", "List Out - Not Sold", "Free Q&A Offered"})


def status_info(status: Optional[str]) -> Optional[StatusInfo]:
    if not status:
        return None
    return STATUS_TABLE.get(status)


def stage_for_status(status: Optional[str]) -> Optional[str]:
    """Funnel stage key for a status, or None when the status is outside the funnel."""
    info = status_info(status)
    return info.stage if info else None


def default_probability(status: Optional[str]) -> float:
    info = status_info(status)
    return info.probability if info else 0.0


def is_proposal(status: Optional[str]) -> bool:
    return stage_for_status(status) == "proposal_sent"


def is_agreement(status: Optional[str]) -> bool:
    return stage_for_status(status) == "agreement_reached"

"""Tests for the snapshot input models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from models.reporting_models import (
    ActivityLog,
    CallCompletion,
    ItemKind,
    KPITargets,
    PipelineItem,
    ReportingSnapshot,
    build_item_tree,
)
from scripts.lib.errors import SchemaValidationError


class TestPipelineItem:
    def test_parses_camel_case(self):
        item = PipelineItem.model_validate({
            "id": 7,
            "bdr": {"name": "Amy"},
            "status": "Call Booked",
            "callDate": "2025-07-31T09:30:00Z",
            "partnerListSize": 12,
            "isSublist": None,
        })
        assert item.bdr == "Amy"
        assert item.call_date == datetime(2025, 7, 31, 9, 30, tzinfo=timezone.utc)
        assert item.partner_list_size == 12
        assert item.is_sublist is False
        assert item.kind is ItemKind.STANDALONE

    def test_naive_datetimes_become_utc(self):
        item = PipelineItem(id=1, last_updated=datetime(2025, 7, 30, 8, 0))
        assert item.last_updated.tzinfo == timezone.utc

    def test_blank_agent_is_none(self):
        assert PipelineItem(id=1, bdr="  ").bdr is None

    def test_container_cannot_have_parent(self):
        with pytest.raises(ValidationError):
            PipelineItem(id=2, is_sublist=True, parent_id=1)

    def test_probability_bounds(self):
        with pytest.raises(ValidationError):
            PipelineItem(id=1, probability=120)


class TestItemTree:
    def test_groups_contacts(self):
        items = [
            PipelineItem(id=1, is_sublist=True),
            PipelineItem(id=2, parent_id=1),
            PipelineItem(id=3, parent_id=1),
            PipelineItem(id=4),
        ]
        tree = build_item_tree(items)
        assert list(tree) == [1]
        assert [child.id for child in tree[1]] == [2, 3]
        assert items[1].kind is ItemKind.CONTACT

    def test_missing_parent(self):
        with pytest.raises(SchemaValidationError) as exc:
            build_item_tree([PipelineItem(id=2, parent_id=99)])
        assert exc.value.details["field"] == "parentId"

    def test_parent_must_be_container(self):
        with pytest.raises(SchemaValidationError):
            build_item_tree([PipelineItem(id=1), PipelineItem(id=2, parent_id=1)])


class TestActivityLog:
    def test_missing_type_and_timestamp_allowed(self):
        log = ActivityLog.model_validate({"id": 1, "pipelineItemId": 4})
        assert log.activity_type is None
        assert log.timestamp is None
        assert log.pipeline_item_id == 4


class TestKpiTargets:
    def test_from_rows(self):
        targets = KPITargets.from_rows([
            {"name": "weeklyCalls", "value": 15},
            {"name": "monthlySales", "value": 3},
            {"value": 99},
            "junk",
        ])
        assert targets.weekly_calls == 15
        assert targets.monthly_sales == 3
        assert targets.weekly_agreements is None


class TestReportingSnapshot:
    def test_targets_as_rows(self):
        snapshot = ReportingSnapshot.model_validate({
            "pipelineItems": [{"id": 1, "status": "Sold"}],
            "activityLogs": [{"activityType": "Call_Completed", "timestamp": "2025-07-30T10:00:00Z"}],
            "kpiTargets": [{"name": "weeklyCalls", "value": 12}],
        })
        assert snapshot.pipeline_items[0].status == "Sold"
        assert snapshot.activity_logs[0].activity_type == "Call_Completed"
        assert snapshot.kpi_targets.weekly_calls == 12
        assert snapshot.finance_entries == []

    def test_targets_missing(self):
        snapshot = ReportingSnapshot.model_validate({"kpiTargets": None})
        assert snapshot.kpi_targets == KPITargets()


class TestCallCompletion:
    def test_from_log_description_fallback(self):
        log = ActivityLog(id=3, bdr="Amy", activity_type="Call_Completed",
                          timestamp=datetime(2025, 7, 30, tzinfo=timezone.utc), description="Intro call")
        assert CallCompletion.from_log(log).description == "Intro call"
        assert CallCompletion.from_log(log, description=None).description == "Intro call"
        inferred = CallCompletion.from_log(log, is_automatic=True, description="Automatic")
        assert (inferred.description, inferred.is_automatic) == ("Automatic", True)
        assert CallCompletion.from_log(ActivityLog(timestamp=log.timestamp)).description == ""

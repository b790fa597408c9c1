"""Tests for the conversion funnel and the status lookup table."""

import pytest

from scripts.reporting.funnel import (
    calculate_conversion_funnel,
    find_biggest_dropoff,
    funnel_by_agent,
    summarize_funnel,
    weighted_pipeline_value,
)
from scripts.reporting.statuses import FUNNEL_STAGES, STATUS_TABLE, CATEGORIES, stage_for_status


def _items(make_item, counts):
    items = []
    for status, n in counts.items():
        items.extend(make_item(status=status, bdr="Amy") for _ in range(n))
    return items


class TestStatusTable:
    def test_every_status_has_known_category_and_stage(self):
        stage_keys = {s.key for s in FUNNEL_STAGES}
        for status, info in STATUS_TABLE.items():
            assert info.category in CATEGORIES, status
            assert info.stage is None or info.stage in stage_keys, status
            assert 0 <= info.probability <= 100, status

    def test_lookup(self):
        assert stage_for_status("Agreement - Media") == "agreement_reached"
        assert stage_for_status("Free Q&A Offered") == "declined"
        assert stage_for_status("Interested") is None
        assert stage_for_status("Unknown") is None
        assert stage_for_status(None) is None


class TestConversionFunnel:
    def test_counts_rates_and_dropoff(self, make_item):
        items = _items(make_item, {
            "Call Proposed": 10,
            "Call Booked": 5,
            "Proposal - Profile": 4,
            "Agreement - Profile": 2,
            "List Out": 1,
            "Sold": 1,
            "DECLINED": 2,
        })
        stages = {s.key: s for s in calculate_conversion_funnel(items)}

        assert [s.key for s in calculate_conversion_funnel(items)] == [s.key for s in FUNNEL_STAGES]
        assert stages["call_proposed"].conversion_rate == 100
        assert stages["call_booked"].conversion_rate == 50
        assert stages["call_booked"].dropoff_rate == 50
        assert stages["proposal_sent"].conversion_rate == 80
        assert stages["list_out"].conversion_rate == 50
        assert stages["sold"].conversion_rate == 100
        assert stages["declined"].conversion_rate == 100
        assert stages["declined"].dropoff_rate == 0
        assert stages["declined"].stage == "Declined/Q&A"
        assert stages["call_proposed"].percentage == 40

    def test_percentages_sum_to_100(self, make_item):
        items = _items(make_item, {"Call Proposed": 3, "Call Booked": 1, "Sold": 1, "Lost": 2})
        stages = calculate_conversion_funnel(items)
        assert sum(s.percentage for s in stages) == pytest.approx(100, abs=0.05)

    def test_contacts_and_unmapped_are_excluded(self, make_item):
        container = make_item(id=100, status="List Out", is_sublist=True)
        contact = make_item(id=101, status="Interested", parent_id=100)
        odd = make_item(id=102, status="Something New")
        stages = calculate_conversion_funnel([container, contact, odd])
        assert sum(s.count for s in stages) == 1
        assert sum(s.percentage for s in stages) == 100

    def test_empty_predecessor_reports_full_conversion(self, make_item):
        stages = {s.key: s for s in calculate_conversion_funnel(_items(make_item, {"Sold": 2}))}
        assert stages["sold"].conversion_rate == 100
        assert stages["sold"].dropoff_rate == 0

    def test_empty_input(self):
        assert calculate_conversion_funnel([]) == []


class TestBiggestDropoff:
    def test_highest_positive(self, make_item):
        items = _items(make_item, {
            "Call Proposed": 10, "Call Booked": 8, "Proposal - Media": 2,
            "Agreement - Media": 2, "List Out": 2, "Sold": 2,
        })
        assert find_biggest_dropoff(calculate_conversion_funnel(items)) == {"stage": "Proposal Sent", "rate": 75.0}

    def test_none_when_no_dropoff(self):
        assert find_biggest_dropoff([]) == {"stage": "", "rate": 0.0}


class TestSummarizeFunnel:
    def test_headline_and_opportunities(self, make_item):
        items = _items(make_item, {
            "Call Proposed": 10, "Call Booked": 2, "Proposal - Profile": 2,
            "Agreement - Profile": 2, "List Out": 2, "Sold": 2, "Bogus": 1,
        })
        summary = summarize_funnel(items, team_activity_score=40)

        assert summary["total_volume"] == 20
        assert summary["unmapped"] == 1
        assert summary["overall_conversion_rate"] == 10
        assert summary["overall_efficiency"] == 25
        assert summary["biggest_dropoff"]["stage"] == "Call Booked"
        assert summary["improvement_opportunities"] == [
            "High dropoff at Call Booked (80%)",
            "Low team activity score - increase engagement",
            "Low overall conversion rate - review qualification process",
        ]

    def test_activity_check_skipped_without_score(self, make_item):
        summary = summarize_funnel(_items(make_item, {"Sold": 1}))
        assert summary["improvement_opportunities"] == []
        assert summary["overall_efficiency"] == 100


class TestFunnelHelpers:
    def test_by_agent(self, make_item):
        items = [
            make_item(status="Sold", bdr="Amy"),
            make_item(status="Call Booked", bdr="Ben"),
            make_item(status="Call Booked"),
        ]
        result = funnel_by_agent(items)
        assert set(result) == {"Amy", "Ben"}
        assert {s.key: s.count for s in result["Ben"]}["call_booked"] == 1

    def test_weighted_value_uses_default_probability(self, make_item):
        items = [
            make_item(status="Sold", value=1000),
            make_item(status="Call Booked", value=500, probability=50),
            make_item(status="Proposal - Profile", value=100),
            make_item(status="Call Booked"),
        ]
        assert weighted_pipeline_value(items) == {"total_value": 1600, "weighted_value": 1290}

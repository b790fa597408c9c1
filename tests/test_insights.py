"""Tests for critical actions and funnel insights."""

from datetime import timedelta

from scripts.lib.config import ActionThresholds, ReportingConfig
from scripts.reporting.insights import generate_funnel_insights, identify_critical_actions

DAY = timedelta(days=1)


def _booked_calls(make_item, now, n):
    return [make_item(status="Call Booked", call_date=now + DAY) for _ in range(n)]


def _completed_calls(make_log, now, n):
    return [make_log("Call_Completed", now - timedelta(hours=1), pipeline_item_id=500 + i) for i in range(n)]


class TestCriticalActions:
    def test_all_rules_fire_and_sort(self, now, make_item):
        items = [make_item(status="Agreement - Profile", expected_close_date=now - DAY)]
        actions = identify_critical_actions(items, [], {"needs_support": ["Ben", "Cal"]}, now)

        assert [(a.priority, a.category) for a in actions] == [
            ("urgent", "lists"),
            ("high", "calls"),
            ("high", "calls"),
            ("medium", "team"),
        ]
        assert actions[0].action == "Send 1 overdue partner lists immediately"
        assert actions[0].deadline == "Today"
        assert actions[1].action == "Boost call volume - current week significantly below target"
        assert actions[2].action == "Schedule more calls for next week to maintain pipeline"
        assert actions[3].action == "Provide support to underperforming BDRs: Ben, Cal"
        assert actions[3].metric == 2

    def test_healthy_team_has_no_actions(self, now, make_item, make_log):
        items = _booked_calls(make_item, now, 30)
        logs = _completed_calls(make_log, now, 25)
        assert identify_critical_actions(items, logs, {"needs_support": []}, now) == []

    def test_week_calls_counted_from_monday_to_now(self, now, make_item, make_log):
        items = _booked_calls(make_item, now, 30)
        logs = _completed_calls(make_log, now, 24) + [
            make_log("Call_Completed", now + timedelta(hours=1), pipeline_item_id=1),
            make_log("Call_Completed", now - timedelta(days=3), pipeline_item_id=2),
        ]
        actions = identify_critical_actions(items, logs, {"needs_support": []}, now)
        assert [a.metric for a in actions] == [24]

    def test_thresholds_are_configurable(self, now):
        config = ReportingConfig(action_thresholds=ActionThresholds(min_weekly_calls=0, min_upcoming_calls_next_week=0))
        assert identify_critical_actions([], [], {}, now, config) == []


class TestFunnelInsights:
    def test_all_messages(self):
        funnel = {
            "team_activity_score": 20,
            "overall_conversion_rate": 5,
            "biggest_dropoff": {"stage": "Proposal Sent", "rate": 60},
        }
        agents = [{"bdr": "Amy", "upcoming_calls": 6}, {"bdr": "Ben", "upcoming_calls": 0}]
        upcoming = {"tomorrow": 0, "next_30_days": 21}
        pending = {"total": 11, "total_value": 12345.6}

        insights = generate_funnel_insights(funnel, agents, upcoming, pending)
        assert insights["top_opportunities"] == [
            "Amy has 6 upcoming calls",
            "11 pending agreements worth £12,346",
            "21 calls scheduled for next 30 days",
        ]
        assert insights["critical_alerts"] == [
            "Low team activity detected",
            "Very low conversion rate needs attention",
            "No calls scheduled for tomorrow",
        ]
        assert insights["recommendations"] == [
            "Focus on improving Proposal Sent conversion",
            "Increase team activity and engagement",
            "Some BDRs have no upcoming calls scheduled",
        ]

    def test_quiet_when_healthy(self):
        funnel = {
            "team_activity_score": 80,
            "overall_conversion_rate": 30,
            "biggest_dropoff": {"stage": "Sold", "rate": 10},
        }
        insights = generate_funnel_insights(funnel, [{"bdr": "Amy", "upcoming_calls": 2}], {"tomorrow": 3})
        assert insights == {"top_opportunities": [], "critical_alerts": [], "recommendations": []}

"""Tests for the sales-indicator text classifier."""

from datetime import timedelta

import pytest

from scripts.lib.config import DEFAULT_CONFIG
from scripts.reporting.sales_indicators import is_sale_indicated, sold_pipeline_item_ids


class TestIsSaleIndicated:
    @pytest.mark.parametrize("text", ["Sold 3 slots", "Closed the DEAL today", "Invoice for £500", "$20k", "€1,000"])
    def test_positive(self, text):
        assert is_sale_indicated(text) is True

    @pytest.mark.parametrize("text", [None, "", "Left voicemail", "Follow up next week"])
    def test_negative(self, text):
        assert is_sale_indicated(text) is False

    @pytest.mark.parametrize("text", [
        "Payment received, invoice raised",
        "Client bought the premium package",
        "Purchase order signed",
        "Added to revenue tracker",
    ])
    def test_default_keywords(self, text):
        assert is_sale_indicated(text) is True
        assert is_sale_indicated(text, keywords=DEFAULT_CONFIG.sale_keywords, currency_symbols=[]) is True

    def test_rejected_deal_is_a_known_false_positive(self):
        assert is_sale_indicated("deal rejected by client") is True

    def test_custom_keywords(self):
        assert is_sale_indicated("purchase confirmed", keywords=["purchase"], currency_symbols=[]) is True
        assert is_sale_indicated("sold", keywords=["purchase"], currency_symbols=[]) is False

    def test_currency_symbol_is_case_sensitive_raw_match(self):
        assert is_sale_indicated("cost in GBP", keywords=[], currency_symbols=["£"]) is False


class TestSoldPipelineItemIds:
    def test_unions_sources_and_dedups(self, now, make_item, make_log):
        start, end = now - timedelta(days=1), now + timedelta(days=1)
        items = [
            make_item(id=1, status="Sold", last_updated=now),
            make_item(id=2, notes="deal agreed", last_updated=now),
            make_item(id=3, notes="deal agreed", last_updated=now - timedelta(days=10)),
            make_item(id=4, status="List Out", last_updated=now),
        ]
        logs = [
            make_log("Note", now, pipeline_item_id=1, notes="sold again"),
            make_log("Note", now, pipeline_item_id=5, notes="paid £200"),
            make_log("Note", now, notes="sold but unlinked"),
            make_log("Note", now - timedelta(days=5), pipeline_item_id=6, notes="sold"),
        ]
        assert sold_pipeline_item_ids(items, logs, start, end) == {1, 2, 5}

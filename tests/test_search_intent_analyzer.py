"""Tests for search intent classification."""

import pytest

from seo_machine.search_intent_analyzer import RECOMMENDATIONS, SearchIntent, SearchIntentAnalyzer


@pytest.fixture
def analyzer():
    return SearchIntentAnalyzer()


class TestKeywordOnly:
    @pytest.mark.parametrize("keyword,intent", [
        ("how to start a podcast", "informational"),
        ("buy podcast microphone", "transactional"),
        ("best podcast hosting vs anchor", "commercial"),
        ("spotify login", "navigational"),
    ])
    def test_primary_intent(self, analyzer, keyword, intent):
        result = analyzer.analyze(keyword)
        assert result["primary_intent"] == intent
        assert result["secondary_intent"] is None
        assert result["confidence"][intent] == 100.0

    def test_close_scores_report_secondary(self, analyzer):
        result = analyzer.analyze("best tutorial")

        assert result["confidence"] == {
            "informational": 40.0,
            "navigational": 20.0,
            "transactional": 0.0,
            "commercial": 40.0,
        }
        assert result["primary_intent"] == "informational"
        assert result["secondary_intent"] == "commercial"
        assert result["recommendations"][-1].startswith("\nNote: Secondary intent is commercial")

    def test_no_signals_splits_evenly(self, analyzer):
        result = analyzer.analyze("")
        assert set(result["confidence"].values()) == {25.0}
        assert result["primary_intent"] == "informational"
        assert result["recommendations"][:len(RECOMMENDATIONS[SearchIntent.INFORMATIONAL])] == \
            RECOMMENDATIONS[SearchIntent.INFORMATIONAL]

    def test_signals_detected(self, analyzer):
        result = analyzer.analyze("how to learn guitar")
        assert "Keyword contains 'how'" in result["signals_detected"]["informational"]
        assert "Keyword contains 'learn'" in result["signals_detected"]["informational"]


class TestSerpSignals:
    def test_shopping_features_push_transactional(self, analyzer):
        result = analyzer.analyze("podcast microphones", serp_features=["shopping"])
        assert result["primary_intent"] == "transactional"
        assert result["signals_detected"]["transactional"] == ["SERP has shopping"]

    def test_top_results_html_is_stripped(self, analyzer):
        results = [{
            "title": "<b>Best</b> podcast mics",
            "description": "Compare the picks",
            "url": "https://example.com/shop/mics",
        }]
        result = analyzer.analyze("podcast mics", top_results=results)
        assert result["confidence"]["commercial"] > 0
        assert result["confidence"]["transactional"] > 0

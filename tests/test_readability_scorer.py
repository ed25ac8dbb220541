"""Tests for the Readability Scorer."""

import pytest

from seo_machine.readability_scorer import ReadabilityScorer, count_syllables_word


@pytest.fixture
def scorer():
    return ReadabilityScorer()


class TestSyllables:
    @pytest.mark.parametrize("word,expected", [
        ("cat", 1),
        ("make", 1),
        ("beautiful", 3),
        ("readability", 5),
        ("Hello!", 2),
        ("123", 0),
    ])
    def test_vowel_group_estimate(self, word, expected):
        assert count_syllables_word(word) == expected


class TestCleanContent:
    def test_strips_markdown(self):
        content = "# Title\n\nSee [the docs](https://example.com).\n\n```\ncode here\n```\n\n\n\nEnd."
        assert ReadabilityScorer.clean_content(content) == "Title\n\nSee the docs.\n\nEnd."

    def test_link_text_kept(self):
        assert ReadabilityScorer.clean_content("[click](http://x.y)") == "click"


class TestAnalyze:
    def test_empty_content(self, scorer):
        assert scorer.analyze("") == {"error": "No readable content provided"}
        assert scorer.analyze("#  \n\n") == {"error": "No readable content provided"}

    def test_report_shape(self, scorer, sample_good_content):
        result = scorer.analyze(sample_good_content)

        assert 0 <= result["overall_score"] <= 100
        assert result["grade"][0] in "ABCDF"
        assert result["reading_level"] == result["readability_metrics"]["flesch_kincaid_grade"]
        for key in ("flesch_reading_ease", "gunning_fog", "smog_index", "coleman_liau_index",
                    "automated_readability_index", "sentence_count"):
            assert key in result["readability_metrics"]
        assert result["structure_analysis"]["total_paragraphs"] > 0
        assert result["status"]["overall_assessment"] in ("excellent", "acceptable", "needs_improvement")

    def test_transitions_counted(self, scorer):
        result = scorer.analyze("However, this works. Therefore it ships. For example, logs help.")
        assert result["complexity_analysis"]["transition_word_count"] == 3

    def test_passive_voice_detected(self, scorer):
        result = scorer.analyze("The article was written by the team. We edit it daily.")
        complexity = result["complexity_analysis"]
        assert complexity["passive_sentence_count"] == 1
        assert complexity["passive_sentence_ratio"] == 50.0

    def test_very_long_sentence_recommendation(self, scorer):
        sentence = " ".join(["word"] * 40) + "."
        result = scorer.analyze(sentence)

        assert result["structure_analysis"]["very_long_sentences"] == 1
        assert any("35+ words" in r for r in result["recommendations"])
        assert result["status"]["sentence_length_status"] == "too_long"

    def test_few_transitions_recommendation(self, scorer):
        result = scorer.analyze("Dogs run fast. Cats sleep a lot. Birds sing songs.")
        assert any(r.startswith("Few transition words detected") for r in result["recommendations"])


class TestSettings:
    def test_target_reading_level_from_settings(self):
        scorer = ReadabilityScorer({"readability": {"target_reading_level": [1, 2], "max_avg_sentence_length": 5}})
        assert scorer.target_reading_level == (1.0, 2.0)
        result = scorer.analyze("Simple words here make the point. " * 3)
        assert result["status"]["sentence_length_status"] == "too_long"

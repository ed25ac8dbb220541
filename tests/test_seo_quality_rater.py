"""
Tests for the SEO Quality Rater.

Rates full and deliberately broken articles and checks category scores,
critical issues and the publishing-ready gate.
"""

import pytest

from seo_machine.seo_quality_rater import CATEGORY_WEIGHTS, CategoryScore, SEOQualityRater

META_TITLE = "Podcast Hosting: The Complete Guide for New Shows in 2024"
META_DESCRIPTION = (
    "Podcast hosting guide covering storage, analytics, pricing and migration for new shows. " * 2
)[:155]


@pytest.fixture
def rater():
    return SEOQualityRater(guidelines={"min_word_count": 500, "optimal_word_count": 600})


class TestPublishingReady:
    def test_good_article_passes(self, rater, sample_good_content):
        result = rater.rate(
            sample_good_content,
            meta_title=META_TITLE,
            meta_description=META_DESCRIPTION,
            primary_keyword="podcast hosting",
            keyword_density=1.2,
            internal_link_count=5,
            external_link_count=3,
        )

        assert result["critical_issues"] == []
        assert result["category_scores"] == {name: 100 for name in CATEGORY_WEIGHTS}
        assert result["overall_score"] == 100.0
        assert result["grade"] == "A (Excellent)"
        assert result["publishing_ready"] is True
        assert result["details"]["h2_count"] == 6
        assert result["details"]["keyword_in_h1"] is True

    def test_bare_article_is_not_ready(self, sample_short_content):
        result = SEOQualityRater().rate(sample_short_content)
        critical = result["critical_issues"]

        assert "Meta title is missing" in critical
        assert "Meta description is missing" in critical
        assert "No primary keyword specified" in critical
        assert any(c.startswith("Content is too short") for c in critical)
        assert result["category_scores"]["keyword_optimization"] == 50
        assert result["category_scores"]["meta_elements"] == 20
        assert result["publishing_ready"] is False


class TestCategories:
    def test_multiple_h1_is_critical(self, rater):
        result = rater.rate("# One\n\n# Two\n\nBody text here.")
        assert "Multiple H1 headings found (2). Should only have one." in result["critical_issues"]

    def test_stuffed_density_is_critical(self, rater, sample_good_content):
        result = rater.rate(sample_good_content, primary_keyword="podcast hosting", keyword_density=3.5)
        assert any(c.startswith("Keyword density is too high (3.5%)") for c in result["critical_issues"])

    def test_missing_secondary_keywords_suggested(self, rater, sample_good_content):
        result = rater.rate(sample_good_content, primary_keyword="podcast hosting",
                            secondary_keywords=["analytics", "rss feed"])
        assert "Secondary keywords not found: rss feed" in result["suggestions"]

    def test_links_counted_from_markdown(self, rater, sample_good_content):
        result = rater.rate(sample_good_content, primary_keyword="podcast hosting")
        assert "Too few internal links (2). Add 1 more (target: 5)." in result["warnings"]
        assert "Could add more external links (2). Optimal is 3." in result["suggestions"]

    def test_no_lists_suggestion(self, rater):
        result = rater.rate("# Title\n\nPlain paragraph only.")
        assert "No lists found. Use bullet points or numbered lists to improve scannability." in result["suggestions"]


class TestStructureAnalysis:
    def test_counts_headers_and_keyword(self, sample_good_content):
        structure = SEOQualityRater.analyze_structure(sample_good_content, "Podcast Hosting")
        assert structure["h1_text"] == "The Complete Guide to Podcast Hosting"
        assert structure["h2_with_keyword"] == 3
        assert structure["keyword_in_first_100"] is True


class TestGuidelines:
    def test_argument_beats_settings(self):
        settings = {"seo_guidelines": {"min_word_count": 10, "min_h2_sections": 2}}
        rater = SEOQualityRater(guidelines={"min_word_count": 5}, app_settings=settings)
        assert rater.guidelines["min_word_count"] == 5
        assert rater.guidelines["min_h2_sections"] == 2
        assert rater.guidelines["max_word_count"] == 3000

    def test_category_score_floor(self):
        assert CategoryScore(score=-20).final == 0

# seo_quality_rater.py

from __future__ import annotations

import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .helpers.text_tools import extract_sentences, letter_grade, split_paragraphs
from .utils.utils import section

logger = logging.getLogger(__name__)

_H1_LINE = re.compile(r"^#\s+(.+)$")
_H2_LINE = re.compile(r"^##\s+(.+)$")
_H3_LINE = re.compile(r"^###\s+(.+)$")
_INTERNAL_LINK_RE = re.compile(r"\[([^\]]+)\]\((?!http)")
_EXTERNAL_LINK_RE = re.compile(r"\[([^\]]+)\]\(https?://")
_BULLET_RE = re.compile(r"^\s*[-*+]\s", re.M)
_NUMBERED_RE = re.compile(r"^\s*\d+\.\s", re.M)

DEFAULT_GUIDELINES: Dict[str, Any] = {
    "min_word_count": 2000,
    "optimal_word_count": 2500,
    "max_word_count": 3000,
    "primary_keyword_density_min": 1.0,
    "primary_keyword_density_max": 2.0,
    "secondary_keyword_density": 0.5,
    "min_internal_links": 3,
    "optimal_internal_links": 5,
    "min_external_links": 2,
    "optimal_external_links": 3,
    "meta_title_length_min": 50,
    "meta_title_length_max": 60,
    "meta_description_length_min": 150,
    "meta_description_length_max": 160,
    "min_h2_sections": 4,
    "optimal_h2_sections": 6,
    "h2_with_keyword_ratio": 0.33,
    "max_sentence_length": 25,
    "target_reading_level_min": 8,
    "target_reading_level_max": 10,
    "paragraph_sentence_min": 2,
    "paragraph_sentence_max": 4,
}

CATEGORY_WEIGHTS = {
    "content": 0.20,
    "keyword_optimization": 0.25,
    "meta_elements": 0.15,
    "structure": 0.15,
    "links": 0.15,
    "readability": 0.10,
}


@dataclass
class CategoryScore:
    """One rated category; score is floored at 0 when read."""
    score: float = 100
    critical: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def final(self) -> float:
        return max(self.score, 0)


class SEOQualityRater:
    """
    Rates a markdown article against SEO publishing guidelines.

    Guidelines resolve in order: DEFAULT_GUIDELINES, then
    settings.json -> seo_guidelines, then the `guidelines` argument.
    """

    def __init__(self, guidelines: Optional[Dict[str, Any]] = None, app_settings: Optional[Dict[str, Any]] = None):
        self.guidelines: Dict[str, Any] = {**DEFAULT_GUIDELINES, **section(app_settings, "seo_guidelines"), **(guidelines or {})}

    def rate(
        self,
        content: str,
        meta_title: Optional[str] = None,
        meta_description: Optional[str] = None,
        primary_keyword: Optional[str] = None,
        secondary_keywords: Optional[List[str]] = None,
        keyword_density: Optional[float] = None,
        internal_link_count: Optional[int] = None,
        external_link_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        content = content or ""
        structure = self.analyze_structure(content, primary_keyword)

        categories: Dict[str, CategoryScore] = {
            "content": self._score_content(structure),
            "keyword_optimization": self._score_keywords(content, structure, primary_keyword, secondary_keywords, keyword_density),
            "meta_elements": self._score_meta(meta_title, meta_description, primary_keyword),
            "structure": self._score_structure(structure),
            "links": self._score_links(content, internal_link_count, external_link_count),
            "readability": self._score_readability(content),
        }

        overall = round(sum(cat.final * CATEGORY_WEIGHTS[name] for name, cat in categories.items()), 1)
        critical = [msg for cat in categories.values() for msg in cat.critical]

        logger.debug("SEO rating %.1f (%d critical issues)", overall, len(critical))
        return {
            "overall_score": overall,
            "grade": letter_grade(overall),
            "category_scores": {name: cat.final for name, cat in categories.items()},
            "critical_issues": critical,
            "warnings": [msg for cat in categories.values() for msg in cat.warnings],
            "suggestions": [msg for cat in categories.values() for msg in cat.suggestions],
            "publishing_ready": overall >= 80 and not critical,
            "details": {
                "word_count": structure["word_count"],
                "h2_count": structure["h2_count"],
                "has_h1": structure["has_h1"],
                "keyword_in_h1": structure["keyword_in_h1"],
                "keyword_in_first_100": structure["keyword_in_first_100"],
            },
        }

    # ----------------------------- Structure --------------------------------

    @staticmethod
    def analyze_structure(content: str, primary_keyword: Optional[str]) -> Dict[str, Any]:
        h1_count = h3_count = 0
        h1_text = ""
        h2_texts: List[str] = []

        for line in content.split("\n"):
            m1, m2, m3 = _H1_LINE.match(line), _H2_LINE.match(line), _H3_LINE.match(line)
            if m1:
                h1_count += 1
                if not h1_text:
                    h1_text = m1.group(1)
            elif m2:
                h2_texts.append(m2.group(1))
            elif m3:
                h3_count += 1

        words = content.split()
        paragraphs = [p for p in split_paragraphs(content) if p.strip() and not p.strip().startswith("#")]
        avg_para = sum(len(p.split()) for p in paragraphs) // len(paragraphs) if paragraphs else 0

        keyword_in_h1 = keyword_in_first_100 = False
        h2_with_keyword = 0
        if primary_keyword is not None:
            kw = primary_keyword.lower()
            keyword_in_h1 = kw in h1_text.lower()
            keyword_in_first_100 = kw in " ".join(words[:100]).lower()
            h2_with_keyword = sum(1 for h in h2_texts if kw in h.lower())

        return {
            "word_count": len(words),
            "has_h1": h1_count > 0,
            "h1_count": h1_count,
            "h1_text": h1_text,
            "h2_count": len(h2_texts),
            "h2_texts": h2_texts,
            "h3_count": h3_count,
            "paragraph_count": len(paragraphs),
            "avg_paragraph_length": avg_para,
            "keyword_in_h1": keyword_in_h1,
            "keyword_in_first_100": keyword_in_first_100,
            "h2_with_keyword": h2_with_keyword,
        }

    # ----------------------------- Categories -------------------------------

    def _score_content(self, structure: Dict[str, Any]) -> CategoryScore:
        g = self.guidelines
        cat = CategoryScore()
        words = structure["word_count"]

        if words < g["min_word_count"]:
            cat.score -= 30
            cat.critical.append(f"Content is too short ({words} words). Minimum is {g['min_word_count']} words.")
        elif words < g["optimal_word_count"]:
            cat.score -= 10
            cat.warnings.append(f"Content could be longer ({words} words). Optimal is {g['optimal_word_count']}+ words.")
        elif words > g["max_word_count"]:
            cat.score -= 5
            cat.suggestions.append(
                f"Content is quite long ({words} words). "
                f"Consider breaking into multiple articles if over {g['max_word_count']} words."
            )

        avg_para = structure["avg_paragraph_length"]
        if avg_para > 150:
            cat.score -= 10
            cat.warnings.append(f"Paragraphs are too long (avg {avg_para} words). Break into 2-4 sentence paragraphs.")
        elif avg_para < 30:
            cat.score -= 5
            cat.suggestions.append(f"Paragraphs are very short (avg {avg_para} words). Add more detail where appropriate.")
        return cat

    def _score_keywords(
        self,
        content: str,
        structure: Dict[str, Any],
        primary_keyword: Optional[str],
        secondary_keywords: Optional[List[str]],
        keyword_density: Optional[float],
    ) -> CategoryScore:
        g = self.guidelines
        if primary_keyword is None:
            return CategoryScore(score=50, critical=["No primary keyword specified"])

        cat = CategoryScore()
        if not structure["keyword_in_h1"]:
            cat.score -= 20
            cat.critical.append(f"Primary keyword '{primary_keyword}' missing from H1 heading")
        if not structure["keyword_in_first_100"]:
            cat.score -= 15
            cat.critical.append(f"Primary keyword '{primary_keyword}' missing from first 100 words")

        h2_count, h2_with_kw = structure["h2_count"], structure["h2_with_keyword"]
        if h2_count > 0:
            target_ratio = g["h2_with_keyword_ratio"]
            if h2_with_kw / h2_count < target_ratio:
                cat.score -= 10
                cat.warnings.append(
                    f"Keyword appears in only {h2_with_kw}/{h2_count} H2 headings. "
                    f"Target is at least {int(target_ratio * 100)}% (2-3 H2s)"
                )

        if keyword_density is not None:
            lo, hi = g["primary_keyword_density_min"], g["primary_keyword_density_max"]
            if keyword_density < lo:
                cat.score -= 15
                cat.warnings.append(f"Keyword density is too low ({keyword_density}%). Target is {lo}-{hi}%")
            elif keyword_density > hi * 1.5:
                cat.score -= 20
                cat.critical.append(
                    f"Keyword density is too high ({keyword_density}%). "
                    f"Risk of keyword stuffing. Target is {lo}-{hi}%"
                )
            elif keyword_density > hi:
                cat.score -= 10
                cat.warnings.append(f"Keyword density is slightly high ({keyword_density}%). Target is {lo}-{hi}%")

        if secondary_keywords:
            lower = content.lower()
            missing = [kw for kw in secondary_keywords if kw.lower() not in lower]
            if missing:
                cat.score -= 5
                cat.suggestions.append(f"Secondary keywords not found: {', '.join(missing)}")
        return cat

    def _score_meta(self, meta_title: Optional[str], meta_description: Optional[str], primary_keyword: Optional[str]) -> CategoryScore:
        g = self.guidelines
        cat = CategoryScore()

        if meta_title is None:
            cat.score -= 40
            cat.critical.append("Meta title is missing")
        else:
            n, lo, hi = len(meta_title), g["meta_title_length_min"], g["meta_title_length_max"]
            if n < lo:
                cat.score -= 15
                cat.warnings.append(f"Meta title too short ({n} chars). Target is {lo}-{hi} chars.")
            elif n > hi + 10:
                cat.score -= 10
                cat.warnings.append(f"Meta title too long ({n} chars). Target is {lo}-{hi} chars.")
            if primary_keyword is not None and primary_keyword.lower() not in meta_title.lower():
                cat.score -= 15
                cat.warnings.append(f"Primary keyword '{primary_keyword}' not in meta title")

        if meta_description is None:
            cat.score -= 40
            cat.critical.append("Meta description is missing")
        else:
            n, lo, hi = len(meta_description), g["meta_description_length_min"], g["meta_description_length_max"]
            if n < lo:
                cat.score -= 15
                cat.warnings.append(f"Meta description too short ({n} chars). Target is {lo}-{hi} chars.")
            elif n > hi + 10:
                cat.score -= 10
                cat.warnings.append(f"Meta description too long ({n} chars). Target is {lo}-{hi} chars.")
            if primary_keyword is not None and primary_keyword.lower() not in meta_description.lower():
                cat.score -= 10
                cat.suggestions.append(f"Primary keyword '{primary_keyword}' not in meta description")
        return cat

    def _score_structure(self, structure: Dict[str, Any]) -> CategoryScore:
        g = self.guidelines
        cat = CategoryScore()

        if not structure["has_h1"]:
            cat.score -= 30
            cat.critical.append("Missing H1 heading")
        if structure["h1_count"] > 1:
            cat.score -= 20
            cat.critical.append(f"Multiple H1 headings found ({structure['h1_count']}). Should only have one.")

        h2_count = structure["h2_count"]
        if h2_count < g["min_h2_sections"]:
            cat.score -= 15
            cat.warnings.append(
                f"Too few H2 sections ({h2_count}). Add more main sections (target: {g['optimal_h2_sections']})."
            )
        elif h2_count < g["optimal_h2_sections"]:
            cat.score -= 5
            cat.suggestions.append(
                f"Could use more H2 sections ({h2_count}). Optimal is {g['optimal_h2_sections']} sections."
            )
        return cat

    def _score_links(self, content: str, internal: Optional[int], external: Optional[int]) -> CategoryScore:
        g = self.guidelines
        cat = CategoryScore()
        if internal is None:
            internal = len(_INTERNAL_LINK_RE.findall(content))
        if external is None:
            external = len(_EXTERNAL_LINK_RE.findall(content))

        min_int, opt_int = g["min_internal_links"], g["optimal_internal_links"]
        if internal < min_int:
            cat.score -= 20
            cat.warnings.append(
                f"Too few internal links ({internal}). Add {min_int - internal} more (target: {opt_int})."
            )
        elif internal < opt_int:
            cat.score -= 5
            cat.suggestions.append(f"Could add more internal links ({internal}). Optimal is {opt_int}.")

        min_ext, opt_ext = g["min_external_links"], g["optimal_external_links"]
        if external < min_ext:
            cat.score -= 15
            cat.warnings.append(
                f"Too few external links ({external}). Add authoritative sources (target: {opt_ext})."
            )
        elif external < opt_ext:
            cat.score -= 5
            cat.suggestions.append(f"Could add more external links ({external}). Optimal is {opt_ext}.")
        return cat

    def _score_readability(self, content: str) -> CategoryScore:
        cat = CategoryScore()
        max_sentence = self.guidelines["max_sentence_length"]

        lengths = [len(s.split()) for s in extract_sentences(content)]
        avg = sum(lengths) / len(lengths) if lengths else 0
        if avg > max_sentence:
            cat.score -= 10
            cat.warnings.append(
                f"Average sentence length is {round(avg, 1)} words. "
                f"Target is under {max_sentence} words for better readability."
            )

        very_long = [n for n in lengths if n > max_sentence * 1.5]
        if len(very_long) > len(lengths) * 0.2:
            cat.score -= 10
            cat.warnings.append(
                f"{len(very_long)} sentences are very long (>{int(max_sentence * 1.5)} words). "
                "Break them into shorter sentences."
            )

        if not (_BULLET_RE.search(content) or _NUMBERED_RE.search(content)):
            cat.score -= 5
            cat.suggestions.append("No lists found. Use bullet points or numbered lists to improve scannability.")
        return cat

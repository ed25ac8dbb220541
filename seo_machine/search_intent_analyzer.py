# search_intent_analyzer.py

from __future__ import annotations

import re
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from .utils.utils import remove_zero_width, strip_html

logger = logging.getLogger(__name__)


class SearchIntent(Enum):
    INFORMATIONAL = "informational"
    NAVIGATIONAL = "navigational"
    TRANSACTIONAL = "transactional"
    COMMERCIAL = "commercial"


INTENTS = tuple(SearchIntent)

# (signal words, phrases, points per hit)
KEYWORD_SIGNALS = {
    SearchIntent.INFORMATIONAL: (
        ("what", "why", "how", "when", "where", "who", "guide", "tutorial", "learn", "tips"),
        ("best practices", "explained", "definition", "meaning"),
        2,
    ),
    SearchIntent.NAVIGATIONAL: (
        ("login", "website", "official", "account", "dashboard", "portal", "app"),
        ("sign in", "home page"),
        3,
    ),
    SearchIntent.TRANSACTIONAL: (
        ("buy", "purchase", "order", "download", "get", "pricing", "cost", "subscribe", "install",
         "coupon", "deal", "discount", "cheap", "affordable"),
        ("free trial", "sign up"),
        2,
    ),
    SearchIntent.COMMERCIAL: (
        ("best", "top", "review", "vs", "versus", "compare", "comparison", "alternative", "alternatives",
         "like", "similar", "option", "choice"),
        ("better than", "instead of"),
        2,
    ),
}

_QUESTION_RE = re.compile(r"^(what|why|how|when|where|who|can|should|is|are|does)")
_LISTICLE_RE = re.compile(r"\d+\s+(best|top)")

_RESULT_PATTERNS = {
    SearchIntent.INFORMATIONAL: ("guide", "how to", "what is", "tutorial", "tips"),
    SearchIntent.COMMERCIAL: ("best", "top", "review", "vs", "compare"),
    SearchIntent.TRANSACTIONAL: ("buy", "price", "shop", "order", "get"),
}
_TRANSACTIONAL_URL_PARTS = ("/product/", "/pricing", "/buy", "/shop", "/checkout")

RECOMMENDATIONS = {
    SearchIntent.INFORMATIONAL: [
        "Create comprehensive, educational content",
        "Include step-by-step instructions or explanations",
        "Answer common questions (People Also Ask)",
        "Use FAQ sections and definition boxes",
        "Target featured snippet optimization",
        "Include videos, images, and visual aids",
    ],
    SearchIntent.NAVIGATIONAL: [
        "Optimize for brand-related searches",
        "Ensure homepage/key pages rank well",
        "Include site navigation and clear CTAs",
        "Strengthen brand presence and awareness",
        "May not need traditional content marketing",
    ],
    SearchIntent.TRANSACTIONAL: [
        "Focus on product/service pages",
        "Include clear pricing and purchase options",
        "Add trust signals (reviews, testimonials)",
        "Optimize for conversion, not just traffic",
        "Include strong, action-oriented CTAs",
        "Consider local SEO if applicable",
    ],
    SearchIntent.COMMERCIAL: [
        "Create comparison and review content",
        "Include pros/cons and alternatives",
        "Add detailed feature breakdowns",
        "Include data tables and comparisons",
        "Show 'best for' categories",
        "Help users make informed decisions",
    ],
}


def _zero_scores() -> Dict[SearchIntent, float]:
    return {intent: 0.0 for intent in INTENTS}


class SearchIntentAnalyzer:
    """
    Pattern-based search intent classification from the keyword itself,
    optional SERP features (DataForSEO item types) and the titles,
    descriptions and URLs of top-ranking results.
    """

    def analyze(
        self,
        keyword: str,
        serp_features: Optional[List[str]] = None,
        top_results: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        keyword_lower = remove_zero_width(keyword or "").lower().strip()
        scores = _zero_scores()

        sources = [self._keyword_scores(keyword_lower)]
        if serp_features:
            sources.append(self._serp_scores(serp_features))
        if top_results:
            sources.append(self._result_scores(top_results))
        for partial in sources:
            for intent, value in partial.items():
                scores[intent] += value

        total = sum(scores.values())
        if total > 0:
            confidence = {i.value: round(scores[i] / total * 100, 1) for i in INTENTS}
        else:
            confidence = {i.value: 25.0 for i in INTENTS}

        ranked = sorted(INTENTS, key=lambda i: -scores[i])
        primary = ranked[0]
        secondary = None
        if confidence[primary.value] - confidence[ranked[1].value] < 15:
            secondary = ranked[1]

        logger.debug("Intent for %r: %s (secondary=%s)", keyword, primary.value, secondary and secondary.value)
        return {
            "keyword": keyword,
            "primary_intent": primary.value,
            "secondary_intent": secondary.value if secondary else None,
            "confidence": confidence,
            "signals_detected": self._detected_signals(keyword_lower, serp_features),
            "recommendations": self._recommendations(primary, secondary),
        }

    # ----------------------------- Scoring ----------------------------------

    @staticmethod
    def _keyword_scores(keyword: str) -> Dict[SearchIntent, float]:
        scores = _zero_scores()
        for intent, (signals, phrases, points) in KEYWORD_SIGNALS.items():
            scores[intent] += points * sum(1 for s in signals + phrases if s in keyword)

        if _QUESTION_RE.search(keyword):
            scores[SearchIntent.INFORMATIONAL] += 3
        # brand + generic term
        if len(keyword.split()) == 2:
            scores[SearchIntent.NAVIGATIONAL] += 1
        if _LISTICLE_RE.search(keyword):
            scores[SearchIntent.COMMERCIAL] += 3
        return scores

    @staticmethod
    def _serp_scores(features: List[str]) -> Dict[SearchIntent, float]:
        scores = _zero_scores()
        for feature in features:
            f = str(feature).lower()
            if "snippet" in f or "featured" in f:
                scores[SearchIntent.INFORMATIONAL] += 2
            if "knowledge" in f or "people_also_ask" in f:
                scores[SearchIntent.INFORMATIONAL] += 2
            if "shopping" in f or "product" in f:
                scores[SearchIntent.TRANSACTIONAL] += 3
            if "ad" in f:
                scores[SearchIntent.TRANSACTIONAL] += 1
            if "local" in f or "map" in f:
                scores[SearchIntent.TRANSACTIONAL] += 2
            if "video" in f:
                scores[SearchIntent.INFORMATIONAL] += 1
            if "carousel" in f:
                scores[SearchIntent.COMMERCIAL] += 1
        return scores

    @staticmethod
    def _result_scores(results: List[Dict[str, Any]]) -> Dict[SearchIntent, float]:
        scores = _zero_scores()
        for result in results[:10]:
            title = strip_html(result.get("title") or "").lower()
            description = strip_html(result.get("description") or "").lower()
            url = (result.get("url") or "").lower()
            combined = f"{title} {description}"

            for intent, words in _RESULT_PATTERNS.items():
                if any(w in combined for w in words):
                    scores[intent] += 0.5
            if any(part in url for part in _TRANSACTIONAL_URL_PARTS):
                scores[SearchIntent.TRANSACTIONAL] += 0.5
        return scores

    # ----------------------------- Reporting --------------------------------

    @staticmethod
    def _detected_signals(keyword: str, serp_features: Optional[List[str]]) -> Dict[str, List[str]]:
        signals: Dict[str, List[str]] = {i.value: [] for i in INTENTS}
        for intent, (words, _, _) in KEYWORD_SIGNALS.items():
            signals[intent.value].extend(f"Keyword contains '{w}'" for w in words if w in keyword)

        for feature in serp_features or []:
            f = str(feature).lower()
            if "snippet" in f or "knowledge" in f:
                signals[SearchIntent.INFORMATIONAL.value].append(f"SERP has {feature}")
            if "shopping" in f or "ad" in f:
                signals[SearchIntent.TRANSACTIONAL.value].append(f"SERP has {feature}")

        return {k: v for k, v in signals.items() if v}

    @staticmethod
    def _recommendations(primary: SearchIntent, secondary: Optional[SearchIntent]) -> List[str]:
        recs = list(RECOMMENDATIONS[primary])
        if secondary:
            recs.append(f"\nNote: Secondary intent is {secondary.value} - consider blending content approaches")
        return recs

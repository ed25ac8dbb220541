# content_length_comparator.py

from __future__ import annotations

import re
import math
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from .utils.utils import section

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

UNWANTED_TAGS = ("script", "style", "nav", "footer", "header", "aside")
MAIN_CONTENT_SELECTORS = (
    "article", "main", '[role="main"]', ".content", "#content", ".post", ".entry-content",
)
_WORD_RE = re.compile(r"\b[a-zA-Z]{2,}\b")
_WS_RE = re.compile(r"\s+")

LENGTH_BUCKETS = (
    ("under_1000", 0, 1000),
    ("1000_1500", 1000, 1500),
    ("1500_2000", 1500, 2000),
    ("2000_2500", 2000, 2500),
    ("2500_3000", 2500, 3000),
)


def count_words_in_html(html: str) -> Optional[int]:
    """Word count of the main content block of a page (2+ letter words)."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in UNWANTED_TAGS:
        for element in soup.find_all(tag):
            element.decompose()

    main = None
    for selector in MAIN_CONTENT_SELECTORS:
        main = soup.select_one(selector)
        if main:
            break
    main = main or soup.find("body")
    if main is None:
        return None

    text = _WS_RE.sub(" ", main.get_text(" ")).strip()
    return len(_WORD_RE.findall(text))


def calculate_statistics(counts: List[int]) -> Dict[str, Any]:
    if not counts:
        return {}
    ordered = sorted(counts)
    n = len(counts)
    mean = sum(counts) / n
    if n % 2:
        median = ordered[n // 2]
    else:
        median = (ordered[n // 2 - 1] + ordered[n // 2]) / 2.0
    mode = Counter(counts).most_common(1)[0][0]
    std_dev = math.sqrt(sum((x - mean) ** 2 for x in counts) / n)

    return {
        "min": ordered[0],
        "max": ordered[-1],
        "mean": round(mean),
        "median": round(median),
        "mode": mode,
        "std_dev": round(std_dev) if n > 1 else 0,
        "percentile_25": ordered[math.floor(n * 0.25)],
        "percentile_75": ordered[math.floor(n * 0.75)],
    }


class ContentLengthComparator:
    """
    Compares an article's word count against the pages ranking for a keyword.

    settings.json -> content_length:
    {
      "max_results": 10,
      "timeout_s": 10
    }
    """

    def __init__(self, app_settings: Optional[Dict[str, Any]] = None, session: Optional[requests.Session] = None):
        cfg = section(app_settings, "content_length")
        self.max_results = int(cfg.get("max_results", 10))
        self.timeout_s = float(cfg.get("timeout_s", 10))
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def analyze(
        self,
        keyword: str,
        your_word_count: Optional[int] = None,
        serp_results: Optional[List[Dict[str, Any]]] = None,
        fetch_content: bool = True,
    ) -> Dict[str, Any]:
        if not serp_results:
            return {
                "error": "No SERP results provided",
                "recommendation": "Use DataForSEO to get SERP data first",
            }

        competitors: List[Dict[str, Any]] = []
        if fetch_content:
            for i, result in enumerate(serp_results[:self.max_results]):
                url = result.get("url")
                if not url:
                    continue
                words = self.fetch_word_count(url)
                if words is None:
                    continue
                competitors.append({
                    "position": i + 1,
                    "url": url,
                    "domain": result.get("domain") or "",
                    "title": (result.get("title") or "")[:100],
                    "word_count": words,
                })

        if not competitors:
            return {
                "error": "Could not fetch competitor content",
                "recommendation": "Manually check top ranking pages for word count",
            }

        counts = [c["word_count"] for c in competitors]
        stats = calculate_statistics(counts)
        logger.info("Compared %d competitor pages for '%s' (median %s words)", len(counts), keyword, stats["median"])

        return {
            "keyword": keyword,
            "competitors_analyzed": len(competitors),
            "your_word_count": your_word_count,
            "statistics": stats,
            "competitor_lengths": competitors,
            "your_position": self._position_in_range(your_word_count, counts) if your_word_count is not None else None,
            "recommendation": self._recommendation(stats, your_word_count),
            "competitive_analysis": self._competition(your_word_count, counts, stats),
        }

    def fetch_word_count(self, url: str) -> Optional[int]:
        try:
            resp = self._session.get(url, timeout=self.timeout_s)
            if not resp.ok:
                logger.warning("Fetching %s returned HTTP %s", url, resp.status_code)
                return None
            html = resp.text
        except requests.RequestException as e:
            logger.warning("Could not fetch competitor page %s: %s", url, e)
            return None

        try:
            return count_words_in_html(html)
        except Exception as e:
            logger.warning("Could not parse competitor page %s: %s", url, e)
            logger.debug("%s parse failure", url, exc_info=True)
            return None

    # ----------------------------- Analysis ---------------------------------

    @staticmethod
    def _recommendation(stats: Dict[str, Any], your_count: Optional[int]) -> Dict[str, Any]:
        median, p75 = stats["median"], stats["percentile_75"]
        rec_min = median
        rec_optimal = max(p75, int(median * 1.2))
        rec_max = int(rec_optimal * 1.2)

        status = message = None
        if your_count is not None:
            if your_count < rec_min * 0.8:
                status = "too_short"
                message = (
                    "Your content is significantly shorter than competitors. "
                    f"Add {rec_optimal - your_count} more words."
                )
            elif your_count < rec_min:
                status = "short"
                message = (
                    "Your content is shorter than most competitors. "
                    f"Consider adding {rec_optimal - your_count} more words."
                )
            elif your_count < rec_optimal:
                status = "good"
                message = (
                    "Your content length is competitive. "
                    f"Add {rec_optimal - your_count} more words to match top performers."
                )
            elif your_count <= rec_max:
                status = "optimal"
                message = "Your content length is optimal - matches or exceeds top competitors."
            else:
                status = "long"
                message = "Your content is longer than competitors. Ensure all content adds value."

        return {
            "recommended_min": rec_min,
            "recommended_optimal": rec_optimal,
            "recommended_max": rec_max,
            "your_status": status,
            "message": message,
            "reasoning": f"Based on median ({median}) and 75th percentile ({p75}) of top 10 results",
        }

    @staticmethod
    def _position_in_range(your_count: int, counts: List[int]) -> str:
        ordered = sorted(counts)
        if your_count < ordered[0]:
            return f"Below all competitors (shortest is {ordered[0]})"
        if your_count > ordered[-1]:
            return f"Above all competitors (longest is {ordered[-1]})"
        for i, count in enumerate(ordered):
            if your_count <= count:
                return f"Between position {i} and {i + 1} competitors"
        return "Within competitive range"

    @staticmethod
    def _length_distribution(counts: List[int]) -> Dict[str, int]:
        buckets = {name: 0 for name, _, _ in LENGTH_BUCKETS}
        buckets["3000_plus"] = 0
        for count in counts:
            for name, lo, hi in LENGTH_BUCKETS:
                if lo <= count < hi:
                    buckets[name] += 1
                    break
            else:
                buckets["3000_plus"] += 1
        return buckets

    def _competition(self, your_count: Optional[int], counts: List[int], stats: Dict[str, Any]) -> Dict[str, Any]:
        analysis: Dict[str, Any] = {
            "total_competitors": len(counts),
            "length_distribution": self._length_distribution(counts),
        }
        if your_count is None or not stats:
            return analysis

        shorter = sum(1 for c in counts if c < your_count)
        longer = sum(1 for c in counts if c > your_count)
        analysis["comparison"] = {
            "shorter_than_you": shorter,
            "longer_than_you": longer,
            "percentile": round(shorter / len(counts) * 100) if counts else 0,
        }

        if your_count < stats["median"]:
            gap = stats["median"] - your_count
            analysis["gap_to_median"] = {
                "words": gap,
                "percentage": round(gap / your_count * 100) if your_count > 0 else 0,
            }
        if your_count < stats["percentile_75"]:
            gap = stats["percentile_75"] - your_count
            analysis["gap_to_75th_percentile"] = {
                "words": gap,
                "percentage": round(gap / your_count * 100) if your_count > 0 else 0,
            }
        return analysis

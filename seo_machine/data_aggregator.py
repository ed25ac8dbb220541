# data_aggregator.py

from __future__ import annotations

import os
import re
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from .ahrefs import Ahrefs
from .data_for_seo import DataForSEO
from .google_analytics import GoogleAnalytics
from .google_search_console import GoogleSearchConsole
from .utils.utils import configure_logging, first_set, load_settings, section

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
_SCHEME_RE = re.compile(r"https?://")


def format_number(num: Any) -> str:
    """1234567 -> '1,234,567' (truncates toward zero)."""
    return f"{int(num or 0):,}"


class DataAggregator:
    """
    Combines GA4, Search Console, DataForSEO and Ahrefs into page reports,
    content opportunities and a prioritised task queue. Any source that is
    not configured is skipped.

    settings.json -> aggregator:
    {
      "quick_wins_limit": 20,
      "declining_limit": 15,
      "low_ctr_limit": 15,
      "trending_limit": 15
    }
    """

    def __init__(
        self,
        ga: Optional[GoogleAnalytics] = None,
        gsc: Optional[GoogleSearchConsole] = None,
        dfs: Optional[DataForSEO] = None,
        ahrefs: Optional[Ahrefs] = None,
        app_settings: Optional[Dict[str, Any]] = None,
    ):
        self.app_settings = app_settings or {}
        cfg = section(app_settings, "aggregator")
        self.quick_wins_limit = int(cfg.get("quick_wins_limit", 20))
        self.declining_limit = int(cfg.get("declining_limit", 15))
        self.low_ctr_limit = int(cfg.get("low_ctr_limit", 15))
        self.trending_limit = int(cfg.get("trending_limit", 15))

        self.ga = ga or self._safe_init("Google Analytics", lambda: GoogleAnalytics(app_settings=app_settings))
        self.gsc = gsc or self._safe_init("Google Search Console", lambda: GoogleSearchConsole(app_settings=app_settings))
        self.dfs = dfs or self._safe_init("DataForSEO", lambda: DataForSEO(app_settings=app_settings))
        self.ahrefs = ahrefs or self._safe_init("Ahrefs", lambda: Ahrefs(app_settings=app_settings))

    @staticmethod
    def _safe_init(name: str, factory: Callable[[], Any]) -> Any:
        try:
            return factory()
        except Exception as e:
            logger.warning("%s not configured: %s", name, e)
            logger.debug("%s init failure", name, exc_info=True)
            return None

    # ----------------------------- Page report ------------------------------

    def get_comprehensive_page_performance(self, url: str, days: int = 30) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "url": url,
            "analyzed_at": datetime.now().astimezone().isoformat(timespec="seconds"),
            "period_days": days,
            "ga4": None,
            "gsc": None,
            "dataforseo": None,
            "ahrefs": None,
        }

        if self.ga:
            try:
                trends = self.ga.get_page_trends(url, days=days)
                result["ga4"] = {
                    "total_pageviews": trends.get("total_pageviews"),
                    "trend_direction": trends.get("trend_direction"),
                    "trend_percent": trends.get("trend_percent"),
                    "timeline": trends.get("timeline"),
                }
            except Exception as e:
                logger.warning("GA4 page trends failed for %s: %s", url, e)
                result["ga4"] = {"error": str(e)}

        if self.gsc:
            try:
                result["gsc"] = self.gsc.get_page_performance(url, days=days)
            except Exception as e:
                logger.warning("GSC page performance failed for %s: %s", url, e)
                result["gsc"] = {"error": str(e)}

        gsc_keywords = (result["gsc"] or {}).get("top_keywords")
        if self.dfs and gsc_keywords:
            try:
                keywords = [kw["keyword"] for kw in gsc_keywords[:5]]
                domain = self._site_domain()
                result["dataforseo"] = {"rankings": self.dfs.get_rankings(domain=domain, keywords=keywords)}
            except Exception as e:
                logger.warning("DataForSEO rankings failed for %s: %s", url, e)
                result["dataforseo"] = {"error": str(e)}

        if self.ahrefs:
            try:
                domain = self._extract_domain(url)
                dr = self.ahrefs.get_domain_rating(domain) or {}
                backlinks = self.ahrefs.get_backlinks_stats(domain) or {}
                rating = dr.get("domain_rating") or {}
                result["ahrefs"] = {
                    "domain_rating": rating.get("domain_rating"),
                    "ahrefs_rank": rating.get("ahrefs_rank"),
                    "backlinks": backlinks.get("live"),
                    "referring_domains": backlinks.get("refdomains"),
                }
            except Exception as e:
                logger.warning("Ahrefs lookup failed for %s: %s", url, e)
                logger.debug("Ahrefs failure", exc_info=True)
                result["ahrefs"] = {"error": str(e)}

        return result

    # ----------------------------- Opportunities ----------------------------

    def identify_content_opportunities(self, days: int = 30) -> Dict[str, List[Dict[str, Any]]]:
        opportunities: Dict[str, List[Dict[str, Any]]] = {
            "quick_wins": [],
            "declining_content": [],
            "low_ctr": [],
            "trending_topics": [],
            "competitor_gaps": [],
        }

        if self.gsc:
            opportunities["quick_wins"] = self._collect(
                "quick wins", lambda: self.gsc.get_quick_wins(days=days), self.quick_wins_limit
            )
        if self.ga:
            opportunities["declining_content"] = self._collect(
                "declining pages",
                lambda: self.ga.get_declining_pages(comparison_days=days, threshold_percent=-20.0),
                self.declining_limit,
            )
        if self.gsc:
            opportunities["low_ctr"] = self._collect(
                "low CTR pages", lambda: self.gsc.get_low_ctr_pages(days=days), self.low_ctr_limit
            )
            opportunities["trending_topics"] = self._collect(
                "trending queries", self.gsc.get_trending_queries, self.trending_limit
            )

        return opportunities

    @staticmethod
    def _collect(label: str, fetch: Callable[[], List[Dict[str, Any]]], limit: int) -> List[Dict[str, Any]]:
        try:
            return list(fetch() or [])[:limit]
        except Exception as e:
            logger.warning("Failed getting %s: %s", label, e)
            logger.debug("%s failure", label, exc_info=True)
            return []

    # ----------------------------- Report -----------------------------------

    def generate_performance_report(self, days: int = 30) -> Dict[str, Any]:
        report: Dict[str, Any] = {
            "generated_at": datetime.now().astimezone().isoformat(timespec="seconds"),
            "period_days": days,
            "summary": {},
            "top_performers": [],
            "opportunities": {},
            "recommendations": [],
        }
        summary = report["summary"]

        if self.ga:
            try:
                pages = self.ga.get_top_pages(days=days, limit=100)
                summary["total_pageviews"] = sum(p["pageviews"] for p in pages)
                summary["total_sessions"] = sum(p["sessions"] for p in pages)
                summary["avg_engagement_rate"] = (
                    sum(p["engagement_rate"] for p in pages) / len(pages) if pages else 0
                )
                report["top_performers"] = pages[:10]
            except Exception as e:
                logger.warning("Failed getting GA4 summary: %s", e)

        if self.gsc:
            try:
                keywords = self.gsc.get_keyword_positions(days=days)
                summary["total_keywords"] = len(keywords)
                summary["total_clicks"] = sum(k["clicks"] for k in keywords)
                summary["total_impressions"] = sum(k["impressions"] for k in keywords)
                summary["avg_ctr"] = sum(k["ctr"] for k in keywords) / len(keywords) if keywords else 0
            except Exception as e:
                logger.warning("Failed getting GSC summary: %s", e)

        report["opportunities"] = self.identify_content_opportunities(days=days)
        report["recommendations"] = self.generate_recommendations(report["opportunities"])
        return report

    def get_priority_queue(self, limit: int = 10) -> List[Dict[str, Any]]:
        recommendations = self.generate_recommendations(self.identify_content_opportunities())
        recommendations.sort(key=lambda r: PRIORITY_ORDER.get(r.get("priority"), 3))
        return recommendations[:limit]

    # ----------------------------- Recommendations --------------------------

    @staticmethod
    def generate_recommendations(opportunities: Dict[str, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """One recommendation per non-empty opportunity list, built from its top entry."""
        recs: List[Dict[str, Any]] = []

        quick_wins = opportunities.get("quick_wins") or []
        if quick_wins:
            top = quick_wins[0]
            recs.append({
                "priority": "high",
                "type": "optimize",
                "action": f"Optimize for '{top['keyword']}'",
                "reason": (
                    f"Currently ranking #{int(top['position'])} with {format_number(top['impressions'])} "
                    "impressions. Small improvements could push to page 1."
                ),
                "keyword": top["keyword"],
                "current_position": top["position"],
            })

        declining = opportunities.get("declining_content") or []
        if declining:
            worst = declining[0]
            recs.append({
                "priority": "high",
                "type": "update",
                "action": f"Update declining article: {worst.get('title')}",
                "reason": (
                    f"Traffic down {round(abs(worst['change_percent']), 1)}% "
                    f"({format_number(worst.get('previous_pageviews'))} -> {format_number(worst.get('pageviews'))} "
                    "pageviews). Needs refresh."
                ),
                "url": worst.get("path"),
                "change_percent": worst["change_percent"],
            })

        low_ctr = opportunities.get("low_ctr") or []
        if low_ctr:
            worst = low_ctr[0]
            recs.append({
                "priority": "medium",
                "type": "optimize_meta",
                "action": f"Improve meta elements for: {worst['url']}",
                "reason": (
                    f"Getting {format_number(worst['impressions'])} impressions but only {worst['ctr']}% CTR. "
                    f"Better title/description could add {format_number(worst['missed_clicks'])} clicks/month."
                ),
                "url": worst["url"],
                "potential_clicks": worst["missed_clicks"],
            })

        trending = opportunities.get("trending_topics") or []
        if trending:
            top = trending[0]
            recs.append({
                "priority": "medium",
                "type": "create_new",
                "action": f"Create content for trending topic: '{top['query']}'",
                "reason": (
                    f"Search interest up {round(top['change_percent'], 1)}% with "
                    f"{format_number(top['recent_impressions'])} recent impressions. Strike while hot!"
                ),
                "query": top["query"],
                "growth": top["change_percent"],
            })

        return recs

    # ----------------------------- Helpers ----------------------------------

    def _site_url(self) -> str:
        return str(first_set(
            getattr(self.gsc, "site_url", None),
            section(self.app_settings, "google_search_console").get("site_url"),
            os.getenv("GSC_SITE_URL"),
        ) or "")

    def _extract_domain(self, url: str) -> str:
        if _SCHEME_RE.match(url):
            return urlparse(url).hostname or ""
        return self._site_domain()

    def _site_domain(self) -> str:
        return _SCHEME_RE.sub("", self._site_url()).rstrip("/")


if __name__ == "__main__":
    configure_logging()
    aggregator = DataAggregator(app_settings=load_settings())
    print(json.dumps(aggregator.get_priority_queue(), indent=2))

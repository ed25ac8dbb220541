# google_analytics.py

from __future__ import annotations

import os
import logging
from typing import Any, Dict, List, Optional

from .google_api import GoogleApiClient
from .utils.utils import first_set, section

logger = logging.getLogger(__name__)

RUN_REPORT_URL = "https://analyticsdata.googleapis.com/v1beta/properties/{property_id}:runReport"


def _string_filter(field: str, value: str, match_type: str) -> Dict[str, Any]:
    return {"filter": {"fieldName": field, "stringFilter": {"matchType": match_type, "value": value}}}


def _num(value: Any, cast=float) -> Any:
    try:
        return cast(float(value))
    except (TypeError, ValueError):
        return cast(0)


class GoogleAnalytics:
    """
    GA4 Data API wrapper for page traffic, trends, conversions and sources.

    settings.json -> google_analytics:
    {
      "property_id": "${GA4_PROPERTY_ID}",
      "credentials_path": "${GA4_CREDENTIALS_PATH}",
      // optional inline key instead of a file
      "service_account_json": ""
    }
    """

    SCOPE = "https://www.googleapis.com/auth/analytics.readonly"

    def __init__(
        self,
        property_id: Optional[str] = None,
        credentials_path: Optional[str] = None,
        app_settings: Optional[Dict[str, Any]] = None,
        *,
        credentials: Any = None,
        session=None,
    ):
        cfg = section(app_settings, "google_analytics")
        self.property_id = first_set(property_id, cfg.get("property_id"), os.getenv("GA4_PROPERTY_ID"))
        if not self.property_id:
            raise EnvironmentError("GA4_PROPERTY_ID must be provided or set in environment")

        self._api = _GA4Api(
            first_set(credentials_path, cfg.get("credentials_path"), os.getenv("GA4_CREDENTIALS_PATH")),
            service_account_json=cfg.get("service_account_json"),
            credentials=credentials,
            session=session,
            retries=int(cfg.get("retries", 2)),
            timeout_s=float(cfg.get("timeout_s", 30)),
        )

    # ----------------------------- Reports ----------------------------------

    def get_top_pages(self, days: int = 30, limit: int = 20, path_filter: Optional[str] = "/blog/") -> List[Dict[str, Any]]:
        body: Dict[str, Any] = {
            "dateRanges": [{"startDate": f"{days}daysAgo", "endDate": "today"}],
            "dimensions": [{"name": "pagePath"}, {"name": "pageTitle"}],
            "metrics": [
                {"name": "screenPageViews"},
                {"name": "sessions"},
                {"name": "averageSessionDuration"},
                {"name": "bounceRate"},
                {"name": "engagementRate"},
            ],
            "limit": limit,
            "orderBys": [{"metric": {"metricName": "screenPageViews"}, "desc": True}],
        }
        if path_filter:
            body["dimensionFilter"] = _string_filter("pagePath", path_filter, "CONTAINS")

        pages = []
        for dims, mets in self._run_report(body):
            pages.append({
                "path": dims[0],
                "title": dims[1],
                "pageviews": _num(mets[0], int),
                "sessions": _num(mets[1], int),
                "avg_session_duration": _num(mets[2]),
                "bounce_rate": _num(mets[3]),
                "engagement_rate": _num(mets[4]),
            })
        return pages

    def get_page_trends(self, url: str, days: int = 90, granularity: str = "week") -> Dict[str, Any]:
        dimension = "date" if granularity == "day" else "week"
        body = {
            "dateRanges": [{"startDate": f"{days}daysAgo", "endDate": "today"}],
            "dimensions": [{"name": dimension}],
            "metrics": [{"name": "screenPageViews"}, {"name": "sessions"}, {"name": "averageSessionDuration"}],
            "dimensionFilter": _string_filter("pagePath", url, "EXACT"),
            "orderBys": [{"dimension": {"dimensionName": dimension}, "desc": False}],
        }

        timeline = [
            {
                "period": dims[0],
                "pageviews": _num(mets[0], int),
                "sessions": _num(mets[1], int),
                "avg_duration": _num(mets[2]),
            }
            for dims, mets in self._run_report(body)
        ]
        direction, percent = self.calculate_trend(timeline)

        return {
            "url": url,
            "timeline": timeline,
            "trend_direction": direction,
            "trend_percent": round(percent, 2),
            "total_pageviews": sum(t["pageviews"] for t in timeline),
        }

    def get_conversions(self, days: int = 30, path_filter: Optional[str] = "/blog/") -> List[Dict[str, Any]]:
        body: Dict[str, Any] = {
            "dateRanges": [{"startDate": f"{days}daysAgo", "endDate": "today"}],
            "dimensions": [{"name": "pagePath"}, {"name": "pageTitle"}],
            "metrics": [{"name": "screenPageViews"}, {"name": "conversions"}, {"name": "totalRevenue"}],
            "orderBys": [{"metric": {"metricName": "conversions"}, "desc": True}],
        }
        if path_filter:
            body["dimensionFilter"] = _string_filter("pagePath", path_filter, "CONTAINS")

        results = []
        for dims, mets in self._run_report(body):
            pageviews = _num(mets[0], int)
            conversions = _num(mets[1])
            results.append({
                "path": dims[0],
                "title": dims[1],
                "pageviews": pageviews,
                "conversions": conversions,
                "conversion_rate": round(conversions / pageviews * 100, 2) if pageviews > 0 else 0,
                "revenue": _num(mets[2]),
            })
        return results

    def get_traffic_sources(self, url: Optional[str] = None, days: int = 30) -> List[Dict[str, Any]]:
        body: Dict[str, Any] = {
            "dateRanges": [{"startDate": f"{days}daysAgo", "endDate": "today"}],
            "dimensions": [{"name": "sessionDefaultChannelGroup"}],
            "metrics": [{"name": "sessions"}, {"name": "screenPageViews"}, {"name": "engagementRate"}],
            "orderBys": [{"metric": {"metricName": "sessions"}, "desc": True}],
        }
        if url:
            body["dimensionFilter"] = _string_filter("pagePath", url, "EXACT")

        return [
            {
                "source": dims[0],
                "sessions": _num(mets[0], int),
                "pageviews": _num(mets[1], int),
                "engagement_rate": _num(mets[2]),
            }
            for dims, mets in self._run_report(body)
        ]

    def get_declining_pages(
        self,
        comparison_days: int = 30,
        threshold_percent: float = -20.0,
        path_filter: Optional[str] = "/blog/",
    ) -> List[Dict[str, Any]]:
        """Pages whose recent pageviews fell below the threshold vs. the doubled window."""
        recent = self.get_top_pages(days=comparison_days, limit=100, path_filter=path_filter)
        previous = {p["path"]: p for p in self.get_top_pages(days=comparison_days * 2, limit=100, path_filter=path_filter)}

        declining = []
        for page in recent:
            prev = previous.get(page["path"])
            if not prev or prev["pageviews"] <= 0:
                continue
            change = (page["pageviews"] - prev["pageviews"]) / prev["pageviews"] * 100
            if change < threshold_percent:
                declining.append({
                    **page,
                    "previous_pageviews": prev["pageviews"],
                    "change_percent": round(change, 2),
                    "priority": "high" if change < -40 else "medium",
                })

        declining.sort(key=lambda p: p["change_percent"])
        logger.info("Found %d declining pages over %d days", len(declining), comparison_days)
        return declining

    # ----------------------------- Helpers ----------------------------------

    @staticmethod
    def calculate_trend(timeline: List[Dict[str, Any]]):
        """(direction, percent) comparing the last four periods with the first four."""
        if len(timeline) < 2:
            return "unknown", 0.0

        recent = sum(t["pageviews"] for t in timeline[-4:])
        older = sum(t["pageviews"] for t in timeline[:4])
        if older == 0:
            return "stable", 0.0

        percent = (recent - older) / older * 100
        if percent > 10:
            return "rising", percent
        if percent < -10:
            return "declining", percent
        return "stable", percent

    def _run_report(self, body: Dict[str, Any]):
        url = RUN_REPORT_URL.format(property_id=self.property_id)
        data = self._api._post(url, body)
        for row in data.get("rows") or []:
            dims = [d.get("value", "") for d in row.get("dimensionValues", [])]
            mets = [m.get("value", "0") for m in row.get("metricValues", [])]
            yield dims, mets


class _GA4Api(GoogleApiClient):
    SCOPE = GoogleAnalytics.SCOPE
    API_NAME = "GA4 Data API"

# google_search_console.py

from __future__ import annotations

import os
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .google_api import GoogleApiClient
from .utils.utils import first_set, section

logger = logging.getLogger(__name__)

QUERY_URL = "https://searchconsole.googleapis.com/webmasters/v3/sites/{site}/searchAnalytics/query"

# --- Commercial intent tiers (substring match on the lowercased query) ---
HIGH_INTENT_TERMS = (
    "pricing", "price", "cost", "buy", "purchase", "vs", "versus", "alternative", "alternatives",
    "best", "top", "review", "reviews", "comparison", "compare", "plan", "plans", "trial",
    "discount", "coupon", "deal", "hosting", "service", "services", "platform", "software",
    "tool", "tools", "solution", "solutions", "provider", "providers",
)
MEDIUM_HIGH_INTENT_TERMS = (
    "how to", "guide", "tutorial", "tips", "strategies", "examples", "ideas", "ways to",
    "for business", "for companies", "professional", "analytics", "monetization", "monetize",
    "grow", "increase", "improve", "optimize", "setup", "set up",
)
MEDIUM_INTENT_TERMS = (
    "what is", "how does", "why", "benefits", "features", "podcast", "podcasting", "audio",
    "video", "rss", "marketing",
)
LOW_INTENT_TERMS = (
    "who is", "biography", "age", "net worth", "height", "wife", "husband", "dating", "married",
    "death", "died", "born", "pewdiepie", "youtube stars", "celebrity", "famous",
)

CTR_TARGET = 0.05


def commercial_intent(keyword: str) -> float:
    """Score 0.1 (low value) .. 3.0 (transactional); low-value terms win over everything."""
    kw = (keyword or "").lower()
    if any(t in kw for t in LOW_INTENT_TERMS):
        return 0.1
    if any(t in kw for t in HIGH_INTENT_TERMS):
        return 3.0
    if any(t in kw for t in MEDIUM_HIGH_INTENT_TERMS):
        return 2.0
    if any(t in kw for t in MEDIUM_INTENT_TERMS):
        return 1.0
    return 0.5


def intent_category(score: float) -> str:
    if score >= 2.5:
        return "Transactional"
    if score >= 1.5:
        return "Commercial Investigation"
    if score >= 0.8:
        return "Informational (Relevant)"
    return "Informational (Low Value)"


def _window(days: int, end_offset: int = 0):
    today = date.today()
    return (today - timedelta(days=days)).isoformat(), (today - timedelta(days=end_offset)).isoformat()


class GoogleSearchConsole:
    """
    Search Analytics wrapper: keyword positions, quick wins, CTR gaps and
    trend detection for one verified property.

    settings.json -> google_search_console:
    {
      "site_url": "${GSC_SITE_URL}",
      "credentials_path": "${GSC_CREDENTIALS_PATH}"
    }
    """

    SCOPE = "https://www.googleapis.com/auth/webmasters.readonly"

    def __init__(
        self,
        site_url: Optional[str] = None,
        credentials_path: Optional[str] = None,
        app_settings: Optional[Dict[str, Any]] = None,
        *,
        credentials: Any = None,
        session=None,
    ):
        cfg = section(app_settings, "google_search_console")
        self.site_url = first_set(site_url, cfg.get("site_url"), os.getenv("GSC_SITE_URL"))
        if not self.site_url:
            raise EnvironmentError("GSC_SITE_URL must be provided or set in environment")

        self._api = _GSCApi(
            first_set(credentials_path, cfg.get("credentials_path"), os.getenv("GSC_CREDENTIALS_PATH")),
            service_account_json=cfg.get("service_account_json"),
            credentials=credentials,
            session=session,
            retries=int(cfg.get("retries", 2)),
            timeout_s=float(cfg.get("timeout_s", 30)),
        )

    # ----------------------------- Keywords ---------------------------------

    def get_keyword_positions(self, days: int = 30, limit: int = 1000) -> List[Dict[str, Any]]:
        start, end = _window(days)
        rows = self._query({"startDate": start, "endDate": end, "dimensions": ["query"], "rowLimit": limit})
        results = [
            {
                "keyword": row["keys"][0],
                "clicks": row.get("clicks", 0),
                "impressions": row.get("impressions", 0),
                "ctr": row.get("ctr", 0),
                "position": round(row.get("position", 0), 1),
            }
            for row in rows
        ]
        results.sort(key=lambda r: -r["impressions"])
        return results

    def get_quick_wins(
        self,
        days: int = 30,
        position_min: float = 11,
        position_max: float = 20,
        min_impressions: int = 50,
        prioritize_commercial: bool = True,
    ) -> List[Dict[str, Any]]:
        """Keywords just off page one, scored by impressions over distance from position 10."""
        wins = []
        for kw in self.get_keyword_positions(days=days):
            if not (position_min <= kw["position"] <= position_max):
                continue
            if kw["impressions"] < min_impressions:
                continue

            intent = commercial_intent(kw["keyword"])
            base_score = float(kw["impressions"]) / (kw["position"] - 10 + 1)
            score = base_score * intent if prioritize_commercial else base_score
            wins.append({
                **kw,
                "commercial_intent": intent,
                "commercial_intent_category": intent_category(intent),
                "opportunity_score": round(score, 2),
                "priority": "high" if kw["position"] <= 15 else "medium",
            })

        wins.sort(key=lambda w: -w["opportunity_score"])
        logger.info("Found %d quick-win keywords", len(wins))
        return wins

    # ----------------------------- Pages ------------------------------------

    def get_page_performance(self, url: str, days: int = 30) -> Dict[str, Any]:
        start, end = _window(days)
        operator = "equals" if url.startswith("http") else "contains"
        page_filter = [{"filters": [{"dimension": "page", "operator": operator, "expression": url}]}]

        rows = self._query({
            "startDate": start, "endDate": end,
            "dimensions": ["page"],
            "dimensionFilterGroups": page_filter,
        })
        if not rows:
            return {"url": url, "error": "No data found"}

        row = rows[0]
        keyword_rows = self._query({
            "startDate": start, "endDate": end,
            "dimensions": ["query"],
            "dimensionFilterGroups": page_filter,
            "rowLimit": 50,
        })
        top_keywords = sorted(
            (
                {
                    "keyword": k["keys"][0],
                    "clicks": k.get("clicks", 0),
                    "impressions": k.get("impressions", 0),
                    "position": round(k.get("position", 0), 1),
                }
                for k in keyword_rows
            ),
            key=lambda k: -k["clicks"],
        )[:10]

        return {
            "url": (row.get("keys") or [url])[0],
            "clicks": row.get("clicks", 0),
            "impressions": row.get("impressions", 0),
            "ctr": round(row.get("ctr", 0) * 100, 2),
            "avg_position": round(row.get("position", 0), 1),
            "top_keywords": top_keywords,
        }

    def get_low_ctr_pages(
        self,
        days: int = 30,
        ctr_threshold: float = 0.03,
        min_impressions: int = 100,
        path_filter: Optional[str] = "/blog/",
    ) -> List[Dict[str, Any]]:
        start, end = _window(days)
        body: Dict[str, Any] = {"startDate": start, "endDate": end, "dimensions": ["page"], "rowLimit": 1000}
        if path_filter:
            body["dimensionFilterGroups"] = [
                {"filters": [{"dimension": "page", "operator": "contains", "expression": path_filter}]}
            ]

        pages = []
        for row in self._query(body):
            impressions = row.get("impressions", 0)
            ctr = row.get("ctr", 0)
            if impressions < min_impressions or ctr >= ctr_threshold:
                continue
            clicks = row.get("clicks", 0)
            potential = int(impressions * CTR_TARGET)
            missed = potential - clicks
            pages.append({
                "url": row["keys"][0],
                "impressions": impressions,
                "clicks": clicks,
                "ctr": round(ctr * 100, 2),
                "avg_position": round(row.get("position", 0), 1),
                "potential_clicks": potential,
                "missed_clicks": missed,
                "priority": "high" if missed > 50 else "medium",
            })

        pages.sort(key=lambda p: -p["missed_clicks"])
        return pages

    # ----------------------------- Trends -----------------------------------

    def get_trending_queries(
        self, days_recent: int = 7, days_comparison: int = 30, min_impressions: int = 20
    ) -> List[Dict[str, Any]]:
        recent_start, recent_end = _window(days_recent)
        prev_start, prev_end = _window(days_comparison, end_offset=days_recent)

        recent = self._query({"startDate": recent_start, "endDate": recent_end, "dimensions": ["query"], "rowLimit": 1000})
        previous = self._query({"startDate": prev_start, "endDate": prev_end, "dimensions": ["query"], "rowLimit": 1000})
        lookup = {row["keys"][0]: row.get("impressions", 0) for row in previous}

        trending = []
        for row in recent:
            query = row["keys"][0]
            impressions = row.get("impressions", 0)
            if impressions < min_impressions:
                continue
            prev = lookup.get(query, 0)
            change = (impressions - prev) / prev * 100 if prev > 0 else 100
            if change <= 20:
                continue
            trending.append({
                "query": query,
                "recent_impressions": impressions,
                "previous_impressions": prev,
                "change_percent": round(change, 1),
                "clicks": row.get("clicks", 0),
                "position": round(row.get("position", 0), 1),
            })

        trending.sort(key=lambda t: -t["change_percent"])
        return trending

    def get_position_changes(self, days_recent: int = 7, days_comparison: int = 30) -> Dict[str, List[Dict[str, Any]]]:
        recent = self.get_keyword_positions(days=days_recent)
        lookup = {kw["keyword"]: kw["position"] for kw in self.get_keyword_positions(days=days_comparison)}

        improved, declined, stable = [], [], []
        for kw in recent:
            previous = lookup.get(kw["keyword"])
            if previous is None:
                continue
            change = previous - kw["position"]
            result = {**kw, "previous_position": previous, "position_change": round(change, 1)}
            if change >= 2:
                improved.append(result)
            elif change <= -2:
                declined.append(result)
            else:
                stable.append(result)

        return {
            "improved": sorted(improved, key=lambda r: -r["position_change"]),
            "declined": sorted(declined, key=lambda r: r["position_change"]),
            "stable": stable,
        }

    def _query(self, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        url = QUERY_URL.format(site=quote(self.site_url, safe=""))
        return self._api._post(url, body).get("rows") or []


class _GSCApi(GoogleApiClient):
    SCOPE = GoogleSearchConsole.SCOPE
    API_NAME = "Search Console API"

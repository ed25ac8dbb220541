# data_for_seo.py

from __future__ import annotations

import os
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

import requests

from .utils.utils import first_set, get_auth_header, safe_json, section

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.dataforseo.com"
OK = 20000
USA = 2840

SERP_LIVE = "/v3/serp/google/organic/live/advanced"
RELATED_KEYWORDS = "/v3/dataforseo_labs/google/related_keywords/live"
DOMAIN_METRICS = "/v3/dataforseo_labs/google/domain_metrics/live"
RANKING_HISTORY = "/v3/serp/google/organic/ranking_history/live"

QUESTION_STARTERS = ("how", "what", "why", "when", "where", "who", "can", "should", "is", "are", "does")


def _dig(obj: Any, *path: Union[str, int]) -> Any:
    """Nested lookup through dicts and lists; None on any miss."""
    for key in path:
        if isinstance(obj, dict):
            obj = obj.get(key)
        elif isinstance(obj, list) and isinstance(key, int) and -len(obj) <= key < len(obj):
            obj = obj[key]
        else:
            return None
        if obj is None:
            return None
    return obj


class DataForSEO:
    """
    DataForSEO v3 client: SERP snapshots, rankings, keyword ideas and
    domain metrics. Every call is a JSON POST of a task list; a response
    whose status_code is not 20000 yields an empty result.

    settings.json -> dataforseo:
    {
      "login": "${DATAFORSEO_LOGIN}",
      "password": "${DATAFORSEO_PASSWORD}",
      "base_url": "https://api.dataforseo.com",
      "timeout_s": 60
    }
    """

    def __init__(
        self,
        login: Optional[str] = None,
        password: Optional[str] = None,
        app_settings: Optional[Dict[str, Any]] = None,
        session: Optional[requests.Session] = None,
    ):
        cfg = section(app_settings, "dataforseo")
        login = first_set(login, cfg.get("login"), os.getenv("DATAFORSEO_LOGIN"))
        password = first_set(password, cfg.get("password"), os.getenv("DATAFORSEO_PASSWORD"))
        if not login or not password:
            raise EnvironmentError("DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD must be set")

        self.base_url = str(
            first_set(cfg.get("base_url"), os.getenv("DATAFORSEO_BASE_URL"), DEFAULT_BASE_URL)
        ).rstrip("/")
        self.timeout_s = float(cfg.get("timeout_s", 60))
        self._session = session or requests.Session()
        self._session.headers.update(get_auth_header({"username": login, "password": password}))

    # ----------------------------- SERP -------------------------------------

    def get_rankings(
        self,
        domain: str,
        keywords: List[str],
        location_code: int = USA,
        language_code: str = "en",
    ) -> List[Dict[str, Any]]:
        """Where `domain` ranks for each keyword (None when absent from the results)."""
        tasks = [
            {"keyword": kw, "location_code": location_code, "language_code": language_code,
             "device": "desktop", "os": "windows"}
            for kw in keywords
        ]
        response = self._post(SERP_LIVE, tasks)
        if response.get("status_code") != OK:
            return []

        rankings = []
        for task in response.get("tasks") or []:
            if task.get("status_code") != OK:
                continue
            position = url = None
            for index, item in enumerate(_dig(task, "result", 0, "items") or []):
                if domain in (item.get("domain") or ""):
                    position, url = index + 1, item.get("url")
                    break
            info = _dig(task, "result", 0, "keyword_data", "keyword_info") or {}
            rankings.append({
                "keyword": _dig(task, "data", "keyword"),
                "domain": domain,
                "position": position,
                "url": url,
                "ranking": position is not None,
                "search_volume": info.get("search_volume"),
                "cpc": info.get("cpc"),
            })
        return rankings

    def get_serp_data(self, keyword: str, location_code: int = USA, limit: int = 100) -> Dict[str, Any]:
        data = [{
            "keyword": keyword,
            "location_code": location_code,
            "language_code": "en",
            "device": "desktop",
            "os": "windows",
            "depth": limit,
        }]
        response = self._post(SERP_LIVE, data)
        if response.get("status_code") != OK:
            return {"error": "API request failed"}

        task = _dig(response, "tasks", 0) or {}
        if task.get("status_code") != OK:
            return {"error": "Task failed"}

        result = _dig(task, "result", 0) or {}
        items = result.get("items") or []
        organic = [
            {
                "position": item.get("rank_absolute"),
                "url": item.get("url"),
                "domain": item.get("domain"),
                "title": item.get("title"),
                "description": item.get("description"),
                "breadcrumb": item.get("breadcrumb"),
            }
            for item in items
            if item.get("type") == "organic"
        ]
        features: List[str] = []
        for item in items:
            kind = item.get("type")
            if kind != "organic" and kind not in features:
                features.append(kind)

        info = _dig(result, "keyword_data", "keyword_info") or {}
        return {
            "keyword": keyword,
            "search_volume": info.get("search_volume"),
            "cpc": info.get("cpc"),
            "competition": info.get("competition"),
            "organic_results": organic,
            "features": features,
            "total_results": result.get("items_count") or 0,
        }

    def analyze_competitor(
        self, competitor_domain: str, keywords: List[str], your_domain: Optional[str] = None
    ) -> Dict[str, Any]:
        tasks = [
            {"keyword": kw, "location_code": USA, "language_code": "en", "device": "desktop"}
            for kw in keywords
        ]
        response = self._post(SERP_LIVE, tasks)

        comparison = []
        for i, task in enumerate(response.get("tasks") or []):
            if task.get("status_code") != OK:
                continue
            competitor_pos = your_pos = None
            # last match wins
            for j, item in enumerate(_dig(task, "result", 0, "items") or []):
                item_domain = item.get("domain") or ""
                if competitor_domain in item_domain:
                    competitor_pos = j + 1
                if your_domain and your_domain in item_domain:
                    your_pos = j + 1

            gap: Union[int, str, None] = None
            if competitor_pos and your_pos:
                gap = your_pos - competitor_pos
            elif competitor_pos:
                gap = "Not ranking"

            if competitor_pos and not your_pos:
                opportunity = "high"
            elif isinstance(gap, int) and gap > 10:
                opportunity = "medium"
            else:
                opportunity = "low"

            comparison.append({
                "keyword": keywords[i] if i < len(keywords) else _dig(task, "data", "keyword"),
                "competitor_position": competitor_pos,
                "your_position": your_pos,
                "gap": gap,
                "opportunity": opportunity,
            })

        return {"competitor": competitor_domain, "your_domain": your_domain, "comparison": comparison}

    # ----------------------------- Keywords ---------------------------------

    def get_keyword_ideas(self, seed_keyword: str, location_code: int = USA, limit: int = 100) -> List[Dict[str, Any]]:
        data = [{
            "keyword": seed_keyword,
            "location_code": location_code,
            "language_code": "en",
            "include_serp_info": True,
            "limit": limit,
        }]
        ideas = []
        for item in self._related_items(data):
            info = _dig(item, "keyword_data", "keyword_info") or {}
            ideas.append({
                "keyword": _dig(item, "keyword_data", "keyword"),
                "search_volume": info.get("search_volume"),
                "cpc": info.get("cpc"),
                "competition": info.get("competition"),
                "avg_position": _dig(item, "serp_info", "se_results_count"),
            })
        ideas.sort(key=lambda k: -(k["search_volume"] or 0))
        return ideas

    def get_questions(self, keyword: str, location_code: int = USA, limit: int = 50) -> List[Dict[str, Any]]:
        data = [{"keyword": keyword, "location_code": location_code, "language_code": "en", "limit": limit}]
        questions = []
        for item in self._related_items(data):
            kw = _dig(item, "keyword_data", "keyword") or ""
            if not kw.lower().startswith(QUESTION_STARTERS):
                continue
            info = _dig(item, "keyword_data", "keyword_info") or {}
            questions.append({"question": kw, "search_volume": info.get("search_volume"), "cpc": info.get("cpc")})
        questions.sort(key=lambda q: -(q["search_volume"] or 0))
        return questions

    # ----------------------------- Domains ----------------------------------

    def get_domain_metrics(self, domain: str) -> Dict[str, Any]:
        data = [{"target": domain, "location_code": USA, "language_code": "en"}]
        response = self._post(DOMAIN_METRICS, data)
        if response.get("status_code") != OK:
            return {}
        task = _dig(response, "tasks", 0) or {}
        if task.get("status_code") != OK:
            return {}

        metrics = _dig(task, "result", 0, "items", 0, "metrics") or {}
        return {
            "domain": domain,
            "organic_keywords": _dig(metrics, "organic", "count"),
            "organic_traffic": _dig(metrics, "organic", "etv"),
            "domain_rank": _dig(metrics, "organic", "rank"),
            "backlinks": metrics.get("backlinks"),
        }

    def check_ranking_history(self, domain: str, keyword: str, months_back: int = 3) -> List[Dict[str, Any]]:
        today = date.today()
        data = [{
            "target": domain,
            "keyword": keyword,
            "location_code": USA,
            "language_code": "en",
            "date_from": (today - timedelta(days=30 * months_back)).isoformat(),
            "date_to": today.isoformat(),
        }]
        try:
            response = self._post(RANKING_HISTORY, data)
        except requests.RequestException as e:
            logger.warning("Ranking history lookup failed for %s / %s: %s", domain, keyword, e)
            return []

        if response.get("status_code") != OK:
            return []
        task = _dig(response, "tasks", 0) or {}
        if task.get("status_code") != OK:
            return []
        return _dig(task, "result", 0, "items") or []

    # ----------------------------- HTTP -------------------------------------

    def _related_items(self, data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response = self._post(RELATED_KEYWORDS, data)
        if response.get("status_code") != OK:
            return []
        task = _dig(response, "tasks", 0) or {}
        if task.get("status_code") != OK:
            return []
        return _dig(task, "result", 0, "items") or []

    def _post(self, endpoint: str, data: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        POST a task list. Non-JSON or non-2xx bodies come back as {} so callers
        fall through to their empty defaults; network failures propagate.
        """
        try:
            resp = self._session.post(f"{self.base_url}{endpoint}", json=data, timeout=self.timeout_s)
        except requests.RequestException as e:
            logger.error("DataForSEO network error on %s: %s", endpoint, e)
            raise

        if not resp.ok:
            logger.warning("DataForSEO %s returned HTTP %s: %s", endpoint, resp.status_code, (resp.text or "")[:300])
        body = safe_json(resp)
        return body if isinstance(body, dict) else {}

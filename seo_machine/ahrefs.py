# ahrefs.py

from __future__ import annotations

import os
import logging
from datetime import date
from typing import Any, Dict, Iterable, Optional, Union

import requests

from .utils.utils import first_set, get_auth_header, section

logger = logging.getLogger(__name__)

BASE_URL = "https://api.ahrefs.com/v3"
KEYWORD_FIELDS = "keyword,volume,keyword_difficulty,cpc,traffic_potential"


def _keyword_list(keywords: Union[str, Iterable[str]]) -> str:
    if isinstance(keywords, str):
        return keywords
    return ",".join(keywords)


class Ahrefs:
    """
    Ahrefs API v3 client (Site Explorer and Keywords Explorer).

    settings.json -> ahrefs:
    {
      "api_key": "${AHREFS_API_KEY}",
      "timeout_s": 30
    }
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        app_settings: Optional[Dict[str, Any]] = None,
        session: Optional[requests.Session] = None,
    ):
        cfg = section(app_settings, "ahrefs")
        api_key = first_set(api_key, cfg.get("api_key"), os.getenv("AHREFS_API_KEY"))
        if not api_key:
            raise EnvironmentError("AHREFS_API_KEY must be set")

        self.base_url = str(cfg.get("base_url") or BASE_URL).rstrip("/")
        self.timeout_s = float(cfg.get("timeout_s", 30))
        self._session = session or requests.Session()
        self._session.headers.update(get_auth_header({"auth_type": "bearer", "token": api_key}))

    # ----------------------------- Site Explorer ----------------------------

    def get_domain_rating(self, domain: str, date_str: Optional[str] = None) -> Dict[str, Any]:
        return self._get("site-explorer/domain-rating", target=domain, date=date_str or date.today().isoformat())

    def get_backlinks_stats(self, domain: str, date_str: Optional[str] = None, mode: str = "subdomains") -> Dict[str, Any]:
        return self._get(
            "site-explorer/backlinks-stats", target=domain, date=date_str or date.today().isoformat(), mode=mode
        )

    def get_organic_keywords(self, domain: str, country: str = "us", limit: int = 100, mode: str = "subdomains"):
        return self._get(
            "site-explorer/organic-keywords",
            target=domain, country=country, date=date.today().isoformat(), mode=mode, limit=limit,
            select="keyword,best_position,volume,traffic,keyword_difficulty,cpc,best_position_url",
        )

    def get_top_pages(self, domain: str, country: str = "us", limit: int = 50, mode: str = "subdomains"):
        return self._get(
            "site-explorer/top-pages",
            target=domain, country=country, date=date.today().isoformat(), mode=mode, limit=limit,
            select="url,sum_traffic,keywords,refdomains",
        )

    def get_referring_domains(self, domain: str, limit: int = 100, mode: str = "subdomains"):
        return self._get(
            "site-explorer/refdomains",
            target=domain, mode=mode, limit=limit, select="domain,domain_rating,backlinks,dofollow",
        )

    def get_organic_competitors(self, domain: str, country: str = "us", limit: int = 20, mode: str = "subdomains"):
        return self._get(
            "site-explorer/organic-competitors",
            target=domain, country=country, date=date.today().isoformat(), mode=mode, limit=limit,
            select="domain,common_keywords,keywords,traffic",
        )

    # ----------------------------- Keywords Explorer ------------------------

    def get_keyword_metrics(self, keywords: Union[str, Iterable[str]], country: str = "us"):
        return self._get(
            "keywords-explorer/overview", keywords=_keyword_list(keywords), country=country, select=KEYWORD_FIELDS
        )

    def get_related_keywords(self, keywords: Union[str, Iterable[str]], country: str = "us", limit: int = 100):
        return self._get(
            "keywords-explorer/related-terms",
            keywords=_keyword_list(keywords), country=country, limit=limit, select=KEYWORD_FIELDS,
        )

    # ----------------------------- HTTP -------------------------------------

    def _get(self, endpoint: str, **params: Any) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = self._session.get(url, params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            logger.error("Ahrefs network error: %s", e)
            raise requests.HTTPError(f"Ahrefs network error: {e}") from e

        if not resp.ok:
            logger.error("Ahrefs API error: %s - %s", resp.status_code, (resp.text or "")[:300])
            raise requests.HTTPError(f"Ahrefs API request failed: {resp.status_code}", response=resp)

        try:
            return resp.json()
        except ValueError as e:
            raise requests.HTTPError(f"Ahrefs returned invalid JSON from {endpoint}") from e

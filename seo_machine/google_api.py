# google_api.py

import os
import json
import time
import random
import logging
from typing import Any, Dict, Optional

import requests
from google.oauth2 import service_account
from google.auth.transport.requests import Request as GARequest

from .utils.utils import USER_AGENT, safe_json

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


class GoogleApiClient:
    """
    Service-account authenticated JSON client shared by the GA4 and Search
    Console wrappers. Subclasses set SCOPE and call _post().

    Credentials come from a key file, or from inline JSON (settings
    "service_account_json"), or from an already built credentials object.
    """

    SCOPE = ""
    API_NAME = "Google API"

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        *,
        service_account_json: Optional[str] = None,
        credentials: Any = None,
        session: Optional[requests.Session] = None,
        retries: int = 2,
        timeout_s: float = 30,
    ):
        self.retries = int(retries)
        self.timeout_s = float(timeout_s)
        self._credentials = credentials or self._load_credentials(credentials_path, service_account_json)
        self._token_last_refresh_ts: float = 0.0
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def _load_credentials(self, credentials_path: Optional[str], service_account_json: Optional[str]):
        if credentials_path:
            if not os.path.exists(credentials_path):
                raise EnvironmentError(f"Credentials file not found: {credentials_path}")
            return service_account.Credentials.from_service_account_file(credentials_path, scopes=[self.SCOPE])

        sa_json = (service_account_json or "").strip()
        if sa_json:
            try:
                info = json.loads(sa_json)
            except json.JSONDecodeError as e:
                raise EnvironmentError(f"Invalid inline service account JSON: {e}") from e
            return service_account.Credentials.from_service_account_info(info, scopes=[self.SCOPE])

        raise EnvironmentError(f"Credentials file not found: {credentials_path}")

    # ----------------------------- Auth -------------------------------------

    def _ensure_bearer(self) -> None:
        # refresh when invalid or older than ~45 minutes
        if (not self._credentials.valid) or (time.time() - self._token_last_refresh_ts > 45 * 60):
            self._force_refresh_bearer()

    def _force_refresh_bearer(self) -> None:
        try:
            self._credentials.refresh(GARequest())
            self._token_last_refresh_ts = time.time()
        except Exception as e:
            logger.error("Failed to refresh Google credentials: %s", e, exc_info=True)
            raise

    # ----------------------------- HTTP -------------------------------------

    def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST JSON with token refresh on 401 and retries on 429/5xx.
        Raises requests.HTTPError when the call ultimately fails.
        """
        self._ensure_bearer()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._credentials.token}",
        }

        attempts = max(1, self.retries + 1)
        for attempt in range(1, attempts + 1):
            try:
                resp = self._session.post(url, headers=headers, json=payload, timeout=self.timeout_s)

                if resp.status_code == 401:
                    logger.warning("401 from %s; attempting token refresh.", self.API_NAME)
                    self._force_refresh_bearer()
                    headers["Authorization"] = f"Bearer {self._credentials.token}"
                    resp = self._session.post(url, headers=headers, json=payload, timeout=self.timeout_s)

                if resp.status_code == 200:
                    return safe_json(resp) or {}

                if resp.status_code in RETRY_STATUSES and attempt <= self.retries:
                    wait = (2 ** (attempt - 1)) + random.uniform(0.0, 0.5)
                    logger.warning("%s returned %s; retrying in %.2fs (attempt %d/%d)",
                                   self.API_NAME, resp.status_code, wait, attempt, attempts)
                    time.sleep(wait)
                    continue

                snippet = (resp.text or "")[:300]
                logger.error("%s request failed [%s]: %s", self.API_NAME, resp.status_code, snippet)
                raise requests.HTTPError(f"HTTP {resp.status_code} from {self.API_NAME}: {snippet}", response=resp)

            except requests.HTTPError:
                raise
            except requests.RequestException as e:
                if attempt <= self.retries:
                    wait = (2 ** (attempt - 1)) + random.uniform(0.0, 0.5)
                    logger.warning("Network error calling %s: %s. Retrying in %.2fs", self.API_NAME, e, wait)
                    time.sleep(wait)
                    continue
                logger.error("Error calling %s: %s", self.API_NAME, e)
                raise requests.HTTPError(f"{self.API_NAME} network error: {e}") from e

        raise requests.HTTPError(f"{self.API_NAME}: retries exhausted")

# backend/civic_briefs/services/search.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from ..core.config import get_settings
from ..pipeline.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class BraveSearchClient:
    """
    Thin client for Brave's web search API.

    Returns the raw `web.results` list; callers decide how much of each
    result to keep. Any non-2xx response raises ExternalServiceError so the
    calling stage fails as a whole.
    """

    name = "brave"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.BRAVE_SEARCH_API_KEY
        self.base_url = base_url or settings.BRAVE_SEARCH_URL
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=settings.BRAVE_SEARCH_TIMEOUT_SECONDS
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise RuntimeError("BRAVE_SEARCH_API_KEY is not configured.")
        return {
            "Accept": "application/json",
            "X-Subscription-Token": self.api_key,
        }

    def search(self, query: str, count: int, freshness: str) -> List[Dict[str, Any]]:
        params = {"q": query, "count": count, "freshness": freshness}
        resp = self._client.get(self.base_url, params=params, headers=self._headers())

        if resp.status_code < 200 or resp.status_code >= 300:
            raise ExternalServiceError("Brave Search", resp.status_code, resp.text)

        data = resp.json() or {}
        results = (data.get("web") or {}).get("results") or []
        logger.debug(
            "Brave search returned %d results",
            len(results),
            extra={"step": "news_search"},
        )
        return results

"""
NewsAPI.org client.

Only the ``/everything`` endpoint is used. Articles come back as the raw
NewsAPI dicts: title, description, content, url, urlToImage, publishedAt.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import requests

from errors import NewsSourceError

logger = logging.getLogger(__name__)


class NewsApiClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://newsapi.org/v2",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        topics: Optional[Iterable[Any]] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        # topic name (lower-case) -> keywords, used to narrow search_news
        self.topic_keywords: Dict[str, List[str]] = {
            t.name.lower(): list(t.keywords) for t in (topics or [])
        }
        if not self.api_key:
            logger.warning("NEWS_API_KEY not configured. News fetching will fail.")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def everything(self, **params: Any) -> Dict[str, Any]:
        """Raw call to /everything. Raises NewsSourceError on any failure."""
        if not self.api_key:
            raise NewsSourceError("NewsAPI key not configured")
        query = {k: v for k, v in params.items() if v is not None}
        try:
            response = self.session.get(
                f"{self.base_url}/everything",
                params=query,
                headers={"X-Api-Key": self.api_key},
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise NewsSourceError(f"NewsAPI request failed: {e}") from e

        if response.status_code != 200 or data.get("status") != "ok":
            message = data.get("message") or f"HTTP {response.status_code}"
            raise NewsSourceError(f"NewsAPI error ({data.get('code', 'unknown')}): {message}")
        return data

    def search(self, keywords: Iterable[str], page_size: int = 5) -> List[Dict[str, Any]]:
        """Most recent English articles matching any of the keywords."""
        data = self.everything(
            q=" OR ".join(keywords),
            language="en",
            sortBy="publishedAt",
            pageSize=page_size,
        )
        return data.get("articles") or []

    def search_news(
        self,
        query: str,
        topic: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Dict[str, Any]:
        q = query
        if topic:
            keywords = self.topic_keywords.get(topic.lower())
            if keywords:
                q = f"{query} AND ({' OR '.join(keywords)})"
        try:
            data = self.everything(q=q, language="en", sortBy="relevancy", page=page, pageSize=page_size)
        except NewsSourceError as e:
            logger.error(f"Error searching news for '{query}': {e}")
            return {"articles": [], "total_results": 0}
        return {"articles": data.get("articles") or [], "total_results": data.get("totalResults") or 0}

    def fetch_breaking_news(self, hours: int = 2, page_size: int = 10) -> List[Dict[str, Any]]:
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        # /everything requires a query; use the lead keyword of each topic
        q = " OR ".join(kw[0] for kw in self.topic_keywords.values() if kw) or "news"
        try:
            data = self.everything(
                q=q,
                language="en",
                sortBy="publishedAt",
                pageSize=page_size,
                **{"from": since.strftime("%Y-%m-%dT%H:%M:%SZ")},
            )
        except NewsSourceError as e:
            logger.error(f"Error fetching breaking news: {e}")
            return []
        return data.get("articles") or []

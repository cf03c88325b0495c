from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Sequence

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..schemas.jobs import DataFetchMessage, JobStatus, ScriptMessage
from ..services.briefs import find_recent_bills
from ..services.search import BraveSearchClient
from .base import Stage
from .queues import OutboundQueue
from .store import BILLS, NEWS, JobStore, job_key, set_status

logger = logging.getLogger(__name__)


def build_news_query(interests: Sequence[str]) -> str:
    return " OR ".join(interests) + " news legislation"


def trim_article(article: Dict[str, Any], max_description: int) -> Dict[str, Any]:
    description = article.get("description")
    return {
        "title": article.get("title") or article.get("name"),
        "url": article.get("url"),
        "description": description[:max_description] if isinstance(description, str) else None,
    }


class DataFetcher(Stage):
    """
    Collects the bills and news a brief will narrate.

    Both lookups are capped; everything stored here ends up
    in the script-writing prompt.
    """

    name = "data_fetcher"

    def __init__(
        self,
        store: JobStore,
        script_queue: OutboundQueue,
        session_factory: Callable[[], Session],
        search_client: BraveSearchClient,
        retry_delay: int | None = None,
    ) -> None:
        super().__init__(store)
        settings = get_settings()
        self.script_queue = script_queue
        self.session_factory = session_factory
        self.search_client = search_client
        self.retry_delay = retry_delay if retry_delay is not None else settings.DATA_FETCH_RETRY_DELAY_SECONDS
        self.bill_limit = settings.BILLS_PER_BRIEF
        self.news_limit = settings.NEWS_PER_BRIEF
        self.window_days = settings.BILL_ACTIVITY_WINDOW_DAYS
        self.freshness = settings.NEWS_FRESHNESS
        self.max_description = settings.NEWS_DESCRIPTION_MAX_CHARS

    def fetch_bills(self, interests: Sequence[str]) -> List[Dict[str, Any]]:
        db = self.session_factory()
        try:
            return find_recent_bills(
                db,
                interests,
                limit=self.bill_limit,
                window_days=self.window_days,
            )
        finally:
            db.close()

    def fetch_news(self, interests: Sequence[str]) -> List[Dict[str, Any]]:
        results = self.search_client.search(
            build_news_query(interests),
            count=self.news_limit,
            freshness=self.freshness,
        )
        return [trim_article(r, self.max_description) for r in results[: self.news_limit]]

    def handle(self, body: dict[str, Any]) -> None:
        msg = DataFetchMessage.model_validate(body)
        log_extra = {"job_id": msg.job_id, "user_id": msg.user_id, "stage": self.name}

        set_status(self.store, msg.job_id, JobStatus.FETCHING)

        bills = self.fetch_bills(msg.policy_interests)
        logger.info("Fetched %d bills", len(bills), extra={**log_extra, "step": "bills"})

        news = self.fetch_news(msg.policy_interests)
        logger.info("Fetched %d news articles", len(news), extra={**log_extra, "step": "news"})

        self.store.put(job_key(msg.job_id, BILLS), json.dumps(bills))
        self.store.put(job_key(msg.job_id, NEWS), json.dumps(news))

        self.script_queue.send(
            ScriptMessage(job_id=msg.job_id, user_id=msg.user_id).to_wire(),
            content_type="json",
        )
        logger.info("Job handed to script generator", extra={**log_extra, "step": "forwarded"})

"""
Tests for the data fetcher stage: bill selection, news trimming, all-or-nothing failure.
"""
import json
from datetime import datetime, timedelta

import pytest

from civic_briefs.models.bill import Bill
from civic_briefs.pipeline.data_fetcher import DataFetcher, build_news_query, trim_article
from civic_briefs.pipeline.errors import ExternalServiceError
from civic_briefs.pipeline.queues import QueueMessage
from civic_briefs.pipeline.store import job_key, load_job, save_job
from civic_briefs.schemas.jobs import JobMetadata, JobStatus
from civic_briefs.services.briefs import find_recent_bills

from tests.fixtures.pipeline_fakes import FakeSearchClient

JOB_ID = "brief-1700000000000-abc12345"


def _bill(id, categories, score, days_ago, **kw):
    return Bill(
        id=id,
        title=kw.pop("title", f"Bill {id}"),
        issue_categories=categories,
        impact_score=score,
        latest_action_date=datetime.utcnow() - timedelta(days=days_ago),
        **kw,
    )


def _articles(n):
    return [
        {
            "title": f"Story {i}",
            "url": f"https://news.example.com/{i}",
            "description": "x" * 500,
            "extra_snippets": ["dropped"],
        }
        for i in range(n)
    ]


@pytest.fixture
def message():
    return QueueMessage(
        {
            "jobId": JOB_ID,
            "userId": "u1",
            "policyInterests": ["healthcare"],
            "state": "CA",
            "district": None,
        }
    )


class TestFindRecentBills:
    def test_returns_top_two_by_impact(self, db):
        db.add_all([
            _bill("b1", '["healthcare"]', 10, 1),
            _bill("b2", '["healthcare"]', 50, 3),
            _bill("b3", '["healthcare"]', 30, 5),
            _bill("b4", '["healthcare"]', 90, 10),
            _bill("b5", '["healthcare"]', 20, 29),
        ])
        db.commit()

        bills = find_recent_bills(db, ["healthcare"], limit=2, window_days=30)

        assert [b["id"] for b in bills] == ["b4", "b2"]

    def test_excludes_bills_outside_activity_window(self, db):
        db.add_all([
            _bill("old", '["healthcare"]', 99, 45),
            _bill("new", '["healthcare"]', 1, 2),
        ])
        db.commit()

        bills = find_recent_bills(db, ["healthcare"], limit=2, window_days=30)

        assert [b["id"] for b in bills] == ["new"]

    def test_matches_any_interest_case_insensitively(self, db):
        db.add_all([
            _bill("h", '["Healthcare"]', 5, 1),
            _bill("e", '["education", "labor"]', 4, 1),
            _bill("t", '["taxes"]', 100, 1),
        ])
        db.commit()

        bills = find_recent_bills(db, ["healthcare", "Education"], limit=5, window_days=30)

        assert {b["id"] for b in bills} == {"h", "e"}

    def test_interest_text_is_not_interpreted_as_sql(self, db):
        db.add(_bill("b1", '["healthcare"]', 5, 1))
        db.commit()

        assert find_recent_bills(db, ["x' OR '1'='1"], limit=5, window_days=30) == []
        assert find_recent_bills(db, ["%"], limit=5, window_days=30) == []

    def test_no_interests_returns_nothing(self, db):
        db.add(_bill("b1", '["healthcare"]', 5, 1))
        db.commit()
        assert find_recent_bills(db, [], limit=5, window_days=30) == []


class TestNewsHelpers:
    def test_news_query_joins_interests(self):
        assert build_news_query(["healthcare", "education"]) == "healthcare OR education news legislation"

    def test_trim_article_keeps_essentials(self):
        article = {"name": "Fallback title", "url": "https://x", "description": "d" * 300, "age": "2d"}
        assert trim_article(article, 200) == {
            "title": "Fallback title",
            "url": "https://x",
            "description": "d" * 200,
        }

    def test_trim_article_without_description(self):
        assert trim_article({"title": "T", "url": "u"}, 200)["description"] is None


class TestDataFetcher:
    def test_stores_bounded_bills_and_news_and_forwards(self, db, session_factory, store, queue, message):
        db.add_all([_bill(f"b{i}", '["healthcare"]', i, 1) for i in range(5)])
        db.commit()
        search = FakeSearchClient(results=_articles(8))

        DataFetcher(store, queue, session_factory, search, retry_delay=60).process(message)

        assert message.acked
        bills = json.loads(store.get(job_key(JOB_ID, "bills")))
        news = json.loads(store.get(job_key(JOB_ID, "news")))
        assert [b["id"] for b in bills] == ["b4", "b3"]
        assert len(news) == 5
        assert all(set(a) == {"title", "url", "description"} for a in news)
        assert all(len(a["description"]) == 200 for a in news)

        assert search.calls == [
            {"query": "healthcare news legislation", "count": 5, "freshness": "pw"}
        ]
        assert queue.sent == [{"jobId": JOB_ID, "userId": "u1"}]

    def test_search_failure_fails_whole_stage(self, session_factory, store, queue, message):
        search = FakeSearchClient(error=ExternalServiceError("Brave Search", 503, "unavailable"))

        DataFetcher(store, queue, session_factory, search, retry_delay=60).process(message)

        assert not message.acked
        assert message.retry_delay == 60
        assert store.get(job_key(JOB_ID, "bills")) is None
        assert store.get(job_key(JOB_ID, "news")) is None
        assert queue.sent == []

    def test_updates_job_status(self, session_factory, store, queue, message):
        save_job(store, JobMetadata(job_id=JOB_ID, user_id="u1", created_at=datetime.utcnow()))

        DataFetcher(store, queue, session_factory, FakeSearchClient(), retry_delay=60).process(message)

        assert load_job(store, JOB_ID).status == JobStatus.FETCHING

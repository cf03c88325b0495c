"""
Tests for the daily scheduler: interest parsing and per-user fan-out.
"""
import re

import pytest
from unittest.mock import MagicMock

from civic_briefs.models.user import User
from civic_briefs.pipeline.scheduler import DailyBriefScheduler, parse_interests

from tests.fixtures.pipeline_fakes import FlakyQueue

DEFAULTS = ["Politics", "Healthcare", "Education"]


class TestParseInterests:
    def test_valid_json_list(self):
        assert parse_interests('["healthcare","education"]', DEFAULTS) == ["healthcare", "education"]

    @pytest.mark.parametrize(
        "raw",
        [None, "", "not json", "{\"a\": 1}", "[1, 2]", "[]", "\"healthcare\""],
    )
    def test_unusable_values_fall_back_to_defaults(self, raw):
        assert parse_interests(raw, DEFAULTS) == DEFAULTS

    def test_defaults_are_copied(self):
        result = parse_interests(None, DEFAULTS)
        result.append("Taxes")
        assert DEFAULTS == ["Politics", "Healthcare", "Education"]


class TestDailyBriefScheduler:
    def _add_users(self, db, *users):
        db.add_all(users)
        db.commit()

    def test_enqueues_one_request_per_user_with_email(self, db, session_factory, queue):
        self._add_users(
            db,
            User(id="u1", email="u1@example.com", interests='["healthcare","education"]'),
            User(id="u2", email="u2@example.com", name="Dana", state="CA", district="12"),
            User(id="u3", email=None, interests='["taxes"]'),
        )

        summary = DailyBriefScheduler(session_factory, queue, DEFAULTS).run()

        assert summary == {"queued": 2, "failed": 0, "total": 2}
        by_user = {m["userId"]: m for m in queue.sent}
        assert set(by_user) == {"u1", "u2"}
        assert by_user["u1"]["policyInterests"] == ["healthcare", "education"]
        assert by_user["u1"]["forceRegenerate"] is False
        assert by_user["u1"]["userEmail"] == "u1@example.com"
        assert by_user["u2"]["policyInterests"] == DEFAULTS
        assert by_user["u2"]["state"] == "CA"
        assert by_user["u2"]["district"] == "12"

    def test_malformed_interests_still_enqueued_with_defaults(self, db, session_factory, queue):
        self._add_users(db, User(id="u1", email="u1@example.com", interests="[healthcare"))

        DailyBriefScheduler(session_factory, queue, DEFAULTS).run()

        assert len(queue.sent) == 1
        assert queue.sent[0]["policyInterests"] == DEFAULTS

    def test_enqueue_failure_is_counted_and_run_continues(self, db, session_factory):
        self._add_users(
            db,
            User(id="u1", email="u1@example.com"),
            User(id="u2", email="u2@example.com"),
            User(id="u3", email="u3@example.com"),
        )
        queue = FlakyQueue(lambda payload: payload["userId"] == "u2")

        summary = DailyBriefScheduler(session_factory, queue, DEFAULTS).run()

        assert summary == {"queued": 2, "failed": 1, "total": 3}
        assert sorted(m["userId"] for m in queue.sent) == ["u1", "u3"]

    def test_no_users_enqueues_nothing(self, session_factory, queue):
        summary = DailyBriefScheduler(session_factory, queue, DEFAULTS).run()
        assert summary == {"queued": 0, "failed": 0, "total": 0}
        assert queue.sent == []

    def test_user_query_failure_aborts_run(self, queue):
        session = MagicMock()
        session.query.side_effect = RuntimeError("database unavailable")

        with pytest.raises(RuntimeError):
            DailyBriefScheduler(lambda: session, queue, DEFAULTS).run()

        session.close.assert_called_once()
        assert queue.sent == []

    def test_each_request_carries_its_own_job_id(self, db, session_factory, queue):
        self._add_users(
            db,
            User(id="u1", email="u1@example.com"),
            User(id="u2", email="u2@example.com"),
        )

        DailyBriefScheduler(session_factory, queue, DEFAULTS).run()

        job_ids = [m["jobId"] for m in queue.sent]
        assert all(re.match(r"^brief-\d+-[a-z0-9]{8}$", j) for j in job_ids)
        assert len(set(job_ids)) == 2

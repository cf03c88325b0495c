"""
Tests for job-store keys, the Redis-backed store, and metadata helpers.
"""
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from civic_briefs.pipeline.errors import MissingArtifactError
from civic_briefs.pipeline.store import (
    RedisJobStore,
    clear_done,
    is_done,
    job_key,
    load_job,
    mark_done,
    require,
    save_job,
    set_status,
)
from civic_briefs.schemas.jobs import JobMetadata, JobStatus

JOB_ID = "brief-1700000000000-abc12345"


def test_job_key_format():
    assert job_key(JOB_ID, "bills") == f"job:{JOB_ID}:bills"


class TestRedisJobStore:
    def test_put_sets_ttl(self):
        client = MagicMock()
        RedisJobStore(client=client, ttl_seconds=3600).put("k", "v")
        client.set.assert_called_once_with("k", "v", ex=3600)

    def test_put_without_ttl(self):
        client = MagicMock()
        RedisJobStore(client=client, ttl_seconds=0).put("k", "v")
        client.set.assert_called_once_with("k", "v")

    def test_get_and_delete_pass_through(self):
        client = MagicMock()
        client.get.return_value = "value"
        s = RedisJobStore(client=client, ttl_seconds=10)

        assert s.get("k") == "value"
        s.delete("k")
        client.delete.assert_called_once_with("k")

    def test_errors_propagate(self):
        client = MagicMock()
        client.get.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            RedisJobStore(client=client, ttl_seconds=10).get("k")


class TestMetadataHelpers:
    def test_round_trip_uses_camel_case(self, store):
        save_job(store, JobMetadata(job_id=JOB_ID, user_id="u1", created_at=datetime(2025, 1, 1)))
        raw = store.get(job_key(JOB_ID, "metadata"))
        assert '"jobId"' in raw and '"userId"' in raw
        assert load_job(store, JOB_ID).user_id == "u1"

    def test_set_status_records_error(self, store):
        save_job(store, JobMetadata(job_id=JOB_ID, user_id="u1", created_at=datetime(2025, 1, 1)))

        job = set_status(store, JOB_ID, JobStatus.FAILED, error="x" * 1000)

        assert job.status == JobStatus.FAILED
        assert len(job.error) == 500
        assert job.updated_at is not None
        assert load_job(store, JOB_ID).status == JobStatus.FAILED

    def test_set_status_keeps_terminal_status(self, store):
        save_job(store, JobMetadata(job_id=JOB_ID, user_id="u1", created_at=datetime(2025, 1, 1)))
        set_status(store, JOB_ID, JobStatus.COMPLETE)

        job = set_status(store, JOB_ID, JobStatus.SYNTHESIZING)

        assert job.status == JobStatus.COMPLETE
        assert load_job(store, JOB_ID).status == JobStatus.COMPLETE
        assert set_status(store, JOB_ID, JobStatus.FAILED, error="late").status == JobStatus.COMPLETE

    def test_set_status_without_metadata_writes_nothing(self, store):
        assert set_status(store, JOB_ID, JobStatus.FETCHING) is None
        assert store.data == {}

    def test_require_raises_for_missing_artifact(self, store):
        with pytest.raises(MissingArtifactError) as exc:
            require(store, JOB_ID, "script")
        assert exc.value.artifact == "script"

    def test_done_markers(self, store):
        assert not is_done(store, JOB_ID, "audio_generator")
        mark_done(store, JOB_ID, "audio_generator")
        assert is_done(store, JOB_ID, "audio_generator")
        clear_done(store, JOB_ID, "audio_generator")
        assert not is_done(store, JOB_ID, "audio_generator")

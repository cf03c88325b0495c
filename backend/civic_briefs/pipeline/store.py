from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

import redis

from ..core.config import get_settings
from ..schemas.jobs import TERMINAL_STATUSES, JobMetadata, JobStatus
from .errors import MissingArtifactError

logger = logging.getLogger(__name__)

METADATA = "metadata"
BILLS = "bills"
NEWS = "news"
SCRIPT = "script"
DIGEST = "digest"
AUDIO = "audio"
TRANSCRIPT = "transcript"


def job_key(job_id: str, artifact: str) -> str:
    return f"job:{job_id}:{artifact}"


class JobStore(Protocol):
    """Shared key-value store used for stage-to-stage hand-off."""

    def put(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> str | None: ...

    def delete(self, key: str) -> None: ...


class RedisJobStore:
    """
    JobStore backed by Redis.

    Every write carries a TTL, so artifacts of an abandoned job expire.
    Redis errors propagate; the calling stage turns them into a retry.
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client or redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.JOB_ARTIFACT_TTL_SECONDS

    def put(self, key: str, value: str) -> None:
        if self._ttl:
            self._client.set(key, value, ex=self._ttl)
        else:
            self._client.set(key, value)

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def delete(self, key: str) -> None:
        self._client.delete(key)


def require(store: JobStore, job_id: str, artifact: str) -> str:
    value = store.get(job_key(job_id, artifact))
    if value is None:
        raise MissingArtifactError(job_id, artifact)
    return value


def load_job(store: JobStore, job_id: str) -> JobMetadata | None:
    raw = store.get(job_key(job_id, METADATA))
    if raw is None:
        return None
    return JobMetadata.model_validate_json(raw)


def save_job(store: JobStore, job: JobMetadata) -> None:
    store.put(job_key(job.job_id, METADATA), job.model_dump_json(by_alias=True))


def set_status(
    store: JobStore,
    job_id: str,
    status: JobStatus,
    error: str | None = None,
) -> JobMetadata | None:
    """
    Record the job's current stage on its metadata blob.

    Returns the updated metadata, or None when the job has no metadata
    (expired, or already cleaned up) in which case nothing is written.
    A job in a terminal status keeps it; the stored metadata is returned as is.
    """
    job = load_job(store, job_id)
    if job is None:
        logger.warning(
            "No metadata to update for job",
            extra={"job_id": job_id, "step": f"status:{status.value}"},
        )
        return None
    if job.status in TERMINAL_STATUSES and status != job.status:
        logger.warning(
            "Job already %s, not moving it to %s",
            job.status.value,
            status.value,
            extra={"job_id": job_id, "step": f"status:{status.value}"},
        )
        return job
    job.status = status
    job.updated_at = datetime.utcnow()
    if error is not None:
        job.error = error[:500]
    save_job(store, job)
    return job


def _marker_key(job_id: str, stage: str) -> str:
    return job_key(job_id, f"done:{stage}")


def mark_done(store: JobStore, job_id: str, stage: str) -> None:
    store.put(_marker_key(job_id, stage), "completed")


def is_done(store: JobStore, job_id: str, stage: str) -> bool:
    return store.get(_marker_key(job_id, stage)) == "completed"


def clear_done(store: JobStore, job_id: str, stage: str) -> None:
    store.delete(_marker_key(job_id, stage))

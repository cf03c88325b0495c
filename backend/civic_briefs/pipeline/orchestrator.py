from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime
from typing import Any, Callable

from ..core.config import get_settings
from ..schemas.jobs import BriefJobRequest, DataFetchMessage, JobMetadata, JobStatus
from .base import Stage
from .queues import OutboundQueue
from .store import JobStore, is_done, load_job, mark_done, save_job

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def new_job_id(now_ms: int | None = None) -> str:
    """`brief-<epoch millis>-<8 alphanumerics>`; unique enough for one job per user per day."""
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(8))
    return f"brief-{ms}-{suffix}"


class Orchestrator(Stage):
    """
    Turns a brief request into a job: mints the id, stores the metadata,
    and hands the minimal routing fields to the data fetcher.
    """

    name = "orchestrator"

    def __init__(
        self,
        store: JobStore,
        data_queue: OutboundQueue,
        brief_exists_today: Callable[[str], bool] | None = None,
        retry_delay: int | None = None,
    ) -> None:
        super().__init__(store)
        self.data_queue = data_queue
        self.brief_exists_today = brief_exists_today
        self.retry_delay = (
            retry_delay if retry_delay is not None else get_settings().ORCHESTRATOR_RETRY_DELAY_SECONDS
        )

    def handle(self, body: dict[str, Any]) -> None:
        request = BriefJobRequest.model_validate(body)

        job_id = request.job_id
        if not job_id:
            job_id = new_job_id()
            # Redelivery of this message must land on the same job record
            body["jobId"] = job_id
        log_extra = {"job_id": job_id, "user_id": request.user_id, "stage": self.name}

        if is_done(self.store, job_id, self.name):
            logger.info("Job already handed to data fetcher", extra={**log_extra, "step": "idempotent"})
            return

        existing = load_job(self.store, job_id)
        if existing is not None and existing.status != JobStatus.PENDING:
            logger.info("Job already under way", extra={**log_extra, "step": "idempotent"})
            return

        skip = (
            existing is None
            and not request.force_regenerate
            and self.brief_exists_today is not None
            and self.brief_exists_today(request.user_id)
        )
        if skip:
            logger.info("Brief already generated today, skipping", extra={**log_extra, "step": "skip"})
        else:
            logger.info(
                "Starting brief generation for %s (%s)",
                request.user_email,
                ", ".join(request.policy_interests),
                extra={**log_extra, "step": "start"},
            )

        metadata = JobMetadata(
            job_id=job_id,
            user_id=request.user_id,
            user_email=request.user_email,
            user_name=request.user_name,
            state=request.state,
            district=request.district,
            policy_interests=request.policy_interests,
            force_regenerate=request.force_regenerate,
            created_at=existing.created_at if existing else datetime.utcnow(),
            status=JobStatus.SKIPPED if skip else JobStatus.PENDING,
        )
        # Skipped jobs get a terminal record as well
        save_job(self.store, metadata)
        if skip:
            return

        self.data_queue.send(
            DataFetchMessage(
                job_id=job_id,
                user_id=request.user_id,
                policy_interests=request.policy_interests,
                state=request.state,
                district=request.district,
            ).to_wire(),
            content_type="json",
        )
        mark_done(self.store, job_id, self.name)
        logger.info("Job handed to data fetcher", extra={**log_extra, "step": "forwarded"})

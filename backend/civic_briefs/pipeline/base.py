from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any

from ..schemas.jobs import TERMINAL_STATUSES, JobStatus
from .queues import Message
from .store import JobStore, load_job, set_status

logger = logging.getLogger(__name__)


class Stage(ABC):
    """
    One queue-triggered unit of pipeline work.

    A stage either finishes everything (`handle` returns, message acked) or
    asks for the whole message to be redelivered after `retry_delay` seconds.
    There is no partial success within a stage.

    Messages for a job that already reached a terminal status (a duplicate
    delivery arriving after the uploader finished, say) are acked untouched.
    """

    name: str
    retry_delay: int

    def __init__(self, store: JobStore) -> None:
        self.store = store
        self.last_error: str | None = None

    @abstractmethod
    def handle(self, body: dict[str, Any]) -> None:
        ...

    def is_finished(self, job_id: str | None) -> bool:
        if not job_id:
            return False
        job = load_job(self.store, job_id)
        return job is not None and job.status in TERMINAL_STATUSES

    def process(self, message: Message) -> None:
        job_id = message.body.get("jobId")
        try:
            if self.is_finished(job_id):
                logger.info(
                    "Job already finished, ignoring message",
                    extra={"job_id": job_id, "stage": self.name, "step": "terminal"},
                )
            else:
                self.handle(message.body)
        except Exception as e:
            self.last_error = str(e) or e.__class__.__name__
            logger.exception(
                "Stage failed, scheduling retry",
                extra={
                    "job_id": message.body.get("jobId"),
                    "stage": self.name,
                    "step": "retry",
                },
            )
            message.retry(delay_seconds=self.retry_delay)
            return
        message.ack()

    def on_exhausted(self, body: dict[str, Any]) -> None:
        """Called once redelivery has been given up on for this message."""
        job_id = body.get("jobId")
        error = f"{self.name}: {self.last_error or 'unknown error'}"
        if self.is_finished(job_id):
            logger.warning(
                "Giving up on message for a finished job: %s",
                error,
                extra={"job_id": job_id, "stage": self.name, "step": "dead_letter"},
            )
            return
        if job_id:
            set_status(self.store, job_id, JobStatus.FAILED, error=error)
        logger.error(
            "Giving up on message after repeated failures: %s",
            error,
            extra={"job_id": job_id, "stage": self.name, "step": "dead_letter"},
        )

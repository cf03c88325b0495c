from __future__ import annotations

import logging
from typing import Any, Protocol

from ..core.celery_app import celery_app

logger = logging.getLogger(__name__)

# Celery task names per pipeline queue, in pipeline order
BRIEF_TASK = "civic_briefs.pipeline.tasks.orchestrate_brief"
DATA_TASK = "civic_briefs.pipeline.tasks.fetch_brief_data"
SCRIPT_TASK = "civic_briefs.pipeline.tasks.generate_brief_script"
AUDIO_TASK = "civic_briefs.pipeline.tasks.generate_brief_audio"
UPLOAD_TASK = "civic_briefs.pipeline.tasks.upload_brief"


class OutboundQueue(Protocol):
    def send(self, payload: dict[str, Any], content_type: str = "json") -> None: ...


class Message(Protocol):
    """An inbound queue message as seen by a stage."""

    body: dict[str, Any]

    def ack(self) -> None: ...

    def retry(self, delay_seconds: int) -> None: ...


class CeleryQueue:
    """Send a JSON payload to the Celery task that consumes a pipeline queue."""

    def __init__(self, task_name: str, queue: str) -> None:
        self.task_name = task_name
        self.queue = queue

    def send(self, payload: dict[str, Any], content_type: str = "json") -> None:
        if content_type != "json":
            raise ValueError(f"Unsupported content type: {content_type}")
        celery_app.send_task(self.task_name, args=[payload], queue=self.queue)


def brief_queue() -> CeleryQueue:
    return CeleryQueue(BRIEF_TASK, "brief")


def data_queue() -> CeleryQueue:
    return CeleryQueue(DATA_TASK, "data")


def script_queue() -> CeleryQueue:
    return CeleryQueue(SCRIPT_TASK, "script")


def audio_queue() -> CeleryQueue:
    return CeleryQueue(AUDIO_TASK, "audio")


def upload_queue() -> CeleryQueue:
    return CeleryQueue(UPLOAD_TASK, "upload")


class QueueMessage:
    """
    Message handed to a stage; records whether the stage acked or asked for a retry.

    The stage may update ``body`` before retrying (the orchestrator stores
    the job id there) and the retried delivery carries the updated body.
    """

    def __init__(self, body: dict[str, Any], attempt: int = 0) -> None:
        self.body = dict(body)
        self.attempt = attempt
        self.acked = False
        self.retry_delay: int | None = None

    def ack(self) -> None:
        self.acked = True
        self.retry_delay = None

    def retry(self, delay_seconds: int) -> None:
        self.acked = False
        self.retry_delay = delay_seconds

    @property
    def wants_retry(self) -> bool:
        return self.retry_delay is not None

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict

from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..core.db import SessionLocal
from ..services.briefs import has_brief_today
from ..services.search import BraveSearchClient
from ..services.speech import ElevenLabsClient
from ..services.storage import AudioStorage
from .audio_generator import AudioGenerator
from .base import Stage
from .data_fetcher import DataFetcher
from .orchestrator import Orchestrator
from .queues import (
    QueueMessage,
    audio_queue,
    brief_queue,
    data_queue,
    script_queue,
    upload_queue,
)
from .scheduler import DailyBriefScheduler
from .script_generator import ScriptGenerator
from .store import RedisJobStore
from .uploader import Uploader

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_job_store() -> RedisJobStore:
    return RedisJobStore()


def run_stage(task, stage: Stage, body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deliver one queue message to a stage and apply its outcome.

    - ack: the Celery task returns normally and the message is done.
    - retry: the (possibly updated) body is re-queued after the stage's delay.
    - retry with no redeliveries left: the job is marked failed and dropped.
    """
    settings = get_settings()
    retries = task.request.retries or 0
    message = QueueMessage(body, attempt=retries)

    stage.process(message)

    if not message.wants_retry:
        return {"status": "acked", "jobId": message.body.get("jobId")}

    if retries >= settings.STAGE_MAX_RETRIES:
        try:
            stage.on_exhausted(message.body)
        except Exception:
            logger.exception(
                "Failed to record job failure",
                extra={"job_id": message.body.get("jobId"), "stage": stage.name, "step": "dead_letter"},
            )
        return {"status": "failed", "jobId": message.body.get("jobId")}

    raise task.retry(
        args=[message.body],
        countdown=message.retry_delay,
        max_retries=settings.STAGE_MAX_RETRIES,
    )


def _brief_exists_today(user_id: str) -> bool:
    db = SessionLocal()
    try:
        return has_brief_today(db, user_id)
    finally:
        db.close()


@celery_app.task(name="civic_briefs.pipeline.tasks.schedule_daily_briefs")
def schedule_daily_briefs() -> Dict[str, int]:
    return DailyBriefScheduler(SessionLocal, brief_queue()).run()


@celery_app.task(name="civic_briefs.pipeline.tasks.orchestrate_brief", bind=True, queue="brief")
def orchestrate_brief(self, body: Dict[str, Any]):
    stage = Orchestrator(get_job_store(), data_queue(), brief_exists_today=_brief_exists_today)
    return run_stage(self, stage, body)


@celery_app.task(name="civic_briefs.pipeline.tasks.fetch_brief_data", bind=True, queue="data")
def fetch_brief_data(self, body: Dict[str, Any]):
    with BraveSearchClient() as search_client:
        stage = DataFetcher(get_job_store(), script_queue(), SessionLocal, search_client)
        return run_stage(self, stage, body)


@celery_app.task(name="civic_briefs.pipeline.tasks.generate_brief_script", bind=True, queue="script")
def generate_brief_script(self, body: Dict[str, Any]):
    stage = ScriptGenerator(get_job_store(), audio_queue())
    return run_stage(self, stage, body)


@celery_app.task(name="civic_briefs.pipeline.tasks.generate_brief_audio", bind=True, queue="audio")
def generate_brief_audio(self, body: Dict[str, Any]):
    with ElevenLabsClient() as speech_client:
        stage = AudioGenerator(get_job_store(), upload_queue(), speech_client)
        return run_stage(self, stage, body)


@celery_app.task(name="civic_briefs.pipeline.tasks.upload_brief", bind=True, queue="upload")
def upload_brief(self, body: Dict[str, Any]):
    stage = Uploader(get_job_store(), SessionLocal, AudioStorage())
    return run_stage(self, stage, body)

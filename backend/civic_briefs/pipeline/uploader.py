from __future__ import annotations

import base64
import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..schemas.jobs import BriefDigest, JobStatus, UploadMessage
from ..services.briefs import save_brief
from ..services.storage import AudioStorage
from .audio_generator import AudioGenerator
from .base import Stage
from .errors import MissingArtifactError
from .orchestrator import Orchestrator
from .script_generator import ScriptGenerator
from .store import (
    AUDIO,
    DIGEST,
    METADATA,
    TRANSCRIPT,
    JobStore,
    clear_done,
    job_key,
    load_job,
    require,
    set_status,
)

logger = logging.getLogger(__name__)

# 192 kbps MP3
AUDIO_BYTES_PER_SECOND = 24_000


def estimate_duration_seconds(audio: bytes) -> int:
    return max(1, round(len(audio) / AUDIO_BYTES_PER_SECOND))


def audio_object_key(user_id: str, job_id: str, brief_type: str = "daily") -> str:
    return f"podcasts/{user_id}/{brief_type}/{job_id}.mp3"


class Uploader(Stage):
    """Publishes the job's audio and records the finished brief."""

    name = "uploader"

    def __init__(
        self,
        store: JobStore,
        session_factory: Callable[[], Session],
        storage: AudioStorage,
        retry_delay: int | None = None,
    ) -> None:
        super().__init__(store)
        self.session_factory = session_factory
        self.storage = storage
        self.retry_delay = (
            retry_delay if retry_delay is not None else get_settings().UPLOAD_RETRY_DELAY_SECONDS
        )

    def handle(self, body: dict[str, Any]) -> None:
        msg = UploadMessage.model_validate(body)
        log_extra = {"job_id": msg.job_id, "stage": self.name}

        job = load_job(self.store, msg.job_id)
        if job is None:
            raise MissingArtifactError(msg.job_id, METADATA)
        if job.status == JobStatus.COMPLETE:
            logger.info("Brief already finalized", extra={**log_extra, "step": "idempotent"})
            return

        set_status(self.store, msg.job_id, JobStatus.UPLOADING)

        audio = base64.b64decode(require(self.store, msg.job_id, AUDIO))
        transcript = self.store.get(job_key(msg.job_id, TRANSCRIPT))
        raw_digest = self.store.get(job_key(msg.job_id, DIGEST))
        digest = BriefDigest.model_validate_json(raw_digest) if raw_digest else None
        logger.info("Loaded audio (%dKB)", round(len(audio) / 1024), extra={**log_extra, "step": "load"})

        audio_url = self.storage.upload_audio(
            audio_object_key(job.user_id, job.job_id),
            audio,
            metadata={
                "userId": job.user_id,
                "briefId": job.job_id,
                "generatedAt": job.created_at.isoformat(),
            },
        )
        logger.info("Uploaded audio to %s", audio_url, extra={**log_extra, "step": "upload"})

        db = self.session_factory()
        try:
            save_brief(
                db,
                brief_id=job.job_id,
                user_id=job.user_id,
                audio_url=audio_url,
                duration=estimate_duration_seconds(audio),
                transcript=transcript,
                written_digest=digest.written_digest if digest else None,
                bills_covered=digest.bills_covered if digest else [],
                policy_areas=job.policy_interests,
            )
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        set_status(self.store, msg.job_id, JobStatus.COMPLETE)

        for artifact in (AUDIO, TRANSCRIPT, DIGEST):
            self.store.delete(job_key(msg.job_id, artifact))
        clear_done(self.store, msg.job_id, Orchestrator.name)
        clear_done(self.store, msg.job_id, ScriptGenerator.name)
        clear_done(self.store, msg.job_id, AudioGenerator.name)

        logger.info("Brief generation completed", extra={**log_extra, "step": "completed"})

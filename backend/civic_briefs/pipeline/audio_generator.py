from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List

from ..core.config import get_settings
from ..schemas.jobs import AudioMessage, DialogueLine, JobStatus, UploadMessage
from ..services.speech import ElevenLabsClient
from .base import Stage
from .queues import OutboundQueue
from .store import (
    AUDIO,
    SCRIPT,
    TRANSCRIPT,
    JobStore,
    is_done,
    job_key,
    mark_done,
    require,
    set_status,
)

logger = logging.getLogger(__name__)

PRIMARY_HOST = "sarah"
SECONDARY_HOST = "james"


def default_voice_ids() -> Dict[str, str | None]:
    settings = get_settings()
    return {
        PRIMARY_HOST: settings.ELEVENLABS_SARAH_VOICE_ID,
        SECONDARY_HOST: settings.ELEVENLABS_JAMES_VOICE_ID,
    }


def build_transcript(lines: List[DialogueLine]) -> str:
    return "\n".join(f"{line.host.title()}: {line.text}" for line in lines)


class AudioGenerator(Stage):
    """
    Synthesizes the job's dialogue script into a single audio file.

    Lines tagged "sarah" use Sarah's voice; every other tag uses James's.
    """

    name = "audio_generator"

    def __init__(
        self,
        store: JobStore,
        upload_queue: OutboundQueue,
        speech_client: ElevenLabsClient,
        voice_ids: Dict[str, str | None] | None = None,
        retry_delay: int | None = None,
    ) -> None:
        super().__init__(store)
        self.upload_queue = upload_queue
        self.speech_client = speech_client
        self.voice_ids = voice_ids if voice_ids is not None else default_voice_ids()
        self.retry_delay = (
            retry_delay if retry_delay is not None else get_settings().AUDIO_RETRY_DELAY_SECONDS
        )

    def voice_for(self, host: str) -> str:
        key = PRIMARY_HOST if host == PRIMARY_HOST else SECONDARY_HOST
        voice_id = self.voice_ids.get(key)
        if not voice_id:
            raise RuntimeError(f"No voice id configured for host '{key}'")
        return voice_id

    def build_inputs(self, lines: List[DialogueLine]) -> List[Dict[str, str]]:
        return [{"text": line.text, "voice_id": self.voice_for(line.host)} for line in lines]

    def handle(self, body: dict[str, Any]) -> None:
        msg = AudioMessage.model_validate(body)
        log_extra = {"job_id": msg.job_id, "stage": self.name}

        set_status(self.store, msg.job_id, JobStatus.SYNTHESIZING)

        # Redelivered after the audio was stored
        already_synthesized = (
            is_done(self.store, msg.job_id, self.name)
            and self.store.get(job_key(msg.job_id, AUDIO)) is not None
        )
        if already_synthesized:
            logger.info("Audio already generated, skipping synthesis", extra={**log_extra, "step": "idempotent"})
        else:
            raw_script = require(self.store, msg.job_id, SCRIPT)
            lines = [DialogueLine.model_validate(item) for item in json.loads(raw_script)]
            logger.info("Loaded script with %d dialogue turns", len(lines), extra={**log_extra, "step": "load"})

            audio = self.speech_client.text_to_dialogue(self.build_inputs(lines))
            logger.info("Generated audio (%dKB)", round(len(audio) / 1024), extra={**log_extra, "step": "tts"})

            # Job store values are text
            self.store.put(job_key(msg.job_id, AUDIO), base64.b64encode(audio).decode("ascii"))
            self.store.put(job_key(msg.job_id, TRANSCRIPT), build_transcript(lines))
            mark_done(self.store, msg.job_id, self.name)

        self.store.delete(job_key(msg.job_id, SCRIPT))

        self.upload_queue.send(UploadMessage(job_id=msg.job_id).to_wire(), content_type="json")
        logger.info("Job handed to uploader", extra={**log_extra, "step": "forwarded"})

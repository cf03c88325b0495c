# backend/civic_briefs/services/speech.py
from __future__ import annotations

import logging
from typing import Dict, List

import httpx

from ..core.config import get_settings
from ..pipeline.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class ElevenLabsClient:
    """
    Client for ElevenLabs' text-to-dialogue endpoint.

    The whole dialogue goes out in one request and comes back as a single
    audio stream; there is no per-line synthesis or partial result.
    """

    name = "elevenlabs"

    def __init__(
        self,
        api_key: str | None = None,
        model_id: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.ELEVENLABS_API_KEY
        self.model_id = model_id or settings.ELEVENLABS_MODEL_ID
        self.output_format = settings.ELEVENLABS_OUTPUT_FORMAT
        self.url = f"{settings.ELEVENLABS_BASE_URL}/text-to-dialogue"
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=settings.ELEVENLABS_TIMEOUT_SECONDS
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise RuntimeError("ELEVENLABS_API_KEY is not configured.")
        return {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

    def text_to_dialogue(self, inputs: List[Dict[str, str]]) -> bytes:
        """
        inputs: [{"text": ..., "voice_id": ...}, ...] in speaking order.
        """
        resp = self._client.post(
            self.url,
            params={"output_format": self.output_format},
            headers=self._headers(),
            json={"inputs": inputs, "model_id": self.model_id},
        )
        if resp.status_code < 200 or resp.status_code >= 300:
            raise ExternalServiceError("ElevenLabs", resp.status_code, resp.text)
        return resp.content

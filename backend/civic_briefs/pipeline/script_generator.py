from __future__ import annotations

import json
import logging
import re
import textwrap
from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from ..core.config import get_settings
from ..schemas.jobs import AudioMessage, BriefDigest, DialogueLine, JobStatus, ScriptMessage
from ..services.llm import complete_text
from .base import Stage
from .errors import ScriptParseError
from .queues import OutboundQueue
from .store import (
    BILLS,
    DIGEST,
    NEWS,
    SCRIPT,
    JobStore,
    is_done,
    job_key,
    mark_done,
    require,
    set_status,
)

logger = logging.getLogger(__name__)

MAX_BILL_SUMMARY_CHARS = 300
MAX_NEWS_IN_PROMPT = 3

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def _bill_summary(bill: Dict[str, Any]) -> str:
    text = bill.get("summary") or bill.get("plain_english_summary") or "No summary"
    return text[:MAX_BILL_SUMMARY_CHARS]


def build_script_prompt(bills: List[Dict[str, Any]], news: List[Dict[str, Any]]) -> str:
    bill_lines = "\n".join(
        f"{i + 1}. {b.get('title')} - {_bill_summary(b)}" for i, b in enumerate(bills)
    ) or "(no bills with recent activity)"
    news_lines = "\n".join(
        f"{i + 1}. {a.get('title')}" for i, a in enumerate(news[:MAX_NEWS_IN_PROMPT])
    ) or "(no recent news)"

    return textwrap.dedent(
        """
        You are a podcast script writer for a daily civic news brief.
        Create natural dialogue between Sarah and James covering these bills and news.

        Guidelines:
        - NPR-quality conversational tone
        - Plain language, no jargon
        - 15-20 dialogue lines (5-7 minutes of audio)
        - Alternate speakers naturally
        - Include intro, bill discussion, outro

        Return JSON array:
        [
          {{"host": "sarah", "text": "..."}},
          {{"host": "james", "text": "..."}}
        ]

        Create dialogue covering:

        BILLS:
        {bills}

        NEWS:
        {news}

        Generate the complete dialogue as JSON array.
        """
    ).format(bills=bill_lines, news=news_lines).strip()


def parse_dialogue(response_text: str) -> List[DialogueLine]:
    """Pull the first JSON array out of an LLM reply and validate each line."""
    match = _JSON_ARRAY.search(response_text or "")
    if not match:
        raise ScriptParseError("Failed to extract JSON from LLM response")
    try:
        raw = json.loads(match.group(0))
        lines = [DialogueLine.model_validate(item) for item in raw]
    except (json.JSONDecodeError, TypeError, ValidationError) as e:
        raise ScriptParseError(f"LLM response is not a valid dialogue: {e}") from e
    if not lines:
        raise ScriptParseError("LLM returned an empty dialogue")
    return lines


def build_digest(bills: List[Dict[str, Any]], news: List[Dict[str, Any]]) -> BriefDigest:
    sections: List[str] = []
    if bills:
        sections.append("Bills to watch:")
        for b in bills:
            label = f"{b['bill_number']}: " if b.get("bill_number") else ""
            sections.append(f"- {label}{b.get('title')}: {_bill_summary(b)}")
    if news:
        sections.append("In the news:")
        sections.extend(f"- {a.get('title')} ({a.get('url')})" for a in news)

    return BriefDigest(
        written_digest="\n".join(sections) or "No new legislative activity for your interests today.",
        bills_covered=[
            {"id": b.get("id"), "billNumber": b.get("bill_number"), "title": b.get("title")}
            for b in bills
        ],
    )


class ScriptGenerator(Stage):
    """Writes the two-host dialogue script for a job from its bills and news."""

    name = "script_generator"

    def __init__(
        self,
        store: JobStore,
        audio_queue: OutboundQueue,
        complete: Callable[[str], str] = complete_text,
        retry_delay: int | None = None,
    ) -> None:
        super().__init__(store)
        self.audio_queue = audio_queue
        self.complete = complete
        self.retry_delay = (
            retry_delay if retry_delay is not None else get_settings().SCRIPT_RETRY_DELAY_SECONDS
        )

    def handle(self, body: dict[str, Any]) -> None:
        msg = ScriptMessage.model_validate(body)
        log_extra = {"job_id": msg.job_id, "user_id": msg.user_id, "stage": self.name}

        set_status(self.store, msg.job_id, JobStatus.SCRIPTING)

        # Redelivered after the script was stored
        already_written = (
            is_done(self.store, msg.job_id, self.name)
            and self.store.get(job_key(msg.job_id, SCRIPT)) is not None
        )
        if already_written:
            logger.info("Script already generated, skipping LLM call", extra={**log_extra, "step": "idempotent"})
        else:
            bills = json.loads(require(self.store, msg.job_id, BILLS))
            news = json.loads(require(self.store, msg.job_id, NEWS))
            logger.info(
                "Loaded %d bills, %d news articles",
                len(bills),
                len(news),
                extra={**log_extra, "step": "load"},
            )

            script = parse_dialogue(self.complete(build_script_prompt(bills, news)))
            logger.info("Generated script with %d dialogue turns", len(script), extra={**log_extra, "step": "llm"})

            self.store.put(
                job_key(msg.job_id, SCRIPT),
                json.dumps([line.model_dump() for line in script]),
            )
            self.store.put(
                job_key(msg.job_id, DIGEST),
                build_digest(bills, news).model_dump_json(by_alias=True),
            )
            mark_done(self.store, msg.job_id, self.name)

        self.store.delete(job_key(msg.job_id, BILLS))
        self.store.delete(job_key(msg.job_id, NEWS))

        self.audio_queue.send(AudioMessage(job_id=msg.job_id).to_wire(), content_type="json")
        logger.info("Job handed to audio generator", extra={**log_extra, "step": "forwarded"})

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, List, Sequence

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..schemas.jobs import BriefJobRequest
from ..services.briefs import list_users_with_email
from .orchestrator import new_job_id
from .queues import OutboundQueue

logger = logging.getLogger(__name__)


def parse_interests(raw: Any, defaults: Sequence[str]) -> List[str]:
    """
    Decode a user's stored interests (a JSON string list).

    Null, malformed JSON, an empty list, or anything that is not a list of
    strings falls back to `defaults`.
    """
    if raw is None or raw == "":
        return list(defaults)

    value = raw
    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return list(defaults)

    if not isinstance(value, list):
        return list(defaults)

    interests = [str(v).strip() for v in value if isinstance(v, str) and v.strip()]
    if not interests or len(interests) != len(value):
        return list(defaults)
    return interests


class DailyBriefScheduler:
    """Fans out one brief request per user with an email address."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        brief_queue: OutboundQueue,
        default_interests: Sequence[str] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.brief_queue = brief_queue
        self.default_interests = list(
            default_interests if default_interests is not None else get_settings().DEFAULT_POLICY_INTERESTS
        )

    def run(self) -> Dict[str, int]:
        start = time.monotonic()

        # A failing user query aborts the run; the next cron tick starts over.
        db = self.session_factory()
        try:
            users = list_users_with_email(db)
            rows = [
                {
                    "id": u.id,
                    "email": u.email,
                    "name": u.name,
                    "state": u.state,
                    "district": u.district,
                    "interests": u.interests,
                }
                for u in users
            ]
        finally:
            db.close()

        logger.info("Found %d users for daily briefs", len(rows), extra={"step": "users"})

        queued = 0
        failed = 0
        for row in rows:
            try:
                # Minted here so a broker redelivery of this message reuses the same job
                request = BriefJobRequest(
                    job_id=new_job_id(),
                    user_id=row["id"],
                    user_email=row["email"] or "unknown",
                    user_name=row["name"],
                    state=row["state"],
                    district=row["district"],
                    policy_interests=parse_interests(row["interests"], self.default_interests),
                    force_regenerate=False,
                )
                self.brief_queue.send(request.to_wire(), content_type="json")
                queued += 1
            except Exception:
                failed += 1
                logger.exception(
                    "Failed to queue brief for user",
                    extra={"user_id": row["id"], "step": "enqueue"},
                )

        summary = {"queued": queued, "failed": failed, "total": len(rows)}
        logger.info(
            "Daily scheduling completed in %.1fs",
            time.monotonic() - start,
            extra={"step": "summary", **summary},
        )
        return summary

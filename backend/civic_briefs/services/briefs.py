from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..models.bill import Bill
from ..models.brief import Brief
from ..models.user import User

logger = logging.getLogger(__name__)


def list_users_with_email(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.email.isnot(None))
        .order_by(User.created_at.desc())
        .all()
    )


def _bill_to_dict(bill: Bill) -> Dict[str, Any]:
    return {
        "id": bill.id,
        "bill_number": bill.bill_number,
        "title": bill.title,
        "summary": bill.summary,
        "plain_english_summary": bill.plain_english_summary,
        "issue_categories": bill.issue_categories,
        "impact_score": bill.impact_score,
        "latest_action_date": bill.latest_action_date.isoformat() if bill.latest_action_date else None,
    }


def find_recent_bills(
    db: Session,
    interests: Sequence[str],
    *,
    limit: int,
    window_days: int,
    now: datetime | None = None,
) -> List[Dict[str, Any]]:
    """
    Highest-impact bills tagged with any of the user's interests and acted on recently.

    Interests are bound parameters (escaped LIKE), matched case-insensitively
    against the stored category tags.
    """
    terms = [i.strip().lower() for i in interests if i and i.strip()]
    if not terms:
        return []

    cutoff = (now or datetime.utcnow()) - timedelta(days=window_days)
    categories = func.lower(Bill.issue_categories)

    bills = (
        db.query(Bill)
        .filter(or_(*[categories.contains(t, autoescape=True) for t in terms]))
        .filter(Bill.latest_action_date >= cutoff)
        .order_by(Bill.impact_score.desc().nulls_last(), Bill.id)
        .limit(limit)
        .all()
    )
    return [_bill_to_dict(b) for b in bills]


def find_brief_today(
    db: Session, user_id: str, brief_type: str = "daily", now: datetime | None = None
) -> Brief | None:
    """Latest brief of `brief_type` generated for the user since midnight UTC."""
    start_of_day = (now or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
    return (
        db.query(Brief)
        .filter(
            Brief.user_id == user_id,
            Brief.type == brief_type,
            Brief.generated_at >= start_of_day,
        )
        .order_by(Brief.generated_at.desc())
        .first()
    )


def has_brief_today(db: Session, user_id: str, brief_type: str = "daily", now: datetime | None = None) -> bool:
    return find_brief_today(db, user_id, brief_type, now) is not None


def save_brief(
    db: Session,
    *,
    brief_id: str,
    user_id: str,
    audio_url: str,
    duration: int,
    transcript: str | None,
    written_digest: str | None,
    bills_covered: list | None,
    policy_areas: list | None,
    brief_type: str = "daily",
) -> Brief:
    """Insert or overwrite the brief row for a job (same id on redelivery)."""
    now = datetime.utcnow()
    brief = Brief(
        id=brief_id,
        user_id=user_id,
        type=brief_type,
        audio_url=audio_url,
        duration=duration,
        transcript=transcript,
        written_digest=written_digest,
        bills_covered=bills_covered,
        policy_areas=policy_areas,
        generated_at=now,
        created_at=now,
    )
    brief = db.merge(brief)
    db.commit()
    return brief


def list_briefs_for_user(db: Session, user_id: str, limit: int = 20, offset: int = 0) -> List[Brief]:
    return (
        db.query(Brief)
        .filter(Brief.user_id == user_id)
        .order_by(Brief.generated_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def delete_briefs_matching(db: Session, pattern: str) -> int:
    """Administrative cleanup: delete briefs whose id matches a SQL LIKE pattern."""
    try:
        deleted = (
            db.query(Brief)
            .filter(Brief.id.like(pattern))
            .delete(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Error deleting briefs", extra={"step": "admin_delete"})
        raise

    logger.info(
        "Deleted briefs by pattern",
        extra={"step": "admin_delete", "total": deleted},
    )
    return deleted

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..models.brief import Brief
from ..models.user import User
from ..pipeline.orchestrator import new_job_id
from ..pipeline.queues import OutboundQueue, brief_queue
from ..pipeline.scheduler import parse_interests
from ..pipeline.store import JobStore, load_job
from ..pipeline.tasks import get_job_store
from ..schemas.briefs import (
    BriefJobStatusOut,
    BriefOut,
    GenerateBriefRequest,
    GenerateBriefResponse,
)
from ..schemas.jobs import STATUS_PROGRESS, BriefJobRequest, JobStatus
from ..services.briefs import find_brief_today, list_briefs_for_user

router = APIRouter(tags=["briefs"])

settings = get_settings()
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
logger = logging.getLogger(__name__)


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Simple header-based API key authentication.

    - In dev, if API_AUTH_KEY is not set, auth is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    expected = settings.API_AUTH_KEY

    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        raise HTTPException(status_code=401, detail="API key not configured")

    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_store() -> JobStore:
    return get_job_store()


def get_brief_queue() -> OutboundQueue:
    return brief_queue()


def _brief_result(brief: Brief) -> dict:
    return {
        "briefId": brief.id,
        "audioUrl": brief.audio_url,
        "duration": brief.duration,
        "billsCovered": brief.bills_covered or [],
    }


@router.post("/briefs/generate", response_model=GenerateBriefResponse, status_code=202)
def generate_brief(
    payload: GenerateBriefRequest,
    response: Response,
    db: Session = Depends(get_db),
    queue: OutboundQueue = Depends(get_brief_queue),
    _: None = Depends(verify_api_key),
):
    user = db.query(User).filter(User.id == payload.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if not payload.force_regenerate:
        existing = find_brief_today(db, user.id)
        if existing is not None:
            # Polling the returned id resolves from the briefs row
            response.status_code = 200
            return GenerateBriefResponse(job_id=existing.id, user_id=user.id, status=JobStatus.COMPLETE)

    # Minted here so the caller can poll status before the orchestrator runs
    job_id = new_job_id()
    request = BriefJobRequest(
        job_id=job_id,
        user_id=user.id,
        user_email=user.email or "unknown",
        user_name=user.name,
        state=user.state,
        district=user.district,
        policy_interests=parse_interests(user.interests, settings.DEFAULT_POLICY_INTERESTS),
        force_regenerate=payload.force_regenerate,
    )
    queue.send(request.to_wire(), content_type="json")

    logger.info(
        "Brief generation requested",
        extra={"job_id": job_id, "user_id": user.id, "step": "generate_brief"},
    )
    return GenerateBriefResponse(job_id=job_id, user_id=user.id)


@router.get("/briefs/status/{job_id}", response_model=BriefJobStatusOut, response_model_by_alias=True)
def get_brief_status(
    job_id: str,
    db: Session = Depends(get_db),
    store: JobStore = Depends(get_store),
    _: None = Depends(verify_api_key),
):
    job = load_job(store, job_id)
    brief = db.query(Brief).filter(Brief.id == job_id).first()
    if brief is None and job is not None and job.status == JobStatus.SKIPPED:
        brief = find_brief_today(db, job.user_id)

    if job is None and brief is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if job is None:
        # Metadata expired; the brief row is the record of completion
        return BriefJobStatusOut(
            job_id=job_id,
            status=JobStatus.COMPLETE,
            progress=STATUS_PROGRESS[JobStatus.COMPLETE],
            result=_brief_result(brief),
        )

    return BriefJobStatusOut(
        job_id=job_id,
        status=job.status,
        progress=STATUS_PROGRESS[job.status],
        error=job.error,
        updated_at=job.updated_at or job.created_at,
        result=_brief_result(brief) if brief is not None else None,
    )


@router.get("/briefs", response_model=list[BriefOut])
def list_briefs(
    user_id: str,
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    # Hard cap to avoid unbounded scans
    safe_limit = max(1, min(limit, 100))
    return list_briefs_for_user(db, user_id, limit=safe_limit, offset=max(0, offset))

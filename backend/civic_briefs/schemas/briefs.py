# backend/civic_briefs/schemas/briefs.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .jobs import JobStatus, WireModel

MAX_USER_ID_LEN = 128


class GenerateBriefRequest(WireModel):
    user_id: str
    force_regenerate: bool = False

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("userId must not be empty")
        if len(v) > MAX_USER_ID_LEN:
            raise ValueError(f"userId must be at most {MAX_USER_ID_LEN} characters")
        return v


class GenerateBriefResponse(WireModel):
    job_id: str
    user_id: str
    status: JobStatus = JobStatus.PENDING


class BriefJobStatusOut(WireModel):
    job_id: str
    status: JobStatus
    progress: int
    error: str | None = None
    updated_at: datetime | None = None
    result: dict[str, Any] | None = None


class BriefOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: str
    audio_url: str
    duration: int
    transcript: str | None = None
    written_digest: str | None = None
    bills_covered: list[Any] | None = None
    policy_areas: list[str] | None = None
    generated_at: datetime | None = None

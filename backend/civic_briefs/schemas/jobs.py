# backend/civic_briefs/schemas/jobs.py
"""
Pipeline message and job-store payloads.

All models serialize to camelCase on the wire (queue bodies and job-store
blobs) and accept either camelCase or snake_case on input.
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    SCRIPTING = "scripting"
    SYNTHESIZING = "synthesizing"
    UPLOADING = "uploading"
    COMPLETE = "complete"
    FAILED = "failed"
    # Orchestrator found a daily brief already generated for the user today
    SKIPPED = "skipped"


# No stage does further work on a job in one of these states
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETE, JobStatus.FAILED, JobStatus.SKIPPED})


# Rough progress shown by the status endpoint
STATUS_PROGRESS: dict[JobStatus, int] = {
    JobStatus.PENDING: 0,
    JobStatus.FETCHING: 15,
    JobStatus.SCRIPTING: 35,
    JobStatus.SYNTHESIZING: 60,
    JobStatus.UPLOADING: 90,
    JobStatus.COMPLETE: 100,
    JobStatus.FAILED: 100,
    JobStatus.SKIPPED: 100,
}


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BriefJobRequest(WireModel):
    """One user's request for a brief, as fanned out by the scheduler."""

    user_id: str
    user_email: str = "unknown"
    user_name: str | None = None
    state: str | None = None
    district: str | None = None
    policy_interests: list[str] = Field(default_factory=list)
    force_regenerate: bool = False
    # Set by the orchestrator before any side effect so redelivery reuses it
    job_id: str | None = None


class JobMetadata(WireModel):
    job_id: str
    user_id: str
    user_email: str = "unknown"
    user_name: str | None = None
    state: str | None = None
    district: str | None = None
    policy_interests: list[str] = Field(default_factory=list)
    force_regenerate: bool = False
    created_at: datetime
    updated_at: datetime | None = None
    status: JobStatus = JobStatus.PENDING
    error: str | None = None


class DataFetchMessage(WireModel):
    job_id: str
    user_id: str
    policy_interests: list[str] = Field(default_factory=list)
    state: str | None = None
    district: str | None = None


class ScriptMessage(WireModel):
    job_id: str
    user_id: str


class AudioMessage(WireModel):
    job_id: str


class UploadMessage(WireModel):
    job_id: str


class DialogueLine(BaseModel):
    host: str
    text: str

    @field_validator("host", mode="before")
    @classmethod
    def _normalise_host(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("text")
    @classmethod
    def _require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("dialogue line text must not be empty")
        return v


class BriefDigest(WireModel):
    """Written companion to the audio, produced alongside the script."""

    written_digest: str
    bills_covered: list[dict[str, Any]] = Field(default_factory=list)

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures raised inside a pipeline stage."""


class MissingArtifactError(PipelineError):
    def __init__(self, job_id: str, artifact: str) -> None:
        self.job_id = job_id
        self.artifact = artifact
        super().__init__(f"{artifact} not found in job store for job {job_id}")


class ExternalServiceError(PipelineError):
    def __init__(self, service: str, status_code: int, body: str = "") -> None:
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(f"{service} API error: {status_code} - {body[:500]}")


class ScriptParseError(PipelineError):
    """LLM reply did not contain a usable dialogue array."""

"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class SessionConflictErrorDetails(BaseModel):
    session_id: str
    active_job_id: str | None = None


class SessionConflictError(BaseModel):
    code: Literal["SESSION_BUSY", "JOB_ALREADY_ACTIVE"]
    message: str
    details: SessionConflictErrorDetails

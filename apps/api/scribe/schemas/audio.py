"""Audio artifact schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from scribe.schemas.job import PersistedModel


class AudioArtifact(PersistedModel):
    artifact_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    filename: str
    stored_name: str = Field(min_length=1)
    mime: str
    bytes: int = Field(ge=0)
    created_at: datetime


class AudioUploadResponse(BaseModel):
    artifact_id: str
    filename: str
    mime: str
    bytes: int
    created_at: datetime
    download_url: str

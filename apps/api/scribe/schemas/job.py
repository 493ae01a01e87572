"""Job schemas: durable ledger records, mirror records and API payloads."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LedgerStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    DELETED = "deleted"


class JobStage(str, Enum):
    UPLOAD = "upload"
    TRANSCRIBE = "transcribe"
    DRAFT = "draft"
    EXPORT = "export"


class MirrorStatus(str, Enum):
    QUEUED = "queued"
    UPLOADED = "uploaded"
    TRANSCRIBED = "transcribed"
    DRAFTED = "drafted"
    EXPORTED = "exported"
    COMPLETE = "complete"
    FAILED = "failed"


class PipelineMode(str, Enum):
    TRANSCRIBE = "transcribe"
    ANALYZE = "analyze"
    FULL = "full"


class NoteType(str, Enum):
    SOAP = "soap"
    DAP = "dap"
    BIRP = "birp"
    GIRP = "girp"
    INTAKE = "intake"
    PROGRESS = "progress"


class ArtifactKind(str, Enum):
    TRANSCRIPT = "transcript"
    DRAFT = "draft"
    EXPORT = "export"


class PersistedModel(BaseModel):
    """Base for records stored as camelCase JSON in the artifacts tree."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class JobStatusRecord(PersistedModel):
    job_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    status: LedgerStatus
    stage: JobStage
    progress: int = Field(ge=0, le=100)
    updated_at: datetime
    error_message: str | None = None


class JobIndexEntry(PersistedModel):
    job_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    created_at: datetime | None = None


class SessionOwnership(PersistedModel):
    session_id: str = Field(min_length=1)
    owner_user_id: str = Field(min_length=1)
    created_at: datetime


class JobMeta(PersistedModel):
    job_id: str
    session_id: str
    audio_artifact_id: str | None = None
    input_mode: Literal["audio", "text"] = "audio"
    mode: PipelineMode = PipelineMode.FULL
    note_type: NoteType = NoteType.SOAP
    created_at: datetime


class StatusHistoryEntry(BaseModel):
    status: MirrorStatus
    at: datetime
    progress: int


class UploadInfo(BaseModel):
    original_name: str
    stored_name: str
    bytes: int
    uploaded_at: datetime


class MirrorJob(BaseModel):
    job_id: str
    practice_id: str
    session_id: str | None = None
    status: MirrorStatus
    progress: int
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    status_history: list[StatusHistoryEntry]
    upload: UploadInfo | None = None


class CreateJobRequest(BaseModel):
    audio_artifact_id: str | None = None
    transcript_text: str | None = None
    mode: PipelineMode = PipelineMode.FULL
    note_type: NoteType = NoteType.SOAP


class CreateJobResponse(BaseModel):
    job_id: str
    session_id: str
    status_url: str


class AdvanceJobRequest(BaseModel):
    status: MirrorStatus


class JobEventsResponse(BaseModel):
    job_id: str
    events: list[StatusHistoryEntry]


class RunnerResponse(BaseModel):
    processed: int
    purged: int
    purged_sessions: int
    stale_locks_removed: int


class MirrorPurgeResponse(BaseModel):
    purged: int

"""Job service layer."""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from uuid import uuid4

from scribe.core.config import Settings
from scribe.core.logging_safety import safe_log_identifier
from scribe.errors import ApiError, InvalidPathSegmentError, not_found
from scribe.repositories.atomic_write import write_file_atomic
from scribe.repositories.audio import AudioStore
from scribe.repositories.layout import safe_path_segment
from scribe.repositories.ledger import JobLedger
from scribe.repositories.locks import SessionLock
from scribe.repositories.memory import ProgressMirror
from scribe.schemas.auth import AuthPrincipal
from scribe.schemas.job import (
    ArtifactKind,
    CreateJobRequest,
    CreateJobResponse,
    JobEventsResponse,
    JobMeta,
    JobStage,
    JobStatusRecord,
    LedgerStatus,
    MirrorJob,
    MirrorStatus,
    PipelineMode,
)
from scribe.services.pipeline import PipelineInput
from scribe.services.runner import PipelineDispatcher

logger = logging.getLogger(__name__)


def _validation_error(message: str) -> ApiError:
    return ApiError(status_code=400, code="VALIDATION_ERROR", message=message)


class JobService:
    def __init__(
        self,
        *,
        ledger: JobLedger,
        mirror: ProgressMirror,
        session_lock: SessionLock,
        audio_store: AudioStore,
        dispatcher: PipelineDispatcher,
        settings: Settings,
    ) -> None:
        self._ledger = ledger
        self._layout = ledger.layout
        self._mirror = mirror
        self._session_lock = session_lock
        self._audio_store = audio_store
        self._dispatcher = dispatcher
        self._settings = settings

    def create_job(self, *, principal: AuthPrincipal, session_id: str, request: CreateJobRequest) -> CreateJobResponse:
        try:
            safe_path_segment(session_id)
        except InvalidPathSegmentError:
            raise not_found() from None
        if self._ledger.ensure_session_ownership(session_id, principal.user_id, allow_autocreate=False) is None:
            raise not_found()

        transcript_text = (request.transcript_text or "").strip()
        audio_artifact_id = (request.audio_artifact_id or "").strip()
        text_mode = bool(transcript_text)

        if not text_mode and not audio_artifact_id:
            raise _validation_error("Provide audio_artifact_id or transcript_text.")
        if text_mode and len(transcript_text) > self._settings.max_transcript_chars:
            raise _validation_error(f"Text too long (max {self._settings.max_transcript_chars} characters).")
        if not text_mode:
            try:
                safe_path_segment(audio_artifact_id)
            except InvalidPathSegmentError:
                raise _validation_error("Invalid audio_artifact_id.") from None
            if self._audio_store.read_metadata(session_id, audio_artifact_id) is None:
                raise not_found()

        # Pasted text skips speech-to-text entirely.
        mode = PipelineMode.ANALYZE if text_mode else request.mode
        safe_session_id = safe_log_identifier(session_id, prefix="sid")

        with self._session_lock.hold(session_id) as acquired:
            if not acquired:
                raise ApiError(
                    status_code=409,
                    code="SESSION_BUSY",
                    message="Another job is being created for this session. Try again.",
                    details={"session_id": session_id},
                )

            active_job_id = self._ledger.find_active_job_for_session(session_id)
            if active_job_id is not None:
                logger.info(
                    "job.rejected_active session_id=%s active_job_id=%s",
                    safe_session_id,
                    safe_log_identifier(active_job_id, prefix="jid"),
                )
                raise ApiError(
                    status_code=409,
                    code="JOB_ALREADY_ACTIVE",
                    message="Session already has an active job.",
                    details={"session_id": session_id, "active_job_id": active_job_id},
                )

            job_id = f"job_{uuid4()}"
            now = datetime.now(UTC)
            self._ledger.write_index(job_id, session_id, created_at=now)
            self._ledger.write_status(
                JobStatusRecord(
                    job_id=job_id,
                    session_id=session_id,
                    status=LedgerStatus.QUEUED,
                    stage=JobStage.DRAFT if mode is PipelineMode.ANALYZE else JobStage.TRANSCRIBE,
                    progress=0,
                    updated_at=now,
                )
            )
            self._ledger.write_job_meta(
                JobMeta(
                    job_id=job_id,
                    session_id=session_id,
                    audio_artifact_id=None if text_mode else audio_artifact_id,
                    input_mode="text" if text_mode else "audio",
                    mode=mode,
                    note_type=request.note_type,
                    created_at=now,
                )
            )
            if text_mode:
                formatted = f"Text Summary\n\nSubmitted: {now.isoformat()}\n\n---\n\n{transcript_text}\n"
                write_file_atomic(self._layout.job_transcript_path(session_id, job_id), formatted)
                write_file_atomic(self._layout.session_transcript_path(session_id), formatted)

            self._mirror.create(principal.practice_id, session_id=session_id, job_id=job_id)

        logger.info(
            "job.created job_id=%s session_id=%s mode=%s input=%s",
            safe_log_identifier(job_id, prefix="jid"),
            safe_session_id,
            mode.value,
            "text" if text_mode else "audio",
        )
        self._dispatcher.submit(
            PipelineInput(
                session_id=session_id,
                job_id=job_id,
                artifact_id=None if text_mode else audio_artifact_id,
                mode=mode,
                note_type=request.note_type,
            )
        )
        return CreateJobResponse(job_id=job_id, session_id=session_id, status_url=f"/api/v1/jobs/{job_id}/status")

    def get_job_with_progress(self, *, principal: AuthPrincipal, job_id: str) -> MirrorJob:
        job = self._mirror.get_with_progress(job_id)
        if job is None or job.practice_id != principal.practice_id:
            raise not_found()
        return job

    def advance_job(self, *, principal: AuthPrincipal, job_id: str, status: MirrorStatus) -> MirrorJob:
        job = self._mirror.advance(job_id, principal.practice_id, status)
        if job is None:
            raise not_found()
        return job

    def list_events(self, *, principal: AuthPrincipal, job_id: str) -> JobEventsResponse:
        job = self.get_job_with_progress(principal=principal, job_id=job_id)
        return JobEventsResponse(job_id=job.job_id, events=job.status_history)

    def get_job_status(self, *, principal: AuthPrincipal, job_id: str) -> JobStatusRecord:
        record = self._ledger.read_status(job_id)
        if record is None or not self._owns_session(principal, record.session_id):
            raise not_found()
        return record

    def delete_job(self, *, principal: AuthPrincipal, job_id: str) -> None:
        """Cancel a job cooperatively and drop its mirror record."""
        found = False

        record = self._ledger.read_status(job_id)
        if record is not None and self._owns_session(principal, record.session_id):
            self._ledger.update(job_id, status=LedgerStatus.DELETED)
            found = True

        mirrored = self._mirror.get(job_id)
        if mirrored is not None and mirrored.practice_id == principal.practice_id:
            self._mirror.delete(job_id)
            found = True

        if not found:
            raise not_found()
        logger.info("job.deleted job_id=%s", safe_log_identifier(job_id, prefix="jid"))

    def read_artifact(self, *, principal: AuthPrincipal, job_id: str, kind: ArtifactKind) -> str:
        record = self.get_job_status(principal=principal, job_id=job_id)
        if record.status is LedgerStatus.DELETED:
            raise not_found()

        paths = {
            ArtifactKind.TRANSCRIPT: self._layout.job_transcript_path,
            ArtifactKind.DRAFT: self._layout.job_draft_path,
            ArtifactKind.EXPORT: self._layout.job_export_path,
        }
        try:
            return paths[kind](record.session_id, job_id).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ApiError(
                status_code=409,
                code="ARTIFACT_NOT_READY",
                message=f"The {kind.value} for this job is not available yet.",
                details={"job_id": job_id, "status": record.status.value},
            ) from None

    def _owns_session(self, principal: AuthPrincipal, session_id: str) -> bool:
        ownership = self._ledger.read_session_ownership(session_id)
        return ownership is not None and ownership.owner_user_id == principal.user_id

"""Background pipeline: transcribe -> draft -> export for one job."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import logging

from scribe.adapters.drafting import NOTE_LABELS, DraftingClient
from scribe.core.config import Settings
from scribe.core.logging_safety import safe_log_identifier
from scribe.core.timeouts import call_with_timeout
from scribe.errors import AudioProcessingError
from scribe.repositories.atomic_write import write_file_atomic
from scribe.repositories.audio import AudioStore
from scribe.repositories.ledger import JobLedger
from scribe.repositories.locks import RunnerLock
from scribe.repositories.memory import ProgressMirror
from scribe.schemas.job import JobStage, LedgerStatus, MirrorStatus, NoteType, PipelineMode
from scribe.services.transcription import TranscriptionService

logger = logging.getLogger(__name__)

_PROGRESS_TRANSCRIBE_START = 10
_PROGRESS_TRANSCRIPT_WRITTEN = 40
_PROGRESS_DRAFT_START = 60
_PROGRESS_DRAFT_WRITTEN = 80
_PROGRESS_EXPORT_START = 90
_PROGRESS_COMPLETE = 100

_NO_TRANSCRIPT_MESSAGE = "No transcript found. Please upload and transcribe audio first."
_RUNNABLE_STATUSES = frozenset({LedgerStatus.QUEUED, LedgerStatus.RUNNING})


@dataclass(slots=True)
class PipelineInput:
    session_id: str
    job_id: str
    artifact_id: str | None = None
    mode: PipelineMode = PipelineMode.FULL
    note_type: NoteType = NoteType.SOAP


@dataclass(slots=True)
class _RunState:
    stage: JobStage
    progress: int = 0


class _PipelineCancelled(Exception):
    """The job left the queued/running states (or vanished) between checkpoints."""


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


class PipelineOrchestrator:
    """Runs one job to completion and reports every outcome through the ledger.

    ``run`` never raises. Only ``queued`` or ``running`` jobs are processed, so
    a finished job handed over twice is skipped. Cancellation is cooperative:
    the ledger is re-read before each stage and right after each external call,
    and any other status (or a missing record) stops the run without writing
    further artifacts.
    """

    def __init__(
        self,
        *,
        ledger: JobLedger,
        audio_store: AudioStore,
        runner_lock: RunnerLock,
        transcription: TranscriptionService,
        drafting: DraftingClient,
        settings: Settings,
        mirror: ProgressMirror | None = None,
    ) -> None:
        self._ledger = ledger
        self._layout = ledger.layout
        self._audio_store = audio_store
        self._runner_lock = runner_lock
        self._transcription = transcription
        self._drafting = drafting
        self._settings = settings
        self._mirror = mirror

    def run(self, job: PipelineInput) -> None:
        safe_job_id = safe_log_identifier(job.job_id, prefix="jid")
        try:
            claimed = self._runner_lock.claim(job.session_id, job.job_id)
        except OSError:
            logger.exception("pipeline.claim_failed job_id=%s", safe_job_id)
            return
        if not claimed:
            logger.info("pipeline.already_claimed job_id=%s", safe_job_id)
            return

        run_transcribe = job.mode in (PipelineMode.TRANSCRIBE, PipelineMode.FULL)
        state = _RunState(stage=JobStage.TRANSCRIBE if run_transcribe else JobStage.DRAFT)
        try:
            current = self._ledger.read_status(job.job_id)
            if current is None or current.status not in _RUNNABLE_STATUSES:
                logger.info(
                    "pipeline.skipped job_id=%s status=%s",
                    safe_job_id,
                    current.status.value if current is not None else "missing",
                )
                return
            self._execute(job, state)
        except _PipelineCancelled:
            logger.info("pipeline.cancelled job_id=%s stage=%s", safe_job_id, state.stage.value)
        except Exception as exc:
            logger.exception("pipeline.failed job_id=%s stage=%s", safe_job_id, state.stage.value)
            self._fail(job, state, str(exc) or "Pipeline failed.")
        finally:
            self._runner_lock.release(job.session_id, job.job_id)

    def _execute(self, job: PipelineInput, state: _RunState) -> None:
        self._checkpoint(job)
        self._append_log(job, f"pipeline start (mode={job.mode.value})")
        logger.info(
            "pipeline.started job_id=%s mode=%s note_type=%s",
            safe_log_identifier(job.job_id, prefix="jid"),
            job.mode.value,
            job.note_type.value,
        )

        run_transcribe = job.mode in (PipelineMode.TRANSCRIBE, PipelineMode.FULL)
        run_draft = job.mode in (PipelineMode.ANALYZE, PipelineMode.FULL)

        transcript: str | None = None
        if run_transcribe:
            transcript = self._transcribe_stage(job, state)
            if not run_draft:
                self._ledger.update(
                    job.job_id,
                    status=LedgerStatus.COMPLETE,
                    stage=JobStage.TRANSCRIBE,
                    progress=_PROGRESS_COMPLETE,
                    error_message=None,
                )
                self._advance_mirror(job, MirrorStatus.COMPLETE)
                self._append_log(job, "pipeline complete (transcribe-only)")
                return

        self._checkpoint(job)
        if transcript is None:
            transcript = self._load_transcript(job)

        draft = self._draft_stage(job, state, transcript)
        self._export_stage(job, state, draft)

        self._ledger.update(
            job.job_id,
            status=LedgerStatus.COMPLETE,
            stage=JobStage.EXPORT,
            progress=_PROGRESS_COMPLETE,
            error_message=None,
        )
        self._advance_mirror(job, MirrorStatus.COMPLETE)
        self._append_log(job, "pipeline complete")
        logger.info("pipeline.completed job_id=%s", safe_log_identifier(job.job_id, prefix="jid"))

    def _transcribe_stage(self, job: PipelineInput, state: _RunState) -> str:
        self._enter(job, state, JobStage.TRANSCRIBE, _PROGRESS_TRANSCRIBE_START)

        artifact = self._audio_store.read_metadata(job.session_id, job.artifact_id) if job.artifact_id else None
        if artifact is None:
            raise AudioProcessingError(f"Audio metadata not found: {job.artifact_id}")
        audio_path = self._audio_store.audio_path(artifact)
        summary = f"{artifact.filename} ({artifact.mime}, {artifact.bytes} bytes)"
        self._append_log(job, f"transcribing: {summary}")

        self._checkpoint(job)
        result = self._transcription.transcribe_artifact(
            audio_path,
            artifact,
            self._layout.job_chunks_dir(job.session_id, job.job_id),
        )
        self._checkpoint(job)

        duration = f"{round(result.duration)}s" if result.duration is not None else "unknown"
        transcript = (
            "Transcript\n\n"
            f"Source: {summary}\n"
            f"Duration: {duration}\n"
            f"Transcribed: {_timestamp()}\n\n"
            "---\n\n"
            f"{result.text}\n"
        )
        write_file_atomic(self._layout.job_transcript_path(job.session_id, job.job_id), transcript)
        write_file_atomic(self._layout.session_transcript_path(job.session_id), transcript)
        self._append_log(job, f"transcription complete: {len(result.text)} chars")

        self._progress(job, state, _PROGRESS_TRANSCRIPT_WRITTEN)
        self._advance_mirror(job, MirrorStatus.TRANSCRIBED)
        return transcript

    def _draft_stage(self, job: PipelineInput, state: _RunState, transcript: str) -> str:
        self._enter(job, state, JobStage.DRAFT, _PROGRESS_DRAFT_START)
        self._append_log(job, f"generating {job.note_type.value} note from transcript")

        self._checkpoint(job)
        note = call_with_timeout(
            lambda cancel_event: self._drafting.draft(
                transcript,
                note_type=job.note_type,
                cancel_event=cancel_event,
                timeout_seconds=self._settings.drafting_timeout_seconds,
            ),
            timeout_seconds=self._settings.drafting_timeout_seconds,
            label="Note drafting",
        )
        self._checkpoint(job)

        tokens = note.tokens if note.tokens is not None else "unknown"
        draft = (
            f"# {job.note_type.value.upper()} Note (Draft)\n\n"
            f"{note.text}\n\n"
            "---\n"
            f"GeneratedAt: {_timestamp()}\n"
            f"Tokens: {tokens}\n"
        )
        write_file_atomic(self._layout.job_draft_path(job.session_id, job.job_id), draft)
        self._append_log(job, f"{job.note_type.value} note generated: {note.tokens or 0} tokens")

        self._progress(job, state, _PROGRESS_DRAFT_WRITTEN)
        self._advance_mirror(job, MirrorStatus.DRAFTED)
        return draft

    def _export_stage(self, job: PipelineInput, state: _RunState, draft: str) -> None:
        self._checkpoint(job)
        self._enter(job, state, JobStage.EXPORT, _PROGRESS_EXPORT_START)

        export = (
            "EHR Export\n\n"
            f"Note type: {NOTE_LABELS[job.note_type]}\n"
            f"Generated: {_timestamp()}\n\n"
            f"{draft}"
        )
        write_file_atomic(self._layout.job_export_path(job.session_id, job.job_id), export)
        self._append_log(job, "export written")
        self._advance_mirror(job, MirrorStatus.EXPORTED)

    def _load_transcript(self, job: PipelineInput) -> str:
        for path in (
            self._layout.job_transcript_path(job.session_id, job.job_id),
            self._layout.session_transcript_path(job.session_id),
        ):
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                continue
        raise FileNotFoundError(_NO_TRANSCRIPT_MESSAGE)

    def _enter(self, job: PipelineInput, state: _RunState, stage: JobStage, progress: int) -> None:
        state.stage = stage
        self._progress(job, state, progress)

    def _progress(self, job: PipelineInput, state: _RunState, progress: int) -> None:
        state.progress = progress
        self._ledger.update(
            job.job_id,
            status=LedgerStatus.RUNNING,
            stage=state.stage,
            progress=progress,
            error_message=None,
        )

    def _checkpoint(self, job: PipelineInput) -> None:
        record = self._ledger.read_status(job.job_id)
        if record is None or record.status not in _RUNNABLE_STATUSES:
            raise _PipelineCancelled()

    def _fail(self, job: PipelineInput, state: _RunState, message: str) -> None:
        try:
            self._ledger.update(
                job.job_id,
                status=LedgerStatus.FAILED,
                stage=state.stage,
                progress=state.progress,
                error_message=message,
            )
        except OSError:
            logger.exception("pipeline.fail_record_failed job_id=%s", safe_log_identifier(job.job_id, prefix="jid"))
        self._advance_mirror(job, MirrorStatus.FAILED)
        try:
            self._append_log(job, f"pipeline failed: {message}")
        except OSError:
            logger.warning("pipeline.log_write_failed job_id=%s", safe_log_identifier(job.job_id, prefix="jid"))

    def _append_log(self, job: PipelineInput, message: str) -> None:
        path = self._layout.job_log_path(job.session_id, job.job_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(f"[{_timestamp()}] {message}\n")

    def _advance_mirror(self, job: PipelineInput, status: MirrorStatus) -> None:
        if self._mirror is None:
            return
        record = self._mirror.get(job.job_id)
        if record is not None:
            self._mirror.advance(job.job_id, record.practice_id, status)


__all__ = ["PipelineInput", "PipelineOrchestrator"]

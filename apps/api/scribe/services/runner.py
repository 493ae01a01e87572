"""Fire-and-forget pipeline dispatch and the periodic queued-job scan."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
import logging
import threading

from scribe.core.logging_safety import safe_log_identifier
from scribe.repositories.ledger import JobLedger
from scribe.repositories.locks import RunnerLock
from scribe.schemas.job import JobStage, LedgerStatus, PipelineMode
from scribe.services.pipeline import PipelineInput, PipelineOrchestrator

logger = logging.getLogger(__name__)


class PipelineDispatcher:
    """Submits pipeline runs to a worker pool; callers never wait on them."""

    def __init__(self, orchestrator: PipelineOrchestrator, max_workers: int) -> None:
        self._orchestrator = orchestrator
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="scribe-pipeline")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, job: PipelineInput) -> Future:
        future = self._executor.submit(self._orchestrator.run, job)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        logger.info(
            "run.dispatched job_id=%s mode=%s",
            safe_log_identifier(job.job_id, prefix="jid"),
            job.mode.value,
        )
        return future

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for every submitted run; True when none is left pending."""
        with self._lock:
            pending = set(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_runs: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_runs, cancel_futures=not wait_for_runs)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)


class QueuedJobRunner:
    """Picks up ``queued`` jobs that no request-time dispatch has started."""

    def __init__(self, ledger: JobLedger, dispatcher: PipelineDispatcher, runner_lock: RunnerLock) -> None:
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._runner_lock = runner_lock

    def process_queued_jobs(self) -> int:
        processed = 0
        for entry in self._ledger.iter_index():
            safe_job_id = safe_log_identifier(entry.job_id, prefix="jid")
            try:
                record = self._ledger.read_status(entry.job_id)
                if record is None or record.status is not LedgerStatus.QUEUED:
                    continue
                if self._runner_lock.is_held(entry.session_id, entry.job_id):
                    continue

                meta = self._ledger.read_job_meta(entry.session_id, entry.job_id)
                if meta is None:
                    continue
                if meta.input_mode == "audio" and not meta.audio_artifact_id:
                    continue

                stage = JobStage.DRAFT if meta.mode is PipelineMode.ANALYZE else JobStage.TRANSCRIBE
                self._ledger.update(
                    entry.job_id,
                    status=LedgerStatus.RUNNING,
                    stage=stage,
                    progress=0,
                    error_message=None,
                )
                self._dispatcher.submit(
                    PipelineInput(
                        session_id=entry.session_id,
                        job_id=entry.job_id,
                        artifact_id=meta.audio_artifact_id,
                        mode=meta.mode,
                        note_type=meta.note_type,
                    )
                )
                processed += 1
            except OSError:
                logger.warning("runner.job_skipped job_id=%s", safe_job_id)
                continue

        logger.info("runner.scan_complete processed=%s", processed)
        return processed


__all__ = ["PipelineDispatcher", "QueuedJobRunner"]

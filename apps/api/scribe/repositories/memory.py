"""Process-local progress mirror used for low-latency job polling."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
import threading
from uuid import uuid4

from scribe.domain.progress import is_forward, is_terminal, merge, progress_floor, simulated_progress
from scribe.schemas.job import MirrorJob, MirrorStatus, StatusHistoryEntry, UploadInfo

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ProgressMirror:
    """In-memory ``job_id -> MirrorJob`` map with monotonic progress.

    State is not shared between processes and is lost on restart; callers must
    treat a miss as "not found" and fall back to the ledger.
    """

    def __init__(self, ttl_seconds: int, clock: Clock = _utc_now) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._jobs: dict[str, MirrorJob] = {}
        self._lock = threading.Lock()

    def create(self, owner_id: str, session_id: str | None = None, job_id: str | None = None) -> MirrorJob:
        now = self._clock()
        job = MirrorJob(
            job_id=job_id or f"job_{uuid4()}",
            practice_id=owner_id,
            session_id=session_id,
            status=MirrorStatus.QUEUED,
            progress=0,
            created_at=now,
            updated_at=now,
            expires_at=now + self._ttl,
            status_history=[StatusHistoryEntry(status=MirrorStatus.QUEUED, at=now, progress=0)],
        )
        with self._lock:
            self._jobs[job.job_id] = job
            return job.model_copy(deep=True)

    def get(self, job_id: str) -> MirrorJob | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job is not None else None

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def advance(self, job_id: str, owner_id: str, target_status: MirrorStatus) -> MirrorJob | None:
        """Move a job forward to ``target_status``.

        Returns None for unknown jobs and owner mismatches. A target that is not
        strictly after the current status leaves the record untouched.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.practice_id != owner_id:
                return None
            self._advance_locked(job, target_status, self._clock())
            return job.model_copy(deep=True)

    def record_upload(self, job_id: str, owner_id: str, upload: UploadInfo) -> MirrorJob | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.practice_id != owner_id:
                return None
            job.upload = upload
            self._advance_locked(job, MirrorStatus.UPLOADED, self._clock())
            return job.model_copy(deep=True)

    def get_with_progress(self, job_id: str) -> MirrorJob | None:
        """Return the job with simulated progress folded in.

        Expired records are removed and read as absent. Terminal records are
        returned as stored.
        """
        now = self._clock()
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if job.expires_at <= now:
                del self._jobs[job_id]
                return None
            if not is_terminal(job.status):
                simulated = simulated_progress((now - job.created_at).total_seconds())
                if simulated is not None:
                    self._fold_locked(job, *simulated, now)
            return job.model_copy(deep=True)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [job_id for job_id, job in self._jobs.items() if job.expires_at <= now]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)

    def _advance_locked(self, job: MirrorJob, target_status: MirrorStatus, now: datetime) -> None:
        if is_terminal(job.status) or not is_forward(job.status, target_status):
            return
        job.status = target_status
        job.progress = progress_floor(target_status, job.progress)
        job.updated_at = now
        job.status_history.append(StatusHistoryEntry(status=job.status, at=now, progress=job.progress))

    def _fold_locked(self, job: MirrorJob, status: MirrorStatus, progress: int, now: datetime) -> None:
        new_status, new_progress = merge(job.status, job.progress, status, progress)
        if new_status == job.status and new_progress == job.progress:
            return
        status_changed = new_status != job.status
        job.status = new_status
        job.progress = new_progress
        job.updated_at = now
        if status_changed:
            job.status_history.append(StatusHistoryEntry(status=new_status, at=now, progress=new_progress))


__all__ = ["Clock", "ProgressMirror"]

"""TTL garbage collection of job artifacts, sessions and stale locks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
import logging
import shutil

from scribe.core.config import Settings
from scribe.core.logging_safety import safe_log_identifier
from scribe.repositories.layout import SESSION_LOCK_FILENAME, ArtifactLayout
from scribe.repositories.ledger import JobLedger
from scribe.repositories.memory import ProgressMirror
from scribe.schemas.job import JobIndexEntry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PurgeResult:
    scanned_jobs: int = 0
    purged_jobs: int = 0
    purged_sessions: int = 0
    stale_locks_removed: int = 0


class ArtifactPurger:
    """Reclaims jobs whose index ``createdAt`` is older than the TTL.

    Expiry is measured from creation only; a pipeline still running when its
    job expires is not protected. Entries without ``createdAt`` are kept.
    """

    def __init__(
        self,
        *,
        ledger: JobLedger,
        layout: ArtifactLayout,
        mirror: ProgressMirror,
        settings: Settings,
    ) -> None:
        self._ledger = ledger
        self._layout = layout
        self._mirror = mirror
        self._ttl = timedelta(seconds=settings.job_ttl_seconds)
        self._stale_lock_age = timedelta(seconds=settings.stale_lock_seconds)

    def purge_expired_job_artifacts(self, now: datetime | None = None) -> PurgeResult:
        now = now or datetime.now(UTC)
        result = PurgeResult()
        touched_sessions: set[str] = set()

        for entry in list(self._ledger.iter_index()):
            result.scanned_jobs += 1
            if not self._is_expired(entry, now):
                continue
            try:
                self._purge_job(entry)
            except OSError:
                logger.warning(
                    "purge.job_failed job_id=%s",
                    safe_log_identifier(entry.job_id, prefix="jid"),
                )
                continue
            result.purged_jobs += 1
            touched_sessions.add(entry.session_id)

        for session_id in sorted(touched_sessions):
            if self._session_has_jobs(session_id):
                continue
            try:
                shutil.rmtree(self._layout.session_dir(session_id), ignore_errors=False)
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning(
                    "purge.session_failed session_id=%s",
                    safe_log_identifier(session_id, prefix="sid"),
                )
                continue
            self._ledger.delete_session_ownership(session_id)
            result.purged_sessions += 1

        result.stale_locks_removed = self._remove_stale_session_locks(now)
        logger.info(
            "purge.completed scanned=%s purged_jobs=%s purged_sessions=%s stale_locks=%s",
            result.scanned_jobs,
            result.purged_jobs,
            result.purged_sessions,
            result.stale_locks_removed,
        )
        return result

    def purge_mirror(self) -> int:
        return self._mirror.purge_expired()

    def _is_expired(self, entry: JobIndexEntry, now: datetime) -> bool:
        if entry.created_at is None:
            return False
        created_at = entry.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return created_at + self._ttl <= now

    def _purge_job(self, entry: JobIndexEntry) -> None:
        job_dir = self._layout.job_dir(entry.session_id, entry.job_id)
        try:
            shutil.rmtree(job_dir)
        except FileNotFoundError:
            pass
        self._ledger.delete_index(entry.job_id)
        self._mirror.delete(entry.job_id)

    def _session_has_jobs(self, session_id: str) -> bool:
        jobs_dir = self._layout.session_jobs_dir(session_id)
        try:
            return any(jobs_dir.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return False

    def _remove_stale_session_locks(self, now: datetime) -> int:
        sessions_dir = self._layout.sessions_dir
        if not sessions_dir.is_dir():
            return 0

        removed = 0
        for session_dir in sessions_dir.iterdir():
            lock_path = session_dir / SESSION_LOCK_FILENAME
            try:
                modified = datetime.fromtimestamp(lock_path.stat().st_mtime, UTC)
            except (FileNotFoundError, NotADirectoryError):
                continue
            if modified + self._stale_lock_age > now:
                continue
            try:
                lock_path.unlink(missing_ok=True)
            except OSError:
                logger.warning("purge.stale_lock_failed session_dir=%s", safe_log_identifier(session_dir.name, prefix="sid"))
                continue
            removed += 1
        return removed


__all__ = ["ArtifactPurger", "PurgeResult"]

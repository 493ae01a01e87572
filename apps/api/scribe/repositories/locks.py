"""Exclusive-create lock files for sessions and pipeline runs."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
import json
import logging
import os
from pathlib import Path
import socket

from scribe.core.logging_safety import safe_log_identifier
from scribe.repositories.layout import ArtifactLayout

logger = logging.getLogger(__name__)


def _holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def _create_exclusive(path: Path) -> bool:
    """Create ``path`` only if it does not exist; False when someone else holds it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False

    payload = json.dumps({"lockedAt": datetime.now(UTC).isoformat(), "holder": _holder()})
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(payload)
    return True


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("lock.release_failed lock_name=%s", path.name)


class SessionLock:
    """Guards the check-then-create critical section of job creation.

    Acquisition never blocks or retries: ``False`` means another creation for
    the session is in flight.
    """

    def __init__(self, layout: ArtifactLayout) -> None:
        self._layout = layout

    def acquire(self, session_id: str) -> bool:
        acquired = _create_exclusive(self._layout.session_lock_path(session_id))
        if not acquired:
            logger.info("session_lock.contended session_id=%s", safe_log_identifier(session_id, prefix="sid"))
        return acquired

    def release(self, session_id: str) -> None:
        _remove(self._layout.session_lock_path(session_id))

    @contextmanager
    def hold(self, session_id: str) -> Iterator[bool]:
        """Yield whether the lock was acquired; release it on every exit path."""
        acquired = self.acquire(session_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(session_id)


class RunnerLock:
    """Advisory per-job lock held for the duration of one pipeline run."""

    def __init__(self, layout: ArtifactLayout) -> None:
        self._layout = layout

    def claim(self, session_id: str, job_id: str) -> bool:
        return _create_exclusive(self._layout.runner_lock_path(session_id, job_id))

    def release(self, session_id: str, job_id: str) -> None:
        _remove(self._layout.runner_lock_path(session_id, job_id))

    def is_held(self, session_id: str, job_id: str) -> bool:
        return self._layout.runner_lock_path(session_id, job_id).exists()


__all__ = ["RunnerLock", "SessionLock"]

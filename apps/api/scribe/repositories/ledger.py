"""Durable, filesystem-resident job ledger and its lookup indexes."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
import logging
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from scribe.core.logging_safety import safe_log_identifier
from scribe.errors import InvalidPathSegmentError
from scribe.repositories.atomic_write import create_file_exclusive, write_file_atomic
from scribe.repositories.layout import ArtifactLayout
from scribe.schemas.job import (
    JobIndexEntry,
    JobMeta,
    JobStatusRecord,
    LedgerStatus,
    PersistedModel,
    SessionOwnership,
)

logger = logging.getLogger(__name__)

_ABSORBING_STATUSES: frozenset[LedgerStatus] = frozenset({LedgerStatus.FAILED, LedgerStatus.DELETED})
_ACTIVE_STATUSES: frozenset[LedgerStatus] = frozenset({LedgerStatus.QUEUED, LedgerStatus.RUNNING})
_IMMUTABLE_FIELDS = frozenset({"job_id", "session_id"})

ModelT = TypeVar("ModelT", bound=PersistedModel)


def _read_model(path: Path, model: type[ModelT]) -> ModelT | None:
    """Load and validate one JSON record; missing or malformed files read as absent."""
    try:
        raw = path.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError:
        logger.warning("ledger.record_malformed path_name=%s model=%s", path.name, model.__name__)
        return None


class JobLedger:
    """Authoritative job records, job->session index and session ownership.

    ``update`` is a read-modify-write cycle and is not atomic across concurrent
    callers; one writer per job is expected (the holder of its runner lock).
    """

    def __init__(self, layout: ArtifactLayout) -> None:
        self._layout = layout

    @property
    def layout(self) -> ArtifactLayout:
        return self._layout

    def write_index(self, job_id: str, session_id: str, created_at: datetime | None = None) -> JobIndexEntry:
        entry = JobIndexEntry(job_id=job_id, session_id=session_id, created_at=created_at or datetime.now(UTC))
        write_file_atomic(self._layout.job_index_path(job_id), entry.to_json())
        return entry

    def read_index(self, job_id: str) -> JobIndexEntry | None:
        try:
            path = self._layout.job_index_path(job_id)
        except InvalidPathSegmentError:
            return None
        entry = _read_model(path, JobIndexEntry)
        if entry is None or entry.job_id != job_id:
            return None
        return entry

    def iter_index(self) -> Iterator[JobIndexEntry]:
        """Scan ``_index/jobs`` directly; unreadable entries are skipped."""
        index_dir = self._layout.job_index_dir
        if not index_dir.is_dir():
            return
        for path in sorted(index_dir.glob("*.json")):
            entry = _read_model(path, JobIndexEntry)
            if entry is None or f"{entry.job_id}.json" != path.name:
                continue
            yield entry

    def delete_index(self, job_id: str) -> None:
        self._layout.job_index_path(job_id).unlink(missing_ok=True)

    def write_status(self, record: JobStatusRecord) -> None:
        path = self._layout.job_status_path(record.session_id, record.job_id)
        write_file_atomic(path, record.to_json())

    def read_status(self, job_id: str) -> JobStatusRecord | None:
        entry = self.read_index(job_id)
        if entry is None:
            return None
        record = _read_model(self._layout.job_status_path(entry.session_id, job_id), JobStatusRecord)
        if record is None or record.job_id != job_id or record.session_id != entry.session_id:
            return None
        return record

    def update(self, job_id: str, **fields: Any) -> JobStatusRecord | None:
        """Merge ``fields`` into the stored record and persist it.

        Returns None when the job is unknown. Records that are ``failed`` or
        ``deleted`` are returned unchanged and nothing is written.
        """
        current = self.read_status(job_id)
        if current is None:
            return None
        if current.status in _ABSORBING_STATUSES:
            return current

        changes = {key: value for key, value in fields.items() if key not in _IMMUTABLE_FIELDS}
        changes["updated_at"] = datetime.now(UTC)
        merged = JobStatusRecord.model_validate({**current.model_dump(), **changes})
        self.write_status(merged)
        return merged

    def read_session_ownership(self, session_id: str) -> SessionOwnership | None:
        try:
            path = self._layout.session_index_path(session_id)
        except InvalidPathSegmentError:
            return None
        record = _read_model(path, SessionOwnership)
        if record is None or record.session_id != session_id:
            return None
        return record

    def write_session_ownership(self, session_id: str, owner_user_id: str) -> SessionOwnership | None:
        """Create the ownership record; None when the session already has one."""
        record = SessionOwnership(session_id=session_id, owner_user_id=owner_user_id, created_at=datetime.now(UTC))
        if not create_file_exclusive(self._layout.session_index_path(session_id), record.to_json()):
            return None
        return record

    def delete_session_ownership(self, session_id: str) -> None:
        self._layout.session_index_path(session_id).unlink(missing_ok=True)

    def ensure_session_ownership(
        self,
        session_id: str,
        owner_user_id: str,
        *,
        allow_autocreate: bool,
    ) -> SessionOwnership | None:
        """Return the session's ownership record if ``owner_user_id`` holds it.

        A session owned by someone else yields None. An unknown session is
        claimed for the caller only when ``allow_autocreate`` is set; when two
        callers claim it at once, the first record written stands.
        """
        existing = self.read_session_ownership(session_id)
        if existing is None:
            if not allow_autocreate:
                return None
            record = self.write_session_ownership(session_id, owner_user_id)
            if record is not None:
                logger.info(
                    "session.autocreated session_id=%s owner_id=%s",
                    safe_log_identifier(session_id, prefix="sid"),
                    safe_log_identifier(owner_user_id, prefix="uid"),
                )
                return record
            existing = self.read_session_ownership(session_id)
            if existing is None:
                return None
        return existing if existing.owner_user_id == owner_user_id else None

    def write_job_meta(self, meta: JobMeta) -> None:
        write_file_atomic(self._layout.job_meta_path(meta.session_id, meta.job_id), meta.to_json())

    def read_job_meta(self, session_id: str, job_id: str) -> JobMeta | None:
        try:
            path = self._layout.job_meta_path(session_id, job_id)
        except InvalidPathSegmentError:
            return None
        meta = _read_model(path, JobMeta)
        if meta is None or meta.job_id != job_id or meta.session_id != session_id:
            return None
        return meta

    def find_active_job_for_session(self, session_id: str) -> str | None:
        """First indexed job of the session whose status is queued or running."""
        for entry in self.iter_index():
            if entry.session_id != session_id:
                continue
            record = self.read_status(entry.job_id)
            if record is not None and record.status in _ACTIVE_STATUSES:
                return entry.job_id
        return None


__all__ = ["JobLedger"]

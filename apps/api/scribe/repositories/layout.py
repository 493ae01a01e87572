"""Filesystem layout of the artifacts tree."""

from __future__ import annotations

import os
from pathlib import Path
import re

from scribe.errors import InvalidPathSegmentError

_PATH_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_WINDOWS_ILLEGAL_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_NON_PRINTABLE_ASCII_PATTERN = re.compile(r"[^\x20-\x7e]")
_TRAILING_DOTS_SPACES_PATTERN = re.compile(r"[. ]+$")
_FALLBACK_FILENAME = "upload.bin"

SESSION_LOCK_FILENAME = "session.lock"
RUNNER_LOCK_FILENAME = "runner.lock"


def safe_path_segment(segment: str) -> str:
    """Return ``segment`` unchanged if it is usable as one directory name."""
    if not isinstance(segment, str) or not _PATH_SEGMENT_PATTERN.fullmatch(segment):
        raise InvalidPathSegmentError("invalid path segment")
    return segment


def safe_filename(name: str) -> str:
    """Sanitize a client-supplied filename; never returns an empty name."""
    base = os.path.basename(name.replace("\\", "/"))
    stripped = _WINDOWS_ILLEGAL_PATTERN.sub("", base).strip()
    normalized = _TRAILING_DOTS_SPACES_PATTERN.sub("", stripped).strip()
    ascii_only = _NON_PRINTABLE_ASCII_PATTERN.sub("", normalized).strip()
    return ascii_only or _FALLBACK_FILENAME


class ArtifactLayout:
    """Resolves every durable path under one artifacts root.

    ::

        _index/jobs/{jobId}.json
        _index/sessions/{sessionId}.json
        sessions/{sessionId}/session.lock
        sessions/{sessionId}/audio/{artifactId}.json
        sessions/{sessionId}/transcript/latest.txt
        sessions/{sessionId}/jobs/{jobId}/status.json
        sessions/{sessionId}/jobs/{jobId}/job.json
        sessions/{sessionId}/jobs/{jobId}/runner.lock
        sessions/{sessionId}/jobs/{jobId}/transcript/transcript.txt
        sessions/{sessionId}/jobs/{jobId}/draft/note.md
        sessions/{sessionId}/jobs/{jobId}/export/export.txt
        sessions/{sessionId}/jobs/{jobId}/logs/pipeline.log
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    @property
    def job_index_dir(self) -> Path:
        return self.root / "_index" / "jobs"

    @property
    def session_index_dir(self) -> Path:
        return self.root / "_index" / "sessions"

    @property
    def sessions_dir(self) -> Path:
        return self.root / "sessions"

    def job_index_path(self, job_id: str) -> Path:
        return self.job_index_dir / f"{safe_path_segment(job_id)}.json"

    def session_index_path(self, session_id: str) -> Path:
        return self.session_index_dir / f"{safe_path_segment(session_id)}.json"

    def session_dir(self, session_id: str) -> Path:
        return self.sessions_dir / safe_path_segment(session_id)

    def session_jobs_dir(self, session_id: str) -> Path:
        return self.session_dir(session_id) / "jobs"

    def session_lock_path(self, session_id: str) -> Path:
        return self.session_dir(session_id) / SESSION_LOCK_FILENAME

    def session_audio_dir(self, session_id: str) -> Path:
        return self.session_dir(session_id) / "audio"

    def audio_metadata_path(self, session_id: str, artifact_id: str) -> Path:
        return self.session_audio_dir(session_id) / f"{safe_path_segment(artifact_id)}.json"

    def audio_file_path(self, session_id: str, stored_name: str) -> Path:
        return self.session_audio_dir(session_id) / safe_filename(stored_name)

    def session_transcript_path(self, session_id: str) -> Path:
        return self.session_dir(session_id) / "transcript" / "latest.txt"

    def job_dir(self, session_id: str, job_id: str) -> Path:
        return self.session_jobs_dir(session_id) / safe_path_segment(job_id)

    def job_status_path(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / "status.json"

    def job_meta_path(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / "job.json"

    def runner_lock_path(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / RUNNER_LOCK_FILENAME

    def job_transcript_path(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / "transcript" / "transcript.txt"

    def job_draft_path(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / "draft" / "note.md"

    def job_export_path(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / "export" / "export.txt"

    def job_log_path(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / "logs" / "pipeline.log"

    def job_chunks_dir(self, session_id: str, job_id: str) -> Path:
        return self.job_dir(session_id, job_id) / "chunks"

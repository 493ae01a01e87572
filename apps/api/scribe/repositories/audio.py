"""Uploaded audio binaries and their metadata records."""

from __future__ import annotations

from contextlib import suppress
import logging
from pathlib import Path
from typing import BinaryIO

from pydantic import ValidationError

from scribe.errors import InvalidPathSegmentError, UploadTooLargeError
from scribe.repositories.atomic_write import write_file_atomic
from scribe.repositories.layout import ArtifactLayout
from scribe.schemas.audio import AudioArtifact

logger = logging.getLogger(__name__)


class BoundedAudioWriter:
    """Streams an upload into a freshly created file, enforcing a byte limit."""

    def __init__(self, path: Path, limit: int) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self.path = path
        self._limit = limit
        self._handle: BinaryIO | None = open(path, "xb")
        self.bytes_written = 0

    def write(self, chunk: bytes) -> None:
        if self._handle is None:
            raise ValueError("writer is closed")
        self.bytes_written += len(chunk)
        if self.bytes_written > self._limit:
            raise UploadTooLargeError(f"upload exceeds {self._limit} bytes")
        self._handle.write(chunk)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.flush()
            self._handle.close()
            self._handle = None

    def discard(self) -> None:
        """Close and delete the partially written file."""
        with suppress(OSError):
            self.close()
        self.path.unlink(missing_ok=True)


class AudioStore:
    def __init__(self, layout: ArtifactLayout) -> None:
        self._layout = layout

    def open_writer(self, session_id: str, stored_name: str, limit: int) -> BoundedAudioWriter:
        return BoundedAudioWriter(self._layout.audio_file_path(session_id, stored_name), limit)

    def write_metadata(self, artifact: AudioArtifact) -> None:
        path = self._layout.audio_metadata_path(artifact.session_id, artifact.artifact_id)
        write_file_atomic(path, artifact.to_json())

    def read_metadata(self, session_id: str, artifact_id: str) -> AudioArtifact | None:
        try:
            path = self._layout.audio_metadata_path(session_id, artifact_id)
        except InvalidPathSegmentError:
            return None
        try:
            artifact = AudioArtifact.model_validate_json(path.read_text(encoding="utf-8"))
        except (FileNotFoundError, NotADirectoryError):
            return None
        except ValidationError:
            logger.warning("audio.metadata_malformed path_name=%s", path.name)
            return None
        if artifact.artifact_id != artifact_id or artifact.session_id != session_id:
            return None
        return artifact

    def audio_path(self, artifact: AudioArtifact) -> Path:
        return self._layout.audio_file_path(artifact.session_id, artifact.stored_name)


__all__ = ["AudioStore", "BoundedAudioWriter"]

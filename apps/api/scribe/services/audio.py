"""Audio upload service layer."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
import logging
from pathlib import Path, PurePath
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from scribe.core.config import Settings
from scribe.core.logging_safety import safe_log_identifier
from scribe.errors import ApiError, InvalidPathSegmentError, UploadTooLargeError, not_found
from scribe.repositories.audio import AudioStore
from scribe.repositories.layout import safe_filename, safe_path_segment
from scribe.repositories.ledger import JobLedger
from scribe.schemas.audio import AudioArtifact, AudioUploadResponse
from scribe.schemas.auth import AuthPrincipal

logger = logging.getLogger(__name__)

# Formats the speech-to-text provider accepts natively.
MIME_EXTENSIONS: dict[str, str] = {
    "audio/webm": ".webm",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/mp4": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/m4a": ".m4a",
    "audio/x-mpegurl": ".m4a",
    "video/webm": ".webm",
    "video/mp4": ".mp4",
    "video/mpeg": ".mpeg",
    "video/quicktime": ".mov",
    "application/octet-stream": ".bin",
}
_ALLOWED_EXTENSIONS = frozenset(MIME_EXTENSIONS.values())


def _too_large() -> ApiError:
    return ApiError(status_code=413, code="PAYLOAD_TOO_LARGE", message="File too large.")


def _empty_body() -> ApiError:
    return ApiError(status_code=400, code="VALIDATION_ERROR", message="Audio body required.")


def normalize_mime(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def reconcile_filename(raw_filename: str | None, mime: str) -> tuple[str, str]:
    """Return ``(display filename, extension)`` consistent with the upload's MIME type.

    An allowed extension on the client filename wins over the MIME default;
    otherwise the MIME extension is appended or substituted.
    """
    ext_from_mime = MIME_EXTENSIONS[mime]
    sanitized = safe_filename(raw_filename) if raw_filename else ""
    ext_from_name = PurePath(sanitized).suffix.lower() if sanitized else ""
    ext = ext_from_name if ext_from_name in _ALLOWED_EXTENSIONS else ext_from_mime

    if not sanitized:
        return f"audio{ext}", ext
    if not ext_from_name:
        return f"{sanitized}{ext}", ext
    if ext_from_name != ext:
        return f"{sanitized[: -len(ext_from_name)]}{ext}", ext
    return sanitized, ext


class AudioService:
    def __init__(self, *, ledger: JobLedger, audio_store: AudioStore, settings: Settings) -> None:
        self._ledger = ledger
        self._audio_store = audio_store
        self._settings = settings

    async def upload(
        self,
        *,
        principal: AuthPrincipal,
        session_id: str,
        content_type: str | None,
        filename: str | None,
        content_length: int | None,
        body: AsyncIterator[bytes],
    ) -> AudioUploadResponse:
        try:
            safe_path_segment(session_id)
        except InvalidPathSegmentError:
            raise ApiError(status_code=400, code="VALIDATION_ERROR", message="Invalid session_id.") from None

        ownership = await run_in_threadpool(
            self._ledger.ensure_session_ownership,
            session_id,
            principal.user_id,
            allow_autocreate=self._settings.allow_session_autocreate,
        )
        if ownership is None:
            raise not_found()

        limit = self._settings.max_upload_bytes
        if content_length is not None and content_length > limit:
            raise _too_large()

        mime = normalize_mime(content_type)
        if mime not in MIME_EXTENSIONS:
            raise ApiError(
                status_code=415,
                code="UNSUPPORTED_MEDIA_TYPE",
                message=f"Unsupported media type: {content_type or ''}",
            )

        display_name, ext = reconcile_filename(filename, mime)
        artifact_id = f"aud_{uuid4()}"
        stored_name = f"{artifact_id}{ext}"

        writer = await run_in_threadpool(self._audio_store.open_writer, session_id, stored_name, limit)
        try:
            async for chunk in body:
                if chunk:
                    await run_in_threadpool(writer.write, chunk)
            await run_in_threadpool(writer.close)
        except UploadTooLargeError:
            writer.discard()
            raise _too_large() from None
        except BaseException:
            writer.discard()
            raise

        if writer.bytes_written <= 0:
            writer.discard()
            raise _empty_body()

        artifact = AudioArtifact(
            artifact_id=artifact_id,
            session_id=session_id,
            filename=display_name,
            stored_name=stored_name,
            mime=mime,
            bytes=writer.bytes_written,
            created_at=datetime.now(UTC),
        )
        await run_in_threadpool(self._audio_store.write_metadata, artifact)
        logger.info(
            "audio.uploaded session_id=%s artifact_id=%s bytes=%s mime=%s",
            safe_log_identifier(session_id, prefix="sid"),
            safe_log_identifier(artifact_id, prefix="aid"),
            artifact.bytes,
            mime,
        )
        return AudioUploadResponse(
            artifact_id=artifact.artifact_id,
            filename=artifact.filename,
            mime=artifact.mime,
            bytes=artifact.bytes,
            created_at=artifact.created_at,
            download_url=f"/api/v1/sessions/{session_id}/audio/{artifact_id}",
        )

    def get_audio(self, *, principal: AuthPrincipal, session_id: str, artifact_id: str) -> tuple[AudioArtifact, Path]:
        ownership = self._ledger.read_session_ownership(session_id)
        if ownership is None or ownership.owner_user_id != principal.user_id:
            raise not_found()
        artifact = self._audio_store.read_metadata(session_id, artifact_id)
        if artifact is None:
            raise not_found()
        path = self._audio_store.audio_path(artifact)
        if not path.is_file():
            raise not_found()
        return artifact, path

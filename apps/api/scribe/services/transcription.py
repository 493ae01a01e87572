"""Speech-to-text for whole files and for audio too large for one call."""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path
from typing import Protocol

from scribe.adapters.transcription import TranscriptionClient, TranscriptionResult
from scribe.core.config import Settings
from scribe.core.timeouts import call_with_timeout
from scribe.domain.chunking import ChunkBoundary, calculate_chunk_boundaries
from scribe.domain.stitching import stitch_transcripts
from scribe.errors import AudioProcessingError
from scribe.schemas.audio import AudioArtifact

logger = logging.getLogger(__name__)


class AudioSplitter(Protocol):
    def probe_duration(self, path: Path) -> float | None: ...

    def split(self, path: Path, output_dir: Path, boundaries: Sequence[ChunkBoundary]) -> list[Path]: ...

    def cleanup(self, chunk_paths: Sequence[Path], output_dir: Path | None = None) -> None: ...


class TranscriptionService:
    def __init__(self, client: TranscriptionClient, splitter: AudioSplitter, settings: Settings) -> None:
        self._client = client
        self._splitter = splitter
        self._settings = settings

    def transcribe_artifact(self, audio_path: Path, artifact: AudioArtifact, work_dir: Path) -> TranscriptionResult:
        """Transcribe an uploaded artifact, chunking it above the size threshold.

        Chunk files are written under ``work_dir`` and always removed afterwards.
        """
        size = audio_path.stat().st_size
        if size <= self._settings.chunk_threshold_bytes:
            return self._transcribe_file(
                audio_path,
                filename=artifact.filename,
                mime=artifact.mime,
                timeout_seconds=self._settings.transcription_timeout_seconds,
                label="Speech-to-text transcription",
            )
        return self._transcribe_chunked(audio_path, artifact, work_dir)

    def _transcribe_chunked(self, audio_path: Path, artifact: AudioArtifact, work_dir: Path) -> TranscriptionResult:
        total_seconds = self._splitter.probe_duration(audio_path)
        if total_seconds is None or total_seconds <= 0:
            raise AudioProcessingError("Could not determine audio duration. Is ffmpeg/ffprobe installed?")

        boundaries = calculate_chunk_boundaries(
            total_seconds,
            self._settings.chunk_minutes,
            self._settings.chunk_overlap_seconds,
        )
        logger.info("transcription.chunked chunks=%s bytes=%s", len(boundaries), audio_path.stat().st_size)

        chunk_paths = self._splitter.split(audio_path, work_dir, boundaries)
        created = [path for path in chunk_paths if path != audio_path]
        try:
            texts: list[str] = []
            for index, chunk_path in enumerate(chunk_paths):
                result = self._transcribe_file(
                    chunk_path,
                    filename=chunk_path.name,
                    mime=artifact.mime,
                    timeout_seconds=self._settings.chunk_timeout_seconds,
                    label=f"Speech-to-text chunk {index + 1}/{len(chunk_paths)}",
                )
                texts.append(result.text)
        finally:
            self._splitter.cleanup(created, work_dir if created else None)

        return TranscriptionResult(text=stitch_transcripts(texts), duration=total_seconds)

    def _transcribe_file(
        self,
        path: Path,
        *,
        filename: str,
        mime: str,
        timeout_seconds: float,
        label: str,
    ) -> TranscriptionResult:
        def _call(cancel_event) -> TranscriptionResult:
            with open(path, "rb") as audio:
                return self._client.transcribe(
                    audio,
                    filename=filename,
                    mime=mime,
                    cancel_event=cancel_event,
                    timeout_seconds=timeout_seconds,
                )

        return call_with_timeout(_call, timeout_seconds=timeout_seconds, label=label)


__all__ = ["AudioSplitter", "TranscriptionService"]

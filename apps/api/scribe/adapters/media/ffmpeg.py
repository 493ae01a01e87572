"""Audio probing and splitting with the system ffmpeg/ffprobe binaries."""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import suppress
import logging
import math
from pathlib import Path
import shutil
import subprocess

from scribe.domain.chunking import ChunkBoundary
from scribe.errors import AudioProcessingError

logger = logging.getLogger(__name__)

_PROBE_TIMEOUT_SECONDS = 10
_SPLIT_TIMEOUT_SECONDS = 60


class FfmpegAudioSplitter:
    """Cuts audio into overlapping chunks using stream copy (no re-encoding)."""

    def __init__(self, ffmpeg_binary: str = "ffmpeg", ffprobe_binary: str = "ffprobe") -> None:
        self._ffmpeg = ffmpeg_binary
        self._ffprobe = ffprobe_binary

    def is_available(self) -> bool:
        return shutil.which(self._ffmpeg) is not None and shutil.which(self._ffprobe) is not None

    def probe_duration(self, path: Path) -> float | None:
        """Duration in seconds, or None when ffprobe is missing or cannot read the file."""
        cmd = [
            self._ffprobe,
            "-v", "quiet",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
        try:
            proc = subprocess.run(
                cmd, check=False, capture_output=True, text=True, timeout=_PROBE_TIMEOUT_SECONDS
            )
        except (OSError, subprocess.TimeoutExpired):
            logger.warning("ffprobe.unavailable path_name=%s", path.name)
            return None

        if proc.returncode != 0:
            return None
        try:
            seconds = float(proc.stdout.strip())
        except ValueError:
            return None
        return seconds if math.isfinite(seconds) else None

    def split(self, path: Path, output_dir: Path, boundaries: Sequence[ChunkBoundary]) -> list[Path]:
        """Write one ``chunk-NNN<ext>`` file per boundary, in order."""
        if len(boundaries) <= 1:
            return [path]

        output_dir.mkdir(parents=True, exist_ok=True)
        suffix = path.suffix or ".webm"
        chunk_paths: list[Path] = []
        for index, boundary in enumerate(boundaries):
            chunk_path = output_dir / f"chunk-{index:03d}{suffix}"
            cmd = [
                self._ffmpeg,
                "-y",
                "-ss", str(boundary.start),
                "-t", str(boundary.duration),
                "-i", str(path),
                "-c", "copy",
                "-avoid_negative_ts", "make_zero",
                str(chunk_path),
            ]
            try:
                proc = subprocess.run(
                    cmd, check=False, capture_output=True, text=True, timeout=_SPLIT_TIMEOUT_SECONDS
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                self.cleanup(chunk_paths, output_dir)
                raise AudioProcessingError(f"ffmpeg could not split audio: {exc}") from exc

            if proc.returncode != 0 or not chunk_path.exists():
                self.cleanup([*chunk_paths, chunk_path], output_dir)
                stderr = (proc.stderr or "").strip().splitlines()
                detail = stderr[-1] if stderr else f"exit code {proc.returncode}"
                raise AudioProcessingError(f"ffmpeg failed splitting chunk {index}: {detail}")
            chunk_paths.append(chunk_path)
        return chunk_paths

    def cleanup(self, chunk_paths: Sequence[Path], output_dir: Path | None = None) -> None:
        """Remove chunk files and, if empty, their directory."""
        for chunk_path in chunk_paths:
            with suppress(OSError):
                chunk_path.unlink(missing_ok=True)
        if output_dir is not None:
            with suppress(OSError):
                output_dir.rmdir()


__all__ = ["FfmpegAudioSplitter"]

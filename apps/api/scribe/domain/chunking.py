"""Overlapping time windows for segmenting long audio."""

from dataclasses import dataclass

_MIN_TRAILING_SECONDS = 1.0


@dataclass(frozen=True, slots=True)
class ChunkBoundary:
    start: float
    duration: float


def calculate_chunk_boundaries(
    total_seconds: float,
    chunk_minutes: float = 10,
    overlap_seconds: float = 10,
) -> list[ChunkBoundary]:
    """Split ``total_seconds`` into windows of ``chunk_minutes`` that overlap.

    Consecutive windows start ``chunk_minutes * 60 - overlap_seconds`` apart.
    A degenerate configuration (overlap not shorter than the chunk) or a file
    that fits in one chunk yields a single window over the whole file. A
    trailing window shorter than one second is dropped once at least one window
    exists.
    """
    if total_seconds <= 0:
        return []

    chunk_seconds = chunk_minutes * 60
    step = chunk_seconds - overlap_seconds
    if step <= 0 or total_seconds <= chunk_seconds:
        return [ChunkBoundary(start=0, duration=total_seconds)]

    boundaries: list[ChunkBoundary] = []
    start: float = 0
    while start < total_seconds:
        duration = min(chunk_seconds, total_seconds - start)
        if duration < _MIN_TRAILING_SECONDS and boundaries:
            break
        boundaries.append(ChunkBoundary(start=start, duration=duration))
        start += step
    return boundaries

"""Mirror status ordering, progress floors and the simulated timeline."""

from scribe.schemas.job import MirrorStatus

_STATUS_ORDER: tuple[MirrorStatus, ...] = (
    MirrorStatus.QUEUED,
    MirrorStatus.UPLOADED,
    MirrorStatus.TRANSCRIBED,
    MirrorStatus.DRAFTED,
    MirrorStatus.EXPORTED,
    MirrorStatus.COMPLETE,
    MirrorStatus.FAILED,
)

TERMINAL_STATUSES: frozenset[MirrorStatus] = frozenset({MirrorStatus.COMPLETE, MirrorStatus.FAILED})

_PROGRESS_FLOORS: dict[MirrorStatus, int] = {
    MirrorStatus.QUEUED: 0,
    MirrorStatus.UPLOADED: 20,
    MirrorStatus.TRANSCRIBED: 50,
    MirrorStatus.DRAFTED: 75,
    MirrorStatus.EXPORTED: 90,
    MirrorStatus.COMPLETE: 100,
}

# (band start seconds, band end seconds, status, progress at start, progress at end)
_SIMULATED_SCHEDULE: tuple[tuple[float, float, MirrorStatus, int, int], ...] = (
    (0, 5, MirrorStatus.QUEUED, 0, 10),
    (5, 15, MirrorStatus.UPLOADED, 10, 35),
    (15, 45, MirrorStatus.TRANSCRIBED, 35, 65),
    (45, 75, MirrorStatus.DRAFTED, 65, 90),
    (75, 90, MirrorStatus.EXPORTED, 90, 95),
)
_SIMULATED_CEILING = (MirrorStatus.EXPORTED, 95)


def status_rank(status: MirrorStatus) -> int:
    return _STATUS_ORDER.index(status)


def is_terminal(status: MirrorStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_forward(current: MirrorStatus, target: MirrorStatus) -> bool:
    """Return True when ``target`` sorts strictly after ``current``."""
    return status_rank(target) > status_rank(current)


def progress_floor(status: MirrorStatus, current_progress: int) -> int:
    """Minimum progress a record must show once it reaches ``status``.

    ``failed`` has no floor of its own: it keeps whatever was already achieved.
    """
    floor = _PROGRESS_FLOORS.get(status)
    if floor is None:
        return current_progress
    return max(current_progress, floor)


def simulated_progress(elapsed_seconds: float) -> tuple[MirrorStatus, int] | None:
    """Map wall-clock time since creation onto a plausible (status, progress).

    Returns None for negative elapsed time (clock skew); never yields a
    terminal status.
    """
    if elapsed_seconds < 0:
        return None

    for start, end, status, low, high in _SIMULATED_SCHEDULE:
        if start <= elapsed_seconds < end:
            fraction = (elapsed_seconds - start) / (end - start)
            return status, int(low + (high - low) * fraction)
    return _SIMULATED_CEILING


def merge(
    current_status: MirrorStatus,
    current_progress: int,
    proposed_status: MirrorStatus,
    proposed_progress: int,
) -> tuple[MirrorStatus, int]:
    """Monotonic merge: status only moves forward and progress never drops."""
    if is_terminal(current_status):
        return current_status, current_progress

    status = proposed_status if is_forward(current_status, proposed_status) else current_status
    progress = max(current_progress, proposed_progress)
    return status, progress_floor(status, progress)

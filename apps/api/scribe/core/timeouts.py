"""Bounded execution of blocking external calls."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
import threading
from typing import Callable, TypeVar

from scribe.errors import ExternalCallTimeoutError

T = TypeVar("T")


def call_with_timeout(
    fn: Callable[[threading.Event], T],
    *,
    timeout_seconds: float,
    label: str,
) -> T:
    """Run ``fn(cancel_event)`` and give up after ``timeout_seconds``.

    The cancel event is set on timeout and again once the call has returned, so
    adapters that poll it can stop issuing further requests. A request already in
    flight keeps running on its helper thread until its own per-request timeout,
    which callers set to the same ``timeout_seconds``.
    """
    cancel_event = threading.Event()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scribe-call")
    future = executor.submit(fn, cancel_event)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError as exc:
        if not future.done():
            cancel_event.set()
            raise ExternalCallTimeoutError(f"{label} timed out after {round(timeout_seconds)}s") from exc
        raise
    finally:
        cancel_event.set()
        executor.shutdown(wait=False, cancel_futures=True)

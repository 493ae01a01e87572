"""Speech-to-text provider interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import threading
from typing import BinaryIO

from scribe.errors import ExternalServiceError

AI_DISABLED_MESSAGE = (
    "Real AI APIs are disabled. Set SCRIBE_AI_MODE=real to enable speech-to-text and drafting, "
    "or SCRIBE_AI_MODE=stub for deterministic demo output."
)


@dataclass(slots=True)
class TranscriptionResult:
    text: str
    duration: float | None = None


class TranscriptionClient(ABC):
    """Provider-neutral speech-to-text interface.

    Implementations should stop issuing work once ``cancel_event`` is set and
    bound any network request by ``timeout_seconds`` when it is given.
    """

    @abstractmethod
    def transcribe(
        self,
        audio: BinaryIO,
        *,
        filename: str,
        mime: str,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> TranscriptionResult:
        """Transcribe one audio stream."""


class UnavailableTranscriptionClient(TranscriptionClient):
    """Used when external AI calls are switched off or not configured."""

    def __init__(self, message: str = AI_DISABLED_MESSAGE) -> None:
        self._message = message

    def transcribe(
        self,
        audio: BinaryIO,
        *,
        filename: str,
        mime: str,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> TranscriptionResult:
        raise ExternalServiceError(self._message)


__all__ = [
    "AI_DISABLED_MESSAGE",
    "TranscriptionClient",
    "TranscriptionResult",
    "UnavailableTranscriptionClient",
]

"""Note-drafting provider interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import threading

from scribe.adapters.transcription.base import AI_DISABLED_MESSAGE
from scribe.errors import ExternalServiceError
from scribe.schemas.job import NoteType


@dataclass(slots=True)
class DraftResult:
    text: str
    tokens: int | None = None


class DraftingClient(ABC):
    @abstractmethod
    def draft(
        self,
        transcript: str,
        *,
        note_type: NoteType,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> DraftResult:
        """Produce structured note text from a transcript."""


class UnavailableDraftingClient(DraftingClient):
    def __init__(self, message: str = AI_DISABLED_MESSAGE) -> None:
        self._message = message

    def draft(
        self,
        transcript: str,
        *,
        note_type: NoteType,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> DraftResult:
        raise ExternalServiceError(self._message)


__all__ = ["DraftResult", "DraftingClient", "UnavailableDraftingClient"]

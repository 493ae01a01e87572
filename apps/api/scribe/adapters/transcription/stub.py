"""Deterministic speech-to-text used in stub mode and tests."""

from __future__ import annotations

import threading
from typing import BinaryIO

from scribe.adapters.transcription.base import TranscriptionClient, TranscriptionResult


class StubTranscriptionClient(TranscriptionClient):
    def __init__(self, text: str | None = None) -> None:
        self._text = text
        self.calls: list[str] = []

    def transcribe(
        self,
        audio: BinaryIO,
        *,
        filename: str,
        mime: str,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> TranscriptionResult:
        size = len(audio.read())
        self.calls.append(filename)
        text = self._text or (
            "STUB transcript (demo mode). "
            f"Received {filename} ({mime}, {size} bytes). "
            "Client reported feeling anxious and overwhelmed during the week."
        )
        return TranscriptionResult(text=text, duration=None)


__all__ = ["StubTranscriptionClient"]

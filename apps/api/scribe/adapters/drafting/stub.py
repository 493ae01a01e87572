"""Deterministic drafting used in stub mode and tests."""

from __future__ import annotations

import threading

from scribe.adapters.drafting.base import DraftingClient, DraftResult
from scribe.adapters.drafting.prompts import NOTE_LABELS, NOTE_SECTIONS
from scribe.schemas.job import NoteType


class StubDraftingClient(DraftingClient):
    def draft(
        self,
        transcript: str,
        *,
        note_type: NoteType,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> DraftResult:
        sections = "\n\n".join(f"## {section}\n[Demo content]" for section in NOTE_SECTIONS[note_type])
        text = (
            f"{NOTE_LABELS[note_type]} (demo mode)\n\n"
            f"Generated from a {len(transcript)}-character transcript.\n\n{sections}"
        )
        return DraftResult(text=text, tokens=0)


__all__ = ["StubDraftingClient"]

"""Note-drafting adapters."""

from scribe.core.config import Settings

from .anthropic_messages import AnthropicDraftingClient
from .base import DraftingClient, DraftResult, UnavailableDraftingClient
from .prompts import NOTE_LABELS, NOTE_SECTIONS, build_note_prompt
from .stub import StubDraftingClient


def build_drafting_client(settings: Settings) -> DraftingClient:
    """Select the drafting client for the configured AI mode."""
    if settings.ai_mode == "stub":
        return StubDraftingClient()
    if settings.ai_mode == "real":
        if not settings.anthropic_api_key:
            return UnavailableDraftingClient("SCRIBE_ANTHROPIC_API_KEY is required when SCRIBE_AI_MODE=real")
        return AnthropicDraftingClient(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_base_url,
            model=settings.drafting_model,
            max_tokens=settings.drafting_max_tokens,
            timeout_seconds=settings.drafting_timeout_seconds,
        )
    return UnavailableDraftingClient()


__all__ = [
    "AnthropicDraftingClient",
    "DraftResult",
    "DraftingClient",
    "NOTE_LABELS",
    "NOTE_SECTIONS",
    "StubDraftingClient",
    "UnavailableDraftingClient",
    "build_drafting_client",
    "build_note_prompt",
]

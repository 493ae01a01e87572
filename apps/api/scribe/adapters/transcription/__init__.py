"""Speech-to-text adapters."""

from scribe.core.config import Settings

from .base import AI_DISABLED_MESSAGE, TranscriptionClient, TranscriptionResult, UnavailableTranscriptionClient
from .openai_whisper import OpenAITranscriptionClient
from .stub import StubTranscriptionClient


def build_transcription_client(settings: Settings) -> TranscriptionClient:
    """Select the speech-to-text client for the configured AI mode."""
    if settings.ai_mode == "stub":
        return StubTranscriptionClient()
    if settings.ai_mode == "real":
        if not settings.openai_api_key:
            return UnavailableTranscriptionClient("SCRIBE_OPENAI_API_KEY is required when SCRIBE_AI_MODE=real")
        return OpenAITranscriptionClient(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.transcription_model,
            language=settings.transcription_language,
            timeout_seconds=settings.transcription_timeout_seconds,
        )
    return UnavailableTranscriptionClient()


__all__ = [
    "AI_DISABLED_MESSAGE",
    "OpenAITranscriptionClient",
    "StubTranscriptionClient",
    "TranscriptionClient",
    "TranscriptionResult",
    "UnavailableTranscriptionClient",
    "build_transcription_client",
]

"""OpenAI-compatible speech-to-text over the REST API."""

from __future__ import annotations

import logging
import threading
from typing import BinaryIO

import httpx

from scribe.adapters.transcription.base import TranscriptionClient, TranscriptionResult
from scribe.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class OpenAITranscriptionClient(TranscriptionClient):
    """Posts audio to ``{base_url}/audio/transcriptions`` as multipart form data."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        language: str | None,
        timeout_seconds: float,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/audio/transcriptions"
        self._model = model
        self._language = language
        self._timeout = timeout_seconds
        self._http_client = http_client

    def transcribe(
        self,
        audio: BinaryIO,
        *,
        filename: str,
        mime: str,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> TranscriptionResult:
        if cancel_event is not None and cancel_event.is_set():
            raise ExternalServiceError("Speech-to-text request cancelled")

        data = {"model": self._model, "response_format": "verbose_json"}
        if self._language:
            data["language"] = self._language

        client = self._http_client or httpx.Client(timeout=self._timeout)
        try:
            response = client.post(
                self._url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                data=data,
                files={"file": (filename, audio, mime)},
                timeout=timeout_seconds if timeout_seconds is not None else self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("transcription.http_error status=%s", exc.response.status_code)
            raise ExternalServiceError(
                f"Speech-to-text transcription failed: HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalServiceError(f"Speech-to-text transcription failed: {exc}") from exc
        finally:
            if self._http_client is None:
                client.close()

        text = payload.get("text")
        if not isinstance(text, str):
            raise ExternalServiceError("Speech-to-text transcription failed: response missing text")
        duration = payload.get("duration")
        return TranscriptionResult(
            text=text,
            duration=float(duration) if isinstance(duration, (int, float)) else None,
        )


__all__ = ["OpenAITranscriptionClient"]

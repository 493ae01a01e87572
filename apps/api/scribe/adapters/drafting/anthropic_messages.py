"""Anthropic-compatible note drafting over the Messages REST API."""

from __future__ import annotations

import logging
import threading

import httpx

from scribe.adapters.drafting.base import DraftingClient, DraftResult
from scribe.adapters.drafting.prompts import build_note_prompt
from scribe.errors import ExternalServiceError
from scribe.schemas.job import NoteType

logger = logging.getLogger(__name__)

_API_VERSION = "2023-06-01"


class AnthropicDraftingClient(DraftingClient):
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        max_tokens: int,
        timeout_seconds: float,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/messages"
        self._model = model
        self._max_tokens = max_tokens
        self._timeout = timeout_seconds
        self._http_client = http_client

    def draft(
        self,
        transcript: str,
        *,
        note_type: NoteType,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> DraftResult:
        if cancel_event is not None and cancel_event.is_set():
            raise ExternalServiceError("Drafting request cancelled")

        body = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": build_note_prompt(transcript, note_type)}],
        }
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": _API_VERSION,
            "content-type": "application/json",
        }

        client = self._http_client or httpx.Client(timeout=self._timeout)
        try:
            response = client.post(
                self._url,
                headers=headers,
                json=body,
                timeout=timeout_seconds if timeout_seconds is not None else self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("drafting.http_error status=%s", exc.response.status_code)
            raise ExternalServiceError(f"Drafting API failed: HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalServiceError(f"Drafting API failed: {exc}") from exc
        finally:
            if self._http_client is None:
                client.close()

        content = payload.get("content") or []
        first = content[0] if content else {}
        if first.get("type") != "text" or not isinstance(first.get("text"), str):
            raise ExternalServiceError("Drafting API failed: unexpected response type")

        usage = payload.get("usage") or {}
        input_tokens = usage.get("input_tokens")
        output_tokens = usage.get("output_tokens")
        tokens = (
            input_tokens + output_tokens
            if isinstance(input_tokens, int) and isinstance(output_tokens, int)
            else None
        )
        return DraftResult(text=first["text"], tokens=tokens)


__all__ = ["AnthropicDraftingClient"]

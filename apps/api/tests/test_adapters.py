"""Adapter tests: auth tokens, AI client selection and the REST speech/drafting clients."""

from __future__ import annotations

import io
import json
import unittest

import httpx

from scribe.adapters.auth import AuthVerificationError, MockTokenVerifier
from scribe.adapters.drafting import (
    AnthropicDraftingClient,
    StubDraftingClient,
    UnavailableDraftingClient,
    build_drafting_client,
)
from scribe.adapters.transcription import (
    OpenAITranscriptionClient,
    StubTranscriptionClient,
    UnavailableTranscriptionClient,
    build_transcription_client,
)
from scribe.core.config import Settings
from scribe.errors import ExternalServiceError
from scribe.schemas.job import NoteType
from scribe.services.audio import reconcile_filename


class MockTokenVerifierTests(unittest.TestCase):
    def test_token_formats(self) -> None:
        verifier = MockTokenVerifier()

        basic = verifier.verify_token("test:user-1")
        self.assertEqual((basic.user_id, basic.role, basic.practice_id), ("user-1", "clinician", "user-1"))

        full = verifier.verify_token("test:user-2:admin:practice-9")
        self.assertEqual((full.user_id, full.role, full.practice_id), ("user-2", "admin", "practice-9"))

    def test_rejects_malformed_tokens(self) -> None:
        verifier = MockTokenVerifier()
        for token in ("user-1", "prod:user-1", "test:", "test:user:role:practice:extra", "test:user::"):
            with self.subTest(token=token):
                with self.assertRaises(AuthVerificationError):
                    verifier.verify_token(token)


class ClientSelectionTests(unittest.TestCase):
    def test_stub_mode(self) -> None:
        settings = Settings(ai_mode="stub")

        self.assertIsInstance(build_transcription_client(settings), StubTranscriptionClient)
        self.assertIsInstance(build_drafting_client(settings), StubDraftingClient)

    def test_disabled_mode_refuses_every_call(self) -> None:
        settings = Settings(ai_mode="disabled")
        transcription = build_transcription_client(settings)
        drafting = build_drafting_client(settings)

        self.assertIsInstance(transcription, UnavailableTranscriptionClient)
        with self.assertRaises(ExternalServiceError) as ctx:
            transcription.transcribe(io.BytesIO(b"abc"), filename="a.wav", mime="audio/wav")
        self.assertIn("disabled", str(ctx.exception))
        with self.assertRaises(ExternalServiceError):
            drafting.draft("text", note_type=NoteType.SOAP)

    def test_real_mode_without_keys_reports_missing_configuration(self) -> None:
        settings = Settings(ai_mode="real", openai_api_key=None, anthropic_api_key=None)
        drafting = build_drafting_client(settings)

        self.assertIsInstance(drafting, UnavailableDraftingClient)
        with self.assertRaises(ExternalServiceError) as ctx:
            drafting.draft("text", note_type=NoteType.SOAP)
        self.assertIn("SCRIBE_ANTHROPIC_API_KEY", str(ctx.exception))

    def test_real_mode_with_keys(self) -> None:
        settings = Settings(ai_mode="real", openai_api_key="sk-test", anthropic_api_key="ak-test")

        self.assertIsInstance(build_transcription_client(settings), OpenAITranscriptionClient)
        self.assertIsInstance(build_drafting_client(settings), AnthropicDraftingClient)


class OpenAITranscriptionClientTests(unittest.TestCase):
    def _client(self, handler) -> OpenAITranscriptionClient:
        return OpenAITranscriptionClient(
            api_key="sk-test",
            base_url="https://stt.example.test/v1/",
            model="whisper-1",
            language="en",
            timeout_seconds=5,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

    def test_posts_multipart_audio_and_parses_verbose_json(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"text": "Hello from the session.", "duration": 61.5})

        result = self._client(handler).transcribe(io.BytesIO(b"audio-bytes"), filename="s.wav", mime="audio/wav")

        self.assertEqual(result.text, "Hello from the session.")
        self.assertEqual(result.duration, 61.5)
        request = seen[0]
        self.assertEqual(str(request.url), "https://stt.example.test/v1/audio/transcriptions")
        self.assertEqual(request.headers["authorization"], "Bearer sk-test")
        body = request.read()
        self.assertIn(b'name="model"', body)
        self.assertIn(b"verbose_json", body)
        self.assertIn(b'filename="s.wav"', body)
        self.assertIn(b"audio-bytes", body)

    def test_http_errors_become_external_service_errors(self) -> None:
        client = self._client(lambda request: httpx.Response(429, json={"error": "rate limited"}))

        with self.assertRaises(ExternalServiceError) as ctx:
            client.transcribe(io.BytesIO(b"a"), filename="s.wav", mime="audio/wav")

        self.assertIn("HTTP 429", str(ctx.exception))

    def test_response_without_text_is_rejected(self) -> None:
        client = self._client(lambda request: httpx.Response(200, json={"segments": []}))

        with self.assertRaises(ExternalServiceError):
            client.transcribe(io.BytesIO(b"a"), filename="s.wav", mime="audio/wav")

    def test_call_time_limit_bounds_the_request(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.extensions["timeout"])
            return httpx.Response(200, json={"text": "ok"})

        client = self._client(handler)
        client.transcribe(io.BytesIO(b"a"), filename="s.wav", mime="audio/wav", timeout_seconds=2.5)
        client.transcribe(io.BytesIO(b"a"), filename="s.wav", mime="audio/wav")

        self.assertEqual(seen[0]["read"], 2.5)
        self.assertEqual(seen[0]["write"], 2.5)
        self.assertEqual(seen[1]["read"], 5)


class AnthropicDraftingClientTests(unittest.TestCase):
    def _client(self, handler) -> AnthropicDraftingClient:
        return AnthropicDraftingClient(
            api_key="ak-test",
            base_url="https://llm.example.test/v1",
            model="claude-test",
            max_tokens=500,
            timeout_seconds=5,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

    def test_sends_note_prompt_and_counts_tokens(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(str(request.url), "https://llm.example.test/v1/messages")
            self.assertEqual(request.headers["x-api-key"], "ak-test")
            self.assertEqual(request.headers["anthropic-version"], "2023-06-01")
            seen.append(json.loads(request.read()))
            return httpx.Response(
                200,
                json={
                    "content": [{"type": "text", "text": "## Data\nClient attended."}],
                    "usage": {"input_tokens": 120, "output_tokens": 80},
                },
            )

        result = self._client(handler).draft("Client attended session.", note_type=NoteType.DAP)

        self.assertEqual(result.text, "## Data\nClient attended.")
        self.assertEqual(result.tokens, 200)
        self.assertEqual(seen[0]["model"], "claude-test")
        self.assertEqual(seen[0]["max_tokens"], 500)
        prompt = seen[0]["messages"][0]["content"]
        self.assertIn("Client attended session.", prompt)
        self.assertIn("Assessment", prompt)

    def test_non_text_content_is_rejected(self) -> None:
        client = self._client(
            lambda request: httpx.Response(200, json={"content": [{"type": "tool_use", "id": "x"}]})
        )

        with self.assertRaises(ExternalServiceError):
            client.draft("text", note_type=NoteType.SOAP)

    def test_http_errors_become_external_service_errors(self) -> None:
        client = self._client(lambda request: httpx.Response(500, text="upstream down"))

        with self.assertRaises(ExternalServiceError) as ctx:
            client.draft("text", note_type=NoteType.SOAP)

        self.assertIn("HTTP 500", str(ctx.exception))

    def test_call_time_limit_bounds_the_request(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.extensions["timeout"])
            return httpx.Response(200, json={"content": [{"type": "text", "text": "ok"}]})

        self._client(handler).draft("text", note_type=NoteType.SOAP, timeout_seconds=1.5)

        self.assertEqual(seen[0]["read"], 1.5)


class StubClientTests(unittest.TestCase):
    def test_stub_drafting_uses_note_sections(self) -> None:
        result = StubDraftingClient().draft("transcript", note_type=NoteType.GIRP)

        self.assertIn("## Goals", result.text)
        self.assertEqual(result.tokens, 0)


class FilenameReconciliationTests(unittest.TestCase):
    def test_cases(self) -> None:
        cases = [
            ((None, "audio/webm"), ("audio.webm", ".webm")),
            (("visit", "audio/wav"), ("visit.wav", ".wav")),
            (("visit.mp3", "audio/mpeg"), ("visit.mp3", ".mp3")),
            (("visit.wav", "audio/mpeg"), ("visit.wav", ".wav")),
            (("visit.txt", "audio/mp4"), ("visit.m4a", ".m4a")),
        ]
        for (raw, mime), expected in cases:
            with self.subTest(raw=raw, mime=mime):
                self.assertEqual(reconcile_filename(raw, mime), expected)


if __name__ == "__main__":
    unittest.main()

"""Authentication dependency and route contract tests."""

from __future__ import annotations

import inspect
import os
import tempfile
import unittest

from fastapi import Request
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from scribe.core.config import get_settings
from scribe.main import create_app
from scribe.routes.dependencies import get_job_service
from scribe.schemas.auth import AuthPrincipal
from scribe.schemas.job import CreateJobRequest, CreateJobResponse


class _CapturingJobService:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, CreateJobRequest]] = []

    def create_job(self, *, principal: AuthPrincipal, session_id: str, request: CreateJobRequest) -> CreateJobResponse:
        self.calls.append((principal.user_id, session_id, request))
        return CreateJobResponse(job_id="job_1", session_id=session_id, status_url="/api/v1/jobs/job_1/status")


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = (
        "SCRIBE_ARTIFACTS_ROOT",
        "SCRIBE_AI_MODE",
        "SCRIBE_ALLOW_SESSION_AUTOCREATE",
    )

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["SCRIBE_ARTIFACTS_ROOT"] = self._tmp.name
        os.environ["SCRIBE_AI_MODE"] = "stub"
        os.environ["SCRIBE_ALLOW_SESSION_AUTOCREATE"] = "true"
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()
        self._tmp.cleanup()


class AuthApiTests(_SettingsEnvCase):
    def test_openapi_includes_paths_and_contract_response_codes(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.get("/openapi.json")
        self.assertEqual(response.status_code, 200)
        paths = response.json()["paths"]

        self.assertIn("/api/v1/sessions/{sessionId}/audio", paths)
        self.assertIn("/api/v1/sessions/{sessionId}/audio/{artifactId}", paths)
        self.assertIn("/api/v1/sessions/{sessionId}/jobs", paths)
        self.assertIn("/api/v1/jobs/{jobId}", paths)
        self.assertIn("/api/v1/jobs/{jobId}/status", paths)
        self.assertIn("/api/v1/jobs/{jobId}/artifacts/{kind}", paths)
        self.assertIn("/api/v1/internal/jobs/runner", paths)
        self.assertIn("/api/v1/internal/jobs/purge", paths)

        upload_codes = set(paths["/api/v1/sessions/{sessionId}/audio"]["post"]["responses"].keys())
        self.assertTrue({"201", "400", "401", "404", "413", "415"} <= upload_codes)
        create_post = paths["/api/v1/sessions/{sessionId}/jobs"]["post"]
        self.assertTrue({"202", "400", "401", "404", "409"} <= set(create_post["responses"].keys()))
        self.assertEqual(
            create_post["responses"]["409"]["content"]["application/json"]["schema"]["$ref"],
            "#/components/schemas/SessionConflictError",
        )
        self.assertEqual(
            paths["/api/v1/jobs/{jobId}"]["get"]["responses"]["404"]["content"]["application/json"]["schema"]["$ref"],
            "#/components/schemas/NoLeakNotFoundError",
        )
        self.assertIn("204", paths["/api/v1/jobs/{jobId}"]["delete"]["responses"])

    def test_only_the_streaming_upload_handler_is_async(self) -> None:
        app = create_app()

        async_routes = {
            (route.path, method)
            for route in app.routes
            if isinstance(route, APIRoute) and inspect.iscoroutinefunction(route.endpoint)
            for method in route.methods
        }

        self.assertEqual(async_routes, {("/api/v1/sessions/{sessionId}/audio", "POST")})

    def test_missing_authorization_header_returns_401_and_no_session_side_effect(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.post("/api/v1/sessions/sess-1/jobs", json={"transcript_text": "hello"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "UNAUTHORIZED")
        self.assertFalse(app.state.layout.session_index_dir.exists())

    def test_invalid_bearer_token_returns_401_and_no_upload_side_effect(self) -> None:
        app = create_app()
        client = TestClient(app)

        response = client.post(
            "/api/v1/sessions/sess-1/audio",
            headers={"Authorization": "Bearer not-a-valid-token", "Content-Type": "audio/wav"},
            content=b"audio",
        )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "UNAUTHORIZED")
        self.assertFalse(app.state.layout.sessions_dir.exists())

    def test_valid_bearer_token_resolves_user_id_for_downstream_handler(self) -> None:
        app = create_app()
        client = TestClient(app)

        capturing_service = _CapturingJobService()
        app.dependency_overrides[get_job_service] = lambda: capturing_service

        response = client.post(
            "/api/v1/sessions/sess-9/jobs",
            headers={"Authorization": "Bearer test:user-123"},
            json={"transcript_text": "Client reported progress.", "note_type": "girp"},
        )

        self.assertEqual(response.status_code, 202)
        self.assertEqual(len(capturing_service.calls), 1)
        user_id, session_id, request = capturing_service.calls[0]
        self.assertEqual(user_id, "user-123")
        self.assertEqual(session_id, "sess-9")
        self.assertEqual(request.note_type.value, "girp")

    def test_auth_principal_is_attached_to_request_state(self) -> None:
        app = create_app()
        client = TestClient(app)

        capturing_service = _CapturingJobService()
        observed: dict[str, str] = {}

        def _override_job_service(request: Request) -> _CapturingJobService:
            principal = request.state.auth_principal
            observed["user_id"] = principal.user_id
            observed["practice_id"] = principal.practice_id
            return capturing_service

        app.dependency_overrides[get_job_service] = _override_job_service

        response = client.post(
            "/api/v1/sessions/sess-1/jobs",
            headers={"Authorization": "Bearer test:user-state:clinician:practice-7"},
            json={"transcript_text": "hello"},
        )

        self.assertEqual(response.status_code, 202)
        self.assertEqual(observed, {"user_id": "user-state", "practice_id": "practice-7"})

    def test_auth_logs_do_not_contain_raw_identifiers(self) -> None:
        app = create_app()
        client = TestClient(app)
        app.dependency_overrides[get_job_service] = _CapturingJobService

        with self.assertLogs("scribe.routes.dependencies", level="INFO") as captured:
            client.post(
                "/api/v1/sessions/sess-1/jobs",
                headers={"Authorization": "Bearer test:user-secret-id", "X-Correlation-Id": "corr-raw-1"},
                json={"transcript_text": "hello"},
            )

        output = "\n".join(captured.output)
        self.assertIn("auth.accepted", output)
        self.assertNotIn("user-secret-id", output)
        self.assertNotIn("corr-raw-1", output)


if __name__ == "__main__":
    unittest.main()

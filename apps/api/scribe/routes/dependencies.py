"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from secrets import compare_digest
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from scribe.adapters.auth import AuthVerificationError, TokenVerifier
from scribe.core.config import Settings
from scribe.core.logging_safety import safe_log_identifier
from scribe.errors import ApiError
from scribe.schemas.auth import AuthPrincipal
from scribe.services.audio import AudioService
from scribe.services.jobs import JobService
from scribe.services.purge import ArtifactPurger
from scribe.services.runner import QueuedJobRunner

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
runner_token_scheme = APIKeyHeader(
    name="X-Runner-Token",
    auto_error=False,
    scheme_name="internalRunnerToken",
)
logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def _auth_error(message: str) -> ApiError:
    return ApiError(status_code=401, code="UNAUTHORIZED", message=message)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_verifier(request: Request) -> TokenVerifier:
    """Verifier installed by the hosting application (mock verifier by default)."""
    return request.app.state.token_verifier


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> AuthPrincipal:
    """Validate bearer token and attach normalized principal to request context."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid or missing bearer token")

    try:
        principal = verifier.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error(str(exc) or "Invalid bearer token") from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s role=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="pid"),
        principal.role,
    )
    request.state.auth_principal = principal
    return principal


async def require_admin_principal(
    request: Request,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
) -> AuthPrincipal:
    if principal.role != ADMIN_ROLE:
        logger.warning(
            "auth.forbidden correlation_id=%s path=%s principal_id=%s role=%s",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.url.path,
            safe_log_identifier(principal.user_id, prefix="pid"),
            principal.role,
        )
        raise ApiError(status_code=403, code="FORBIDDEN", message="Admin role required")
    return principal


async def require_runner_token(
    request: Request,
    runner_token: Annotated[str | None, Security(runner_token_scheme)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> None:
    """Validate the shared secret presented by the periodic runner."""
    expected = settings.runner_token
    if not expected or runner_token is None or not compare_digest(runner_token, expected):
        logger.warning(
            "runner.auth_rejected correlation_id=%s method=%s path=%s reason=invalid_runner_token",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid runner authentication")


def get_job_service(request: Request) -> JobService:
    return request.app.state.job_service


def get_audio_service(request: Request) -> AudioService:
    return request.app.state.audio_service


def get_queued_job_runner(request: Request) -> QueuedJobRunner:
    return request.app.state.queued_job_runner


def get_artifact_purger(request: Request) -> ArtifactPurger:
    return request.app.state.artifact_purger

"""Internal maintenance routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from scribe.routes.dependencies import (
    get_artifact_purger,
    get_queued_job_runner,
    require_admin_principal,
    require_runner_token,
)
from scribe.schemas.auth import AuthPrincipal
from scribe.schemas.error import ErrorResponse
from scribe.schemas.job import MirrorPurgeResponse, RunnerResponse
from scribe.services.purge import ArtifactPurger
from scribe.services.runner import QueuedJobRunner

router = APIRouter(prefix="/internal", tags=["Internal"])


@router.post(
    "/jobs/runner",
    response_model=RunnerResponse,
    responses={401: {"model": ErrorResponse}},
)
def run_queued_jobs(
    _: Annotated[None, Depends(require_runner_token)],
    purger: Annotated[ArtifactPurger, Depends(get_artifact_purger)],
    runner: Annotated[QueuedJobRunner, Depends(get_queued_job_runner)],
) -> RunnerResponse:
    purge = purger.purge_expired_job_artifacts()
    processed = runner.process_queued_jobs()
    return RunnerResponse(
        processed=processed,
        purged=purge.purged_jobs,
        purged_sessions=purge.purged_sessions,
        stale_locks_removed=purge.stale_locks_removed,
    )


@router.post(
    "/jobs/purge",
    response_model=MirrorPurgeResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def purge_mirror(
    _: Annotated[AuthPrincipal, Depends(require_admin_principal)],
    purger: Annotated[ArtifactPurger, Depends(get_artifact_purger)],
) -> MirrorPurgeResponse:
    return MirrorPurgeResponse(purged=purger.purge_mirror())

"""Job routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status
from fastapi.responses import PlainTextResponse

from scribe.routes.dependencies import get_authenticated_principal, get_job_service
from scribe.schemas.auth import AuthPrincipal
from scribe.schemas.error import ErrorResponse, NoLeakNotFoundError
from scribe.schemas.job import (
    AdvanceJobRequest,
    ArtifactKind,
    JobEventsResponse,
    JobStatusRecord,
    MirrorJob,
)
from scribe.services.jobs import JobService

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get(
    "/{jobId}",
    response_model=MirrorJob,
    responses={404: {"model": NoLeakNotFoundError}},
)
def get_job(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> MirrorJob:
    return service.get_job_with_progress(principal=principal, job_id=job_id)


@router.post(
    "/{jobId}/advance",
    response_model=MirrorJob,
    responses={404: {"model": NoLeakNotFoundError}},
)
def advance_job(
    job_id: Annotated[str, Path(alias="jobId")],
    payload: AdvanceJobRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> MirrorJob:
    return service.advance_job(principal=principal, job_id=job_id, status=payload.status)


@router.get(
    "/{jobId}/events",
    response_model=JobEventsResponse,
    responses={404: {"model": NoLeakNotFoundError}},
)
def list_job_events(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> JobEventsResponse:
    return service.list_events(principal=principal, job_id=job_id)


@router.get(
    "/{jobId}/status",
    response_model=JobStatusRecord,
    response_model_by_alias=False,
    responses={404: {"model": NoLeakNotFoundError}},
)
def get_job_status(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> JobStatusRecord:
    return service.get_job_status(principal=principal, job_id=job_id)


@router.get(
    "/{jobId}/artifacts/{kind}",
    response_class=PlainTextResponse,
    responses={404: {"model": NoLeakNotFoundError}, 409: {"model": ErrorResponse}},
)
def get_job_artifact(
    job_id: Annotated[str, Path(alias="jobId")],
    kind: ArtifactKind,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> PlainTextResponse:
    text = service.read_artifact(principal=principal, job_id=job_id, kind=kind)
    media_type = "text/markdown" if kind is ArtifactKind.DRAFT else "text/plain"
    return PlainTextResponse(text, media_type=media_type)


@router.delete(
    "/{jobId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": NoLeakNotFoundError}},
)
def delete_job(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Response:
    service.delete_job(principal=principal, job_id=job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

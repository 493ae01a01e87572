"""Session-scoped routes: audio upload and job creation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, status
from fastapi.responses import FileResponse

from scribe.routes.dependencies import get_audio_service, get_authenticated_principal, get_job_service
from scribe.schemas.audio import AudioUploadResponse
from scribe.schemas.auth import AuthPrincipal
from scribe.schemas.error import ErrorResponse, NoLeakNotFoundError, SessionConflictError
from scribe.schemas.job import CreateJobRequest, CreateJobResponse
from scribe.services.audio import AudioService
from scribe.services.jobs import JobService

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def _content_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw)


@router.post(
    "/{sessionId}/audio",
    response_model=AudioUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
    },
)
async def upload_audio(
    request: Request,
    session_id: Annotated[str, Path(alias="sessionId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AudioService, Depends(get_audio_service)],
    filename: Annotated[str | None, Query()] = None,
) -> AudioUploadResponse:
    return await service.upload(
        principal=principal,
        session_id=session_id,
        content_type=request.headers.get("content-type"),
        filename=filename,
        content_length=_content_length(request),
        body=request.stream(),
    )


@router.get(
    "/{sessionId}/audio/{artifactId}",
    response_class=FileResponse,
    responses={404: {"model": NoLeakNotFoundError}},
)
def download_audio(
    session_id: Annotated[str, Path(alias="sessionId")],
    artifact_id: Annotated[str, Path(alias="artifactId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AudioService, Depends(get_audio_service)],
) -> FileResponse:
    artifact, path = service.get_audio(principal=principal, session_id=session_id, artifact_id=artifact_id)
    return FileResponse(path, media_type=artifact.mime, filename=artifact.filename)


@router.post(
    "/{sessionId}/jobs",
    response_model=CreateJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        409: {"model": SessionConflictError},
    },
)
def create_job(
    session_id: Annotated[str, Path(alias="sessionId")],
    payload: CreateJobRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> CreateJobResponse:
    return service.create_job(principal=principal, session_id=session_id, request=payload)

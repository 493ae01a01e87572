"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scribe.adapters.auth import MockTokenVerifier, TokenVerifier
from scribe.adapters.drafting import build_drafting_client
from scribe.adapters.media.ffmpeg import FfmpegAudioSplitter
from scribe.adapters.transcription import build_transcription_client
from scribe.core.config import Settings, get_settings
from scribe.errors import ApiError
from scribe.repositories.audio import AudioStore
from scribe.repositories.layout import ArtifactLayout
from scribe.repositories.ledger import JobLedger
from scribe.repositories.locks import RunnerLock, SessionLock
from scribe.repositories.memory import ProgressMirror
from scribe.routes import internal_router, jobs_router, sessions_router
from scribe.schemas.error import ErrorResponse
from scribe.services.audio import AudioService
from scribe.services.jobs import JobService
from scribe.services.pipeline import PipelineOrchestrator
from scribe.services.purge import ArtifactPurger
from scribe.services.runner import PipelineDispatcher, QueuedJobRunner
from scribe.services.transcription import TranscriptionService


def create_app(settings: Settings | None = None, token_verifier: TokenVerifier | None = None) -> FastAPI:
    settings = settings or get_settings()

    layout = ArtifactLayout(settings.artifacts_root)
    ledger = JobLedger(layout)
    mirror = ProgressMirror(ttl_seconds=settings.job_ttl_seconds)
    runner_lock = RunnerLock(layout)
    audio_store = AudioStore(layout)

    orchestrator = PipelineOrchestrator(
        ledger=ledger,
        audio_store=audio_store,
        runner_lock=runner_lock,
        transcription=TranscriptionService(
            build_transcription_client(settings),
            FfmpegAudioSplitter(),
            settings,
        ),
        drafting=build_drafting_client(settings),
        settings=settings,
        mirror=mirror,
    )
    dispatcher = PipelineDispatcher(orchestrator, max_workers=settings.pipeline_workers)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        dispatcher.shutdown()

    app = FastAPI(title="Session Scribe API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.token_verifier = token_verifier or MockTokenVerifier()
    app.state.layout = layout
    app.state.ledger = ledger
    app.state.mirror = mirror
    app.state.dispatcher = dispatcher
    app.state.job_service = JobService(
        ledger=ledger,
        mirror=mirror,
        session_lock=SessionLock(layout),
        audio_store=audio_store,
        dispatcher=dispatcher,
        settings=settings,
    )
    app.state.audio_service = AudioService(ledger=ledger, audio_store=audio_store, settings=settings)
    app.state.queued_job_runner = QueuedJobRunner(ledger, dispatcher, runner_lock)
    app.state.artifact_purger = ArtifactPurger(ledger=ledger, layout=layout, mirror=mirror, settings=settings)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        payload = ErrorResponse(
            code="VALIDATION_ERROR",
            message="Invalid request payload",
            details={"fields": fields},
        )
        return JSONResponse(status_code=400, content=payload.model_dump(mode="json"))

    api_prefix = "/api/v1"
    app.include_router(sessions_router, prefix=api_prefix)
    app.include_router(jobs_router, prefix=api_prefix)
    app.include_router(internal_router, prefix=api_prefix)

    return app


app = create_app()

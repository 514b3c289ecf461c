import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from codeask.api.meetings import router as meetings_router
from codeask.api.routes import router as api_router
from codeask.config import public_settings, settings, setup_logging
from codeask.container import AppContainer, build_container
from codeask.errors import (
    CodeAskError,
    IngestionInProgressError,
    NotFoundError,
    NotReadyError,
    SynthesisFailure,
    ValidationError,
)
from codeask.observability.middleware import RequestLoggingMiddleware

logger = setup_logging()

ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NotReadyError, status.HTTP_409_CONFLICT),
    (IngestionInProgressError, status.HTTP_409_CONFLICT),
    (SynthesisFailure, status.HTTP_502_BAD_GATEWAY),
)


def status_for(exc: CodeAskError) -> int:
    for kind, code in ERROR_STATUS:
        if isinstance(exc, kind):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(container: AppContainer | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.container = container or build_container(settings)
        logger.info("Application starting")
        logger.info("Loaded settings: %s", public_settings())
        try:
            yield
        finally:
            await app.state.container.aclose()
            logger.info("Application stopped")

    app = FastAPI(title="codeask", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/metrics")
    def metrics(request: Request) -> dict:
        registry = request.app.state.container.metrics
        return {"uptime_seconds": registry.uptime_seconds(), "counters": registry.snapshot()}

    @app.exception_handler(CodeAskError)
    async def domain_exception_handler(request: Request, exc: CodeAskError):
        code = status_for(exc)
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "error_type": type(exc).__name__, "status_code": code},
        )
        return JSONResponse(status_code=code, content={"detail": exc.message, **exc.details})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(api_router)
    app.include_router(meetings_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("codeask.main:app", host=settings.app_host, port=settings.app_port)

"""FastAPI application factory for the ExamGate service."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from examgate.config import Settings, get_settings
from examgate.errors import AuthRequired, ExamError, GateRejection
from examgate.routes import admin as admin_routes
from examgate.routes import exam as exam_routes
from examgate.routes import public as public_routes
from examgate.services import WritingScorer
from examgate.sql_store import SqlExamStore
from examgate.store import ExamStore, MemoryExamStore


logger = logging.getLogger("examgate.web")
logging.basicConfig(level=logging.INFO)

VERSION = "1.0.0"


def build_store(settings: Settings) -> ExamStore:
    """Instantiate the configured persistence backend."""
    if settings.STORE_BACKEND == "memory":
        return MemoryExamStore()
    return SqlExamStore(settings.DATABASE_URL)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ExamStore] = None,
    scorer: Optional[WritingScorer] = None,
) -> FastAPI:
    settings = settings or get_settings()
    store = store or build_store(settings)
    store.init()

    app = FastAPI(title="ExamGate", debug=settings.DEBUG)
    app.state.settings = settings
    app.state.store = store
    app.state.scorer = scorer or WritingScorer(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        """Log when the application starts."""
        logger.info("ExamGate starting up (store=%s)", store.backend_name)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        store.close()

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "healthy", "version": VERSION, "store": store.backend_name}

    @app.exception_handler(ExamError)
    async def exam_error_handler(request: Request, exc: ExamError):
        if isinstance(exc, GateRejection):
            logger.info("Gate %s for %s", exc.reason, request.url.path)
        if isinstance(exc, AuthRequired):
            return JSONResponse(
                exc.payload(),
                status_code=exc.status_code,
                headers={"WWW-Authenticate": exc.challenge},
            )
        return JSONResponse(exc.payload(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"error": "Invalid request body"}, status_code=status.HTTP_400_BAD_REQUEST
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Keep framework errors in the same shape as ours."""
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            detail = "Not found"
        else:
            detail = exc.detail or "An error occurred while processing the request."
        return JSONResponse({"error": detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Catch-all handler for unhandled errors."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    app.include_router(public_routes.router)
    app.include_router(exam_routes.router, prefix="/api/session")
    app.include_router(admin_routes.router, prefix="/api/admin")

    return app

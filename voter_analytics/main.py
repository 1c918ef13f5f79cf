from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db
from .errors import InputFormatError, NoValidRowsError, PersistenceError
from .services.error_reporter import build_reporter
from .services.generations import GenerationCounter
from .services.ingest import describe_persistence_error

from .api.contacts import router as contacts_router
from .api.metrics import router as metrics_router
from .api.query import router as query_router
from .api.uploads import router as uploads_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Voter Analytics API",
        version=settings.app_version,
    )

    app.state.reporter = build_reporter()
    app.state.generations = GenerationCounter()

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Startup ---
    @app.on_event("startup")
    def _startup() -> None:
        # Creates tables for all registered SQLModel models (idempotent)
        init_db()

    # --- Error envelope ---
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(InputFormatError)
    async def input_format_handler(request: Request, exc: InputFormatError) -> JSONResponse:
        logger.info("rejected upload: %s", exc)
        return JSONResponse(status_code=400, content={"title": exc.title, "detail": str(exc)})

    @app.exception_handler(NoValidRowsError)
    async def no_valid_rows_handler(request: Request, exc: NoValidRowsError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"title": "No valid data", "detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        await request.app.state.reporter.report(
            exc,
            "upload",
            route=request.url.path,
            metadata={"batch": exc.batch, "schema_missing": exc.schema_missing},
        )
        status = 503 if exc.schema_missing else 500
        return JSONResponse(
            status_code=status,
            content={"title": "Upload failed", "detail": describe_persistence_error(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s", request.url.path)
        await request.app.state.reporter.report(exc, "api", route=request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Something went wrong"})

    # --- Health / meta ---
    @app.get("/health", tags=["meta"])
    def health() -> Dict[str, Any]:
        return {"ok": True, "env": settings.env}

    @app.get("/version", tags=["meta"])
    def version() -> Dict[str, Any]:
        return {"name": settings.app_name, "version": settings.app_version}

    # --- API routers ---
    app.include_router(uploads_router)
    app.include_router(metrics_router)
    app.include_router(query_router)
    app.include_router(contacts_router)

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(level=getattr(logging, str(settings.log_level).upper(), logging.INFO))
    import uvicorn

    # NOTE: init_db is handled by the FastAPI startup hook.
    uvicorn.run(
        "voter_analytics.main:app",
        host=settings.host,
        port=int(settings.port),
        reload=bool(settings.reload),
    )

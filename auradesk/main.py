from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auradesk import storage
from auradesk.auth import require_user
from auradesk.db import dispose_engine
from auradesk.db_init import init_db
from auradesk.routes import auth, tasks, notes, habits, files, dashboard
from auradesk.settings import DEFAULT_JWT_SECRET, get_settings

UPLOAD_PATH = "/api/files/upload"


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def create_app() -> FastAPI:
    logging.basicConfig(
        level=os.getenv("BACKEND_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logger = logging.getLogger("auradesk")
    settings = get_settings()
    app = FastAPI(title="AuraDesk API", version="0.1.0")

    @app.middleware("http")
    async def _upload_size_guard(request: Request, call_next):
        # Declared oversize uploads are refused before the body is read.
        if request.url.path == UPLOAD_PATH and storage.exceeds_upload_limit(request.headers.get("content-length")):
            limit = get_settings().max_upload_bytes
            return JSONResponse(status_code=413, content={"error": f"File exceeds {limit} bytes"})
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=settings.allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    protected = [Depends(require_user)]
    app.include_router(auth.router)
    app.include_router(tasks.router, dependencies=protected)
    app.include_router(notes.router, dependencies=protected)
    app.include_router(habits.router, dependencies=protected)
    app.include_router(files.router, dependencies=protected)
    app.include_router(dashboard.router, dependencies=protected)

    @app.on_event("startup")
    async def _startup():
        if get_settings().jwt_secret == DEFAULT_JWT_SECRET:
            logger.warning("JWT_SECRET is not set; using the development default")
        await init_db()
        logger.info("Database initialized")

    @app.on_event("shutdown")
    async def _shutdown():
        await dispose_engine()

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "message": "AuraDesk API",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()

"""
FastAPI application entry point for the studio backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import get_settings
from backend.public_routes import router as public_router
from backend.routes import router
from shared.errors import StudioError

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "invalid-argument": 400,
    "unauthenticated": 401,
    "not-found": 404,
    "failed-precondition": 409,
    "deadline-exceeded": 504,
}


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(exc.code, 500)
    if status_code >= 500:
        logger.error("Unhandled %s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Studio Backend (FastAPI)", version="0.1.0")
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_exception_handler(StudioError, studio_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(public_router, prefix=settings.api_prefix)
    return app


app = create_app()

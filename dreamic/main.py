"""FastAPI application factory."""
from __future__ import annotations

from typing import List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dreamic.api.v1.api import api_router
from dreamic.config import settings
from dreamic.utils.exceptions import PreferencesStoreError, handle_preferences_store_error


tags_metadata: List[dict[str, str]] = [
    {
        "name": "notification-permission",
        "description": "Track notification permission denials, blocked requests and reminders per installation.",
    },
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Notification permission tracking for Dreamic client apps.",
        version="0.1.0",
        openapi_tags=tags_metadata,
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.errors(), "message": "Validation failed"},
        )

    @app.exception_handler(PreferencesStoreError)
    async def preferences_store_exception_handler(
        request: Request, exc: PreferencesStoreError
    ) -> JSONResponse:
        http_exc = handle_preferences_store_error(exc)
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()

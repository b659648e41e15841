"""Permit decision API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from pydantic import BaseModel

from permitto import __version__
from permitto.api.authz import router as authz_router
from permitto.api.config import Settings
from permitto.auth.middleware import SubjectHeaderMiddleware


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = __version__


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.api_title,
        description="Evaluates role and membership permission rules.",
        version=settings.api_version,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
    )

    app.add_middleware(
        SubjectHeaderMiddleware,
        role_header=settings.role_header,
        membership_header=settings.membership_header,
        user_header=settings.user_header,
        exclude_paths=settings.exclude_paths,
    )

    app.state.settings = settings
    app.include_router(authz_router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint (no subject required)."""
        return HealthResponse(status="ok", version=settings.api_version)

    return app


app = create_app()

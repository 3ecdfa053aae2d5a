"""FastAPI application entry point for InfoCapture."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from infocapture.api.routes import router
from infocapture.api.search import router as search_router
from infocapture.config.settings import InfoCaptureConfig
from infocapture.telemetry.logging_setup import setup_logging

VERSION = "1.0.0"


def create_app(config: InfoCaptureConfig | None = None) -> FastAPI:
    """Factory function for creating the FastAPI application."""
    config = config or InfoCaptureConfig()
    setup_logging(config.log_level)

    app = FastAPI(
        title="InfoCapture",
        description="Speech-to-text with smart field extraction",
        version=VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1")
    app.include_router(search_router, prefix="/api/v1", tags=["search"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": "infocapture", "version": VERSION}

    return app


app = create_app()

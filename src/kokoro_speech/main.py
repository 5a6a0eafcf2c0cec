"""
FastAPI Application Entry Point.

Creates the FastAPI application for the kokoro-speech service and wires
up routing, logging and the warmup lifespan.

Routers:
    - Speech: POST /api/v1/audio/speech
    - Info: /api/v1/models, /api/v1/voices, /health, /metrics

Usage:
    uvicorn kokoro_speech.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from kokoro_speech import __version__
from kokoro_speech.api.routes import router, warmup_engine
from kokoro_speech.api.speech import router as speech_router
from kokoro_speech.core.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Begin engine warmup before serving; nothing to release on shutdown."""
    # Warmup runs in the background (unless KOKORO_SPEECH_SKIP_WARMUP=1)
    warmup_engine()
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    # Reads KOKORO_SPEECH_LOG_LEVEL and the logging section of settings.yaml
    configure_logging()

    app = FastAPI(title="kokoro-speech", version=__version__, lifespan=lifespan)

    app.include_router(speech_router)   # /api/v1/audio/speech
    app.include_router(router)          # /api/v1/models, /api/v1/voices, /health, /metrics

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()

"""
FastAPI Dependency Injection Providers.

Shared resources for the route handlers. Each provider is cached so the
whole process shares one settings object, one catalog, one engine and one
SpeechService:

    get_settings() → get_service_config() → get_catalog() / get_speech_engine()
                                          → get_speech_service()

Tests replace any of these through ``app.dependency_overrides``:

    app.dependency_overrides[get_speech_service] = lambda: fake_service

Lifecycle:
    1. The app lifespan (main.py) calls warmup_service(), which builds
       the service and preloads the configured warmup model in the
       background.
    2. Route handlers receive the same SpeechService via Depends().
"""
from __future__ import annotations

from functools import lru_cache

from kokoro_speech.core.config import ServiceConfig, Settings, load_settings
from kokoro_speech.services.speech_service import SpeechService
from kokoro_speech.tts.catalog import Catalog, load_catalog
from kokoro_speech.tts.engine import BaseSpeechEngine, get_engine


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path comes from KOKORO_SPEECH_SETTINGS, defaulting to
    config/settings.yaml. A missing file means built-in defaults.
    """
    return load_settings(missing_ok=True)


@lru_cache(maxsize=1)
def get_service_config() -> ServiceConfig:
    return ServiceConfig.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    """Build the catalog once; it is immutable afterwards."""
    return load_catalog(default_voice=get_service_config().default_voice)


def get_speech_engine() -> BaseSpeechEngine:
    return get_engine(get_settings())


@lru_cache(maxsize=1)
def get_speech_service() -> SpeechService:
    """
    Get the singleton SpeechService.

    This is the primary dependency of the speech route.
    """
    config = get_service_config()
    return SpeechService(
        catalog=get_catalog(),
        engine=get_speech_engine(),
        timeout_s=config.engine.timeout_s,
    )


def warmup_service() -> None:
    """
    Start warming up the engine.

    Non-blocking: the configured warmup model loads in a background
    thread. Skipped with KOKORO_SPEECH_SKIP_WARMUP=1.
    """
    service = get_speech_service()
    service.warmup(get_service_config().engine.warmup_model)


def reset_dependencies() -> None:
    """Clear every cached provider (used by tests)."""
    get_settings.cache_clear()
    get_service_config.cache_clear()
    get_catalog.cache_clear()
    get_speech_service.cache_clear()

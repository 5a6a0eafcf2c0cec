"""
Informational API Routes.

Endpoints:
    GET /api/v1/models  - Catalog models (OpenAI list format)
    GET /api/v1/voices  - Catalog voices with language and gender
    GET /health         - Engine and catalog status
    GET /metrics        - Prometheus metrics

See Also:
    - api/speech.py: POST /api/v1/audio/speech
    - api/schemas.py: Response models
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from kokoro_speech.api.dependencies import get_catalog, get_speech_service, warmup_service
from kokoro_speech.api.schemas import (
    HealthResponse,
    LanguageInfo,
    ModelInfo,
    ModelList,
    VoiceInfo,
    VoiceList,
)
from kokoro_speech.core.metrics import metrics
from kokoro_speech.services.speech_service import SpeechService
from kokoro_speech.tts.catalog import Catalog

router = APIRouter()


@router.get("/api/v1/models", response_model=ModelList)
def list_models(catalog: Catalog = Depends(get_catalog)):
    """List the model ids accepted in the ``model`` field."""
    return ModelList(data=[ModelInfo(id=model.id) for model in catalog.models])


@router.get("/api/v1/voices", response_model=VoiceList)
def list_voices(catalog: Catalog = Depends(get_catalog)):
    """List the voice ids accepted in the ``voice`` field."""
    return VoiceList(
        voices=[
            VoiceInfo(
                id=voice.id,
                name=voice.name,
                gender=voice.gender,
                language=LanguageInfo(id=voice.language.id, name=voice.language.name),
            )
            for voice in catalog.voices.values()
        ]
    )


@router.get("/health", response_model=HealthResponse)
def health(service: SpeechService = Depends(get_speech_service)):
    """
    Health check for load balancers and orchestrators.

    The service accepts requests before warmup completes, so ``ok`` does
    not depend on ``warmed_up``.
    """
    return HealthResponse(**service.get_health_info())


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)


def warmup_engine():
    """Called from the app lifespan: begin loading the warmup model in the background."""
    warmup_service()

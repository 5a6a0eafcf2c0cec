"""
API Response Schemas.

Pydantic models for the informational endpoints. They drive both JSON
serialization and the OpenAPI documentation.

Models:
    ModelList: GET /api/v1/models (OpenAI list format)
    VoiceList: GET /api/v1/voices
    HealthResponse: GET /health

The speech request body is validated in services/validators.py
(SpeechRequestBody), not here, because it needs the catalog.
"""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field


class ModelInfo(BaseModel):
    id: str
    object: Literal["model"] = "model"
    owned_by: str = "kokoro-speech"


class ModelList(BaseModel):
    """
    Model list in the shape OpenAI clients expect.

    Example:
        {"object": "list", "data": [{"id": "model_q8f16", "object": "model", "owned_by": "kokoro-speech"}]}
    """
    object: Literal["list"] = "list"
    data: List[ModelInfo] = Field(default_factory=list)


class LanguageInfo(BaseModel):
    id: str
    name: str


class VoiceInfo(BaseModel):
    id: str
    name: str
    gender: str
    language: LanguageInfo


class VoiceList(BaseModel):
    voices: List[VoiceInfo] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """
    Service status.

    Attributes:
        ok: Always true when the process answers.
        engine: Active engine name ("kokoro", "tone").
        warmed_up: Whether the startup warmup has finished.
        loaded_models: Model ids with a live inference session.
        models: Number of catalog models.
        voices: Number of catalog voices.
    """
    ok: bool = True
    engine: str
    warmed_up: bool
    loaded_models: List[str] = Field(default_factory=list)
    models: int
    voices: int

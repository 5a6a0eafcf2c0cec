"""
kokoro-speech Services Layer.

Sits between the HTTP/CLI surfaces and the engine layer.

Components:
    - validators.py: Request body -> SynthesisRequest
    - voices.py: Voice id -> VoiceDescriptor (with default fallback)
    - speech_service.py: SpeechService (dispatch to the engine) and errors
"""
from .speech_service import (
    ErrorCode,
    SpeechError,
    SpeechService,
    SynthesisError,
    SynthesisTimeoutError,
    build_engine_request,
)
from .validators import SpeechValidationError, SynthesisRequest, parse_speech_request
from .voices import resolve_voice

__all__ = [
    "SpeechService",
    "SynthesisRequest",
    "SpeechError",
    "SpeechValidationError",
    "SynthesisError",
    "SynthesisTimeoutError",
    "ErrorCode",
    "build_engine_request",
    "parse_speech_request",
    "resolve_voice",
]

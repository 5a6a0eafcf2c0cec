"""
kokoro-speech: OpenAI-compatible Speech Service for Kokoro-82M.

Serves the OpenAI ``/audio/speech`` request shape on top of the Kokoro-82M
ONNX models: the request body is validated against the built-in model and
voice catalog, the voice is resolved to its language, and the synthesized
audio is returned as MP3 or WAV.

Key Features:
    - OpenAI-compatible endpoint (/api/v1/audio/speech)
    - 54 Kokoro voices across 9 languages, 8 ONNX model variants
    - Aggregated, human-readable validation errors
    - Optional engine timeout, Prometheus metrics, structured logging
    - Serverless CLI (kokoro-speech)

Example Usage:
    >>> import asyncio
    >>> from kokoro_speech.core.config import Settings
    >>> from kokoro_speech.services import SpeechService, parse_speech_request
    >>> from kokoro_speech.tts.catalog import load_catalog
    >>> from kokoro_speech.tts.engine import get_engine
    >>>
    >>> catalog = load_catalog()
    >>> service = SpeechService(catalog, get_engine(Settings(raw={"engine": {"type": "tone"}})))
    >>> request = parse_speech_request(
    ...     {"model": "model_q8f16", "voice": "af_heart", "input": "Hello"}, catalog)
    >>> result = asyncio.run(service.synthesize(request, request_id="demo"))
    >>> result.mime_type
    'audio/mpeg'
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

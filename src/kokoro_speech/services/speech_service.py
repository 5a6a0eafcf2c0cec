"""
SpeechService - Synthesis Dispatch.

This module turns a validated SynthesisRequest into audio:

    SynthesisRequest → resolve voice → EngineRequest → engine → EngineResult

The engine call is the only suspension point. It can be bounded by
``engine.timeout_s``; a timeout and any other engine failure are wrapped
in SpeechError subclasses so the HTTP layer can map them to status codes
without ever exposing engine internals to the caller.

Error Handling:
    - SpeechError: Base exception with standardized error codes
    - SynthesisError: The engine raised
    - SynthesisTimeoutError: The engine did not answer within timeout_s

Example:
    >>> service = SpeechService(catalog=load_catalog(), engine=get_engine(settings))
    >>> result = asyncio.run(service.synthesize(request, request_id="req-1"))
    >>> result.mime_type
    'audio/mpeg'
"""
from __future__ import annotations

import asyncio
import os
import threading
from typing import TYPE_CHECKING, Any, Dict, Optional

from kokoro_speech.core.logging import debug, error, fail, get_logger, info, success, verbose
from kokoro_speech.core.metrics import metrics
from kokoro_speech.services.voices import resolve_voice
from kokoro_speech.tts.catalog import Catalog, VoiceDescriptor
from kokoro_speech.tts.engine import BaseSpeechEngine, EngineRequest, EngineResult, VoiceWeight
from kokoro_speech.utils.timeit import timeit

if TYPE_CHECKING:
    from kokoro_speech.services.validators import SynthesisRequest

_LOG = get_logger("kokoro-speech.service")


# =============================================================================
# Error Codes and Exceptions
# =============================================================================

class ErrorCode:
    """
    Standardized error codes.

    Carried by SpeechError and used by the HTTP layer to pick a status.
    """
    INVALID_INPUT = "INVALID_INPUT"         # Request body failed validation
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"   # Engine raised
    TIMEOUT = "TIMEOUT"                     # Engine exceeded timeout_s
    INTERNAL_ERROR = "INTERNAL_ERROR"       # Unexpected error


class SpeechError(Exception):
    """
    Base exception for speech errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode class.
        details: Optional dictionary with additional context.
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to an error dict for logs and the CLI."""
        result = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class SynthesisError(SpeechError):
    """Raised when the engine fails."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.SYNTHESIS_FAILED, details)


class SynthesisTimeoutError(SpeechError):
    """Raised when the engine does not finish within the configured timeout."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.TIMEOUT, details)


class _EngineDeadlineExceeded(Exception):
    """timeout_s elapsed before the engine answered."""


# =============================================================================
# Dispatch
# =============================================================================

def build_engine_request(request: "SynthesisRequest", voice: VoiceDescriptor) -> EngineRequest:
    """
    Map a validated request and its resolved voice to an engine request.

    The language always comes from the resolved voice, so a fallback voice
    is spoken in its own language.
    """
    return EngineRequest(
        text=request.text,
        language_id=voice.language.id,
        voices=(VoiceWeight(voice_id=voice.id, weight=1.0),),
        model_id=request.model_id,
        speed=request.speed,
        format=request.response_format,
        use_acceleration=False,
    )


class SpeechService:
    """
    Dispatches validated requests to the speech engine.

    Holds no per-request state; one instance serves all requests
    concurrently.

    Args:
        catalog: Catalog used for voice resolution.
        engine: Engine performing synthesis.
        timeout_s: Upper bound for one engine call; 0 disables it.
    """

    def __init__(
        self,
        catalog: Catalog,
        engine: BaseSpeechEngine,
        timeout_s: float = 0.0,
    ):
        self._catalog = catalog
        self._engine = engine
        self._timeout_s = timeout_s

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def engine(self) -> BaseSpeechEngine:
        return self._engine

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    async def _call_engine(self, engine_request: EngineRequest) -> EngineResult:
        """
        Await the engine, bounded by timeout_s when it is positive.

        Only an elapsed deadline raises _EngineDeadlineExceeded; a
        TimeoutError raised by the engine itself propagates unchanged.
        """
        if self._timeout_s <= 0:
            return await self._engine.synthesize(engine_request)

        task = asyncio.ensure_future(self._engine.synthesize(engine_request))
        try:
            done, _ = await asyncio.wait({task}, timeout=self._timeout_s)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            task.cancel()
            raise _EngineDeadlineExceeded()
        return task.result()

    def prepare(self, request: "SynthesisRequest") -> EngineRequest:
        """Resolve the voice and build the engine request (no synthesis)."""
        voice = resolve_voice(request.voice_id, self._catalog)
        engine_request = build_engine_request(request, voice)
        verbose(_LOG, "engine_request_built", model=engine_request.model_id,
                voice=voice.id, language=engine_request.language_id,
                format=engine_request.format.value, speed=engine_request.speed)
        return engine_request

    async def synthesize(self, request: "SynthesisRequest", request_id: str) -> EngineResult:
        """
        Synthesize a validated request.

        Args:
            request: Validated synthesis request.
            request_id: Identifier for log correlation.

        Returns:
            EngineResult from the engine, unchanged.

        Raises:
            SynthesisTimeoutError: If the engine exceeds timeout_s.
            SynthesisError: If the engine raises.
        """
        model = request.model_id
        fmt = request.response_format.value

        info(_LOG, "speech_request", model=model, voice=request.voice_id, format=fmt,
             chars=len(request.text))
        debug(_LOG, "request_full", request_id=request_id, text=request.text, speed=request.speed)

        engine_request = self.prepare(request)

        with timeit("engine") as t:
            try:
                result = await self._call_engine(engine_request)
            except _EngineDeadlineExceeded:
                fail(_LOG, "engine_timeout", model=model, timeout_s=self._timeout_s)
                metrics.record_request(model=model, fmt=fmt, status="timeout",
                                       duration=t.seconds)
                raise SynthesisTimeoutError(
                    "Speech synthesis timed out",
                    {"timeout_s": self._timeout_s},
                )
            except Exception as e:
                error(_LOG, "engine_failed", exc_info=True, model=model,
                      error=str(e), error_type=type(e).__name__)
                metrics.record_request(model=model, fmt=fmt, status="error",
                                       duration=t.seconds)
                raise SynthesisError(
                    "Speech synthesis failed",
                    {"error_type": type(e).__name__},
                ) from e

        success(_LOG, "done", model=model, format=fmt, bytes=len(result.buffer),
                seconds=round(t.seconds, 3))
        metrics.record_request(model=model, fmt=fmt, status="success",
                               duration=t.seconds, audio_bytes=len(result.buffer))
        return result

    def warmup(self, model_id: Optional[str] = None) -> None:
        """
        Preload a model in a background thread.

        Requests are served meanwhile; the first one for a model that is
        still loading simply waits on the engine lock. Skipped when
        KOKORO_SPEECH_SKIP_WARMUP=1.
        """
        if os.getenv("KOKORO_SPEECH_SKIP_WARMUP", "0") == "1":
            info(_LOG, "warmup_skipped", reason="KOKORO_SPEECH_SKIP_WARMUP=1")
            return

        def _do():
            try:
                info(_LOG, "warmup_start", engine=self._engine.name, model=model_id)
                with timeit("warmup") as t:
                    self._engine.warmup(model_id)
                success(_LOG, "warmup_done", seconds=round(t.seconds, 3))
            except Exception as e:
                error(_LOG, "warmup_failed", error=str(e), error_type=type(e).__name__)

        threading.Thread(target=_do, name="kokoro-speech-warmup", daemon=True).start()

    def get_health_info(self) -> Dict[str, Any]:
        """Return engine and catalog status for /health."""
        return {
            "ok": True,
            "engine": self._engine.name,
            "warmed_up": self._engine.is_warmed(),
            "loaded_models": self._engine.loaded_models(),
            "models": len(self._catalog.model_ids),
            "voices": len(self._catalog.voice_ids),
        }

"""
OpenAI-Compatible Speech Endpoint.

``POST /api/v1/audio/speech`` accepts the OpenAI speech request shape and
answers with raw audio:

    {
        "model": "model_q8f16",
        "voice": "af_heart",
        "input": "Hello there!",
        "response_format": "mp3",   # optional: mp3 | wav
        "speed": 1.0                # optional: 0.25 - 5
    }

Responses:
    200: Audio bytes, Content-Type audio/mpeg or audio/wav
    400: {"message": "Validation error: ..."} (also for malformed JSON)
    504: {"message": "Speech synthesis timed out"}
    500: {"message": "Speech synthesis failed"} / {"message": "Internal server error"}

The body is parsed by hand rather than through a FastAPI body model so
that every validation failure, including undecodable JSON, produces the
same 400 message format instead of FastAPI's 422 error list.

Example Usage:
    from openai import OpenAI
    client = OpenAI(base_url="http://localhost:8000/api/v1", api_key="unused")
    response = client.audio.speech.create(
        model="model_q8f16",
        voice="af_heart",
        input="Hello there!",
    )
    response.write_to_file("speech.mp3")
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from kokoro_speech.api.dependencies import get_speech_service
from kokoro_speech.core.logging import error, get_logger, info, set_request_id
from kokoro_speech.core.metrics import metrics
from kokoro_speech.services.speech_service import ErrorCode, SpeechError, SpeechService
from kokoro_speech.services.validators import SpeechValidationError, parse_speech_request
from kokoro_speech.tts.engine import EngineResult

router = APIRouter()

_LOG = get_logger("kokoro-speech.api")

# Error code -> HTTP status
_STATUS = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.SYNTHESIS_FAILED: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def package_audio(result: EngineResult, request_id: str) -> Response:
    """Wrap engine output as-is in a 200 response."""
    return Response(
        content=result.buffer,
        media_type=result.mime_type,
        headers={"X-Request-Id": request_id},
    )


def _error_response(message: str, status_code: int, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": message},
        headers={"X-Request-Id": request_id},
    )


@router.post("/api/v1/audio/speech", response_class=Response)
async def create_speech(
    request: Request,
    service: SpeechService = Depends(get_speech_service),
):
    """
    Synthesize speech for an OpenAI-style request body.

    Every request ends in exactly one response; engine error details are
    logged, never returned.
    """
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)

    try:
        try:
            payload = await request.json()
        except ValueError:
            metrics.record_validation_failure()
            raise SpeechValidationError([("", "Request body must be valid JSON")])

        synthesis_request = parse_speech_request(payload, service.catalog)
        result = await service.synthesize(synthesis_request, rid)

    except SpeechError as e:
        status_code = _STATUS.get(e.code, 500)
        if isinstance(e, SpeechValidationError):
            info(_LOG, "speech_rejected", status=status_code, issues=len(e.issues))
        else:
            info(_LOG, "speech_failed", status=status_code, code=e.code)
        return _error_response(e.message, status_code, rid)

    except Exception as e:
        error(_LOG, "speech_internal_error", exc_info=True, error=str(e),
              error_type=type(e).__name__)
        return _error_response("Internal server error", 500, rid)

    return package_audio(result, rid)

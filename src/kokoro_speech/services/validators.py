"""
Speech Request Validation.

Turns an untyped request body into a SynthesisRequest or raises
SpeechValidationError. All field violations are collected in one pass so
the caller sees every problem at once.

Validation Rules:
    - model: Required string, one of the catalog model ids
    - voice: Required string, one of the catalog voice ids
    - input: Required string (may be empty)
    - response_format: Optional, "mp3" or "wav" (default "mp3")
    - speed: Optional number in [0.25, 5] (default 1)
    - Unknown fields are ignored

Error Message:
    Issues are rendered as ``<message> at "<path>"`` and joined with "; ",
    prefixed with "Validation error: ". Duplicates are dropped, first
    occurrence wins:

        Validation error: Field required at "input"; Voice not found, use one of: af_heart, ... at "voice"

Usage:
    from kokoro_speech.services.validators import parse_speech_request, SpeechValidationError

    try:
        request = parse_speech_request(payload, catalog)
    except SpeechValidationError as e:
        return JSONResponse({"message": e.message}, status_code=400)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from kokoro_speech.core.logging import get_logger, verbose
from kokoro_speech.core.metrics import metrics
from kokoro_speech.services.speech_service import ErrorCode, SpeechError
from kokoro_speech.tts.catalog import Catalog
from kokoro_speech.utils.audio import ResponseFormat

_LOG = get_logger("kokoro-speech.validators")

MIN_SPEED = 0.25
MAX_SPEED = 5.0
DEFAULT_SPEED = 1.0

# (path, message); path is "" for issues about the body as a whole
Issue = Tuple[str, str]


@dataclass(frozen=True)
class SynthesisRequest:
    """
    A validated speech request.

    model_id and voice_id are catalog members; speed is within
    [0.25, 5].
    """
    model_id: str
    voice_id: str
    text: str
    response_format: ResponseFormat = ResponseFormat.MP3
    speed: float = DEFAULT_SPEED


class SpeechValidationError(SpeechError):
    """
    Raised when a request body fails validation.

    Attributes:
        issues: Ordered, de-duplicated (path, message) pairs.
        message: Aggregated human-readable message.
    """

    def __init__(self, issues: List[Issue]):
        self.issues = _dedupe(issues)
        super().__init__(
            format_issues(self.issues),
            ErrorCode.INVALID_INPUT,
            {"issues": [{"path": p, "message": m} for p, m in self.issues]},
        )


def _dedupe(issues: List[Issue]) -> List[Issue]:
    seen = set()
    out = []
    for issue in issues:
        if issue not in seen:
            seen.add(issue)
            out.append(issue)
    return out


def format_issues(issues: List[Issue]) -> str:
    """Render issues as a single ``Validation error: ...`` message."""
    parts = []
    for path, message in _dedupe(issues):
        parts.append(f'{message} at "{path}"' if path else message)
    return "Validation error: " + "; ".join(parts)


def _catalog_from(info: ValidationInfo) -> Optional[Catalog]:
    return (info.context or {}).get("catalog")


class SpeechRequestBody(BaseModel):
    """
    Wire schema of the speech request body.

    Membership checks need the catalog, passed as validation context:
        SpeechRequestBody.model_validate(payload, context={"catalog": catalog})
    Without a catalog in the context only the types are checked.
    """
    model_config = ConfigDict(extra="ignore")

    model: StrictStr
    voice: StrictStr
    input: StrictStr
    response_format: ResponseFormat = ResponseFormat.MP3
    speed: float = Field(
        default=DEFAULT_SPEED,
        ge=MIN_SPEED,
        le=MAX_SPEED,
        strict=True,
        allow_inf_nan=False,
    )

    @field_validator("model")
    @classmethod
    def _known_model(cls, value: str, info: ValidationInfo) -> str:
        catalog = _catalog_from(info)
        if catalog is not None and value not in catalog.model_ids:
            raise PydanticCustomError(
                "model_not_found",
                "Model not found, use one of: {ids}",
                {"ids": ", ".join(catalog.model_ids)},
            )
        return value

    @field_validator("voice")
    @classmethod
    def _known_voice(cls, value: str, info: ValidationInfo) -> str:
        catalog = _catalog_from(info)
        if catalog is not None and value not in catalog.voice_ids:
            raise PydanticCustomError(
                "voice_not_found",
                "Voice not found, use one of: {ids}",
                {"ids": ", ".join(catalog.voice_ids)},
            )
        return value


def _issues_from(exc: ValidationError) -> List[Issue]:
    return [
        (".".join(str(part) for part in err["loc"]), err["msg"])
        for err in exc.errors()
    ]


def parse_speech_request(payload: Any, catalog: Catalog) -> SynthesisRequest:
    """
    Validate an untyped request body.

    Args:
        payload: Decoded JSON body (any type).
        catalog: Catalog providing the allowed model and voice ids.

    Returns:
        The validated SynthesisRequest.

    Raises:
        SpeechValidationError: With every violation found.
    """
    if not isinstance(payload, dict):
        issues: List[Issue] = [("", "Request body must be a JSON object")]
    else:
        try:
            body = SpeechRequestBody.model_validate(payload, context={"catalog": catalog})
        except ValidationError as e:
            issues = _issues_from(e)
        else:
            return SynthesisRequest(
                model_id=body.model,
                voice_id=body.voice,
                text=body.input,
                response_format=body.response_format,
                speed=float(body.speed),
            )

    err = SpeechValidationError(issues)
    verbose(_LOG, "validation_failed", issues=len(err.issues))
    metrics.record_validation_failure()
    raise err

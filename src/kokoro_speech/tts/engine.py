"""
Speech Engine Base Class and Factory.

This module provides:
    - VoiceWeight / EngineRequest: What the engine is asked to synthesize
    - EngineResult: Encoded audio plus its MIME type
    - BaseSpeechEngine: Base class for all engines
    - get_engine(): Factory returning the process-wide engine instance

Engine Selection:
    The engine is selected via KOKORO_SPEECH_ENGINE or ``engine.type`` in
    settings.yaml:
        - kokoro: Kokoro-82M through kokoro-onnx / onnxruntime
        - tone: Deterministic sine tones, no model files needed

Concurrency:
    Inference is blocking. ``BaseSpeechEngine.synthesize`` is a coroutine
    that runs the blocking work in a worker thread, so the event loop keeps
    serving other requests while a synthesis is in flight.

Implementing a New Engine:
    1. Create engines/<name>_engine.py
    2. Inherit from BaseSpeechEngine
    3. Implement render() (and load() if the engine has model state)
    4. Register in _create_engine()
"""
from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from kokoro_speech.core.config import ServiceConfig, Settings
from kokoro_speech.core.logging import debug, get_logger
from kokoro_speech.utils.audio import ResponseFormat, encode_audio
from kokoro_speech.utils.timeit import timeit


@dataclass(frozen=True)
class VoiceWeight:
    """One entry of a voice mixture."""
    voice_id: str
    weight: float

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"voice weight must be non-negative, got {self.weight}")


@dataclass(frozen=True)
class EngineRequest:
    """
    Engine-facing synthesis request.

    Attributes:
        text: Text to speak.
        language_id: Language tag of the voice (e.g. "en-us").
        voices: Ordered voice mixture; weights are relative.
        model_id: Catalog model id selecting the ONNX export.
        speed: Speaking rate multiplier.
        format: Output container.
        use_acceleration: Allow hardware execution providers.
    """
    text: str
    language_id: str
    voices: Tuple[VoiceWeight, ...]
    model_id: str
    speed: float
    format: ResponseFormat
    use_acceleration: bool = False

    def __post_init__(self) -> None:
        if not self.voices:
            raise ValueError("voice mixture must contain at least one voice")


@dataclass
class EngineResult:
    """
    Result of a synthesis call.

    Attributes:
        buffer: Encoded audio bytes.
        mime_type: Content type matching buffer.
        sample_rate: Sample rate of the encoded audio.
        timings_s: Per-stage timing breakdown in seconds.
    """
    buffer: bytes
    mime_type: str
    sample_rate: int = 0
    timings_s: Dict[str, float] = field(default_factory=dict)


class BaseSpeechEngine:
    """
    Base class for speech engines.

    Subclasses implement render(), returning float32 samples and a sample
    rate; encoding to the requested format is shared.

    Attributes:
        name: Engine identifier ("kokoro", "tone").
        settings: Raw application settings.
        config: Validated service configuration.
    """
    name: str = "base"

    def __init__(self, settings: Settings, config: Optional[ServiceConfig] = None):
        self.settings = settings
        self.config = config or ServiceConfig.from_settings(settings)
        self.logger = get_logger(f"kokoro-speech.engine.{self.name}")
        self._warmed = False

    def load(self, model_id: str) -> None:
        """Load the given model. Engines without model state do nothing."""

    def warmup(self, model_id: Optional[str] = None) -> None:
        """Preload a model so the first request does not pay for it."""
        if model_id:
            self.load(model_id)
        self._warmed = True

    def is_warmed(self) -> bool:
        return self._warmed

    def loaded_models(self) -> List[str]:
        return []

    def render(self, request: EngineRequest) -> tuple[np.ndarray, int]:
        """
        Produce raw samples for a request.

        Returns:
            Tuple of (float32 samples, sample rate).
        """
        raise NotImplementedError

    def synthesize_sync(self, request: EngineRequest) -> EngineResult:
        """Blocking synthesis: render() followed by encoding."""
        with timeit("synth") as t_synth:
            samples, sample_rate = self.render(request)
        with timeit("encode") as t_encode:
            buffer, mime_type = encode_audio(samples, sample_rate, request.format)

        debug(self.logger, "engine_rendered", samples=int(np.asarray(samples).size),
              sr=sample_rate, format=request.format.value)
        return EngineResult(
            buffer=buffer,
            mime_type=mime_type,
            sample_rate=sample_rate,
            timings_s={"synth": t_synth.seconds, "encode": t_encode.seconds},
        )

    async def synthesize(self, request: EngineRequest) -> EngineResult:
        """Synthesize without blocking the event loop."""
        return await asyncio.to_thread(self.synthesize_sync, request)


# =============================================================================
# Engine Factory (Singleton Pattern)
# =============================================================================

_ENGINE: Optional[BaseSpeechEngine] = None
_ENGINE_TYPE: Optional[str] = None
_ENGINE_LOCK = threading.Lock()


def _create_engine(engine_type: str, settings: Settings, config: ServiceConfig) -> BaseSpeechEngine:
    """
    Create an engine instance.

    Engine modules are imported lazily so the tone engine works without
    onnxruntime installed.

    Raises:
        ValueError: If engine_type is unknown.
    """
    if engine_type == "kokoro":
        from kokoro_speech.tts.engines.kokoro_engine import KokoroEngine
        return KokoroEngine(settings, config)

    if engine_type == "tone":
        from kokoro_speech.tts.engines.tone_engine import ToneEngine
        return ToneEngine(settings, config)

    raise ValueError(f"Unknown engine type: {engine_type}")


def get_engine(settings: Settings) -> BaseSpeechEngine:
    """
    Get or create the global engine instance.

    A new engine replaces the old one when the configured type changes.
    """
    global _ENGINE
    global _ENGINE_TYPE

    config = ServiceConfig.from_settings(settings)
    engine_type = config.engine.type

    if _ENGINE is None or _ENGINE_TYPE != engine_type:
        with _ENGINE_LOCK:
            if _ENGINE is None or _ENGINE_TYPE != engine_type:
                _ENGINE = _create_engine(engine_type, settings, config)
                _ENGINE_TYPE = engine_type

    return _ENGINE


def reset_engine() -> None:
    """Drop the global engine (used by tests)."""
    global _ENGINE
    global _ENGINE_TYPE
    with _ENGINE_LOCK:
        _ENGINE = None
        _ENGINE_TYPE = None

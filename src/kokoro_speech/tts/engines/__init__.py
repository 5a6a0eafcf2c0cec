"""
Speech Engine Implementations.

Available Engines:
    - KokoroEngine: Kokoro-82M through kokoro-onnx (ONNX Runtime)
    - ToneEngine: Deterministic sine tones, no model files

Lazy Loading:
    Engine classes are imported on first access so that importing this
    package does not pull in onnxruntime.

Usage:
    from kokoro_speech.tts.engine import get_engine
    engine = get_engine(settings)  # Auto-selects based on config
"""
from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "KokoroEngine",
    "ToneEngine",
]


def __getattr__(name: str):
    """Lazy import engine classes on first access."""
    if name == "KokoroEngine":
        from kokoro_speech.tts.engines.kokoro_engine import KokoroEngine
        return KokoroEngine
    if name == "ToneEngine":
        from kokoro_speech.tts.engines.tone_engine import ToneEngine
        return ToneEngine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:
    from kokoro_speech.tts.engines.kokoro_engine import KokoroEngine
    from kokoro_speech.tts.engines.tone_engine import ToneEngine

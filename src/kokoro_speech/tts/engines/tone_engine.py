"""
Tone Engine.

Encodes text as a sequence of sine tones, one per character. It needs no
model files, which makes it the engine of choice for tests, CI and
smoke-testing a deployment before the Kokoro weights are downloaded.

Output is deterministic: the same request always yields the same bytes
(before container encoding). Speed scales the per-character duration and
the base pitch depends on the first voice, so voice and speed changes are
audible.
"""
from __future__ import annotations

from typing import Optional

import numpy as np

from kokoro_speech.core.config import ServiceConfig, Settings
from kokoro_speech.tts.engine import BaseSpeechEngine, EngineRequest

BASE_FREQ_HZ = 220.0
GAIN = 0.2
CHAR_S = 0.08
GAP_S = 0.02


class ToneEngine(BaseSpeechEngine):
    """Deterministic sine-tone engine."""

    name = "tone"

    def __init__(self, settings: Settings, config: Optional[ServiceConfig] = None):
        super().__init__(settings, config)
        self.sample_rate = self.config.tone.sample_rate

    @staticmethod
    def _voice_offset(voice_id: str) -> int:
        # Stable across processes, unlike hash()
        return sum(voice_id.encode("utf-8")) % 7

    def render(self, request: EngineRequest) -> tuple[np.ndarray, int]:
        sr = self.sample_rate
        speed = request.speed if request.speed > 0 else 1.0
        char_n = max(1, int(sr * CHAR_S / speed))
        gap = np.zeros(int(sr * GAP_S / speed), dtype=np.float32)
        t = np.arange(char_n, dtype=np.float32) / sr
        offset = self._voice_offset(request.voices[0].voice_id)

        parts = []
        for ch in request.text:
            semitone = (ord(ch) % 24) - 12 + offset
            freq = BASE_FREQ_HZ * (2 ** (semitone / 12.0))
            parts.append((GAIN * np.sin(2 * np.pi * freq * t)).astype(np.float32))
            parts.append(gap)

        if not parts:
            return np.zeros(char_n, dtype=np.float32), sr
        return np.concatenate(parts), sr

"""
Kokoro Speech Engine (ONNX).

Kokoro-82M is a compact TTS model published as several ONNX exports
(fp32, fp16 and a number of quantized variants). This engine runs them
through the kokoro-onnx package on ONNX Runtime.

Features:
    - One inference session per model id, created on first use
    - Preset voices from voices-v1.0.bin, including weighted mixtures
    - CPU by default; hardware providers when use_acceleration is set

Model Files:
    - ONNX exports: models/kokoro/onnx/{model_id}.onnx
    - Voices: models/kokoro/voices-v1.0.bin

Configuration:
    settings.yaml:
        kokoro:
          model_path_template: models/kokoro/onnx/{model_id}.onnx
          voices_path: models/kokoro/voices-v1.0.bin
          accelerated_providers: [CUDAExecutionProvider, CPUExecutionProvider]

Installation:
    pip install kokoro-onnx
    huggingface-cli download onnx-community/Kokoro-82M-v1.0-ONNX --local-dir models/kokoro

See Also:
    - https://github.com/thewh1teagle/kokoro-onnx
    - https://huggingface.co/onnx-community/Kokoro-82M-v1.0-ONNX
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from kokoro_speech.core.config import ServiceConfig, Settings
from kokoro_speech.core.logging import debug, info, warn
from kokoro_speech.tts.engine import BaseSpeechEngine, EngineRequest, VoiceWeight
from kokoro_speech.utils.timeit import timeit

# kokoro-onnx rejects speeds outside this range
MIN_SPEED = 0.5
MAX_SPEED = 2.0

CPU_PROVIDERS = ("CPUExecutionProvider",)


class KokoroEngine(BaseSpeechEngine):
    """
    Kokoro engine backed by kokoro-onnx.

    Sessions are keyed by (model_id, use_acceleration) and cached for the
    life of the process.
    """

    name = "kokoro"

    def __init__(self, settings: Settings, config: Optional[ServiceConfig] = None):
        super().__init__(settings, config)
        self._cfg = self.config.kokoro
        self._models: Dict[Tuple[str, bool], object] = {}
        self._lock = threading.Lock()

    def model_path(self, model_id: str) -> Path:
        return Path(self._cfg.model_path_template.format(model_id=model_id))

    def providers(self, use_acceleration: bool) -> List[str]:
        if use_acceleration:
            return list(self._cfg.accelerated_providers)
        return list(CPU_PROVIDERS)

    def load(self, model_id: str, use_acceleration: bool = False):
        """
        Load (or return the cached) Kokoro instance for a model id.

        Raises:
            RuntimeError: If kokoro-onnx is missing or model files are absent.
        """
        key = (model_id, use_acceleration)
        with self._lock:
            model = self._models.get(key)
            if model is not None:
                return model

            try:
                import onnxruntime as ort
                from kokoro_onnx import Kokoro
            except ImportError as exc:
                raise RuntimeError(
                    "Kokoro dependency missing. Install with: pip install kokoro-onnx"
                ) from exc

            model_path = self.model_path(model_id)
            voices_path = Path(self._cfg.voices_path)
            for path in (model_path, voices_path):
                if not path.exists():
                    raise RuntimeError(
                        f"Kokoro model file not found: {path}. "
                        "Download from: https://huggingface.co/onnx-community/Kokoro-82M-v1.0-ONNX"
                    )

            # Keep only the providers this onnxruntime build offers
            available = set(ort.get_available_providers())
            providers = [p for p in self.providers(use_acceleration) if p in available]
            if not providers:
                providers = list(CPU_PROVIDERS)

            info(self.logger, "loading model", model=model_id, path=str(model_path),
                 providers=",".join(providers))
            with timeit("load_model") as t_load:
                session = ort.InferenceSession(str(model_path), providers=providers)
                model = Kokoro.from_session(session, str(voices_path))

            info(self.logger, "model loaded", model=model_id, seconds=round(t_load.seconds, 3))
            self._models[key] = model
            return model

    def loaded_models(self) -> List[str]:
        with self._lock:
            return sorted({model_id for model_id, _ in self._models})

    def voice_style(self, model, voices: Tuple[VoiceWeight, ...]) -> np.ndarray:
        """
        Blend the style vectors of a voice mixture.

        Weights are normalized to sum to one; an all-zero mixture is
        treated as equal weights.
        """
        weights = np.array([v.weight for v in voices], dtype=np.float32)
        total = float(weights.sum())
        if total <= 0:
            weights = np.ones_like(weights)
            total = float(weights.sum())
        weights = weights / total

        style = None
        for voice, weight in zip(voices, weights):
            vec = np.asarray(model.get_voice_style(voice.voice_id), dtype=np.float32) * weight
            style = vec if style is None else style + vec
        return style

    def clamp_speed(self, speed: float) -> float:
        clamped = min(max(float(speed), MIN_SPEED), MAX_SPEED)
        if clamped != speed:
            warn(self.logger, "speed_clamped", requested=speed, used=clamped)
        return clamped

    def render(self, request: EngineRequest) -> tuple[np.ndarray, int]:
        model = self.load(request.model_id, request.use_acceleration)

        debug(self.logger, "kokoro_synth_start", text_len=len(request.text),
              text=request.text[:100], model=request.model_id,
              voices=",".join(v.voice_id for v in request.voices))

        if len(request.voices) == 1:
            voice = request.voices[0].voice_id
        else:
            voice = self.voice_style(model, request.voices)

        samples, sample_rate = model.create(
            request.text,
            voice=voice,
            speed=self.clamp_speed(request.speed),
            lang=request.language_id,
        )
        return np.asarray(samples, dtype=np.float32), int(sample_rate)

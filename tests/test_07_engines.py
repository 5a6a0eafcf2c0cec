"""
Tests for the engine boundary, the engine factory and both engines.

Tests cover:
- VoiceWeight / EngineRequest invariants
- get_engine() selection, singleton and reset
- ToneEngine determinism and encoding
- KokoroEngine with kokoro-onnx and onnxruntime mocked out
"""
import asyncio
import io
import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import soundfile as sf

from kokoro_speech.core.config import Settings
from kokoro_speech.tts.engine import (
    BaseSpeechEngine,
    EngineRequest,
    VoiceWeight,
    get_engine,
    reset_engine,
)
from kokoro_speech.utils.audio import ResponseFormat


def _engine_request(**overrides) -> EngineRequest:
    fields = dict(
        text="hello",
        language_id="en-us",
        voices=(VoiceWeight("af_heart", 1.0),),
        model_id="model_q8f16",
        speed=1.0,
        format=ResponseFormat.WAV,
    )
    fields.update(overrides)
    return EngineRequest(**fields)


class TestBoundaryTypes:
    """Tests for VoiceWeight and EngineRequest."""

    def test_negative_weight_rejected(self):
        """Voice weights must be non-negative."""
        with pytest.raises(ValueError):
            VoiceWeight("af_heart", -0.1)

    def test_zero_weight_allowed(self):
        """A zero weight is valid."""
        assert VoiceWeight("af_heart", 0.0).weight == 0.0

    def test_empty_mixture_rejected(self):
        """An engine request needs at least one voice."""
        with pytest.raises(ValueError):
            _engine_request(voices=())

    def test_acceleration_off_by_default(self):
        """use_acceleration defaults to False."""
        assert _engine_request().use_acceleration is False

    def test_base_render_not_implemented(self):
        """BaseSpeechEngine.render must be overridden."""
        engine = BaseSpeechEngine(Settings(raw={}))
        with pytest.raises(NotImplementedError):
            engine.render(_engine_request())


class TestEngineFactory:
    """Tests for get_engine()."""

    def test_tone_selected(self):
        """engine.type tone builds a ToneEngine."""
        engine = get_engine(Settings(raw={"engine": {"type": "tone"}}))
        assert engine.name == "tone"

    def test_kokoro_selected(self, monkeypatch):
        """engine.type kokoro builds a KokoroEngine without loading a model."""
        monkeypatch.delenv("KOKORO_SPEECH_ENGINE")
        engine = get_engine(Settings(raw={"engine": {"type": "kokoro"}}))
        assert engine.name == "kokoro"
        assert engine.loaded_models() == []

    def test_singleton(self):
        """Repeated calls return the same instance."""
        settings = Settings(raw={})
        assert get_engine(settings) is get_engine(settings)

    def test_reset(self):
        """reset_engine() forces a new instance."""
        settings = Settings(raw={})
        first = get_engine(settings)
        reset_engine()
        assert get_engine(settings) is not first

    def test_type_change_replaces_engine(self, monkeypatch):
        """A different engine type replaces the cached engine."""
        tone = get_engine(Settings(raw={}))
        monkeypatch.delenv("KOKORO_SPEECH_ENGINE")
        kokoro = get_engine(Settings(raw={"engine": {"type": "kokoro"}}))
        assert tone.name == "tone"
        assert kokoro.name == "kokoro"


class TestToneEngine:
    """Tests for ToneEngine."""

    @pytest.fixture
    def engine(self):
        from kokoro_speech.tts.engines.tone_engine import ToneEngine
        return ToneEngine(Settings(raw={"tone": {"sample_rate": 16000}}))

    def test_deterministic(self, engine):
        """The same request renders the same samples."""
        a, _ = engine.render(_engine_request())
        b, _ = engine.render(_engine_request())
        assert np.array_equal(a, b)

    def test_sample_rate_from_config(self, engine):
        """The configured sample rate is used."""
        _, sr = engine.render(_engine_request())
        assert sr == 16000

    def test_speed_shortens_audio(self, engine):
        """Higher speed yields fewer samples."""
        slow, _ = engine.render(_engine_request(speed=0.5))
        fast, _ = engine.render(_engine_request(speed=2.0))
        assert fast.size < slow.size

    def test_voice_changes_audio(self, engine):
        """Different voices render different audio."""
        a, _ = engine.render(_engine_request(voices=(VoiceWeight("af_heart", 1.0),)))
        b, _ = engine.render(_engine_request(voices=(VoiceWeight("am_adam", 1.0),)))
        assert a.shape == b.shape
        assert not np.array_equal(a, b)

    def test_empty_text(self, engine):
        """Empty text still renders a short silent clip."""
        samples, _ = engine.render(_engine_request(text=""))
        assert samples.size > 0
        assert float(np.abs(samples).max()) == 0.0

    def test_synthesize_wav(self, engine):
        """Async synthesize returns a decodable WAV with timings."""
        result = asyncio.run(engine.synthesize(_engine_request()))
        assert result.mime_type == "audio/wav"
        assert result.sample_rate == 16000
        assert sf.info(io.BytesIO(result.buffer)).samplerate == 16000
        assert set(result.timings_s) == {"synth", "encode"}

    def test_synthesize_mp3(self, engine):
        """mp3 requests are encoded as MPEG audio."""
        result = asyncio.run(engine.synthesize(_engine_request(format=ResponseFormat.MP3)))
        assert result.mime_type == "audio/mpeg"
        assert len(result.buffer) > 0


class _FakeKokoro:
    """Stand-in for kokoro_onnx.Kokoro."""

    instances = []

    def __init__(self):
        self.create_calls = []

    @classmethod
    def from_session(cls, session, voices_path):
        inst = cls()
        inst.session = session
        inst.voices_path = voices_path
        cls.instances.append(inst)
        return inst

    def get_voice_style(self, name):
        return np.full((4, 1, 8), 1.0 if name == "af_heart" else 3.0, dtype=np.float32)

    def create(self, text, voice, speed, lang):
        self.create_calls.append({"text": text, "voice": voice, "speed": speed, "lang": lang})
        return np.zeros(2400, dtype=np.float32), 24000


class TestKokoroEngine:
    """Tests for KokoroEngine with mocked inference libraries."""

    @pytest.fixture
    def model_files(self, tmp_path):
        onnx_dir = tmp_path / "onnx"
        onnx_dir.mkdir()
        (onnx_dir / "model_q8f16.onnx").write_bytes(b"onnx")
        voices = tmp_path / "voices-v1.0.bin"
        voices.write_bytes(b"voices")
        return Settings(raw={"kokoro": {
            "model_path_template": str(onnx_dir / "{model_id}.onnx"),
            "voices_path": str(voices),
        }})

    @pytest.fixture
    def mocked_libs(self):
        _FakeKokoro.instances = []
        ort = MagicMock()
        ort.get_available_providers.return_value = ["CPUExecutionProvider"]
        kokoro_onnx = MagicMock()
        kokoro_onnx.Kokoro = _FakeKokoro
        with patch.dict(sys.modules, {"onnxruntime": ort, "kokoro_onnx": kokoro_onnx}):
            yield ort

    @pytest.fixture
    def engine(self, model_files, mocked_libs):
        from kokoro_speech.tts.engines.kokoro_engine import KokoroEngine
        return KokoroEngine(model_files)

    def test_model_path(self, engine):
        """Model paths are derived from the template."""
        assert engine.model_path("model_fp16").name == "model_fp16.onnx"

    def test_providers(self, engine):
        """Acceleration selects the configured provider list."""
        assert engine.providers(False) == ["CPUExecutionProvider"]
        assert engine.providers(True)[0] == "CUDAExecutionProvider"

    def test_load_cached(self, engine, mocked_libs):
        """A model id is loaded once."""
        first = engine.load("model_q8f16")
        second = engine.load("model_q8f16")
        assert first is second
        assert mocked_libs.InferenceSession.call_count == 1
        assert engine.loaded_models() == ["model_q8f16"]

    def test_unavailable_providers_dropped(self, engine, mocked_libs):
        """Providers missing from this onnxruntime build are not requested."""
        engine.load("model_q8f16", use_acceleration=True)
        _, kwargs = mocked_libs.InferenceSession.call_args
        assert kwargs["providers"] == ["CPUExecutionProvider"]

    def test_missing_model_file(self, engine):
        """A missing ONNX file raises RuntimeError naming the path."""
        with pytest.raises(RuntimeError, match="model_fp16.onnx"):
            engine.load("model_fp16")

    def test_render_single_voice(self, engine):
        """A single voice is passed to kokoro-onnx by name."""
        samples, sr = engine.render(_engine_request(text="hi", language_id="en-gb", speed=1.2))
        call = _FakeKokoro.instances[0].create_calls[0]
        assert call == {"text": "hi", "voice": "af_heart", "speed": 1.2, "lang": "en-gb"}
        assert sr == 24000
        assert samples.dtype == np.float32

    def test_render_mixture_blends_styles(self, engine):
        """A voice mixture is blended by normalized weight."""
        voices = (VoiceWeight("af_heart", 3.0), VoiceWeight("am_adam", 1.0))
        engine.render(_engine_request(voices=voices))
        style = _FakeKokoro.instances[0].create_calls[0]["voice"]
        assert isinstance(style, np.ndarray)
        assert np.allclose(style, 0.75 * 1.0 + 0.25 * 3.0)

    def test_zero_weights_equal_blend(self, engine):
        """An all-zero mixture is treated as equal weights."""
        model = engine.load("model_q8f16")
        style = engine.voice_style(model, (VoiceWeight("af_heart", 0), VoiceWeight("am_adam", 0)))
        assert np.allclose(style, 2.0)

    @pytest.mark.parametrize("requested,used", [(0.25, 0.5), (5.0, 2.0), (1.5, 1.5)])
    def test_speed_clamped(self, engine, requested, used):
        """Speeds outside kokoro-onnx's range are clamped."""
        engine.render(_engine_request(speed=requested))
        assert _FakeKokoro.instances[0].create_calls[0]["speed"] == used

    def test_warmup_loads_model(self, engine):
        """warmup() preloads the model and marks the engine warm."""
        engine.warmup("model_q8f16")
        assert engine.is_warmed()
        assert engine.loaded_models() == ["model_q8f16"]

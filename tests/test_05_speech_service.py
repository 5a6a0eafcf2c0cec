"""
Tests for SpeechService - synthesis dispatch.

Tests cover:
- build_engine_request() field mapping
- synthesize() happy path with a fake engine
- Engine failures wrapped as SynthesisError (details not leaked)
- Timeout wrapped as SynthesisTimeoutError
- Cancellation propagates untouched
- Metrics recorded per outcome
- get_health_info() structure
"""
import asyncio
import time

import pytest

from conftest import FakeEngine
from kokoro_speech.core.metrics import metrics
from kokoro_speech.services.speech_service import (
    ErrorCode,
    SpeechService,
    SynthesisError,
    SynthesisTimeoutError,
    build_engine_request,
)
from kokoro_speech.services.validators import SynthesisRequest
from kokoro_speech.tts.engine import VoiceWeight
from kokoro_speech.utils.audio import ResponseFormat


def _request(**overrides) -> SynthesisRequest:
    fields = dict(model_id="model_q8f16", voice_id="af_heart", text="hello")
    fields.update(overrides)
    return SynthesisRequest(**fields)


def _requests_total(status: str, model: str = "model_q8f16", fmt: str = "mp3") -> float:
    value = metrics.registry.get_sample_value(
        "speech_requests_total", {"model": model, "format": fmt, "status": status}
    )
    return value or 0.0


class TestBuildEngineRequest:
    """Tests for build_engine_request()."""

    def test_field_mapping(self, catalog):
        """Every field is copied from the request and the resolved voice."""
        voice = catalog.voices["bf_emma"]
        engine_request = build_engine_request(
            _request(voice_id="bf_emma", response_format=ResponseFormat.WAV, speed=1.5), voice
        )
        assert engine_request.text == "hello"
        assert engine_request.language_id == "en-gb"
        assert engine_request.voices == (VoiceWeight("bf_emma", 1.0),)
        assert engine_request.model_id == "model_q8f16"
        assert engine_request.speed == 1.5
        assert engine_request.format is ResponseFormat.WAV
        assert engine_request.use_acceleration is False

    def test_single_voice_weight_one(self, catalog):
        """Defaults yield exactly one voice with weight 1 and mp3 at speed 1."""
        engine_request = build_engine_request(_request(), catalog.voices["af_heart"])
        assert len(engine_request.voices) == 1
        assert engine_request.voices[0].voice_id == "af_heart"
        assert engine_request.voices[0].weight == 1.0
        assert engine_request.format is ResponseFormat.MP3
        assert engine_request.speed == 1.0

    def test_language_from_fallback_voice(self, catalog):
        """The language follows the voice actually used."""
        engine_request = build_engine_request(_request(voice_id="xx"), catalog.default_voice)
        assert engine_request.voices[0].voice_id == "af_alloy"
        assert engine_request.language_id == "en-us"


class TestSynthesize:
    """Tests for SpeechService.synthesize()."""

    def test_happy_path(self, catalog):
        """The engine result is returned unchanged."""
        engine = FakeEngine(payload=b"ID3-audio")
        service = SpeechService(catalog, engine)
        result = asyncio.run(service.synthesize(_request(), "req-1"))
        assert result.buffer == b"ID3-audio"
        assert result.mime_type == "audio/mpeg"
        assert len(engine.calls) == 1
        assert engine.calls[0].language_id == "en-us"

    def test_wav_mime(self, catalog):
        """wav requests come back as audio/wav."""
        service = SpeechService(catalog, FakeEngine())
        result = asyncio.run(service.synthesize(_request(response_format=ResponseFormat.WAV), "r"))
        assert result.mime_type == "audio/wav"

    def test_unknown_voice_falls_back(self, catalog):
        """A voice missing from the catalog is dispatched as the default voice."""
        engine = FakeEngine()
        service = SpeechService(catalog, engine)
        asyncio.run(service.synthesize(_request(voice_id="ghost"), "r"))
        assert engine.calls[0].voices[0].voice_id == "af_alloy"

    def test_success_recorded(self, catalog):
        """A successful call increments the success counter."""
        before = _requests_total("success")
        asyncio.run(SpeechService(catalog, FakeEngine()).synthesize(_request(), "r"))
        assert _requests_total("success") == before + 1

    def test_engine_error_wrapped(self, catalog):
        """Engine exceptions become SynthesisError with a generic message."""
        engine = FakeEngine(exc=RuntimeError("onnx exploded at /secret/path"))
        service = SpeechService(catalog, engine)
        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(service.synthesize(_request(), "r"))
        err = exc_info.value
        assert err.code == ErrorCode.SYNTHESIS_FAILED
        assert "secret" not in err.message
        assert err.details == {"error_type": "RuntimeError"}
        assert isinstance(err.__cause__, RuntimeError)

    def test_engine_error_recorded(self, catalog):
        """A failed call increments the error counter."""
        before = _requests_total("error")
        service = SpeechService(catalog, FakeEngine(exc=ValueError("x")))
        with pytest.raises(SynthesisError):
            asyncio.run(service.synthesize(_request(), "r"))
        assert _requests_total("error") == before + 1

    def test_timeout(self, catalog):
        """An engine slower than timeout_s raises SynthesisTimeoutError."""
        service = SpeechService(catalog, FakeEngine(delay_s=1.0), timeout_s=0.05)
        with pytest.raises(SynthesisTimeoutError) as exc_info:
            asyncio.run(service.synthesize(_request(), "r"))
        assert exc_info.value.code == ErrorCode.TIMEOUT
        assert exc_info.value.message == "Speech synthesis timed out"

    def test_zero_timeout_waits(self, catalog):
        """timeout_s=0 leaves the engine call unbounded."""
        service = SpeechService(catalog, FakeEngine(delay_s=0.05), timeout_s=0)
        result = asyncio.run(service.synthesize(_request(), "r"))
        assert result.buffer == b"FAKE-AUDIO"

    @pytest.mark.parametrize("timeout_s", [0, 5.0])
    def test_engine_timeout_error_is_failure(self, catalog, timeout_s):
        """A TimeoutError raised by the engine itself is a synthesis failure."""
        before = _requests_total("timeout")
        service = SpeechService(catalog, FakeEngine(exc=TimeoutError("socket")), timeout_s=timeout_s)
        with pytest.raises(SynthesisError) as exc_info:
            asyncio.run(service.synthesize(_request(), "r"))
        assert exc_info.value.code == ErrorCode.SYNTHESIS_FAILED
        assert exc_info.value.details == {"error_type": "TimeoutError"}
        assert _requests_total("timeout") == before

    def test_bounded_call_returns_result(self, catalog):
        """An engine within timeout_s returns its result."""
        service = SpeechService(catalog, FakeEngine(delay_s=0.01), timeout_s=5.0)
        result = asyncio.run(service.synthesize(_request(), "r"))
        assert result.buffer == b"FAKE-AUDIO"

    def test_timeout_recorded(self, catalog):
        """An elapsed deadline increments the timeout counter."""
        before = _requests_total("timeout")
        service = SpeechService(catalog, FakeEngine(delay_s=1.0), timeout_s=0.05)
        with pytest.raises(SynthesisTimeoutError):
            asyncio.run(service.synthesize(_request(), "r"))
        assert _requests_total("timeout") == before + 1

    def test_cancellation_propagates(self, catalog):
        """Cancelling the caller cancels the dispatch without wrapping."""
        service = SpeechService(catalog, FakeEngine(delay_s=5.0))

        async def _run():
            task = asyncio.create_task(service.synthesize(_request(), "r"))
            await asyncio.sleep(0.01)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(_run())

    def test_concurrent_requests_independent(self, catalog):
        """Requests awaiting the engine do not block each other."""
        engine = FakeEngine(delay_s=0.2)
        service = SpeechService(catalog, engine)

        async def _run():
            return await asyncio.gather(*[
                service.synthesize(_request(text=f"t{i}"), f"r{i}") for i in range(5)
            ])

        started = time.perf_counter()
        results = asyncio.run(_run())
        assert time.perf_counter() - started < 0.8
        assert len(results) == 5
        assert sorted(call.text for call in engine.calls) == [f"t{i}" for i in range(5)]


class TestPrepareAndHealth:
    """Tests for prepare() and get_health_info()."""

    def test_prepare_does_not_call_engine(self, catalog):
        """prepare() builds the request without synthesis."""
        engine = FakeEngine()
        engine_request = SpeechService(catalog, engine).prepare(_request(voice_id="jm_kumo"))
        assert engine_request.language_id == "ja"
        assert engine.calls == []

    def test_health_info(self, catalog):
        """Health info reports engine and catalog status."""
        info = SpeechService(catalog, FakeEngine()).get_health_info()
        assert info == {
            "ok": True,
            "engine": "fake",
            "warmed_up": True,
            "loaded_models": [],
            "models": len(catalog.model_ids),
            "voices": len(catalog.voice_ids),
        }

    def test_warmup_skipped_by_env(self, catalog):
        """KOKORO_SPEECH_SKIP_WARMUP=1 skips engine warmup."""
        from unittest.mock import MagicMock

        engine = MagicMock()
        SpeechService(catalog, engine).warmup("model_q8f16")
        engine.warmup.assert_not_called()

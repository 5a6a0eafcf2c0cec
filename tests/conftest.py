"""Shared fixtures: isolated environment, catalog, fake engine, test client."""
from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest

from kokoro_speech.tts.catalog import load_catalog
from kokoro_speech.tts.engine import EngineRequest, EngineResult, reset_engine
from kokoro_speech.utils.audio import MIME_TYPES


class FakeEngine:
    """
    Engine double recording every EngineRequest it receives.

    Returns a fixed payload with the MIME type of the requested format;
    can be told to raise or to sleep before answering.
    """

    name = "fake"

    def __init__(self, payload: bytes = b"FAKE-AUDIO", exc: Optional[BaseException] = None,
                 delay_s: float = 0.0):
        self.payload = payload
        self.exc = exc
        self.delay_s = delay_s
        self.calls: List[EngineRequest] = []

    async def synthesize(self, request: EngineRequest) -> EngineResult:
        self.calls.append(request)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.exc is not None:
            raise self.exc
        return EngineResult(buffer=self.payload, mime_type=MIME_TYPES[request.format],
                            sample_rate=24000)

    def warmup(self, model_id=None) -> None:
        pass

    def is_warmed(self) -> bool:
        return True

    def loaded_models(self) -> List[str]:
        return []


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Run every test on the tone engine, without warmup or a settings file."""
    monkeypatch.setenv("KOKORO_SPEECH_SKIP_WARMUP", "1")
    monkeypatch.setenv("KOKORO_SPEECH_NO_COLOR", "1")
    monkeypatch.setenv("KOKORO_SPEECH_ENGINE", "tone")
    monkeypatch.setenv("KOKORO_SPEECH_SETTINGS", "tests/does-not-exist.yaml")
    monkeypatch.delenv("KOKORO_SPEECH_ENGINE_TIMEOUT", raising=False)

    from kokoro_speech.api.dependencies import reset_dependencies
    reset_dependencies()
    reset_engine()
    yield
    reset_dependencies()
    reset_engine()


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def make_client(catalog):
    """Build a TestClient whose SpeechService wraps the given engine."""
    from fastapi.testclient import TestClient

    from kokoro_speech.api.dependencies import get_speech_service
    from kokoro_speech.main import create_app
    from kokoro_speech.services.speech_service import SpeechService

    clients = []

    def _make(engine, timeout_s: float = 0.0):
        app = create_app()
        service = SpeechService(catalog=catalog, engine=engine, timeout_s=timeout_s)
        app.dependency_overrides[get_speech_service] = lambda: service
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client, fake_engine):
    return make_client(fake_engine)

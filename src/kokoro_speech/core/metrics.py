"""
Prometheus Metrics for the Speech Service.

Metrics Exposed:
    speech_requests_total             - Counter by model, format and status
    speech_request_duration_seconds   - Histogram of engine call latency
    speech_audio_bytes_total          - Counter of audio bytes returned
    speech_validation_failures_total  - Counter of rejected request bodies
    speech_voice_fallbacks_total      - Counter of voice lookups that fell back

All metrics live in a private CollectorRegistry so several service instances
(e.g. in tests) do not collide on the process-wide default registry.

Usage:
    from kokoro_speech.core.metrics import metrics

    metrics.record_request(model="model_q8f16", fmt="mp3", status="success",
                           duration=0.8, audio_bytes=40812)
    content, content_type = metrics.get_metrics_response()
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class SpeechMetrics:
    """
    Speech service metrics collection.

    A single module-level instance (``metrics``) is shared by the API and
    service layers. Prometheus metric objects are thread-safe.
    """

    def __init__(self) -> None:
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "speech_requests_total",
            "Total speech synthesis requests",
            ["model", "format", "status"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "speech_request_duration_seconds",
            "Speech synthesis duration in seconds",
            ["model", "format"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "speech_audio_bytes_total",
            "Total audio bytes returned",
            registry=self._registry,
        )
        self._validation_failures = Counter(
            "speech_validation_failures_total",
            "Total rejected speech request bodies",
            registry=self._registry,
        )
        self._voice_fallbacks = Counter(
            "speech_voice_fallbacks_total",
            "Voice lookups that fell back to the default voice",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_request(
        self,
        model: str,
        fmt: str,
        status: str,
        duration: float,
        audio_bytes: int = 0,
    ) -> None:
        """
        Record a completed engine call.

        Args:
            model: Catalog model id.
            fmt: Output format ("mp3", "wav").
            status: "success", "error" or "timeout".
            duration: Engine call duration in seconds.
            audio_bytes: Size of the returned audio.
        """
        self._requests_total.labels(model=model, format=fmt, status=status).inc()
        self._request_duration.labels(model=model, format=fmt).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_validation_failure(self) -> None:
        self._validation_failures.inc()

    def record_voice_fallback(self) -> None:
        self._voice_fallbacks.inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """Return (content, content_type) in Prometheus text format."""
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global metrics instance
metrics = SpeechMetrics()

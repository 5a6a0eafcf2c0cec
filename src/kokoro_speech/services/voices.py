"""
Voice Resolution.

Maps a requested voice id to its descriptor. A miss falls back to the
catalog's default voice rather than failing the request; the fallback is
logged and counted so it does not go unnoticed.
"""
from __future__ import annotations

from kokoro_speech.core.logging import get_logger, warn
from kokoro_speech.core.metrics import metrics
from kokoro_speech.tts.catalog import Catalog, VoiceDescriptor

_LOG = get_logger("kokoro-speech.voices")


def resolve_voice(voice_id: str, catalog: Catalog) -> VoiceDescriptor:
    """
    Look up a voice descriptor, falling back to the default voice.

    Args:
        voice_id: Requested voice id.
        catalog: Catalog to search.

    Returns:
        The matching descriptor, or ``catalog.default_voice`` on a miss.
    """
    descriptor = catalog.voice_descriptor_of(voice_id)
    if descriptor is not None:
        return descriptor

    fallback = catalog.default_voice
    warn(_LOG, "voice_fallback", requested=voice_id, fallback=fallback.id)
    metrics.record_voice_fallback()
    return fallback

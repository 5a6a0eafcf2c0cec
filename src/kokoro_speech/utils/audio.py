"""
Audio Encoding Utilities.

Engines produce mono float32 samples in [-1, 1]; this module turns them
into the container the client asked for:
    - wav: PCM 16-bit WAV
    - mp3: MPEG layer III (libsndfile >= 1.1 through soundfile)

Example:
    >>> import numpy as np
    >>> audio = np.zeros(24000, dtype=np.float32)
    >>> data, mime = encode_audio(audio, 24000, ResponseFormat.WAV)
    >>> mime
    'audio/wav'
"""
from __future__ import annotations

import io
from enum import Enum
from typing import Dict

import numpy as np
import soundfile as sf

from kokoro_speech.core.logging import get_logger, verbose
from kokoro_speech.utils.timeit import timeit

_LOG = get_logger("kokoro-speech.audio")


class ResponseFormat(str, Enum):
    """Audio formats the speech endpoint can return."""
    MP3 = "mp3"
    WAV = "wav"


MIME_TYPES: Dict[ResponseFormat, str] = {
    ResponseFormat.MP3: "audio/mpeg",
    ResponseFormat.WAV: "audio/wav",
}

# soundfile (format, subtype) per response format
_SF_FORMATS = {
    ResponseFormat.MP3: ("MP3", "MPEG_LAYER_III"),
    ResponseFormat.WAV: ("WAV", "PCM_16"),
}


def prepare_waveform(samples: np.ndarray) -> np.ndarray:
    """
    Coerce engine output to a mono float32 array within [-1, 1].

    2D input is flattened; audio that clips is peak-normalized.
    """
    wav = np.asarray(samples, dtype=np.float32)
    if wav.ndim > 1:
        wav = wav.reshape(-1)
    if wav.size:
        peak = float(np.abs(wav).max())
        if peak > 1.0:
            wav = wav / peak
    return wav


def encode_audio(samples: np.ndarray, sample_rate: int, fmt: ResponseFormat) -> tuple[bytes, str]:
    """
    Encode a waveform into the requested format.

    Args:
        samples: Mono float32 samples.
        sample_rate: Sample rate in Hz.
        fmt: Target response format.

    Returns:
        Tuple of (encoded bytes, MIME type).
    """
    fmt = ResponseFormat(fmt)
    sf_format, sf_subtype = _SF_FORMATS[fmt]
    wav = prepare_waveform(samples)

    with timeit("encode") as t:
        buf = io.BytesIO()
        sf.write(buf, wav, sample_rate, format=sf_format, subtype=sf_subtype)
        out = buf.getvalue()

    verbose(_LOG, "audio_encoded", format=fmt.value, bytes=len(out), sr=sample_rate,
            seconds=round(t.seconds, 4))
    return out, MIME_TYPES[fmt]

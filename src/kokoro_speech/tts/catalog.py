"""
Model and Voice Catalog.

Static reference data for the Kokoro-82M v1.0 release:
    - Model ids: one per ONNX export (quantization variant)
    - Voice ids: the preset voices shipped in voices-v1.0.bin
    - Voice descriptors: voice id -> (display name, gender, language)

Kokoro voice ids encode their language and gender in the first two
characters: ``af_heart`` is an American English (``a``) female (``f``)
voice, ``bm_george`` a British English male voice, and so on.

The catalog is built once at startup and never mutated afterwards; the
validator and voice resolver receive it as an explicit argument.

Example:
    >>> catalog = load_catalog()
    >>> catalog.voices["af_heart"].language.id
    'en-us'
    >>> "model_q8f16" in catalog.model_ids
    True
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from kokoro_speech.core.config import ConfigValidationError, Defaults


@dataclass(frozen=True)
class Language:
    """A synthesis language. ``id`` is the espeak-ng tag the engine expects."""
    id: str
    name: str


@dataclass(frozen=True)
class VoiceDescriptor:
    """Resolved voice: its identifier plus the language it speaks."""
    id: str
    name: str
    language: Language
    gender: str


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    name: str


# Kokoro voice prefix letter -> language
LANGUAGES: Dict[str, Language] = {
    "a": Language(id="en-us", name="English (US)"),
    "b": Language(id="en-gb", name="English (UK)"),
    "j": Language(id="ja", name="Japanese"),
    "z": Language(id="cmn", name="Mandarin Chinese"),
    "e": Language(id="es", name="Spanish"),
    "f": Language(id="fr-fr", name="French"),
    "h": Language(id="hi", name="Hindi"),
    "i": Language(id="it", name="Italian"),
    "p": Language(id="pt-br", name="Portuguese (Brazil)"),
}

GENDERS = {"f": "female", "m": "male"}

MODELS: Tuple[ModelDescriptor, ...] = (
    ModelDescriptor("model", "Kokoro 82M (fp32)"),
    ModelDescriptor("model_fp16", "Kokoro 82M (fp16)"),
    ModelDescriptor("model_quantized", "Kokoro 82M (8-bit quantized)"),
    ModelDescriptor("model_q8f16", "Kokoro 82M (q8 weights, fp16)"),
    ModelDescriptor("model_uint8", "Kokoro 82M (uint8)"),
    ModelDescriptor("model_uint8f16", "Kokoro 82M (uint8, fp16)"),
    ModelDescriptor("model_q4", "Kokoro 82M (q4)"),
    ModelDescriptor("model_q4f16", "Kokoro 82M (q4, fp16)"),
)

VOICE_IDS: Tuple[str, ...] = (
    # American English
    "af_heart", "af_alloy", "af_aoede", "af_bella", "af_jessica", "af_kore",
    "af_nicole", "af_nova", "af_river", "af_sarah", "af_sky",
    "am_adam", "am_echo", "am_eric", "am_fenrir", "am_liam", "am_michael",
    "am_onyx", "am_puck", "am_santa",
    # British English
    "bf_alice", "bf_emma", "bf_isabella", "bf_lily",
    "bm_daniel", "bm_fable", "bm_george", "bm_lewis",
    # Japanese
    "jf_alpha", "jf_gongitsune", "jf_nezumi", "jf_tebukuro", "jm_kumo",
    # Mandarin Chinese
    "zf_xiaobei", "zf_xiaoni", "zf_xiaoxiao", "zf_xiaoyi",
    "zm_yunjian", "zm_yunxi", "zm_yunxia", "zm_yunyang",
    # Spanish
    "ef_dora", "em_alex", "em_santa",
    # French
    "ff_siwis",
    # Hindi
    "hf_alpha", "hf_beta", "hm_omega", "hm_psi",
    # Italian
    "if_sara", "im_nicola",
    # Portuguese (Brazil)
    "pf_dora", "pm_alex", "pm_santa",
)


def describe_voice(voice_id: str) -> VoiceDescriptor:
    """
    Build the descriptor for a Kokoro voice id.

    Raises:
        ValueError: If the prefix does not name a known language/gender.
    """
    prefix, _, name = voice_id.partition("_")
    if len(prefix) != 2 or prefix[0] not in LANGUAGES or prefix[1] not in GENDERS or not name:
        raise ValueError(f"not a Kokoro voice id: {voice_id!r}")
    return VoiceDescriptor(
        id=voice_id,
        name=name.capitalize(),
        language=LANGUAGES[prefix[0]],
        gender=GENDERS[prefix[1]],
    )


@dataclass(frozen=True)
class Catalog:
    """
    Immutable lookup tables for models and voices.

    Attributes:
        models: Known models, in display order.
        voices: Voice id -> descriptor (read-only mapping, display order).
        default_voice_id: Voice used when a lookup misses.
    """
    models: Tuple[ModelDescriptor, ...]
    voices: Mapping[str, VoiceDescriptor]
    default_voice_id: str
    model_ids: Tuple[str, ...] = field(init=False)
    voice_ids: Tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        if self.default_voice_id not in self.voices:
            raise ConfigValidationError(
                f"catalog.default_voice must be a known voice, got {self.default_voice_id!r}"
            )
        object.__setattr__(self, "voices", MappingProxyType(dict(self.voices)))
        object.__setattr__(self, "model_ids", tuple(m.id for m in self.models))
        object.__setattr__(self, "voice_ids", tuple(self.voices))

    @property
    def default_voice(self) -> VoiceDescriptor:
        return self.voices[self.default_voice_id]

    def voice_descriptor_of(self, voice_id: str) -> Optional[VoiceDescriptor]:
        """Return the descriptor for ``voice_id`` or None."""
        return self.voices.get(voice_id)


def load_catalog(default_voice: str = Defaults.CATALOG_DEFAULT_VOICE) -> Catalog:
    """
    Build the built-in Kokoro v1.0 catalog.

    Args:
        default_voice: Fallback voice id (must be in the catalog).

    Raises:
        ConfigValidationError: If default_voice is not a catalog voice.
    """
    voices = {voice_id: describe_voice(voice_id) for voice_id in VOICE_IDS}
    return Catalog(models=MODELS, voices=voices, default_voice_id=default_voice)

"""Tests for the model and voice catalog."""
from __future__ import annotations

import pytest

from kokoro_speech.core.config import ConfigValidationError
from kokoro_speech.tts.catalog import (
    LANGUAGES,
    MODELS,
    VOICE_IDS,
    Catalog,
    describe_voice,
    load_catalog,
)


class TestDescribeVoice:
    """Tests for describe_voice()."""

    def test_american_female(self):
        """af_ prefix is American English, female."""
        voice = describe_voice("af_heart")
        assert voice.id == "af_heart"
        assert voice.name == "Heart"
        assert voice.gender == "female"
        assert voice.language.id == "en-us"

    def test_british_male(self):
        """bm_ prefix is British English, male."""
        voice = describe_voice("bm_george")
        assert voice.gender == "male"
        assert voice.language.id == "en-gb"

    def test_other_languages(self):
        """Language letters map to espeak tags."""
        assert describe_voice("jf_alpha").language.id == "ja"
        assert describe_voice("zm_yunxi").language.id == "cmn"
        assert describe_voice("ff_siwis").language.id == "fr-fr"
        assert describe_voice("pm_alex").language.id == "pt-br"

    @pytest.mark.parametrize("voice_id", ["alloy", "xf_test", "ax_test", "af_", "afx_heart"])
    def test_invalid_ids(self, voice_id):
        """Ids without a known language/gender prefix are rejected."""
        with pytest.raises(ValueError):
            describe_voice(voice_id)


class TestCatalog:
    """Tests for the built-in catalog."""

    def test_all_voices_describable(self):
        """Every shipped voice id has a valid prefix."""
        for voice_id in VOICE_IDS:
            assert describe_voice(voice_id).language in LANGUAGES.values()

    def test_voice_ids_unique(self):
        """Voice ids are not duplicated."""
        assert len(set(VOICE_IDS)) == len(VOICE_IDS)

    def test_known_members(self, catalog):
        """The ids used by the HTTP scenarios are present."""
        assert "model_q8f16" in catalog.model_ids
        assert "af_heart" in catalog.voice_ids
        assert "af_alloy" in catalog.voice_ids

    def test_order_preserved(self, catalog):
        """Models and voices keep declaration order."""
        assert catalog.model_ids == tuple(m.id for m in MODELS)
        assert catalog.voice_ids == VOICE_IDS

    def test_default_voice(self, catalog):
        """The default voice resolves to af_alloy."""
        assert catalog.default_voice.id == "af_alloy"
        assert catalog.default_voice.language.id == "en-us"

    def test_voice_descriptor_of(self, catalog):
        """Lookup returns a descriptor or None."""
        assert catalog.voice_descriptor_of("bf_emma").language.id == "en-gb"
        assert catalog.voice_descriptor_of("nobody") is None

    def test_voices_read_only(self, catalog):
        """The voices mapping cannot be mutated."""
        with pytest.raises(TypeError):
            catalog.voices["new"] = catalog.default_voice

    def test_catalog_frozen(self, catalog):
        """Catalog attributes cannot be reassigned."""
        with pytest.raises(AttributeError):
            catalog.default_voice_id = "af_heart"

    def test_custom_default_voice(self):
        """Another catalog voice can be the default."""
        assert load_catalog(default_voice="bm_george").default_voice.id == "bm_george"

    def test_unknown_default_voice_rejected(self):
        """The default voice must be a catalog voice."""
        with pytest.raises(ConfigValidationError):
            load_catalog(default_voice="nobody")

    def test_substituted_catalog(self):
        """A hand-built catalog works for tests and embedding."""
        small = Catalog(
            models=MODELS[:1],
            voices={"af_heart": describe_voice("af_heart")},
            default_voice_id="af_heart",
        )
        assert small.model_ids == ("model",)
        assert small.voice_ids == ("af_heart",)

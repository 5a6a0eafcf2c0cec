"""
Configuration Management for kokoro-speech.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (KOKORO_SPEECH_ENGINE, KOKORO_SPEECH_LOG_LEVEL, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    engine:
      type: kokoro
      timeout_s: 60
      warmup_model: model_q8f16

    kokoro:
      model_path_template: models/kokoro/onnx/{model_id}.onnx
      voices_path: models/kokoro/voices-v1.0.bin

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import os
import yaml

from kokoro_speech.core.logging.levels import coerce_level


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    These values are used when no override is provided via YAML config
    or environment variables.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Engine boundary
    # ─────────────────────────────────────────────────────────────────────────
    ENGINE_TYPE = "kokoro"              # kokoro | tone
    ENGINE_TIMEOUT_S = 0.0              # 0 = wait for the engine indefinitely
    ENGINE_WARMUP_MODEL = "model_q8f16"

    # ─────────────────────────────────────────────────────────────────────────
    # Kokoro (ONNX)
    # ─────────────────────────────────────────────────────────────────────────
    KOKORO_MODEL_PATH_TEMPLATE = "models/kokoro/onnx/{model_id}.onnx"
    KOKORO_VOICES_PATH = "models/kokoro/voices-v1.0.bin"
    KOKORO_ACCELERATED_PROVIDERS = ("CUDAExecutionProvider", "CPUExecutionProvider")

    # ─────────────────────────────────────────────────────────────────────────
    # Tone engine
    # ─────────────────────────────────────────────────────────────────────────
    TONE_SAMPLE_RATE = 24000

    # ─────────────────────────────────────────────────────────────────────────
    # Catalog
    # ─────────────────────────────────────────────────────────────────────────
    CATALOG_DEFAULT_VOICE = "af_alloy"

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG

    SETTINGS_PATH = "config/settings.yaml"


@dataclass
class EngineConfig:
    """
    Synthesis engine boundary configuration.

    timeout_s bounds the engine call; 0 disables the bound.
    """
    type: str = Defaults.ENGINE_TYPE
    timeout_s: float = Defaults.ENGINE_TIMEOUT_S
    warmup_model: Optional[str] = Defaults.ENGINE_WARMUP_MODEL


@dataclass
class KokoroConfig:
    """
    Kokoro ONNX engine configuration.

    model_path_template is formatted with ``model_id`` to locate the ONNX
    file for each catalog model.
    """
    model_path_template: str = Defaults.KOKORO_MODEL_PATH_TEMPLATE
    voices_path: str = Defaults.KOKORO_VOICES_PATH
    accelerated_providers: Tuple[str, ...] = Defaults.KOKORO_ACCELERATED_PROVIDERS


@dataclass
class ToneConfig:
    """Tone engine configuration."""
    sample_rate: int = Defaults.TONE_SAMPLE_RATE


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle (default)
        3 = VERBOSE: Per-stage timing, detailed flow
        4 = DEBUG: Internal state, full request text
    """
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServiceConfig:
    """
    Validated configuration for the speech service.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.engine.type)
    """
    engine: EngineConfig = field(default_factory=EngineConfig)
    kokoro: KokoroConfig = field(default_factory=KokoroConfig)
    tone: ToneConfig = field(default_factory=ToneConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    default_voice: str = Defaults.CATALOG_DEFAULT_VOICE

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Engine boundary (environment variables take precedence)
        # ─────────────────────────────────────────────────────────────────────
        engine_raw = raw.get("engine", {}) or {}
        engine_type = os.getenv("KOKORO_SPEECH_ENGINE") or engine_raw.get("type", Defaults.ENGINE_TYPE)
        timeout_raw = os.getenv("KOKORO_SPEECH_ENGINE_TIMEOUT") or engine_raw.get(
            "timeout_s", Defaults.ENGINE_TIMEOUT_S
        )
        try:
            timeout_s = float(timeout_raw)
        except (TypeError, ValueError):
            raise ConfigValidationError(f"engine.timeout_s must be a number, got {timeout_raw!r}")

        engine = EngineConfig(
            type=str(engine_type).strip().lower(),
            timeout_s=timeout_s,
            warmup_model=engine_raw.get("warmup_model", Defaults.ENGINE_WARMUP_MODEL),
        )
        cls._validate_non_negative("engine.timeout_s", engine.timeout_s)
        cls._validate_choice("engine.type", engine.type, ("kokoro", "tone"))

        # ─────────────────────────────────────────────────────────────────────
        # Kokoro
        # ─────────────────────────────────────────────────────────────────────
        kokoro_raw = raw.get("kokoro", {}) or {}
        kokoro = KokoroConfig(
            model_path_template=str(
                kokoro_raw.get("model_path_template", Defaults.KOKORO_MODEL_PATH_TEMPLATE)
            ),
            voices_path=str(kokoro_raw.get("voices_path", Defaults.KOKORO_VOICES_PATH)),
            accelerated_providers=tuple(
                kokoro_raw.get("accelerated_providers", Defaults.KOKORO_ACCELERATED_PROVIDERS)
            ),
        )
        if "{model_id}" not in kokoro.model_path_template:
            raise ConfigValidationError(
                "kokoro.model_path_template must contain the {model_id} placeholder"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Tone
        # ─────────────────────────────────────────────────────────────────────
        tone_raw = raw.get("tone", {}) or {}
        tone = ToneConfig(sample_rate=int(tone_raw.get("sample_rate", Defaults.TONE_SAMPLE_RATE)))
        cls._validate_positive("tone.sample_rate", tone.sample_rate)

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Names ("DEBUG") go through the logging level table; numbers are range-checked
        if isinstance(log_level_raw, str):
            log_level = int(coerce_level(log_level_raw))
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(level=log_level)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        catalog_raw = raw.get("catalog", {}) or {}

        return cls(
            engine=engine,
            kokoro=kokoro,
            tone=tone,
            logging=logging_cfg,
            default_voice=str(catalog_raw.get("default_voice", Defaults.CATALOG_DEFAULT_VOICE)),
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")

    @staticmethod
    def _validate_choice(name: str, value: str, choices: Tuple[str, ...]) -> None:
        """Validate that a value is one of the allowed choices."""
        if value not in choices:
            raise ConfigValidationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation; build a validated
    ServiceConfig with ServiceConfig.from_settings(settings).

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]


def resolve_settings_path(path: Optional[str] = None) -> str:
    """Return the settings path, honouring KOKORO_SPEECH_SETTINGS."""
    return path or os.getenv("KOKORO_SPEECH_SETTINGS") or Defaults.SETTINGS_PATH


def load_settings(path: Optional[str] = None, missing_ok: bool = False) -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML configuration file. Defaults to
            KOKORO_SPEECH_SETTINGS or config/settings.yaml.
        missing_ok: Return default settings instead of raising when the
            file does not exist.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist and
            missing_ok is False.
    """
    p = Path(resolve_settings_path(path))
    if not p.exists():
        if missing_ok:
            return Settings(raw={})
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    return Settings(raw=raw)

"""
Request Context and Configuration State for Logging.

The request id lives in a ContextVar, so each asyncio task handling a
request sees its own id. Level and file settings are process-wide.

Environment Variables:
    - KOKORO_SPEECH_LOG_LEVEL: Override log level (1-4 or name)
    - KOKORO_SPEECH_LOG_DIR: Directory for the JSONL log file
    - KOKORO_SPEECH_JSONL_FILE: JSONL filename
    - KOKORO_SPEECH_LOG_ROTATE_BYTES: Max log file size
    - KOKORO_SPEECH_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside a request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Get the request id of the current context ("-" if unset)."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context for log correlation."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Current level as a name ("MINIMAL", "NORMAL", "VERBOSE", "DEBUG")."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging configuration from settings.yaml and the environment.

    Environment variables win over the ``logging`` section of the settings
    file. A missing or unreadable settings file leaves the defaults in place.
    """
    cfg: Dict[str, Any] = {}

    try:
        from kokoro_speech.core.config import load_settings
        settings = load_settings(missing_ok=True)
        cfg.update(settings.raw.get("logging", {}) or {})
    except (OSError, yaml.YAMLError) as exc:
        # Logging is not configured yet, so report on stderr
        import sys
        print(f"kokoro-speech: ignoring unreadable settings for logging: {exc}", file=sys.stderr)

    if os.getenv("KOKORO_SPEECH_LOG_LEVEL"):
        cfg["level"] = os.environ["KOKORO_SPEECH_LOG_LEVEL"]
    if os.getenv("KOKORO_SPEECH_LOG_DIR"):
        cfg["log_dir"] = os.environ["KOKORO_SPEECH_LOG_DIR"]
    if os.getenv("KOKORO_SPEECH_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["KOKORO_SPEECH_JSONL_FILE"]

    rotate_bytes = _env_int("KOKORO_SPEECH_LOG_ROTATE_BYTES")
    if rotate_bytes is not None:
        cfg["rotate_max_bytes"] = rotate_bytes
    rotate_backup = _env_int("KOKORO_SPEECH_LOG_ROTATE_BACKUP")
    if rotate_backup is not None:
        cfg["rotate_backup_count"] = rotate_backup

    return cfg

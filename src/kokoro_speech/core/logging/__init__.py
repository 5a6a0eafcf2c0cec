"""
Logging for the kokoro-speech service.

Every log line is an event name plus key=value fields, e.g.:

    14:30:05 [ INFO  ] (3f2a9c1e04b7) speech_request model=model_q8f16 voice=af_heart format=mp3 chars=12
    14:30:05 [ WARN  ] (3f2a9c1e04b7) voice_fallback requested=xx_nobody fallback=af_alloy
    14:30:06 [SUCCESS] (3f2a9c1e04b7) done model=model_q8f16 format=mp3 bytes=40812 0.842s
    14:30:09 [ FAIL  ] (9b01c4d2aa10) engine_timeout model=model_q8f16 timeout_s=5.0

Which events are written depends on the numeric level:

    1 MINIMAL  engine failures and timeouts, internal errors
    2 NORMAL   requests accepted, rejected and done, voice fallbacks, model
               loading, warmup (default)
    3 VERBOSE  validation details, built engine requests, audio encoding
    4 DEBUG    the request text itself and raw engine output sizes

The request text is only ever logged at DEBUG.

Configuration comes from the ``logging`` section of settings.yaml and
KOKORO_SPEECH_LOG_LEVEL / _LOG_DIR / _JSONL_FILE / _NO_COLOR. With a
``log_dir`` the same events are also appended to a rotating JSONL file.

Submodules: levels (LogLevel), colors (ANSI), context (request id and
state), formatters (console and JSONL).
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

from .levels import LogLevel, LEVEL_MAP, LEVEL_NAMES, coerce_level
from .colors import Colors, supports_color, colorize, get_tag_color
from .context import (
    get_request_id,
    set_request_id,
    get_level,
    set_level,
    get_level_name,
    is_configured,
    set_configured,
    get_log_config,
    set_log_config,
    read_logging_config,
)
from .formatters import JsonlFormatter, ColoredConsoleFormatter

# Everything reaches the handlers; each handler applies its own threshold
_ALL_RECORDS = logging.DEBUG - 10


def _console_handler(level: LogLevel) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LEVEL_MAP.get(level, logging.INFO))
    handler.setFormatter(ColoredConsoleFormatter())
    return handler


def _jsonl_handler(log_config: Dict[str, Any]) -> Optional[logging.Handler]:
    log_dir = log_config.get("log_dir")
    if not log_dir:
        return None
    path = Path(log_dir) / str(log_config.get("jsonl_file", "kokoro-speech.jsonl"))
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=int(log_config.get("rotate_max_bytes", 10 * 1024 * 1024)),
        backupCount=int(log_config.get("rotate_backup_count", 5)),
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(_ALL_RECORDS)
    handler.setFormatter(JsonlFormatter())
    return handler


def configure_logging(level: Optional[int | str | LogLevel] = None, force: bool = False) -> None:
    """
    Install the console (and optional JSONL) handlers on the root logger.

    Called by create_app() and the CLI; get_logger() calls it lazily so
    library use logs sensibly too. Later calls are no-ops unless force=True.

    Args:
        level: Console level (1-4, name or LogLevel); defaults to the
            settings/environment value.
        force: Replace handlers installed by an earlier call.
    """
    from . import colors

    if is_configured() and not force:
        return

    colors.USE_COLORS = supports_color()
    log_config = read_logging_config()
    set_log_config(log_config)
    set_level(coerce_level(level or log_config.get("level", LogLevel.NORMAL)))

    root = logging.getLogger()
    root.setLevel(_ALL_RECORDS)
    root.handlers = [_console_handler(get_level())]
    jsonl = _jsonl_handler(log_config)
    if jsonl is not None:
        root.addHandler(jsonl)

    set_configured(True)


def get_logger(name: str = "kokoro-speech") -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


class _Kind(NamedTuple):
    """How one helper maps onto stdlib logging and the 1-4 scale."""
    python_level: int
    tag: str
    min_level: LogLevel


_INFO = _Kind(logging.INFO, "INFO", LogLevel.NORMAL)
_WARN = _Kind(logging.WARNING, "WARN", LogLevel.NORMAL)
_SUCCESS = _Kind(logging.INFO, "SUCCESS", LogLevel.NORMAL)
_ERROR = _Kind(logging.ERROR, "ERROR", LogLevel.MINIMAL)
_FAIL = _Kind(logging.ERROR, "FAIL", LogLevel.MINIMAL)
_VERBOSE = _Kind(logging.DEBUG, "INFO", LogLevel.VERBOSE)
_DEBUG = _Kind(logging.DEBUG - 5, "DEBUG", LogLevel.DEBUG)


def _emit(logger: logging.Logger, kind: _Kind, event: str, fields: Dict[str, Any],
          exc_info: bool = False) -> None:
    # The numeric level gates both handlers, so DEBUG-only fields
    # (request text) never reach the JSONL file at NORMAL either
    if kind.min_level > get_level():
        return
    seconds = fields.pop("seconds", None)
    logger.log(
        kind.python_level,
        event,
        exc_info=exc_info,
        extra={
            "tag": kind.tag,
            "request_id": get_request_id(),
            "event": fields.pop("event", None),
            "seconds": seconds,
            "extra_data": fields or None,
            "numeric_level": int(kind.min_level),
        },
    )


def info(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Request lifecycle events (NORMAL)."""
    _emit(logger, _INFO, msg, fields)


def warn(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Recoverable surprises such as a voice fallback (NORMAL)."""
    _emit(logger, _WARN, msg, fields)


def success(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, _SUCCESS, msg, fields)


def error(logger: logging.Logger, msg: str, exc_info: bool = False, **fields: Any) -> None:
    """Failures the caller only sees as an opaque 500 (MINIMAL)."""
    _emit(logger, _ERROR, msg, fields, exc_info=exc_info)


def fail(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, _FAIL, msg, fields)


def verbose(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, _VERBOSE, msg, fields)


def debug(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Internal detail, including request text (DEBUG only)."""
    _emit(logger, _DEBUG, msg, fields)


__all__ = [
    "LogLevel",
    "LEVEL_MAP",
    "LEVEL_NAMES",
    "coerce_level",
    "Colors",
    "supports_color",
    "colorize",
    "get_tag_color",
    "get_request_id",
    "set_request_id",
    "get_level",
    "get_level_name",
    "get_log_config",
    "JsonlFormatter",
    "ColoredConsoleFormatter",
    "configure_logging",
    "get_logger",
    "info",
    "warn",
    "error",
    "success",
    "fail",
    "verbose",
    "debug",
]
